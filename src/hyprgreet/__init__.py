"""
hypr-greeter - Terminal greeter for greetd

Collects credentials and a session choice, authenticates against greetd
and asks it to start the chosen session.
"""

__version__ = "0.1.0"
__author__ = "hypr-greeter contributors"
