from hyprgreet.cli import app

app()
