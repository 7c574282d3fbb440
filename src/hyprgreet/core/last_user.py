"""Last logged-in username, for autofill on the next greeter start.

Stored as {"last_user": "<name>"} in a small JSON file. Only the username
is ever written; reading tolerates a missing or corrupt file.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

import structlog

log = structlog.get_logger()


def load_last_user(path: Path) -> Optional[str]:
    """Return the stored username, or None if unavailable."""
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        log.warning("last_user_read_failed", path=str(path), error=str(e))
        return None

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        log.warning("last_user_invalid", path=str(path), error=str(e))
        return None

    if not isinstance(data, dict):
        return None
    last_user = data.get("last_user")
    if isinstance(last_user, str) and last_user:
        return last_user
    return None


def save_last_user(path: Path, username: str) -> None:
    """Persist the username, flushing it to disk.

    Raises:
        OSError: If the file or its directory cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps({"last_user": username}, indent=2)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
        f.flush()
        os.fsync(f.fileno())
    log.info("last_user_saved", path=str(path))
