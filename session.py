"""
Per-user session state: bearer token, signed-in user, favorites cache.

One SessionStore is created at startup and handed to every service. It is
started at login and ended at logout; nothing else reads or writes the
token. When a path is given the state is mirrored to a JSON file so a CLI
run can reuse the previous login.

The favorites list here is a fallback for when the backend is unreachable.
A successful backend response always replaces it.
"""

import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


class SessionStore:
    def __init__(self, path: Optional[str] = None):
        self.path = Path(path) if path else None
        self.token: Optional[str] = None
        self.user: Optional[dict] = None
        self._favorites: list[str] = []
        self._load()

    # ── Lifecycle ──────────────────────────────────────────────────────────

    def start(self, token: str, user: Optional[dict] = None) -> None:
        """Begin a session after login or registration."""
        self.token = token
        self.user = user
        self._save()
        logger.info(f"Session started for {(user or {}).get('email', 'unknown user')}")

    def end(self) -> None:
        """Forget the token, user and cached favorites."""
        self.token = None
        self.user = None
        self._favorites = []
        self._save()
        logger.info("Session ended")

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    # ── Headers ────────────────────────────────────────────────────────────

    def auth_headers(self) -> dict:
        headers = dict(JSON_HEADERS)
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def multipart_headers(self) -> dict:
        # requests sets the multipart Content-Type with its boundary
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    # ── Favorites cache ────────────────────────────────────────────────────

    def cached_favorites(self) -> list[str]:
        return list(self._favorites)

    def cache_favorites(self, ids: list[str]) -> None:
        self._favorites = list(ids)
        self._save()

    def clear_favorites(self) -> None:
        self.cache_favorites([])

    # ── Persistence ────────────────────────────────────────────────────────

    def _load(self) -> None:
        if not self.path or not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return
        self.token = data.get("token")
        self.user = data.get("user")
        self._favorites = [str(f) for f in data.get("favorites", [])]

    def _save(self) -> None:
        if not self.path:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps({
                "token": self.token,
                "user": self.user,
                "favorites": self._favorites,
            }, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error(f"Could not write session file {self.path}: {e}")
