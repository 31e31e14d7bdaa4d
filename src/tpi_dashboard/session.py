from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Literal, Optional, Tuple

logger = logging.getLogger(__name__)

SessionState = Literal["logged_out", "logged_in", "expired"]
SessionEvent = Literal["login_success", "auth_expired", "logout"]

# 登录状态机：未登录 -> 已登录 -> 已过期 -> 未登录/重新登录
_TRANSITIONS: Dict[Tuple[SessionState, SessionEvent], SessionState] = {
    ("logged_out", "login_success"): "logged_in",
    ("logged_in", "login_success"): "logged_in",
    ("expired", "login_success"): "logged_in",
    ("logged_in", "auth_expired"): "expired",
    ("logged_out", "logout"): "logged_out",
    ("logged_in", "logout"): "logged_out",
    ("expired", "logout"): "logged_out",
}


class InvalidTransition(ValueError):
    def __init__(self, state: SessionState, event: SessionEvent):
        super().__init__(f"Cannot apply '{event}' while session is '{state}'")
        self.state = state
        self.event = event


def next_state(state: SessionState, event: SessionEvent) -> SessionState:
    try:
        return _TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransition(state, event) from None


class TokenStore:
    """Durable storage for a single auth token."""

    def load(self) -> Optional[str]:
        raise NotImplementedError

    def save(self, token: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class FileTokenStore(TokenStore):
    """
    Keep the token in a small JSON file so it survives restarts.

    An unreadable or malformed file is treated as "no token"; the user simply
    has to log in again.
    """

    def __init__(self, path: str | Path, key: str = "tpi_token"):
        self.path = Path(path).expanduser()
        self.key = key

    def load(self) -> Optional[str]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable token file %s", self.path)
            return None
        if not isinstance(data, dict):
            return None
        token = data.get(self.key)
        return token if isinstance(token, str) and token else None

    def save(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            self.key: token,
            "saved_at": datetime.now(timezone.utc).isoformat(),
        }
        self.path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class Session:
    """
    Explicit holder of the dashboard's auth token.

    The token is only read through ``token`` and only changed through
    ``set_token``/``expire``/``logout``; each mutation is mirrored to the
    ``TokenStore`` and drives the session state machine. A token restored
    from storage is assumed valid until a protected request says otherwise.
    """

    def __init__(self, store: TokenStore):
        self._store = store
        self._token = store.load()
        self._state: SessionState = "logged_in" if self._token else "logged_out"

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state == "logged_in" and self._token is not None

    @property
    def login_required(self) -> bool:
        return not self.is_authenticated

    def set_token(self, token: str) -> None:
        if not token:
            raise ValueError("token must be a non-empty string")
        self._state = next_state(self._state, "login_success")
        self._token = token
        self._store.save(token)

    def expire(self) -> None:
        self._state = next_state(self._state, "auth_expired")
        self._drop_token()

    def logout(self) -> None:
        self._state = next_state(self._state, "logout")
        self._drop_token()

    def _drop_token(self) -> None:
        self._token = None
        self._store.clear()
