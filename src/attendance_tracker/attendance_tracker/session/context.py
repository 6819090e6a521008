from __future__ import annotations

import threading
from typing import Optional, Protocol


class AuthContext(Protocol):
    """What the core needs to know about the signed-in session."""

    @property
    def is_authenticated(self) -> bool:
        raise NotImplementedError

    @property
    def user_id(self) -> Optional[str]:
        raise NotImplementedError


class SessionAuthContext:
    """Process-wide session flag set by whatever performs the login.

    Login mechanics (passwords, OAuth) live outside this package; they only
    call ``sign_in`` once the session is established.
    """

    def __init__(self, user_id: Optional[str] = None):
        self._lock = threading.Lock()
        self._user_id = user_id

    @property
    def is_authenticated(self) -> bool:
        with self._lock:
            return self._user_id is not None

    @property
    def user_id(self) -> Optional[str]:
        with self._lock:
            return self._user_id

    def sign_in(self, user_id: str) -> None:
        with self._lock:
            self._user_id = str(user_id)

    def sign_out(self) -> None:
        with self._lock:
            self._user_id = None
