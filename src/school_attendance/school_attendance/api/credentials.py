from __future__ import annotations

import threading
from typing import Optional, Protocol


class CredentialProvider(Protocol):
    """Supplies the opaque credential attached to every API call."""

    def get_token(self) -> Optional[str]:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class TokenStore(CredentialProvider):
    """In-memory credential holder owned by one screen session.

    The login flow puts a token in; an ``Unauthorized`` answer takes it out so
    the same stale token is never sent twice.
    """

    def __init__(self, token: Optional[str] = None):
        self._lock = threading.Lock()
        self._token = token or None

    def get_token(self) -> Optional[str]:
        with self._lock:
            return self._token

    def set_token(self, token: Optional[str]) -> None:
        with self._lock:
            self._token = token or None

    def clear(self) -> None:
        with self._lock:
            self._token = None
