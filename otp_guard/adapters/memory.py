"""
In-Memory Adapters
==================
Identity and cookie store kept in process memory.

For development and testing only.
"""

import threading
from typing import Dict, Optional, Tuple


class InMemoryIdentity:
    """An identity record holding OTP state in memory."""

    def __init__(
        self,
        username: str,
        secret: Optional[bytes] = None,
        last_code: Optional[str] = None,
        last_counter: Optional[int] = None,
    ):
        self.username = username
        self._secret = secret
        self._last_code = last_code
        self._last_counter = last_counter
        self._lock = threading.Lock()

    def get_one_time_password_secret(self) -> Optional[bytes]:
        return self._secret

    def set_one_time_password_secret(self, secret: bytes) -> None:
        with self._lock:
            self._secret = secret

    def get_one_time_password(self) -> Tuple[Optional[str], Optional[int]]:
        with self._lock:
            return self._last_code, self._last_counter

    def set_one_time_password(self, code: str, counter: int) -> None:
        with self._lock:
            self._last_code = code
            self._last_counter = counter


class InMemoryCookieStore:
    """Cookie jar standing in for request and response cookies."""

    def __init__(self, cookies: Optional[Dict[str, str]] = None):
        self.cookies: Dict[str, str] = dict(cookies or {})
        self.attributes: Dict[str, dict] = {}

    def get(self, name: str) -> Optional[str]:
        return self.cookies.get(name)

    def set(self, name: str, value: str, expires: int, httponly: bool = True) -> None:
        self.cookies[name] = value
        self.attributes[name] = {"expires": expires, "httponly": httponly}
