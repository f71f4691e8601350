"""
Capability Interfaces
=====================
Protocols for the collaborators the OTP engine talks to.
"""

from contextlib import AbstractContextManager
from typing import Optional, Protocol, Tuple, runtime_checkable


@runtime_checkable
class OneTimePasswordIdentity(Protocol):
    """An identity record that stores OTP state."""

    def get_one_time_password_secret(self) -> Optional[bytes]:
        ...

    def set_one_time_password_secret(self, secret: bytes) -> None:
        ...

    def get_one_time_password(self) -> Tuple[Optional[str], Optional[int]]:
        """Return the last accepted (code, counter) pair."""
        ...

    def set_one_time_password(self, code: str, counter: int) -> None:
        ...


IDENTITY_ACCESSORS = (
    "get_one_time_password_secret",
    "set_one_time_password_secret",
    "get_one_time_password",
    "set_one_time_password",
)


class Authenticator(Protocol):
    """Generates and checks OTP codes. The arithmetic lives here."""

    def generate_secret(self) -> bytes:
        ...

    def get_code(self, secret: bytes, counter: Optional[int] = None) -> str:
        """Code for the given counter, or for the current time when None."""
        ...

    def check_code(self, secret: bytes, code: str) -> bool:
        """Check a time-based code, with the implementation's own tolerance."""
        ...


class CookieStore(Protocol):
    """Request/response cookie access."""

    def get(self, name: str) -> Optional[str]:
        ...

    def set(self, name: str, value: str, expires: int, httponly: bool = True) -> None:
        """Store a cookie expiring at the given Unix timestamp."""
        ...


class MessageCatalog(Protocol):
    """User-facing text lookup."""

    def message(self, key: str, **params: object) -> str:
        ...


class CodeSender(Protocol):
    """Out-of-band code delivery (email, SMS, ...)."""

    def send_code(self, username: str, code: str) -> bool:
        ...


class IdentityLocks(Protocol):
    """Per-identity mutual exclusion."""

    def hold(self, key: str) -> AbstractContextManager:
        ...
