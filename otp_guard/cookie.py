"""
Bypass Cookie Protocol
======================
Signed "remember this device" cookies that let a verified device skip
the one-time password until they expire.

Wire value: "<creation_time>:<hex HMAC-SHA256>", where the HMAC covers
the username, the creation time and the timeout, keyed by the
identity's OTP secret. Rotating the secret invalidates every cookie.
"""

import hashlib
import hmac
import json
import time
from typing import Callable, Optional, Union

import structlog

from .config import NEVER_EXPIRES_SECONDS, OTP_COOKIE_NAME
from .exceptions import CookieSignatureError
from .interfaces import CookieStore
from .models import BypassCookie

logger = structlog.get_logger(__name__)

SIGNATURE_ALGORITHM = "sha256"


def _key(secret: Union[bytes, str]) -> bytes:
    if isinstance(secret, str):
        return secret.encode()
    return secret


def compute_cookie_signature(
    username: str,
    creation_time: int,
    timeout: int,
    secret: Union[bytes, str],
) -> str:
    """
    Compute the HMAC-SHA256 signature of a bypass cookie.

    Args:
        username: Login name the cookie is bound to
        creation_time: Unix timestamp the cookie was issued at
        timeout: Cookie lifetime in seconds (<= 0 never expires)
        secret: The identity's OTP secret

    Returns:
        Hex-encoded signature
    """
    data = {"username": username, "time": int(creation_time), "timeout": int(timeout)}
    message = json.dumps(data, separators=(",", ":"))
    return hmac.new(_key(secret), message.encode(), hashlib.sha256).hexdigest()


def issue_cookie(
    username: str,
    secret: Union[bytes, str],
    timeout: int,
    now: Optional[int] = None,
) -> BypassCookie:
    """Create a bypass cookie issued at now."""
    if now is None:
        now = int(time.time())
    return BypassCookie(
        creation_time=int(now),
        signature=compute_cookie_signature(username, now, timeout, secret),
    )


def parse_cookie(value: object) -> BypassCookie:
    """
    Split a wire value into its parts.

    Raises:
        CookieSignatureError: if the value is not "<int>:<signature>"
    """
    if not value or not isinstance(value, str):
        raise CookieSignatureError("Missing cookie value")
    parts = value.split(":", 1)
    if len(parts) != 2:
        raise CookieSignatureError("Malformed cookie value")
    creation_time, signature = parts
    if not (creation_time.isascii() and creation_time.isdigit()):
        raise CookieSignatureError("Malformed cookie timestamp")
    return BypassCookie(creation_time=int(creation_time), signature=signature)


def check_cookie(
    value: object,
    username: str,
    secret: Union[bytes, str],
    timeout: int,
    now: Optional[int] = None,
) -> BypassCookie:
    """
    Verify a bypass cookie, raising on any failure.

    Raises:
        CookieSignatureError: malformed, expired, or wrongly signed
    """
    if now is None:
        now = int(time.time())
    cookie = parse_cookie(value)
    if timeout > 0 and cookie.creation_time + timeout < now:
        raise CookieSignatureError("Cookie expired")
    expected = compute_cookie_signature(username, cookie.creation_time, timeout, secret)
    if not hmac.compare_digest(expected.encode(), cookie.signature.encode("utf-8", "replace")):
        raise CookieSignatureError("Signature mismatch")
    return cookie


def verify_cookie(
    value: object,
    username: str,
    secret: Union[bytes, str],
    timeout: int,
    now: Optional[int] = None,
) -> bool:
    """
    Check whether a bypass cookie is valid.

    Fails closed: anything other than a well-formed, unexpired cookie
    signed for this username, timeout and secret returns False.
    """
    if secret is None:
        return False
    try:
        check_cookie(value, username, secret, timeout, now)
    except CookieSignatureError as e:
        if value:
            logger.info("Bypass cookie rejected", username=username, reason=str(e))
        return False
    return True


def cookie_expiry(timeout: int, now: int) -> int:
    """Transport-level expiry; timeout <= 0 means ten years."""
    return now + (NEVER_EXPIRES_SECONDS if timeout <= 0 else timeout)


class BypassCookieProtocol:
    """Reads and writes bypass cookies through a CookieStore."""

    def __init__(
        self,
        cookie_name: str = OTP_COOKIE_NAME,
        clock: Callable[[], float] = time.time,
    ):
        self.cookie_name = cookie_name
        self.clock = clock

    def _now(self) -> int:
        return int(self.clock())

    def issue(self, username: str, secret: Union[bytes, str], timeout: int) -> BypassCookie:
        return issue_cookie(username, secret, timeout, self._now())

    def verify(self, value: object, username: str, secret: Union[bytes, str], timeout: int) -> bool:
        return verify_cookie(value, username, secret, timeout, self._now())

    def read(self, store: CookieStore, username: str, secret: Union[bytes, str], timeout: int) -> bool:
        """True if the store holds a valid cookie for this user and secret."""
        return self.verify(store.get(self.cookie_name), username, secret, timeout)

    def write(
        self,
        store: CookieStore,
        username: str,
        secret: Union[bytes, str],
        timeout: int,
    ) -> BypassCookie:
        """Issue a fresh cookie and put it in the store."""
        now = self._now()
        cookie = issue_cookie(username, secret, timeout, now)
        store.set(
            self.cookie_name,
            cookie.value,
            expires=cookie_expiry(timeout, now),
            httponly=True,
        )
        logger.debug("Bypass cookie issued", username=username, timeout=timeout)
        return cookie
