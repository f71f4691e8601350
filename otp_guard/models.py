"""
OTP Models
==========
Data models and enums for one-time password verification.
"""

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Optional


class OTPMode(str, Enum):
    """How one-time passwords are derived."""
    TIME = "time"        # TOTP
    COUNTER = "counter"  # HOTP
    NONE = "none"

    @classmethod
    def parse(cls, value: Any) -> "OTPMode":
        """
        Convert a mode name to an OTPMode.

        Raises:
            UnsupportedModeError: if the value names no known mode
        """
        from .exceptions import UnsupportedModeError

        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedModeError(value) from None

    @property
    def enabled(self) -> bool:
        return self in (OTPMode.TIME, OTPMode.COUNTER)


class VerificationOutcome(str, Enum):
    """Result of a single verification attempt."""
    VERIFIED = "verified"
    NEEDS_CODE = "needs_code"
    INVALID_CODE = "invalid_code"
    REPLAYED_CODE = "replayed_code"


@dataclass
class DeclaredOTPConfig:
    """
    Caller-supplied OTP defaults, before the identity has been read.

    Unset fields are None. Merging is first-write-wins: a field that
    already holds a value is never overwritten.
    """
    authenticator: Any = None
    mode: Optional[OTPMode] = None
    required: Optional[bool] = None
    timeout: Optional[int] = None

    def merge(self, **values: Any) -> "DeclaredOTPConfig":
        """Fill unset fields from values, ignoring unknown keys."""
        known = {f.name for f in fields(self)}
        for key, value in values.items():
            if key in known and getattr(self, key) is None:
                setattr(self, key, value)
        return self


@dataclass(frozen=True)
class OTPConfig:
    """Resolved OTP parameters for one verification attempt."""
    authenticator: Any
    mode: OTPMode = OTPMode.NONE
    required: bool = False
    timeout: int = 0
    secret: Optional[bytes] = None
    previous_code: Optional[str] = None
    previous_counter: Optional[int] = None

    @property
    def disabled(self) -> bool:
        """True when verification is a no-op."""
        return not self.mode.enabled or (not self.required and self.secret is None)

    def with_secret(self, secret: bytes) -> "OTPConfig":
        return replace(self, secret=secret)


@dataclass(frozen=True)
class BypassCookie:
    """A signed "remember this device" token."""
    creation_time: int
    signature: str

    @property
    def value(self) -> str:
        return f"{self.creation_time}:{self.signature}"

    def __str__(self) -> str:
        return self.value


@dataclass
class AttemptResult:
    """Outcome of one login attempt, interpreted by the form layer."""
    outcome: VerificationOutcome
    message: Optional[str] = None
    field: Optional[str] = None
    scenario: Optional[str] = None
    bypassed: bool = False
    skipped: bool = False
    cookie_issued: bool = False
    code_sent: Optional[bool] = None
    debug_code: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == VerificationOutcome.VERIFIED
