"""
OTP Exceptions
==============
Exception classes for one-time password verification.
"""

from typing import Optional

from .models import OTPMode, VerificationOutcome


class OTPError(Exception):
    """Base exception for all OTP verification errors."""
    pass


class OTPConfigurationError(OTPError):
    """Raised when the OTP setup is unusable. Aborts the attempt."""
    pass


class IdentityCapabilityError(OTPConfigurationError):
    """Raised when an identity does not expose the OTP accessors."""

    def __init__(self, identity: object, missing: tuple):
        self.identity_class = type(identity).__name__
        self.missing = missing
        super().__init__(
            f"The {self.identity_class} class must implement the "
            f"OneTimePasswordIdentity interface (missing: {', '.join(missing)})"
        )


class MissingAuthenticatorError(OTPConfigurationError):
    """Raised when OTP is enabled but no authenticator was configured."""
    pass


class SecretProvisioningError(OTPConfigurationError):
    """Raised when a new secret could not be generated or stored."""
    pass


class UnsupportedModeError(OTPError):
    """Raised for an unknown OTP mode. Callers treat the mode as disabled."""

    def __init__(self, mode: object):
        self.mode = mode
        super().__init__(f"Unsupported OTP mode: {mode!r}")


class IdentityLockError(OTPError):
    """Raised when the per-identity lock could not be acquired."""

    def __init__(self, key: str, message: str = "Could not acquire identity lock"):
        self.key = key
        super().__init__(f"{message}: {key}")


class CookieSignatureError(OTPError):
    """Raised internally when a bypass cookie fails verification."""
    pass


class RecoverableOTPError(OTPError):
    """
    Base class for user-facing code errors.

    The orchestrator converts these into an AttemptResult and asks
    for the code again.
    """

    outcome: VerificationOutcome = VerificationOutcome.INVALID_CODE
    message_key: str = "code_invalid"

    def __init__(self, mode: Optional[OTPMode] = None, message: str = ""):
        self.mode = mode
        super().__init__(message or self.__class__.__doc__.strip())


class CodeRequiredError(RecoverableOTPError):
    """A one time password is required but none was submitted."""

    outcome = VerificationOutcome.NEEDS_CODE
    message_key = "code_required"


class InvalidCodeError(RecoverableOTPError):
    """The submitted one time password is invalid."""

    outcome = VerificationOutcome.INVALID_CODE
    message_key = "code_invalid"


class ReplayedCodeError(RecoverableOTPError):
    """The submitted one time password has already been used."""

    outcome = VerificationOutcome.REPLAYED_CODE

    @property
    def message_key(self) -> str:
        if self.mode == OTPMode.COUNTER:
            return "code_replayed_counter"
        return "code_replayed_time"
