"""
OTP Guard
=========
Second-factor verification with TOTP/HOTP codes, replay protection and
signed "remember this device" bypass cookies.
"""

__version__ = "0.1.0"

# Models
from otp_guard.models import (
    AttemptResult,
    BypassCookie,
    DeclaredOTPConfig,
    OTPConfig,
    OTPMode,
    VerificationOutcome,
)

# Exceptions
from otp_guard.exceptions import (
    CodeRequiredError,
    CookieSignatureError,
    IdentityCapabilityError,
    IdentityLockError,
    InvalidCodeError,
    MissingAuthenticatorError,
    OTPConfigurationError,
    OTPError,
    RecoverableOTPError,
    ReplayedCodeError,
    SecretProvisioningError,
    UnsupportedModeError,
)

# Config
from otp_guard.config import OTP_COOKIE_NAME, OTPSettings

# Core
from otp_guard.authenticator import PyOTPAuthenticator
from otp_guard.cookie import (
    BypassCookieProtocol,
    compute_cookie_signature,
    issue_cookie,
    verify_cookie,
)
from otp_guard.locks import InMemoryIdentityLocks, RedisIdentityLocks
from otp_guard.messages import DefaultMessageCatalog
from otp_guard.orchestrator import OTPValidationOrchestrator
from otp_guard.resolver import OTPConfigResolver
from otp_guard.verifier import OTPVerifier

__all__ = [
    # Models
    "AttemptResult",
    "BypassCookie",
    "DeclaredOTPConfig",
    "OTPConfig",
    "OTPMode",
    "VerificationOutcome",
    # Exceptions
    "CodeRequiredError",
    "CookieSignatureError",
    "IdentityCapabilityError",
    "IdentityLockError",
    "InvalidCodeError",
    "MissingAuthenticatorError",
    "OTPConfigurationError",
    "OTPError",
    "RecoverableOTPError",
    "ReplayedCodeError",
    "SecretProvisioningError",
    "UnsupportedModeError",
    # Config
    "OTP_COOKIE_NAME",
    "OTPSettings",
    # Core
    "PyOTPAuthenticator",
    "BypassCookieProtocol",
    "compute_cookie_signature",
    "issue_cookie",
    "verify_cookie",
    "InMemoryIdentityLocks",
    "RedisIdentityLocks",
    "DefaultMessageCatalog",
    "OTPValidationOrchestrator",
    "OTPConfigResolver",
    "OTPVerifier",
]
