"""
OTP Config Resolver
===================
Merges caller defaults with OTP state read from the identity.
"""

from typing import Any, Optional

import structlog

from .exceptions import IdentityCapabilityError, MissingAuthenticatorError, UnsupportedModeError
from .interfaces import IDENTITY_ACCESSORS
from .models import DeclaredOTPConfig, OTPConfig, OTPMode

logger = structlog.get_logger(__name__)


def check_identity(identity: Any) -> None:
    """
    Ensure the identity exposes every OTP accessor.

    Raises:
        IdentityCapabilityError: listing the missing accessors
    """
    missing = tuple(
        name for name in IDENTITY_ACCESSORS
        if not callable(getattr(identity, name, None))
    )
    if missing:
        raise IdentityCapabilityError(identity, missing)


class OTPConfigResolver:
    """
    Resolves a DeclaredOTPConfig into an OTPConfig for one request.

    The identity is read once; later calls reuse the resolved config
    until reload() is called.
    """

    def __init__(self, declared: Optional[DeclaredOTPConfig] = None):
        self.declared = declared or DeclaredOTPConfig()
        self._resolved: Optional[OTPConfig] = None

    @property
    def resolved(self) -> Optional[OTPConfig]:
        return self._resolved

    def resolve(self, identity: Any) -> OTPConfig:
        """
        Return the resolved config, reading the identity on first use.

        Raises:
            IdentityCapabilityError: identity lacks the OTP accessors
            MissingAuthenticatorError: OTP is enabled without an authenticator
        """
        if self._resolved is None:
            return self.reload(identity)
        return self._resolved

    def reload(self, identity: Any) -> OTPConfig:
        """Read secret, previous code and previous counter in one pass."""
        check_identity(identity)

        previous_code, previous_counter = identity.get_one_time_password()
        secret = identity.get_one_time_password_secret()

        mode = self._parse_mode(self.declared.mode)
        authenticator = self.declared.authenticator
        if mode.enabled and authenticator is None:
            raise MissingAuthenticatorError(
                f"OTP mode '{mode.value}' requires an authenticator"
            )

        self._resolved = OTPConfig(
            authenticator=authenticator,
            mode=mode,
            required=bool(self.declared.required),
            timeout=int(self.declared.timeout or 0),
            secret=secret,
            previous_code=previous_code,
            previous_counter=previous_counter,
        )
        logger.debug(
            "OTP config resolved",
            mode=mode.value,
            required=self._resolved.required,
            has_secret=secret is not None,
        )
        return self._resolved

    def get(self, identity: Any, name: str) -> Any:
        """Return one config field, reloading if it is still unset."""
        if self._resolved is None or getattr(self._resolved, name) is None:
            self.reload(identity)
        return getattr(self._resolved, name)

    def update(self, config: OTPConfig) -> None:
        """Replace the working copy, e.g. after a secret was provisioned."""
        self._resolved = config

    @staticmethod
    def _parse_mode(value: Any) -> OTPMode:
        try:
            return OTPMode.parse(value)
        except UnsupportedModeError as e:
            logger.warning("Unsupported OTP mode, treating as disabled", mode=str(e.mode))
            return OTPMode.NONE
