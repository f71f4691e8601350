"""
OTP Verifier
============
Decides whether one submitted code passes, provisioning a secret when
OTP is required and enforcing one-time use of every accepted code.

States of an attempt:
    disabled      -> verified, no code requested
    needs secret  -> generate and store a secret, continue
    bypass check  -> valid bypass cookie, verified
    awaiting code -> CodeRequiredError
    replay check  -> ReplayedCodeError
    checking      -> InvalidCodeError
    verified      -> identity.set_one_time_password(code, next_counter)
"""

import hmac
import time
from dataclasses import replace
from typing import Any, Callable, Optional

import structlog

from .config import REPLAY_COUNTER_STEP
from .exceptions import (
    CodeRequiredError,
    InvalidCodeError,
    ReplayedCodeError,
    SecretProvisioningError,
)
from .models import OTPConfig, OTPMode

logger = structlog.get_logger(__name__)


def _same(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode(), b.encode())


class OTPVerifier:
    """Runs the verification state machine for one attempt."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock

    @staticmethod
    def is_disabled(config: OTPConfig) -> bool:
        return config.disabled

    def ensure_secret(self, config: OTPConfig, identity: Any) -> OTPConfig:
        """
        Provision a secret if OTP is required and none exists yet.

        The identity is read again first, so a secret stored by a
        concurrent attempt is reused rather than overwritten.

        Raises:
            SecretProvisioningError: authenticator or identity failed
        """
        if config.secret is not None or not config.required:
            return config

        existing = identity.get_one_time_password_secret()
        if existing is not None:
            return config.with_secret(existing)

        try:
            secret = config.authenticator.generate_secret()
        except Exception as e:
            raise SecretProvisioningError(f"Could not generate OTP secret: {e}") from e
        if not secret:
            raise SecretProvisioningError("Authenticator returned an empty secret")

        try:
            identity.set_one_time_password_secret(secret)
        except Exception as e:
            raise SecretProvisioningError(f"Could not store OTP secret: {e}") from e

        logger.info("OTP secret provisioned", mode=config.mode.value)
        return config.with_secret(secret)

    def new_code(self, config: OTPConfig) -> str:
        """The code the user is expected to enter right now."""
        counter = None if config.mode == OTPMode.TIME else (config.previous_counter or 0)
        return config.authenticator.get_code(config.secret, counter)

    def check_code(self, config: OTPConfig, code: str) -> None:
        """
        Validate a code against the configured mode and replay history.

        Raises:
            CodeRequiredError: code is empty
            InvalidCodeError: code does not match
            ReplayedCodeError: code was already accepted last time
        """
        if not code:
            raise CodeRequiredError(config.mode)

        # A spent code reports as replayed even after its counter has moved on
        if config.previous_code is not None and _same(str(config.previous_code), code):
            raise ReplayedCodeError(config.mode)

        if config.mode == OTPMode.TIME:
            valid = bool(config.authenticator.check_code(config.secret, code))
        elif config.mode == OTPMode.COUNTER:
            expected = config.authenticator.get_code(config.secret, config.previous_counter or 0)
            valid = _same(str(expected), code)
        else:
            valid = False

        if not valid:
            raise InvalidCodeError(config.mode)

    def next_counter(self, config: OTPConfig) -> int:
        if config.mode == OTPMode.TIME:
            return int(self.clock() // REPLAY_COUNTER_STEP)
        return (config.previous_counter or 0) + 1

    def verify(
        self,
        config: OTPConfig,
        identity: Any,
        code: Optional[str],
        bypass: Optional[Callable[[OTPConfig], bool]] = None,
    ) -> OTPConfig:
        """
        Verify one submitted code.

        Args:
            config: Resolved config for this attempt
            identity: Identity to provision and record acceptance on
            code: Submitted code (whitespace is trimmed)
            bypass: Called with the config once a secret exists; a truthy
                result verifies the attempt without a code

        Returns:
            The config after the attempt (new secret and/or counter)

        Raises:
            RecoverableOTPError: code missing, invalid, or replayed
            SecretProvisioningError: a required secret could not be created
        """
        if config.disabled:
            return config

        config = self.ensure_secret(config, identity)

        if bypass is not None and bypass(config):
            return config

        code = (code or "").strip()
        self.check_code(config, code)

        counter = self.next_counter(config)
        identity.set_one_time_password(code, counter)
        logger.info("OTP code accepted", mode=config.mode.value, counter=counter)
        return replace(config, previous_code=code, previous_counter=counter)
