"""
OTP Configuration
=================
Configuration constants and environment variables.
"""

import os
from dataclasses import dataclass, field
from typing import Any

from .models import DeclaredOTPConfig, OTPMode

# Cookie carrying the signed bypass token
OTP_COOKIE_NAME = "otp"

# Coarse epoch used for TIME-mode replay bookkeeping
REPLAY_COUNTER_STEP = 30

# Expiry used at the transport layer for cookies that never expire
NEVER_EXPIRES_SECONDS = 10 * 365 * 24 * 3600

DEFAULT_TIMEOUT = 30 * 24 * 3600  # 30 days

_TRUTHY = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


@dataclass
class OTPSettings:
    """OTP settings, read from the environment."""
    mode: str = field(default_factory=lambda: os.getenv("OTP_MODE", OTPMode.TIME.value))
    required: bool = field(default_factory=lambda: _env_bool("OTP_REQUIRED", "false"))
    timeout: int = field(
        default_factory=lambda: int(os.getenv("OTP_COOKIE_TIMEOUT", str(DEFAULT_TIMEOUT)))
    )
    cookie_name: str = field(default_factory=lambda: os.getenv("OTP_COOKIE_NAME", OTP_COOKIE_NAME))
    digits: int = field(default_factory=lambda: int(os.getenv("OTP_DIGITS", "6")))
    interval: int = field(default_factory=lambda: int(os.getenv("OTP_INTERVAL", "30")))
    valid_window: int = field(default_factory=lambda: int(os.getenv("OTP_VALID_WINDOW", "1")))
    debug: bool = field(default_factory=lambda: _env_bool("OTP_DEBUG", "false"))
    lock_timeout: float = field(default_factory=lambda: float(os.getenv("OTP_LOCK_TIMEOUT", "10")))
    delivery_url: str = field(default_factory=lambda: os.getenv("OTP_DELIVERY_URL", ""))

    @classmethod
    def from_env(cls) -> "OTPSettings":
        return cls()

    def declared(self, authenticator: Any = None) -> DeclaredOTPConfig:
        """Build caller defaults for the config resolver."""
        return DeclaredOTPConfig(
            authenticator=authenticator,
            mode=self.mode,
            required=self.required,
            timeout=self.timeout,
        )
