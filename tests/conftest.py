"""
Shared fixtures for otp_guard tests.
"""

import hashlib
import hmac
from typing import Optional

import pytest

from otp_guard.adapters.memory import InMemoryCookieStore, InMemoryIdentity
from otp_guard.models import DeclaredOTPConfig, OTPMode


class FakeAuthenticator:
    """Deterministic authenticator; TIME codes follow time_counter."""

    def __init__(self, time_counter: int = 1000):
        self.time_counter = time_counter
        self.generated = 0
        self.fail_generation = False

    def generate_secret(self) -> bytes:
        if self.fail_generation:
            raise RuntimeError("authenticator unavailable")
        self.generated += 1
        return f"SECRET{self.generated:04d}".encode()

    def get_code(self, secret: bytes, counter: Optional[int] = None) -> str:
        if counter is None:
            counter = self.time_counter
        digest = hmac.new(secret, str(counter).encode(), hashlib.sha1).hexdigest()
        return f"{int(digest, 16) % 10 ** 6:06d}"

    def check_code(self, secret: bytes, code: str) -> bool:
        return code == self.get_code(secret, None)


class FixedClock:
    """Callable clock returning a settable timestamp."""

    def __init__(self, now: float = 1_700_000_000):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def authenticator():
    return FakeAuthenticator()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def identity():
    return InMemoryIdentity("alice", secret=b"SECRET-ALICE")


@pytest.fixture
def new_identity():
    return InMemoryIdentity("bob")


@pytest.fixture
def store():
    return InMemoryCookieStore()


@pytest.fixture
def declared(authenticator):
    return DeclaredOTPConfig(
        authenticator=authenticator,
        mode=OTPMode.TIME,
        required=True,
        timeout=300,
    )
