"""
PyOTP Authenticator
===================
Default Authenticator backed by pyotp (RFC 4226 / RFC 6238).
"""

from typing import Optional

import pyotp


class PyOTPAuthenticator:
    """
    Authenticator using pyotp.

    Secrets are base32 strings stored as ASCII bytes, which is what
    authenticator apps expect in provisioning URIs.
    """

    def __init__(self, digits: int = 6, interval: int = 30, valid_window: int = 1):
        """
        Args:
            digits: Code length
            interval: TOTP time step in seconds
            valid_window: Time steps accepted on either side of now
        """
        self.digits = digits
        self.interval = interval
        self.valid_window = valid_window

    @classmethod
    def from_settings(cls, settings) -> "PyOTPAuthenticator":
        return cls(
            digits=settings.digits,
            interval=settings.interval,
            valid_window=settings.valid_window,
        )

    @staticmethod
    def _b32(secret: bytes) -> str:
        if isinstance(secret, bytes):
            return secret.decode("ascii")
        return secret

    def generate_secret(self) -> bytes:
        return pyotp.random_base32().encode("ascii")

    def get_code(self, secret: bytes, counter: Optional[int] = None) -> str:
        """
        Args:
            secret: Base32 secret
            counter: HOTP counter; None means the current TOTP code
        """
        if counter is None:
            return pyotp.TOTP(self._b32(secret), digits=self.digits, interval=self.interval).now()
        return pyotp.HOTP(self._b32(secret), digits=self.digits).at(counter)

    def check_code(self, secret: bytes, code: str) -> bool:
        totp = pyotp.TOTP(self._b32(secret), digits=self.digits, interval=self.interval)
        return totp.verify(code, valid_window=self.valid_window)

    def provisioning_uri(
        self,
        secret: bytes,
        username: str,
        issuer: str,
        counter: Optional[int] = None,
    ) -> str:
        """
        otpauth:// URI for enrolling the secret in an authenticator app.

        A counter selects an HOTP URI starting at that counter.
        """
        if counter is None:
            otp = pyotp.TOTP(self._b32(secret), digits=self.digits, interval=self.interval)
            return otp.provisioning_uri(name=username, issuer_name=issuer)
        otp = pyotp.HOTP(self._b32(secret), digits=self.digits)
        return otp.provisioning_uri(name=username, issuer_name=issuer, initial_count=counter)
