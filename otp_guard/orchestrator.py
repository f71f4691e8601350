"""
Validation Orchestrator
=======================
Runs one login attempt through the OTP checks: bypass cookie first,
then the submitted code, then a fresh cookie on success.

Recoverable code errors never escape; they come back as an
AttemptResult telling the form layer which field to re-request.
Configuration errors propagate.
"""

from dataclasses import replace
from typing import Any, Optional

import structlog

from .authenticator import PyOTPAuthenticator
from .config import OTPSettings
from .cookie import BypassCookieProtocol
from .exceptions import CodeRequiredError, OTPConfigurationError, RecoverableOTPError
from .interfaces import CodeSender, CookieStore, IdentityLocks, MessageCatalog
from .locks import InMemoryIdentityLocks
from .logging import log_audit
from .messages import DefaultMessageCatalog
from .models import AttemptResult, DeclaredOTPConfig, OTPConfig, OTPMode, VerificationOutcome
from .resolver import OTPConfigResolver
from .verifier import OTPVerifier

logger = structlog.get_logger(__name__)

OTP_FIELD = "one_time_password"
VERIFY_OTP_SCENARIO = "verify_otp"


class OTPValidationOrchestrator:
    """Glues the config resolver, verifier and bypass cookies together."""

    def __init__(
        self,
        declared: DeclaredOTPConfig,
        verifier: Optional[OTPVerifier] = None,
        cookies: Optional[BypassCookieProtocol] = None,
        locks: Optional[IdentityLocks] = None,
        messages: Optional[MessageCatalog] = None,
        code_sender: Optional[CodeSender] = None,
        debug: bool = False,
    ):
        """
        Args:
            declared: Caller defaults (authenticator, mode, required, timeout)
            verifier: OTP verifier; defaults to one using the wall clock
            cookies: Bypass cookie protocol
            locks: Per-identity locks held while OTP state is read and written
            messages: Catalog for user-facing error text
            code_sender: Delivers COUNTER-mode codes out of band
            debug: Put the expected code on results that ask for one
        """
        self.declared = declared
        self.verifier = verifier or OTPVerifier()
        self.cookies = cookies or BypassCookieProtocol()
        self.locks = locks or InMemoryIdentityLocks()
        self.messages = messages or DefaultMessageCatalog()
        self.code_sender = code_sender
        self.debug = debug

    @classmethod
    def from_settings(
        cls,
        settings: Optional[OTPSettings] = None,
        authenticator: Any = None,
        **kwargs: Any,
    ) -> "OTPValidationOrchestrator":
        """Build an orchestrator from environment settings."""
        settings = settings or OTPSettings.from_env()
        if authenticator is None:
            authenticator = PyOTPAuthenticator.from_settings(settings)
        if "code_sender" not in kwargs and settings.delivery_url:
            from .adapters.webhook_sender import WebhookCodeSender

            kwargs["code_sender"] = WebhookCodeSender(settings.delivery_url)
        kwargs.setdefault("cookies", BypassCookieProtocol(settings.cookie_name))
        kwargs.setdefault("locks", InMemoryIdentityLocks(timeout=settings.lock_timeout))
        kwargs.setdefault("debug", settings.debug)
        return cls(settings.declared(authenticator), **kwargs)

    def close(self) -> None:
        """Release resources held by the code sender."""
        close = getattr(self.code_sender, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> "OTPValidationOrchestrator":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def resolver(self) -> OTPConfigResolver:
        """A fresh resolver for one request."""
        return OTPConfigResolver(replace(self.declared))

    def validate(
        self,
        identity: Any,
        username: str,
        code: Optional[str],
        cookie_store: CookieStore,
        external_login: bool = False,
        resolver: Optional[OTPConfigResolver] = None,
    ) -> AttemptResult:
        """
        Validate the second factor of one login attempt.

        Args:
            identity: Identity exposing the OTP accessors
            username: Login name, bound into the bypass cookie
            code: Submitted one-time password, may be empty
            cookie_store: Request/response cookies
            external_login: Federated login; OTP is skipped entirely
            resolver: Resolver already used in this request, if any

        Returns:
            AttemptResult for the form layer

        Raises:
            OTPConfigurationError: identity or authenticator misconfigured
            IdentityLockError: the identity is locked by another attempt
        """
        if external_login:
            logger.info("OTP skipped for external login", username=username)
            return AttemptResult(outcome=VerificationOutcome.VERIFIED, skipped=True)

        resolver = resolver or self.resolver()
        bypassed = False

        def check_bypass(current: OTPConfig) -> bool:
            nonlocal bypassed
            bypassed = self.cookies.read(cookie_store, username, current.secret, current.timeout)
            return bypassed

        rejection: Optional[RecoverableOTPError] = None
        with self.locks.hold(username):
            # OTP state must be read under the lock
            try:
                config = resolver.reload(identity)
            except OTPConfigurationError as e:
                logger.error("OTP configuration error", username=username, error=str(e))
                raise

            if config.disabled:
                return AttemptResult(outcome=VerificationOutcome.VERIFIED, skipped=True)

            try:
                config = self.verifier.ensure_secret(config, identity)
                resolver.update(config)
                config = self.verifier.verify(config, identity, code, bypass=check_bypass)
            except RecoverableOTPError as e:
                rejection = e
            except OTPConfigurationError as e:
                logger.error("OTP provisioning failed", username=username, error=str(e))
                raise
            resolver.update(config)

        # Code delivery must run outside the lock
        if rejection is not None:
            return self._rejected(rejection, config, username)

        self.cookies.write(cookie_store, username, config.secret, config.timeout)
        log_audit(
            "otp.bypassed" if bypassed else "otp.verified",
            actor_id=username,
            mode=config.mode.value,
        )
        return AttemptResult(
            outcome=VerificationOutcome.VERIFIED,
            bypassed=bypassed,
            cookie_issued=True,
        )

    def _rejected(
        self,
        error: RecoverableOTPError,
        config: OTPConfig,
        username: str,
    ) -> AttemptResult:
        result = AttemptResult(
            outcome=error.outcome,
            message=self.messages.message(error.message_key),
            field=OTP_FIELD,
            scenario=VERIFY_OTP_SCENARIO,
        )

        if isinstance(error, CodeRequiredError):
            logger.info("OTP code requested", username=username, mode=config.mode.value)
            if config.mode == OTPMode.COUNTER:
                result.code_sent = self._send_code(config, username)
            if self.debug:
                result.debug_code = self.verifier.new_code(config)
            return result

        log_audit(
            "otp.rejected",
            actor_id=username,
            outcome="failure",
            reason=error.outcome.value,
            mode=config.mode.value,
        )
        return result

    def _send_code(self, config: OTPConfig, username: str) -> Optional[bool]:
        if self.code_sender is None:
            logger.warning("No code sender configured for counter mode", username=username)
            return None
        return self.code_sender.send_code(username, self.verifier.new_code(config))
