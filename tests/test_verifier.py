"""
Tests for the OTP verifier state machine.
"""

from unittest.mock import MagicMock

import pytest

from otp_guard.adapters.memory import InMemoryIdentity
from otp_guard.config import REPLAY_COUNTER_STEP
from otp_guard.exceptions import (
    CodeRequiredError,
    InvalidCodeError,
    ReplayedCodeError,
    SecretProvisioningError,
)
from otp_guard.models import OTPConfig, OTPMode, VerificationOutcome
from otp_guard.verifier import OTPVerifier


def make_config(authenticator, identity, mode=OTPMode.TIME, required=True):
    code, counter = identity.get_one_time_password()
    return OTPConfig(
        authenticator=authenticator,
        mode=mode,
        required=required,
        timeout=300,
        secret=identity.get_one_time_password_secret(),
        previous_code=code,
        previous_counter=counter,
    )


class TestDisabled:
    """Verification is a no-op when OTP does not apply."""

    def test_not_required_without_secret(self, authenticator, new_identity, clock):
        """required=False and no secret always succeeds without a code."""
        config = make_config(authenticator, new_identity, required=False)

        result = OTPVerifier(clock).verify(config, new_identity, None)

        assert result is config
        assert new_identity.get_one_time_password_secret() is None
        assert new_identity.get_one_time_password() == (None, None)

    def test_mode_none(self, authenticator, identity, clock):
        """NONE mode succeeds even with a secret and no code."""
        config = make_config(authenticator, identity, mode=OTPMode.NONE)

        OTPVerifier(clock).verify(config, identity, "")

        assert identity.get_one_time_password() == (None, None)

    def test_not_required_with_secret_is_enforced(self, authenticator, identity, clock):
        """An enrolled user is checked even when OTP is optional."""
        config = make_config(authenticator, identity, required=False)

        with pytest.raises(CodeRequiredError):
            OTPVerifier(clock).verify(config, identity, "")


class TestSecretProvisioning:
    """Tests for first-time secret generation."""

    def test_provisions_secret_once(self, authenticator, new_identity, clock):
        """A required identity without a secret gets exactly one."""
        verifier = OTPVerifier(clock)
        config = make_config(authenticator, new_identity)

        with pytest.raises(CodeRequiredError):
            verifier.verify(config, new_identity, "")

        secret = new_identity.get_one_time_password_secret()
        assert secret is not None
        assert authenticator.generated == 1

        # Retry with the stale config: the stored secret is reused
        with pytest.raises(CodeRequiredError):
            verifier.verify(config, new_identity, "")

        assert new_identity.get_one_time_password_secret() == secret
        assert authenticator.generated == 1

    def test_ensure_secret_returns_new_secret(self, authenticator, new_identity, clock):
        """The returned config carries the provisioned secret."""
        config = make_config(authenticator, new_identity)

        updated = OTPVerifier(clock).ensure_secret(config, new_identity)

        assert updated.secret == new_identity.get_one_time_password_secret()
        assert config.secret is None

    def test_generation_failure_is_fatal(self, authenticator, new_identity, clock):
        """An unavailable authenticator must not silently skip OTP."""
        authenticator.fail_generation = True
        config = make_config(authenticator, new_identity)

        with pytest.raises(SecretProvisioningError):
            OTPVerifier(clock).verify(config, new_identity, "123456")

        assert new_identity.get_one_time_password_secret() is None

    def test_storage_failure_is_fatal(self, authenticator, clock):
        """Failing to store the secret aborts the attempt."""
        identity = MagicMock()
        identity.get_one_time_password_secret.return_value = None
        identity.set_one_time_password_secret.side_effect = IOError("db down")
        config = OTPConfig(authenticator=authenticator, mode=OTPMode.TIME, required=True)

        with pytest.raises(SecretProvisioningError):
            OTPVerifier(clock).verify(config, identity, "123456")


class TestBypass:
    """Tests for the bypass hook."""

    def test_bypass_skips_code_check(self, authenticator, identity, clock):
        """A truthy bypass verifies without a code and records nothing."""
        config = make_config(authenticator, identity)

        OTPVerifier(clock).verify(config, identity, "", bypass=lambda c: True)

        assert identity.get_one_time_password() == (None, None)

    def test_bypass_sees_provisioned_secret(self, authenticator, new_identity, clock):
        """The bypass check runs after provisioning."""
        seen = []
        config = make_config(authenticator, new_identity)

        with pytest.raises(CodeRequiredError):
            OTPVerifier(clock).verify(
                config, new_identity, "", bypass=lambda c: seen.append(c.secret) or False
            )

        assert seen == [new_identity.get_one_time_password_secret()]

    def test_bypass_not_called_when_disabled(self, authenticator, new_identity, clock):
        """Disabled OTP never consults the bypass."""
        bypass = MagicMock(return_value=False)
        config = make_config(authenticator, new_identity, required=False)

        OTPVerifier(clock).verify(config, new_identity, "", bypass=bypass)

        bypass.assert_not_called()


class TestTimeMode:
    """Tests for TOTP verification."""

    def test_accepts_current_code(self, authenticator, identity, clock):
        """A valid code is accepted and recorded with the 30s counter."""
        config = make_config(authenticator, identity)
        code = authenticator.get_code(secret_of(identity))

        updated = OTPVerifier(clock).verify(config, identity, code)

        expected_counter = int(clock.now // REPLAY_COUNTER_STEP)
        assert identity.get_one_time_password() == (code, expected_counter)
        assert updated.previous_code == code
        assert updated.previous_counter == expected_counter

    def test_trims_whitespace(self, authenticator, identity, clock):
        """Surrounding whitespace is ignored."""
        config = make_config(authenticator, identity)
        code = authenticator.get_code(secret_of(identity))

        OTPVerifier(clock).verify(config, identity, f"  {code}\n")

        assert identity.get_one_time_password()[0] == code

    def test_rejects_wrong_code(self, authenticator, identity, clock):
        """An invalid code raises InvalidCodeError."""
        config = make_config(authenticator, identity)
        wrong = authenticator.get_code(secret_of(identity), counter=1)

        with pytest.raises(InvalidCodeError) as exc_info:
            OTPVerifier(clock).verify(config, identity, wrong)

        assert exc_info.value.outcome == VerificationOutcome.INVALID_CODE
        assert identity.get_one_time_password() == (None, None)

    def test_rejects_replay(self, authenticator, identity, clock):
        """A code accepted once is rejected afterwards, while still valid."""
        verifier = OTPVerifier(clock)
        code = authenticator.get_code(secret_of(identity))
        verifier.verify(make_config(authenticator, identity), identity, code)

        clock.advance(5)
        with pytest.raises(ReplayedCodeError) as exc_info:
            verifier.verify(make_config(authenticator, identity), identity, code)

        assert exc_info.value.message_key == "code_replayed_time"

    def test_empty_code_requested(self, authenticator, identity, clock):
        """Missing code raises CodeRequiredError carrying the mode."""
        with pytest.raises(CodeRequiredError) as exc_info:
            OTPVerifier(clock).verify(make_config(authenticator, identity), identity, "   ")

        assert exc_info.value.mode == OTPMode.TIME
        assert exc_info.value.outcome == VerificationOutcome.NEEDS_CODE


class TestCounterMode:
    """Tests for HOTP verification."""

    def test_counter_scenario(self, authenticator, clock):
        """code(5) accepted -> 6, replay rejected, code(6) accepted -> 7."""
        identity = InMemoryIdentity("alice", secret=b"S", last_counter=5)
        verifier = OTPVerifier(clock)
        code5 = authenticator.get_code(b"S", 5)
        code6 = authenticator.get_code(b"S", 6)

        verifier.verify(make_config(authenticator, identity, OTPMode.COUNTER), identity, code5)
        assert identity.get_one_time_password() == (code5, 6)

        with pytest.raises(ReplayedCodeError):
            verifier.verify(make_config(authenticator, identity, OTPMode.COUNTER), identity, code5)
        assert identity.get_one_time_password() == (code5, 6)

        verifier.verify(make_config(authenticator, identity, OTPMode.COUNTER), identity, code6)
        assert identity.get_one_time_password() == (code6, 7)

    def test_replay_of_current_counter_code(self, authenticator, clock):
        """The last accepted code is rejected as replayed if it matches again."""
        code = authenticator.get_code(b"S", 6)
        identity = InMemoryIdentity("alice", secret=b"S", last_code=code, last_counter=6)

        with pytest.raises(ReplayedCodeError) as exc_info:
            OTPVerifier(clock).verify(
                make_config(authenticator, identity, OTPMode.COUNTER), identity, code
            )

        assert exc_info.value.message_key == "code_replayed_counter"

    @pytest.mark.parametrize("counter", [4, 6])
    def test_neighbouring_counters_rejected(self, authenticator, clock, counter):
        """Only the code for the stored counter is accepted, not a window."""
        identity = InMemoryIdentity("alice", secret=b"S", last_counter=5)

        with pytest.raises(InvalidCodeError):
            OTPVerifier(clock).verify(
                make_config(authenticator, identity, OTPMode.COUNTER),
                identity,
                authenticator.get_code(b"S", counter),
            )

    def test_missing_counter_starts_at_zero(self, authenticator, clock):
        """An identity with no counter yet expects code(0)."""
        identity = InMemoryIdentity("alice", secret=b"S")

        OTPVerifier(clock).verify(
            make_config(authenticator, identity, OTPMode.COUNTER),
            identity,
            authenticator.get_code(b"S", 0),
        )

        assert identity.get_one_time_password()[1] == 1

    def test_new_code_uses_previous_counter(self, authenticator, clock):
        """new_code returns the code the user must enter next."""
        identity = InMemoryIdentity("alice", secret=b"S", last_counter=9)
        config = make_config(authenticator, identity, OTPMode.COUNTER)

        assert OTPVerifier(clock).new_code(config) == authenticator.get_code(b"S", 9)


def secret_of(identity):
    return identity.get_one_time_password_secret()
