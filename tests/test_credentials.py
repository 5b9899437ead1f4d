import pytest

from errors import ValidationError
from services.credentials import (
    LEGACY_DEMO_HASH,
    BcryptScheme,
    CredentialVerifier,
    LegacyDemoScheme,
    validate_new_password,
)


class TestCredentialVerifier:
    def test_bcrypt_password(self):
        stored = BcryptScheme(rounds=4).hash("correct horse")
        verifier = CredentialVerifier()

        assert verifier.verify("correct horse", stored) is True
        assert verifier.verify("wrong horse", stored) is False

    def test_cost_factor_is_encoded_in_hash(self):
        assert BcryptScheme(rounds=10).hash("secret1").startswith("$2b$10$")

    def test_legacy_demo_hash_requires_demo_password(self):
        verifier = CredentialVerifier([LegacyDemoScheme(), BcryptScheme()])

        assert verifier.verify("admin123", LEGACY_DEMO_HASH) is True
        assert verifier.verify("admin1234", LEGACY_DEMO_HASH) is False

    def test_legacy_scheme_can_be_disabled(self):
        verifier = CredentialVerifier([BcryptScheme()])
        assert verifier.verify("admin123", LEGACY_DEMO_HASH) is False

    def test_demo_password_does_not_unlock_regular_accounts(self):
        stored = BcryptScheme(rounds=4).hash("something-else")
        assert CredentialVerifier().verify("admin123", stored) is False

    def test_malformed_hash_is_rejected(self):
        assert CredentialVerifier().verify("secret123", "not-a-hash") is False

    def test_empty_inputs(self):
        verifier = CredentialVerifier()
        assert verifier.verify("", LEGACY_DEMO_HASH) is False
        assert verifier.verify("secret123", None) is False


class TestPasswordPolicy:
    def test_valid_password(self):
        validate_new_password("secret1", "secret1")

    @pytest.mark.parametrize(
        "password, confirm, message",
        [
            ("", "", "Password is required"),
            ("secret1", "secret2", "Passwords do not match"),
            ("short", "short", "Password must be at least 6 characters"),
            ("x" * 73, "x" * 73, "Password must be at most 72 bytes"),
        ],
    )
    def test_rejected_passwords(self, password, confirm, message):
        with pytest.raises(ValidationError) as excinfo:
            validate_new_password(password, confirm)
        assert excinfo.value.status_code == 400
        assert excinfo.value.detail == message

    def test_mismatch_checked_before_length(self):
        with pytest.raises(ValidationError) as excinfo:
            validate_new_password("abc", "abd")
        assert excinfo.value.detail == "Passwords do not match"
