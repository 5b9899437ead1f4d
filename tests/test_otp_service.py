"""
Tests for the OTP store.
"""

from datetime import timedelta

import pytest

from services import otp_service
from services.otp_service import OTPFailure, OTPStore, generate_otp, is_otp_format


@pytest.fixture
def store(clock):
    return OTPStore(lifetime=timedelta(minutes=10), clock=clock)


@pytest.fixture
def fixed_codes(monkeypatch):
    """Make issue() hand out the given codes in order."""

    def _set(*codes):
        pending = list(codes)
        monkeypatch.setattr(otp_service, "generate_otp", lambda: pending.pop(0))

    return _set


class TestGenerateOTP:
    def test_codes_are_six_digits_in_range(self):
        for _ in range(200):
            code = generate_otp()
            assert is_otp_format(code)
            assert 100000 <= int(code) <= 999999

    def test_format_check(self):
        assert is_otp_format("123456")
        assert not is_otp_format("12345")
        assert not is_otp_format("12345a")
        assert not is_otp_format("1234567")


class TestOTPStore:
    def test_wrong_code_keeps_entry_then_correct_code_succeeds(self, store, fixed_codes):
        fixed_codes("123456")
        assert store.issue("a@b.com") == "123456"

        result = store.verify("a@b.com", "000000")
        assert not result.valid
        assert result.reason is OTPFailure.MISMATCH
        assert "a@b.com" in store

        assert store.verify("a@b.com", "123456").valid
        assert "a@b.com" not in store

        again = store.verify("a@b.com", "123456")
        assert again.reason is OTPFailure.NOT_FOUND

    def test_new_code_replaces_previous(self, store, fixed_codes):
        fixed_codes("111111", "222222")
        store.issue("a@b.com")
        store.issue("a@b.com")

        assert store.verify("a@b.com", "111111").reason is OTPFailure.MISMATCH
        assert store.verify("a@b.com", "222222").valid
        assert len(store) == 0

    def test_expired_code_is_evicted(self, store, clock):
        code = store.issue("a@b.com")
        clock.advance(minutes=10, seconds=1)

        result = store.verify("a@b.com", code)
        assert result.reason is OTPFailure.EXPIRED
        assert store.verify("a@b.com", code).reason is OTPFailure.NOT_FOUND

    def test_code_valid_up_to_expiry(self, store, clock):
        code = store.issue("a@b.com")
        clock.advance(minutes=10)
        assert store.verify("a@b.com", code).valid

    def test_wrong_code_does_not_extend_validity(self, store, clock):
        code = store.issue("a@b.com")
        clock.advance(minutes=9)
        store.verify("a@b.com", "000000")
        clock.advance(minutes=2)
        assert store.verify("a@b.com", code).reason is OTPFailure.EXPIRED

    def test_unknown_identity(self, store):
        result = store.verify("nobody@example.com", "123456")
        assert result.valid is False
        assert result.reason is OTPFailure.NOT_FOUND

    def test_code_is_not_stored_in_plaintext(self, store, fixed_codes):
        fixed_codes("654321")
        store.issue("a@b.com")
        assert store._entries["a@b.com"].hash != "654321"
        assert store._entries["a@b.com"].hash.startswith("$argon2")

    def test_purge_expired(self, store, clock):
        store.issue("old@example.com")
        clock.advance(minutes=8)
        store.issue("new@example.com")
        clock.advance(minutes=3)

        assert store.purge_expired() == 1
        assert "old@example.com" not in store
        assert "new@example.com" in store
