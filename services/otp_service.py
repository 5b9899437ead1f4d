import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from config import OTP_LIFETIME_MINUTES

logger = logging.getLogger("event_booking_api.otp")

ph = PasswordHasher()

OTP_LENGTH = 6


def generate_otp() -> str:
    """Return a 6 digit code drawn uniformly from 100000..999999."""
    return str(100000 + secrets.randbelow(900000))


def is_otp_format(code: str) -> bool:
    return len(code) == OTP_LENGTH and code.isdigit()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OTPFailure(str, Enum):
    NOT_FOUND = "NotFound"
    EXPIRED = "Expired"
    MISMATCH = "Mismatch"


@dataclass(frozen=True)
class OTPVerification:
    valid: bool
    reason: OTPFailure | None = None


@dataclass
class OTPEntry:
    identity: str
    hash: str
    expires_at: datetime


class OTPStore:
    """
    Pending one-time codes, one per identity.

    Codes are kept argon2-hashed. A successful or expired verification evicts
    the entry; a wrong code leaves it in place so the user can retry until the
    original expiry.
    """

    def __init__(
        self,
        lifetime: timedelta = timedelta(minutes=OTP_LIFETIME_MINUTES),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.lifetime = lifetime
        self._clock = clock
        self._entries: dict[str, OTPEntry] = {}
        self._lock = threading.Lock()

    def __contains__(self, identity: str) -> bool:
        with self._lock:
            return identity in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def issue(self, identity: str) -> str:
        """Create a code for identity, replacing any pending one, and return it."""
        otp = generate_otp()
        entry = OTPEntry(
            identity=identity,
            hash=ph.hash(otp),
            expires_at=self._clock() + self.lifetime,
        )
        with self._lock:
            self._entries[identity] = entry
        logger.info(f"OTP issued for {identity}, expires at {entry.expires_at.isoformat()}")
        return otp

    def verify(self, identity: str, submitted_otp: str) -> OTPVerification:
        with self._lock:
            entry = self._entries.get(identity)

            if entry is None:
                logger.warning(f"OTP verification failed: no OTP found for {identity}")
                return OTPVerification(False, OTPFailure.NOT_FOUND)

            if self._clock() > entry.expires_at:
                del self._entries[identity]
                logger.warning(f"OTP verification failed: OTP expired for {identity}")
                return OTPVerification(False, OTPFailure.EXPIRED)

            try:
                ph.verify(entry.hash, submitted_otp)
            except VerifyMismatchError:
                logger.warning(f"OTP mismatch for {identity}")
                return OTPVerification(False, OTPFailure.MISMATCH)
            except (InvalidHash, VerificationError):
                # Stored hash is unusable, so the code can never match
                del self._entries[identity]
                logger.exception(f"OTP verification error for {identity}")
                return OTPVerification(False, OTPFailure.NOT_FOUND)

            del self._entries[identity]

        logger.info(f"OTP verified for {identity}")
        return OTPVerification(True)

    def discard(self, identity: str) -> bool:
        with self._lock:
            return self._entries.pop(identity, None) is not None

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now > e.expires_at]
            for identity in expired:
                del self._entries[identity]
        return len(expired)
