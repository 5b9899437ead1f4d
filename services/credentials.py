import hmac
import logging
from abc import ABC, abstractmethod

import bcrypt

from config import ALLOW_LEGACY_DEMO_CREDENTIALS, BCRYPT_ROUNDS, PASSWORD_MIN_LENGTH
from errors import ValidationError

logger = logging.getLogger("event_booking_api.auth")

# bcrypt ignores everything past 72 bytes
PASSWORD_MAX_BYTES = 72

LEGACY_DEMO_HASH = "$2a$10$N9qo8uLOickgx2ZMRZoMye7Z7JYwYQzBm6vP8pZc3nJ3JYwYQzBm6v"
LEGACY_DEMO_PASSWORD = "admin123"


class CredentialScheme(ABC):
    name: str

    @abstractmethod
    def handles(self, stored_hash: str) -> bool:
        """Whether this scheme owns the stored password record."""

    @abstractmethod
    def verify(self, submitted_password: str, stored_hash: str) -> bool:
        ...


class LegacyDemoScheme(CredentialScheme):
    """
    Seeded demo accounts share one fixed hash string and the password
    ``admin123``. The hash is not a usable bcrypt value, so it is matched
    literally.

    This is a back door kept only so existing demo data keeps working. Disable
    it with ALLOW_LEGACY_DEMO_CREDENTIALS=false and remove it once no seeded
    accounts remain.
    """

    name = "legacy-demo"

    def handles(self, stored_hash: str) -> bool:
        return hmac.compare_digest(stored_hash.encode("utf-8"), LEGACY_DEMO_HASH.encode("utf-8"))

    def verify(self, submitted_password: str, stored_hash: str) -> bool:
        return self.handles(stored_hash) and hmac.compare_digest(
            submitted_password.encode("utf-8"), LEGACY_DEMO_PASSWORD.encode("utf-8")
        )


class BcryptScheme(CredentialScheme):
    name = "bcrypt"

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        self.rounds = rounds

    def handles(self, stored_hash: str) -> bool:
        return True

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify(self, submitted_password: str, stored_hash: str) -> bool:
        try:
            return bcrypt.checkpw(
                submitted_password.encode("utf-8"), stored_hash.encode("utf-8")
            )
        except ValueError:
            # Malformed hash or over-long password
            logger.warning("bcrypt rejected the stored password record")
            return False


def default_schemes() -> list[CredentialScheme]:
    schemes: list[CredentialScheme] = []
    if ALLOW_LEGACY_DEMO_CREDENTIALS:
        schemes.append(LegacyDemoScheme())
    schemes.append(BcryptScheme())
    return schemes


class CredentialVerifier:
    """Checks a submitted password against the first scheme that owns the stored record."""

    def __init__(self, schemes: list[CredentialScheme] | None = None):
        self.schemes = schemes if schemes is not None else default_schemes()

    def verify(self, submitted_password: str, stored_hash: str | None) -> bool:
        if not submitted_password or not stored_hash:
            return False
        for scheme in self.schemes:
            if scheme.handles(stored_hash):
                return scheme.verify(submitted_password, stored_hash)
        return False


def hash_password(password: str) -> str:
    return BcryptScheme().hash(password)


def validate_new_password(password: str | None, confirm_password: str | None) -> None:
    """Password policy for registration and reset. Raises ValidationError."""
    if not password:
        raise ValidationError("Password is required")
    if password != confirm_password:
        raise ValidationError("Passwords do not match")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValidationError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
