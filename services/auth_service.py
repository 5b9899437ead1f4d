import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from database import User, session_scope
from errors import (
    AuthenticationError,
    ExpiredError,
    InvalidCodeError,
    NotFoundError,
    NotificationError,
    RateLimitedError,
    ValidationError,
)
from models import RegisterRequest, SessionUser, UpdateProfileRequest
from services.credentials import CredentialVerifier, hash_password, validate_new_password
from services.login_throttle import LoginAttemptTracker, login_key
from services.otp_service import OTPFailure, OTPStore, OTPVerification, is_otp_format
from services.session_store import SessionStore

logger = logging.getLogger("event_booking_api.auth")

# (email, code, purpose) -> delivery receipt
Notifier = Callable[[str, str, str], object]

REGISTRATION = "registration"
RESET = "reset"


def normalize_email(email: str | None) -> str:
    email = (email or "").strip().lower()
    if "@" not in email:
        raise ValidationError("Invalid email")
    return email


def raise_for_otp_failure(result: OTPVerification) -> None:
    if result.valid:
        return
    if result.reason is OTPFailure.EXPIRED:
        raise ExpiredError()
    if result.reason is OTPFailure.MISMATCH:
        raise InvalidCodeError()
    raise NotFoundError("Verification code not found or expired")


def find_user_by_email(session: Session, email: str) -> User | None:
    return session.exec(select(User).where(User.email == email)).first()


def session_user(user: User) -> SessionUser:
    return SessionUser(
        id=user.id,
        username=user.username,
        email=user.email,
        role=user.role,
        full_name=user.full_name,
    )


@dataclass
class PendingRegistration:
    username: str
    email: str
    password_hash: str
    full_name: str | None
    phone: str | None
    role: str
    expires_at: datetime


class AuthService:
    """
    Registration, password reset and login.

    Holds references to the process-wide stores; it is built once at start-up.
    """

    def __init__(
        self,
        otp_store: OTPStore,
        login_attempts: LoginAttemptTracker,
        sessions: SessionStore,
        verifier: CredentialVerifier | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.otp_store = otp_store
        self.login_attempts = login_attempts
        self.sessions = sessions
        self.verifier = verifier or CredentialVerifier()
        self._clock = clock
        self._pending: dict[str, PendingRegistration] = {}
        self._pending_lock = threading.Lock()

    def _send_code(self, email: str, purpose: str, notify: Notifier) -> None:
        otp = self.otp_store.issue(email)
        notify(email, otp, purpose)

    def _check_code(self, email: str, otp: str) -> None:
        if not is_otp_format(otp):
            logger.warning(f"Rejected OTP verification due to invalid OTP format for email: {email}")
            raise ValidationError("Invalid OTP format")
        raise_for_otp_failure(self.otp_store.verify(email, otp))

    def _open_login_session(self, user: User) -> tuple[SessionUser, str]:
        current = session_user(user)
        session_id = self.sessions.create({"user": current.model_dump()})
        return current, session_id

    # Registration

    def register(self, request: RegisterRequest, notify: Notifier) -> str:
        email = normalize_email(request.email)
        username = request.username.strip()
        if not username:
            raise ValidationError("Username is required")

        validate_new_password(request.password, request.confirmPassword)

        with session_scope("registration lookup") as session:
            if find_user_by_email(session, email):
                raise ValidationError("Email already exists")
            if session.exec(select(User).where(User.username == username)).first():
                raise ValidationError("Username already exists")

        pending = PendingRegistration(
            username=username,
            email=email,
            password_hash=hash_password(request.password),
            full_name=request.fullName,
            phone=request.phone,
            role=request.role,
            expires_at=self._clock() + self.otp_store.lifetime,
        )

        otp = self.otp_store.issue(email)
        try:
            notify(email, otp, REGISTRATION)
        except NotificationError:
            # Nothing is kept for a registration whose code never went out
            self.otp_store.discard(email)
            raise

        with self._pending_lock:
            self._pending[email] = pending
        logger.info(f"Registration pending email verification: {email}")
        return email

    def verify_registration(self, email: str, otp: str) -> tuple[SessionUser, str]:
        email = normalize_email(email)
        self._check_code(email, otp.strip())

        with self._pending_lock:
            pending = self._pending.pop(email, None)
        if pending is None or self._clock() > pending.expires_at:
            raise ValidationError("Session expired. Please register again.")

        user = User(
            username=pending.username,
            email=pending.email,
            password=pending.password_hash,
            role=pending.role,
            full_name=pending.full_name,
            phone=pending.phone,
        )
        with session_scope("account creation") as session:
            session.add(user)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise ValidationError("Email or username already exists")
            session.refresh(user)

        logger.info(f"Account created for {email} (id={user.id})")
        return self._open_login_session(user)

    # Password reset

    def forgot_password(self, email: str, notify: Notifier) -> None:
        email = normalize_email(email)
        with session_scope("password reset lookup") as session:
            user = find_user_by_email(session, email)

        if user is None:
            # Same response either way so account existence is not revealed
            logger.info(f"Password reset requested for unknown email: {email}")
            return
        self._send_code(email, RESET, notify)

    def verify_reset(self, email: str, otp: str) -> str:
        email = normalize_email(email)
        self._check_code(email, otp.strip())
        return self.sessions.create({"reset_email": email}, lifetime=self.otp_store.lifetime)

    def reset_password(self, session_id: str | None, new_password: str, confirm_password: str) -> None:
        session_data = self.sessions.get(session_id)
        if not session_data or "reset_email" not in session_data:
            raise ValidationError("Password reset session expired. Please request a new code.")

        validate_new_password(new_password, confirm_password)
        email = session_data["reset_email"]

        with session_scope("password update") as session:
            user = find_user_by_email(session, email)
            if user is None:
                raise NotFoundError("User not found")
            user.password = hash_password(new_password)
            session.add(user)
            session.commit()

        self.sessions.delete(session_id)
        logger.info(f"Password reset completed for {email}")

    def resend_otp(self, email: str, purpose: str, notify: Notifier) -> None:
        email = normalize_email(email)

        if purpose == REGISTRATION:
            with self._pending_lock:
                pending = self._pending.get(email)
            if pending is None:
                raise NotFoundError("No pending registration for this email")
            with self._pending_lock:
                pending.expires_at = self._clock() + self.otp_store.lifetime
            self._send_code(email, REGISTRATION, notify)
            return

        with session_scope("password reset lookup") as session:
            user = find_user_by_email(session, email)
        if user is not None:
            self._send_code(email, RESET, notify)

    # Login

    def login(self, email: str | None, password: str | None, client_ip: str | None) -> tuple[SessionUser, str]:
        if not email or not password or not password.strip():
            raise ValidationError("Email and password required")

        key = login_key(email, client_ip)

        with session_scope("login lookup") as session:
            user = find_user_by_email(session, email.strip().lower())
        succeeded = user is not None and self.verifier.verify(password, user.password)

        # A denied attempt is not recorded, whatever the password
        decision = self.login_attempts.check_and_record(key, succeeded)
        if not decision.allowed:
            logger.warning(f"Login denied for key={key}: {decision.reason.value}")
            retry_after = int(decision.retry_after.total_seconds()) if decision.retry_after else None
            raise RateLimitedError(retry_after)

        if not succeeded:
            logger.warning(f"Failed login for key={key}")
            raise AuthenticationError()

        logger.info(f"User {user.id} logged in")
        return self._open_login_session(user)

    def logout(self, session_id: str | None) -> None:
        self.sessions.delete(session_id)

    # Profile

    def get_profile(self, user_id: int) -> User:
        with session_scope("profile lookup") as session:
            user = session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def update_profile(self, session_id: str, user_id: int, request: UpdateProfileRequest) -> User:
        with session_scope("profile update") as session:
            user = session.get(User, user_id)
            if user is None:
                raise NotFoundError("User not found")
            user.full_name = request.full_name
            user.phone = request.phone
            user.address = request.address
            session.add(user)
            session.commit()
            session.refresh(user)

        session_data = self.sessions.get(session_id)
        if session_data and "user" in session_data:
            self.sessions.update(session_id, user={**session_data["user"], "full_name": user.full_name})
        return user

    # Housekeeping

    def purge_expired(self) -> dict[str, int]:
        now = self._clock()
        with self._pending_lock:
            stale = [e for e, p in self._pending.items() if now > p.expires_at]
            for email in stale:
                del self._pending[email]

        return {
            "otps": self.otp_store.purge_expired(),
            "pending_registrations": len(stale),
            "sessions": self.sessions.purge_expired(),
            "login_attempts": self.login_attempts.purge_stale(),
        }

