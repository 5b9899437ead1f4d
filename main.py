import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi_utilities import repeat_every

from auth import (
    TokenPayload,
    create_access_token,
    get_current_token,
    require_admin,
    require_login,
    require_otp,
)
from config import (
    CORS_ORIGINS,
    EXPIRED_STATE_CLEANUP_INTERVAL_SECONDS,
    OTP_LIFETIME_MINUTES,
    SEED_DEMO_DATA,
)
from database import init_db, session_scope
from models import (
    BookingDetailsResponse,
    BookingResponse,
    BookingSummary,
    CreateBookingRequest,
    DashboardResponse,
    EventDetailsResponse,
    EventResponse,
    ForgotPasswordRequest,
    JWTResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ProfileResponse,
    RegisterRequest,
    ResendOTPRequest,
    ResetPasswordRequest,
    ServiceInfo,
    SessionUser,
    UpdateBookingStatusRequest,
    UpdateProfileRequest,
    VerifyOTPRequest,
)
from services.auth_service import AuthService, Notifier
from services.booking_service import (
    booking_stats,
    cancel_booking,
    create_booking,
    get_booking_details,
    list_user_bookings,
    to_booking_response,
    update_booking_status,
)
from services.demo_seed import seed_demo_data
from services.email_service import send_verification_email
from services.event_service import get_event_details, list_events, list_services
from services.login_throttle import LoginAttemptTracker
from services.logs_service import logger
from services.otp_service import OTPStore
from services.session_store import SessionStore

RECENT_BOOKINGS_LIMIT = 5


# Build the in-memory stores and initialize the database
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up... Initializing database.")
    init_db()
    if SEED_DEMO_DATA:
        with session_scope("demo seed") as session:
            seed_demo_data(session)
    logger.info("Database initialized.")

    sessions = SessionStore()
    app.state.session_store = sessions
    app.state.auth_service = AuthService(
        otp_store=OTPStore(),
        login_attempts=LoginAttemptTracker(),
        sessions=sessions,
    )

    if EXPIRED_STATE_CLEANUP_INTERVAL_SECONDS > 0:
        # cron job to clean up expired codes, sessions and login attempts
        @repeat_every(seconds=EXPIRED_STATE_CLEANUP_INTERVAL_SECONDS)
        def clear_expired_state():
            removed = app.state.auth_service.purge_expired()
            if any(removed.values()):
                logger.debug(f"Expired state cleanup removed {removed}")

        await clear_expired_state()  # Initial cleanup on startup
    yield


app = FastAPI(
    title="Event Booking API",
    description="API for event bookings with OTP-verified accounts",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create router with /api/v1 prefix
router = APIRouter(prefix="/api/v1")


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_notifier() -> Notifier:
    return send_verification_email


def login_response(user: SessionUser, session_id: str) -> LoginResponse:
    token = create_access_token(
        email=user.email,
        token_type="login",
        user_id=user.id,
        session_id=session_id,
    )
    return LoginResponse(jwt=token, user=user)


# Auth Routes
@router.post(
    "/auth/register",
    response_model=MessageResponse,
    tags=["Authentication"],
    summary="Register a new account",
    description="Validate the registration and send a verification code to the email. "
    "The account is created once the code is verified.",
    responses={
        200: {"description": "The OTP was sent"},
        400: {"description": "The input failed validation or the email/username is taken"},
        502: {"description": "The verification email could not be sent"},
    },
)
async def register(
    request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
    notify: Notifier = Depends(get_notifier),
):
    email = auth_service.register(request, notify)
    return MessageResponse(message=f"OTP sent to {email}. Please check your email.")


@router.post(
    "/auth/verify-otp-registration",
    response_model=LoginResponse,
    tags=["Authentication"],
    summary="Verify registration OTP",
    description="Verify the registration code, create the account and log the user in.",
    responses={
        200: {"description": "The account was created. Returns a JWT of type 'login'"},
        400: {"description": "The request is malformed or the registration expired"},
        403: {"description": "The OTP is invalid or expired"},
        404: {"description": "No OTP is pending for this email"},
    },
)
async def verify_registration_otp(
    request: VerifyOTPRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    user, session_id = auth_service.verify_registration(request.email, request.otp)
    return login_response(user, session_id)


@router.post(
    "/auth/forgot-password",
    response_model=MessageResponse,
    tags=["Authentication"],
    summary="Request a password reset code",
    description="Send a reset code if an account exists. "
    "The response is the same whether or not the email is registered.",
)
async def forgot_password(
    request: ForgotPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
    notify: Notifier = Depends(get_notifier),
):
    auth_service.forgot_password(request.email, notify)
    return MessageResponse(message="If an account exists, you will receive reset instructions.")


@router.post(
    "/auth/verify-otp-reset",
    response_model=JWTResponse,
    tags=["Authentication"],
    summary="Verify password reset OTP",
    responses={
        200: {"description": "The OTP is valid. Returns a single-use JWT of type 'otp'"},
        403: {"description": "The OTP is invalid or expired"},
        404: {"description": "No OTP is pending for this email"},
    },
)
async def verify_reset_otp(
    request: VerifyOTPRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    email = request.email.strip().lower()
    session_id = auth_service.verify_reset(email, request.otp)
    token = create_access_token(
        email=email,
        token_type="otp",
        session_id=session_id,
        expires_delta=timedelta(minutes=OTP_LIFETIME_MINUTES),
    )
    return JWTResponse(jwt=token)


@router.post(
    "/auth/reset-password",
    response_model=MessageResponse,
    tags=["Authentication"],
    summary="Set a new password",
    responses={
        200: {"description": "The password was updated"},
        400: {"description": "The password does not meet the policy or the reset expired"},
        403: {"description": "The JWT is invalid"},
    },
)
async def reset_password(
    request: ResetPasswordRequest,
    token: TokenPayload = Depends(require_otp),
    auth_service: AuthService = Depends(get_auth_service),
):
    auth_service.reset_password(token.sid, request.newPassword, request.confirmPassword)
    return MessageResponse(message="Password reset successful! Please login with your new password.")


@router.post(
    "/auth/resend-otp",
    response_model=MessageResponse,
    tags=["Authentication"],
    summary="Resend a verification code",
    description="Issue a fresh code; any earlier code for the email stops working.",
)
async def resend_otp(
    request: ResendOTPRequest,
    auth_service: AuthService = Depends(get_auth_service),
    notify: Notifier = Depends(get_notifier),
):
    auth_service.resend_otp(request.email, request.type, notify)
    return MessageResponse(message="OTP resent successfully. Check your email.")


@router.post(
    "/auth/login",
    response_model=LoginResponse,
    tags=["Authentication"],
    summary="Log in with email and password",
    responses={
        200: {"description": "Returns a JWT of type 'login'"},
        400: {"description": "Email or password missing"},
        401: {"description": "Invalid email or password"},
        429: {"description": "Too many failed login attempts"},
    },
)
async def login(
    request: LoginRequest,
    http_request: Request,
    auth_service: AuthService = Depends(get_auth_service),
):
    client_ip = http_request.client.host if http_request.client else None
    user, session_id = auth_service.login(request.email, request.password, client_ip)
    return login_response(user, session_id)


@router.post(
    "/auth/logout",
    response_model=MessageResponse,
    tags=["Authentication"],
    summary="Log out",
)
async def logout(
    token: TokenPayload = Depends(get_current_token),
    user: SessionUser = Depends(require_login),
    auth_service: AuthService = Depends(get_auth_service),
):
    auth_service.logout(token.sid)
    logger.info(f"User {user.id} logged out")
    return MessageResponse(message="Logged out")


# Profile Routes
@router.get(
    "/auth/profile",
    response_model=ProfileResponse,
    tags=["Profile"],
    summary="Get own profile",
)
async def get_profile(
    user: SessionUser = Depends(require_login),
    auth_service: AuthService = Depends(get_auth_service),
):
    profile = auth_service.get_profile(user.id)
    return ProfileResponse.model_validate(profile, from_attributes=True)


@router.post(
    "/auth/profile",
    response_model=ProfileResponse,
    tags=["Profile"],
    summary="Update own profile",
)
async def update_profile(
    request: UpdateProfileRequest,
    token: TokenPayload = Depends(get_current_token),
    user: SessionUser = Depends(require_login),
    auth_service: AuthService = Depends(get_auth_service),
):
    profile = auth_service.update_profile(token.sid, user.id, request)
    return ProfileResponse.model_validate(profile, from_attributes=True)


# Catalogue Routes
@router.get(
    "/events",
    response_model=list[EventResponse],
    tags=["Events"],
    summary="Browse upcoming events",
    description="Upcoming and undated events, soonest first. Filter by type ('all' for any) "
    "and by a keyword matched against title, description and location.",
)
async def get_events(type: str | None = None, search: str | None = None):
    with session_scope("event listing") as session:
        return list_events(session, event_type=type, search=search)


@router.get(
    "/events/{event_id}",
    response_model=EventDetailsResponse,
    tags=["Events"],
    summary="Get an event with the services that can be booked with it",
    responses={404: {"description": "The event does not exist"}},
)
async def get_event(event_id: int):
    with session_scope("event details") as session:
        return get_event_details(session, event_id)


@router.get(
    "/services",
    response_model=list[ServiceInfo],
    tags=["Events"],
    summary="List add-on services",
)
async def get_services(category: str | None = None):
    with session_scope("service listing") as session:
        return list_services(session, category=category)


# Booking Routes
@router.post(
    "/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Bookings"],
    summary="Book an event",
    description="Book an event with optional add-on services. The total is the event price "
    "plus the price of each selected service.",
    responses={
        201: {"description": "The booking was created"},
        404: {"description": "The event does not exist"},
    },
)
async def create_booking_route(
    request: CreateBookingRequest,
    user: SessionUser = Depends(require_login),
):
    with session_scope("booking creation") as session:
        booking = create_booking(
            session, user.id, request.eventId, request.guestCount, request.services
        )
        return to_booking_response(booking)


@router.get(
    "/bookings",
    response_model=list[BookingSummary],
    tags=["Bookings"],
    summary="List own bookings",
)
async def get_user_bookings(user: SessionUser = Depends(require_login)):
    with session_scope("booking listing") as session:
        return list_user_bookings(session, user.id)


@router.get(
    "/bookings/dashboard",
    response_model=DashboardResponse,
    tags=["Bookings"],
    summary="Booking stats and most recent bookings",
)
async def get_dashboard(user: SessionUser = Depends(require_login)):
    with session_scope("dashboard") as session:
        return DashboardResponse(
            user=user,
            stats=booking_stats(session, user.id),
            bookings=list_user_bookings(session, user.id, limit=RECENT_BOOKINGS_LIMIT),
        )


@router.get(
    "/bookings/{booking_id}",
    response_model=BookingDetailsResponse,
    tags=["Bookings"],
    summary="Get booking details",
    responses={
        403: {"description": "The booking belongs to another user"},
        404: {"description": "The booking does not exist"},
    },
)
async def get_booking(booking_id: int, user: SessionUser = Depends(require_login)):
    with session_scope("booking details") as session:
        return get_booking_details(session, booking_id, user)


@router.post(
    "/bookings/{booking_id}/cancel",
    response_model=BookingResponse,
    tags=["Bookings"],
    summary="Cancel a booking",
    responses={
        403: {"description": "The booking belongs to another user"},
        404: {"description": "The booking does not exist"},
    },
)
async def cancel_booking_route(booking_id: int, user: SessionUser = Depends(require_login)):
    with session_scope("booking cancellation") as session:
        return to_booking_response(cancel_booking(session, booking_id, user))


@router.post(
    "/bookings/{booking_id}/status",
    response_model=BookingResponse,
    tags=["Bookings"],
    summary="Update booking status (admin)",
    responses={
        403: {"description": "The user is not an administrator"},
        404: {"description": "The booking does not exist"},
    },
)
async def update_booking_status_route(
    booking_id: int,
    request: UpdateBookingStatusRequest,
    admin: SessionUser = Depends(require_admin),
):
    with session_scope("booking status update") as session:
        booking = update_booking_status(session, booking_id, request.status)
        logger.info(f"Admin {admin.id} set booking {booking_id} to {request.status.value}")
        return to_booking_response(booking)


# Include router in the app
app.include_router(router)


def main():
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
