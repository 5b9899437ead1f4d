from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal

from pydantic import BaseModel, Field

from database import BookingStatus


class RegisterRequest(BaseModel):
    username: str
    email: str
    password: str
    confirmPassword: str
    fullName: str | None = None
    phone: str | None = None
    role: Literal["user", "organizer"] = "user"


class VerifyOTPRequest(BaseModel):
    email: str
    otp: str


class ForgotPasswordRequest(BaseModel):
    email: str


class ResendOTPRequest(BaseModel):
    email: str
    type: Literal["registration", "reset"] = "registration"


class ResetPasswordRequest(BaseModel):
    newPassword: str
    confirmPassword: str


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class UpdateProfileRequest(BaseModel):
    full_name: str | None = None
    phone: str | None = None
    address: str | None = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class SessionUser(BaseModel):
    """The user record kept in the session after authentication."""

    id: int
    username: str
    email: str
    role: str
    full_name: str | None = None


class JWTResponse(BaseModel):
    """Response model for JWT token."""

    jwt: str


class LoginResponse(JWTResponse):
    user: SessionUser


class ProfileResponse(BaseModel):
    id: int
    username: str
    email: str
    role: str
    full_name: str | None = None
    phone: str | None = None
    address: str | None = None
    created_at: datetime


class CreateBookingRequest(BaseModel):
    eventId: int
    guestCount: int = Field(default=1, ge=1)
    services: List[int] = []


class UpdateBookingStatusRequest(BaseModel):
    status: BookingStatus


class BookingResponse(BaseModel):
    id: int
    user_id: int
    event_id: int
    guest_count: int
    total_amount: Decimal
    services: List[int]
    status: str
    created_at: datetime


class BookingSummary(BaseModel):
    id: int
    guest_count: int
    total_amount: Decimal
    status: str
    created_at: datetime
    event_title: str
    event_date: date | None = None
    event_location: str | None = None


class EventInfo(BaseModel):
    id: int
    title: str
    event_date: date | None = None
    location: str | None = None
    price: Decimal | None = None


class EventResponse(EventInfo):
    description: str | None = None
    type: str | None = None
    capacity: int | None = None
    status: str


class ServiceInfo(BaseModel):
    id: int
    name: str
    price: Decimal
    category: str | None = None
    description: str | None = None


class EventDetailsResponse(BaseModel):
    event: EventResponse
    services: List[ServiceInfo] = []


class BookingDetailsResponse(BaseModel):
    booking: BookingResponse
    event: EventInfo | None = None
    services: List[ServiceInfo] = []


class BookingStats(BaseModel):
    total_bookings: int
    confirmed_bookings: int
    total_spent: Decimal


class DashboardResponse(BaseModel):
    user: SessionUser
    stats: BookingStats
    bookings: List[BookingSummary]
