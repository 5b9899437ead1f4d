import logging
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Field, Session, SQLModel, create_engine

from config import DATABASE_URL
from errors import PersistenceError

logger = logging.getLogger("event_booking_api.db")

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)


def init_db():
    SQLModel.metadata.create_all(engine)


def get_session():
    return Session(engine)


@contextmanager
def session_scope(action: str):
    """Open a session and report store failures as a PersistenceError."""
    try:
        with get_session() as session:
            yield session
    except SQLAlchemyError:
        logger.exception(f"Database failure during {action}")
        raise PersistenceError()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, Enum):
    USER = "user"
    ORGANIZER = "organizer"
    ADMIN = "admin"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    email: str = Field(index=True, unique=True)
    password: str
    role: str = Field(default=UserRole.USER.value)
    full_name: str | None = None
    phone: str | None = None
    address: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class Event(SQLModel, table=True):
    __tablename__ = "events"

    id: int | None = Field(default=None, primary_key=True)
    title: str
    description: str | None = None
    type: str | None = None
    event_date: date | None = None
    location: str | None = None
    price: Decimal | None = Field(default=None, max_digits=10, decimal_places=2)
    capacity: int | None = None
    status: str = Field(default="active")


class Service(SQLModel, table=True):
    __tablename__ = "services"

    id: int | None = Field(default=None, primary_key=True)
    name: str
    description: str | None = None
    price: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    category: str | None = None


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    event_id: int = Field(foreign_key="events.id")
    guest_count: int = Field(default=1)
    total_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    # JSON list of the service ids selected at booking time
    services: str = Field(default="[]")
    status: str = Field(default=BookingStatus.PENDING.value)
    created_at: datetime = Field(default_factory=utcnow)
