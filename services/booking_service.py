import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Iterable

from sqlmodel import Session, func, select

from database import Booking, BookingStatus, Event, Service, UserRole
from errors import NotFoundError, PermissionDeniedError
from models import (
    BookingDetailsResponse,
    BookingResponse,
    BookingStats,
    BookingSummary,
    EventInfo,
    ServiceInfo,
    SessionUser,
)

logger = logging.getLogger("event_booking_api.booking")

CENTS = Decimal("0.01")


def as_amount(value) -> Decimal:
    """Coerce a stored price to a Decimal; missing or non-numeric values count as 0."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not amount.is_finite():
        return Decimal("0")
    return amount


def normalize_service_ids(service_ids: Iterable[int] | None) -> list[int]:
    return sorted({int(i) for i in service_ids or []})


def resolve_services(session: Session, service_ids: list[int]) -> tuple[list[int], Decimal]:
    """Ids among service_ids that exist, and the sum of their prices."""
    if not service_ids:
        return [], Decimal("0")
    rows = session.exec(
        select(Service.id, Service.price).where(Service.id.in_(service_ids))
    ).all()
    found = sorted(service_id for service_id, _ in rows)
    return found, sum((as_amount(price) for _, price in rows), Decimal("0"))


def selected_services_total(session: Session, service_ids: list[int]) -> Decimal:
    """Sum the prices of exactly the given service ids. Unknown ids add nothing."""
    return resolve_services(session, service_ids)[1]


def compute_total(session: Session, event_id: int, service_ids: Iterable[int] | None) -> Decimal:
    """Flat event price plus the selected add-on services. Guests do not scale it."""
    event = session.get(Event, event_id)
    if event is None:
        raise NotFoundError("Event not found")

    total = as_amount(event.price) + selected_services_total(
        session, normalize_service_ids(service_ids)
    )
    return max(total, Decimal("0")).quantize(CENTS)


def to_booking_response(booking: Booking) -> BookingResponse:
    try:
        services = json.loads(booking.services or "[]")
    except ValueError:
        services = []
    return BookingResponse(
        id=booking.id,
        user_id=booking.user_id,
        event_id=booking.event_id,
        guest_count=booking.guest_count,
        total_amount=as_amount(booking.total_amount),
        services=services,
        status=booking.status,
        created_at=booking.created_at,
    )


def create_booking(
    session: Session,
    user_id: int,
    event_id: int,
    guest_count: int,
    service_ids: Iterable[int] | None,
) -> Booking:
    total = compute_total(session, event_id, service_ids)
    # Only services that exist now are kept on the booking
    selected, _ = resolve_services(session, normalize_service_ids(service_ids))

    booking = Booking(
        user_id=user_id,
        event_id=event_id,
        guest_count=guest_count,
        total_amount=total,
        services=json.dumps(selected),
        status=BookingStatus.PENDING.value,
    )
    session.add(booking)
    session.commit()
    session.refresh(booking)

    logger.info(
        f"Booking {booking.id} created: user={user_id} event={event_id} total={total}"
    )
    return booking


def list_user_bookings(
    session: Session, user_id: int, limit: int | None = None
) -> list[BookingSummary]:
    stmt = (
        select(Booking, Event)
        .join(Event, Booking.event_id == Event.id)
        .where(Booking.user_id == user_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)

    return [
        BookingSummary(
            id=booking.id,
            guest_count=booking.guest_count,
            total_amount=as_amount(booking.total_amount),
            status=booking.status,
            created_at=booking.created_at,
            event_title=event.title,
            event_date=event.event_date,
            event_location=event.location,
        )
        for booking, event in session.exec(stmt).all()
    ]


def booking_stats(session: Session, user_id: int) -> BookingStats:
    bookings = session.exec(select(Booking).where(Booking.user_id == user_id)).all()
    return BookingStats(
        total_bookings=len(bookings),
        confirmed_bookings=sum(
            1 for b in bookings if b.status == BookingStatus.CONFIRMED.value
        ),
        total_spent=sum((as_amount(b.total_amount) for b in bookings), Decimal("0")),
    )


def _get_accessible_booking(session: Session, booking_id: int, user: SessionUser) -> Booking:
    booking = session.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")
    if booking.user_id != user.id and user.role != UserRole.ADMIN.value:
        logger.warning(f"User {user.id} denied access to booking {booking_id}")
        raise PermissionDeniedError()
    return booking


def get_booking_details(
    session: Session, booking_id: int, user: SessionUser
) -> BookingDetailsResponse:
    booking = _get_accessible_booking(session, booking_id, user)
    details = BookingDetailsResponse(booking=to_booking_response(booking))

    event = session.get(Event, booking.event_id)
    if event is not None:
        details.event = EventInfo(
            id=event.id,
            title=event.title,
            event_date=event.event_date,
            location=event.location,
            price=event.price,
        )

    if details.booking.services:
        services = session.exec(
            select(Service).where(Service.id.in_(details.booking.services))
        ).all()
        details.services = [
            ServiceInfo(id=s.id, name=s.name, price=as_amount(s.price), category=s.category)
            for s in services
        ]
    return details


def cancel_booking(session: Session, booking_id: int, user: SessionUser) -> Booking:
    booking = _get_accessible_booking(session, booking_id, user)
    booking.status = BookingStatus.CANCELLED.value
    session.add(booking)
    session.commit()
    session.refresh(booking)
    logger.info(f"Booking {booking_id} cancelled by user {user.id}")
    return booking


def update_booking_status(
    session: Session, booking_id: int, new_status: BookingStatus
) -> Booking:
    booking = session.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")
    booking.status = new_status.value
    session.add(booking)
    session.commit()
    session.refresh(booking)
    logger.info(f"Booking {booking_id} status set to {new_status.value}")
    return booking


def count_bookings(session: Session) -> int:
    return session.exec(select(func.count()).select_from(Booking)).one()
