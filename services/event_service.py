"""
Read-only queries for the public event catalogue and add-on services.
"""

from datetime import date

from sqlmodel import Session, or_, select

from database import Event, Service
from errors import NotFoundError
from models import EventDetailsResponse, EventResponse, ServiceInfo
from services.booking_service import as_amount

ALL_TYPES = "all"


def to_event_response(event: Event) -> EventResponse:
    return EventResponse.model_validate(event, from_attributes=True)


def to_service_info(service: Service) -> ServiceInfo:
    return ServiceInfo(
        id=service.id,
        name=service.name,
        price=as_amount(service.price),
        category=service.category,
        description=service.description,
    )


def list_events(
    session: Session,
    event_type: str | None = None,
    search: str | None = None,
    today: date | None = None,
) -> list[EventResponse]:
    """Upcoming and undated events, soonest first, optionally filtered by type and keyword."""
    today = today or date.today()
    stmt = select(Event).where(or_(Event.event_date >= today, Event.event_date.is_(None)))

    if event_type and event_type != ALL_TYPES:
        stmt = stmt.where(Event.type == event_type)

    keyword = (search or "").strip()
    if keyword:
        pattern = f"%{keyword}%"
        stmt = stmt.where(
            or_(
                Event.title.ilike(pattern),
                Event.description.ilike(pattern),
                Event.location.ilike(pattern),
            )
        )

    # Undated events sort last
    stmt = stmt.order_by(Event.event_date.is_(None), Event.event_date, Event.id)
    return [to_event_response(e) for e in session.exec(stmt).all()]


def list_services(session: Session, category: str | None = None) -> list[ServiceInfo]:
    stmt = select(Service)
    if category:
        stmt = stmt.where(Service.category == category)
    stmt = stmt.order_by(Service.category, Service.name)
    return [to_service_info(s) for s in session.exec(stmt).all()]


def get_event_details(session: Session, event_id: int) -> EventDetailsResponse:
    event = session.get(Event, event_id)
    if event is None:
        raise NotFoundError("Event not found")
    return EventDetailsResponse(
        event=to_event_response(event),
        services=list_services(session),
    )
