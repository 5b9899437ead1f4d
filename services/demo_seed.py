import logging
from datetime import date, timedelta
from decimal import Decimal

from sqlmodel import Session, select

from database import Event, Service, User, UserRole
from services.credentials import LEGACY_DEMO_HASH

logger = logging.getLogger("event_booking_api.db")


def seed_demo_data(session: Session) -> bool:
    """Insert the demo admin plus sample events and services into an empty database."""
    if session.exec(select(User)).first() is not None:
        return False

    today = date.today()
    session.add(
        User(
            username="admin",
            email="admin@eventbooking.local",
            password=LEGACY_DEMO_HASH,
            role=UserRole.ADMIN.value,
            full_name="Demo Admin",
        )
    )
    session.add_all(
        [
            Event(
                title="Summer Wedding Showcase",
                type="wedding",
                event_date=today + timedelta(days=30),
                location="Grand Hall",
                price=Decimal("1500.00"),
                capacity=200,
            ),
            Event(
                title="Tech Conference",
                type="conference",
                event_date=today + timedelta(days=45),
                location="Convention Center",
                price=Decimal("300.00"),
                capacity=500,
            ),
            Event(
                title="Birthday Bash",
                type="birthday",
                event_date=today + timedelta(days=10),
                location="Garden Terrace",
                price=Decimal("250.00"),
                capacity=50,
            ),
        ]
    )
    session.add_all(
        [
            Service(name="Catering", price=Decimal("500.00"), category="food"),
            Service(name="Photography", price=Decimal("200.00"), category="media"),
            Service(name="Decoration", price=Decimal("150.00"), category="decor"),
            Service(name="DJ", price=Decimal("120.00"), category="music"),
        ]
    )
    session.commit()
    logger.info("Demo data seeded")
    return True
