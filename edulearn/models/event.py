"""Club events and their registrations."""

from sqlalchemy import (
    CheckConstraint, Column, Date, Integer, String, Text, Time, DateTime,
    ForeignKey, UniqueConstraint, func,
)
from edulearn.db.session import Base
from edulearn.models.resource import STATUS_APPROVED, STATUS_PENDING, STATUSES, check_in

EVENT_TYPES = ("workshop", "seminar", "networking", "webinar")


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint(check_in("type", EVENT_TYPES), name="ck_events_type"),
        CheckConstraint(check_in("status", STATUSES), name="ck_events_status"),
        CheckConstraint("registered <= capacity", name="ck_events_capacity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=False)
    date = Column(Date, nullable=False, index=True)
    time = Column(Time, nullable=False)
    location = Column(String(500), nullable=False)
    type = Column(String(50), nullable=False)
    capacity = Column(Integer, nullable=False)
    registered = Column(Integer, nullable=False, default=0)
    tags = Column(Text, nullable=False, default="[]")
    speaker = Column(String(255))
    image = Column(Text)
    submitter_email = Column(String(255), index=True)
    submitter_name = Column(String(255))
    status = Column(String(20), nullable=False, default=STATUS_PENDING, index=True)
    created_at = Column(DateTime, server_default=func.now())

    @property
    def is_approved(self) -> bool:
        return self.status == STATUS_APPROVED


class EventRegistration(Base):
    __tablename__ = "event_registrations"
    __table_args__ = (
        UniqueConstraint("event_id", "user_email", name="uq_event_registration"),
    )

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_email = Column(String(255), nullable=False, index=True)
    registered_at = Column(DateTime, server_default=func.now())
