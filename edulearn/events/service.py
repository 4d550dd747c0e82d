"""Events: the same moderation rules as resources, plus capacity-bounded registration."""

import json
import logging
from dataclasses import dataclass

from fastapi import HTTPException
from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from edulearn.auth.service import is_user_admin_by_email, normalize_email
from edulearn.db.session import commit
from edulearn.models.event import Event, EventRegistration
from edulearn.models.resource import STATUS_APPROVED, STATUS_PENDING, STATUS_REJECTED
from edulearn.models.user import User
from edulearn.resources.service import require_admin, viewer_is_admin
from edulearn.schemas.event import EventIn, EventUpdate

logger = logging.getLogger(__name__)


@dataclass
class EventFilters:
    type: str | None = None
    limit: int | None = None
    include_pending: bool = False


def list_events(db: Session, filters: EventFilters, viewer: User | None = None) -> list[Event]:
    q = db.query(Event)
    if filters.type and filters.type != "all":
        q = q.filter(Event.type == filters.type)

    visible = Event.status == STATUS_APPROVED
    if filters.include_pending and viewer is not None:
        if viewer_is_admin(db, viewer):
            visible = or_(visible, Event.status == STATUS_PENDING)
        else:
            visible = or_(visible, (Event.status == STATUS_PENDING) & (Event.submitter_email == viewer.email))
    q = q.filter(visible).order_by(Event.date.asc(), Event.time.asc(), Event.id.asc())

    if filters.limit:
        q = q.limit(filters.limit)
    return q.all()


def get_event(db: Session, event_id: int, viewer: User | None = None) -> Event:
    event = db.get(Event, event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    if event.status != STATUS_APPROVED:
        is_owner = viewer is not None and viewer.email == event.submitter_email
        if not (is_owner or viewer_is_admin(db, viewer)):
            raise HTTPException(status_code=404, detail="Event not found")
    return event


def submit_event(db: Session, data: EventIn, submitter: User) -> Event:
    auto_approve = is_user_admin_by_email(db, submitter.email)
    event = Event(
        title=data.title.strip(),
        description=data.description.strip(),
        date=data.date,
        time=data.time,
        location=data.location.strip(),
        type=data.type,
        capacity=data.capacity,
        registered=0,
        tags=json.dumps(data.tags),
        speaker=data.speaker,
        image=data.image,
        submitter_email=submitter.email,
        submitter_name=submitter.name,
        status=STATUS_APPROVED if auto_approve else STATUS_PENDING,
    )
    db.add(event)
    commit(db)
    db.refresh(event)
    logger.info("Event %s submitted by user %s (status=%s)", event.id, submitter.id, event.status)
    return event


def _set_status(db: Session, event_id: int, status: str) -> Event:
    event = db.get(Event, event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    event.status = status
    commit(db)
    db.refresh(event)
    return event


def approve_event(db: Session, event_id: int, actor_email: str | None) -> Event:
    require_admin(db, actor_email, "Only admins can approve events")
    return _set_status(db, event_id, STATUS_APPROVED)


def reject_event(db: Session, event_id: int, actor_email: str | None) -> Event:
    require_admin(db, actor_email, "Only admins can reject events")
    return _set_status(db, event_id, STATUS_REJECTED)


def list_pending_events(db: Session, actor_email: str | None) -> list[Event]:
    require_admin(db, actor_email)
    return (
        db.query(Event)
        .filter(Event.status == STATUS_PENDING)
        .order_by(Event.created_at.asc(), Event.id.asc())
        .all()
    )


def update_event(db: Session, event_id: int, data: EventUpdate, actor_email: str | None) -> Event:
    require_admin(db, actor_email)
    event = db.get(Event, event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "capacity" in changes and changes["capacity"] < event.registered:
        raise HTTPException(status_code=400, detail="Capacity cannot be lower than the number of registered attendees")
    for field, value in changes.items():
        if field == "tags":
            value = json.dumps(value)
        setattr(event, field, value)
    commit(db)
    db.refresh(event)
    return event


def delete_event(db: Session, event_id: int, actor_email: str | None) -> None:
    require_admin(db, actor_email)
    event = db.get(Event, event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    db.query(EventRegistration).filter(EventRegistration.event_id == event_id).delete()
    db.delete(event)
    commit(db)
    logger.info("Event %s deleted by %s", event_id, actor_email)


def is_registered(db: Session, event_id: int, user_email: str) -> bool:
    return (
        db.query(EventRegistration.id)
        .filter(
            EventRegistration.event_id == event_id,
            EventRegistration.user_email == normalize_email(user_email),
        )
        .first()
        is not None
    )


def register_for_event(db: Session, event_id: int, user_email: str) -> Event:
    """Take one seat on an approved event.

    The seat is claimed with a single conditional UPDATE so concurrent
    requests cannot push ``registered`` past ``capacity``; the registration
    row is inserted in the same transaction and a duplicate rolls both back.
    """
    email = normalize_email(user_email)
    event = db.get(Event, event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    if event.status != STATUS_APPROVED:
        raise HTTPException(status_code=400, detail="Event is not yet approved")
    if is_registered(db, event_id, email):
        raise HTTPException(status_code=409, detail="User is already registered for this event")

    claimed = db.execute(
        update(Event)
        .where(
            Event.id == event_id,
            Event.status == STATUS_APPROVED,
            Event.registered < Event.capacity,
        )
        .values(registered=Event.registered + 1)
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount == 0:
        db.rollback()
        raise HTTPException(status_code=400, detail="Event is full")

    db.add(EventRegistration(event_id=event_id, user_email=email))
    try:
        commit(db)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="User is already registered for this event")

    db.refresh(event)
    logger.info("Registration for event %s (%s/%s)", event_id, event.registered, event.capacity)
    return event
