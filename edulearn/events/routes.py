from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from edulearn.auth.deps import get_db, get_current_user, get_optional_user
from edulearn.events.service import (
    EventFilters, approve_event, delete_event, get_event, is_registered, list_events,
    list_pending_events, register_for_event, reject_event, submit_event, update_event,
)
from edulearn.models.user import User
from edulearn.schemas.event import EventAction, EventIn, EventOut, EventUpdate

router = APIRouter(prefix="/events", tags=["events"])


def _out(event) -> dict:
    return EventOut.model_validate(event).model_dump(mode="json")


@router.get("")
def index(
    type: str | None = Query(None),
    limit: int | None = Query(None, ge=1, le=500),
    include_pending: bool = Query(False),
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    rows = list_events(db, EventFilters(type=type, limit=limit, include_pending=include_pending), viewer)
    return {"success": True, "data": [_out(e) for e in rows], "count": len(rows)}


@router.get("/pending")
def pending(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rows = list_pending_events(db, user.email)
    return {"success": True, "data": [_out(e) for e in rows], "count": len(rows)}


@router.get("/check-registration")
def check_registration(
    event_id: int = Query(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"success": True, "is_registered": is_registered(db, event_id, user.email)}


@router.get("/{event_id}")
def show(event_id: int, db: Session = Depends(get_db), viewer: User | None = Depends(get_optional_user)):
    return {"success": True, "data": _out(get_event(db, event_id, viewer))}


@router.post("/submit", status_code=201)
def submit(body: EventIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    event = submit_event(db, body, user)
    message = (
        "Event published successfully"
        if event.is_approved
        else "Event submitted successfully and is pending approval"
    )
    return {"success": True, "message": message, "data": _out(event)}


@router.post("/approve")
def approve(body: EventAction, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    event = approve_event(db, body.event_id, user.email)
    return {"success": True, "message": "Event approved successfully", "data": _out(event)}


@router.post("/reject")
def reject(body: EventAction, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    event = reject_event(db, body.event_id, user.email)
    return {"success": True, "message": "Event rejected successfully", "data": _out(event)}


@router.post("/register")
def register(body: EventAction, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    event = register_for_event(db, body.event_id, user.email)
    return {
        "success": True,
        "message": "Successfully registered for event",
        "registered": event.registered,
        "capacity": event.capacity,
    }


@router.put("/{event_id}")
def update(event_id: int, body: EventUpdate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"success": True, "data": _out(update_event(db, event_id, body, user.email))}


@router.delete("/{event_id}")
def delete(event_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    delete_event(db, event_id, user.email)
    return {"success": True, "message": "Event deleted successfully"}
