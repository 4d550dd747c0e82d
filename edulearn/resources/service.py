"""Resource catalog with admin moderation.

A submission starts ``pending`` unless the submitter is an admin, in which
case it is published immediately. Only admins move an item out of
``pending`` or edit/delete it.
"""

import json
import logging
from dataclasses import dataclass

from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from edulearn.auth.service import is_user_admin_by_email
from edulearn.db.session import commit
from edulearn.models.resource import Resource, STATUS_APPROVED, STATUS_PENDING, STATUS_REJECTED
from edulearn.models.user import User
from edulearn.schemas.resource import ResourceIn, ResourceUpdate

logger = logging.getLogger(__name__)


@dataclass
class ResourceFilters:
    type: str | None = None
    level: str | None = None
    course: str | None = None
    search: str | None = None
    include_pending: bool = False


def _active(value: str | None) -> bool:
    return bool(value) and value != "all"


def viewer_is_admin(db: Session, viewer: User | None) -> bool:
    return viewer is not None and is_user_admin_by_email(db, viewer.email)


def require_admin(db: Session, actor_email: str | None, detail: str = "Admin access required") -> None:
    if not is_user_admin_by_email(db, actor_email):
        raise HTTPException(status_code=403, detail=detail)


def list_resources(db: Session, filters: ResourceFilters, viewer: User | None = None) -> list[Resource]:
    q = db.query(Resource)
    if _active(filters.type):
        q = q.filter(Resource.type == filters.type)
    if _active(filters.level):
        q = q.filter(Resource.level == filters.level)
    if _active(filters.course):
        q = q.filter(Resource.course == filters.course)
    if filters.search and filters.search.strip():
        term = f"%{filters.search.strip().lower()}%"
        q = q.filter(or_(
            func.lower(Resource.title).like(term),
            func.lower(Resource.description).like(term),
            func.lower(Resource.tags).like(term),
        ))

    visible = Resource.status == STATUS_APPROVED
    if filters.include_pending and viewer is not None:
        if viewer_is_admin(db, viewer):
            visible = or_(visible, Resource.status == STATUS_PENDING)
        else:
            visible = or_(visible, (Resource.status == STATUS_PENDING) & (Resource.submitter_email == viewer.email))
    q = q.filter(visible)

    return q.order_by(Resource.rating.desc(), Resource.id.asc()).all()


def get_resource(db: Session, resource_id: int, viewer: User | None = None) -> Resource:
    resource = db.get(Resource, resource_id)
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    if resource.status != STATUS_APPROVED:
        is_owner = viewer is not None and viewer.email == resource.submitter_email
        if not (is_owner or viewer_is_admin(db, viewer)):
            raise HTTPException(status_code=404, detail="Resource not found")
    return resource


def submit_resource(db: Session, data: ResourceIn, submitter: User) -> Resource:
    auto_approve = is_user_admin_by_email(db, submitter.email)
    resource = Resource(
        title=data.title.strip(),
        description=data.description.strip(),
        level=data.level,
        course=data.course,
        tags=json.dumps(data.tags),
        type=data.type,
        duration=data.duration,
        author=data.author.strip(),
        rating=0,
        thumbnail=data.thumbnail,
        link=data.link.strip(),
        submitter_email=submitter.email,
        submitter_name=submitter.name,
        status=STATUS_APPROVED if auto_approve else STATUS_PENDING,
    )
    db.add(resource)
    commit(db)
    db.refresh(resource)
    logger.info("Resource %s submitted by user %s (status=%s)", resource.id, submitter.id, resource.status)
    return resource


def _set_status(db: Session, resource_id: int, status: str) -> Resource:
    resource = db.get(Resource, resource_id)
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    resource.status = status
    commit(db)
    db.refresh(resource)
    return resource


def approve_resource(db: Session, resource_id: int, actor_email: str | None) -> Resource:
    require_admin(db, actor_email, "Only admins can approve resources")
    return _set_status(db, resource_id, STATUS_APPROVED)


def reject_resource(db: Session, resource_id: int, actor_email: str | None) -> Resource:
    require_admin(db, actor_email, "Only admins can reject resources")
    return _set_status(db, resource_id, STATUS_REJECTED)


def list_pending_resources(db: Session, actor_email: str | None) -> list[Resource]:
    require_admin(db, actor_email)
    return (
        db.query(Resource)
        .filter(Resource.status == STATUS_PENDING)
        .order_by(Resource.created_at.asc(), Resource.id.asc())
        .all()
    )


def update_resource(db: Session, resource_id: int, data: ResourceUpdate, actor_email: str | None) -> Resource:
    require_admin(db, actor_email)
    resource = db.get(Resource, resource_id)
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        if field == "tags":
            value = json.dumps(value)
        setattr(resource, field, value)
    commit(db)
    db.refresh(resource)
    return resource


def delete_resource(db: Session, resource_id: int, actor_email: str | None) -> None:
    require_admin(db, actor_email)
    resource = db.get(Resource, resource_id)
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    db.delete(resource)
    commit(db)
    logger.info("Resource %s deleted by %s", resource_id, actor_email)
