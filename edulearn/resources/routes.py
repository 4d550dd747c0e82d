from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from edulearn.auth.deps import get_db, get_current_user, get_http_transport, get_optional_user
from edulearn.models.user import User
from edulearn.resources.service import (
    ResourceFilters, approve_resource, delete_resource, get_resource, list_pending_resources,
    list_resources, reject_resource, submit_resource, update_resource,
)
from edulearn.resources.web_search import search_web
from edulearn.schemas.resource import ResourceAction, ResourceIn, ResourceOut, ResourceUpdate, WebSearchIn

router = APIRouter(prefix="/resources", tags=["resources"])


def _out(resource) -> dict:
    return ResourceOut.model_validate(resource).model_dump(mode="json")


@router.get("")
def index(
    type: str | None = Query(None),
    level: str | None = Query(None),
    course: str | None = Query(None),
    search: str | None = Query(None),
    include_pending: bool = Query(False),
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    filters = ResourceFilters(type=type, level=level, course=course, search=search, include_pending=include_pending)
    rows = list_resources(db, filters, viewer)
    return {"success": True, "data": [_out(r) for r in rows], "count": len(rows)}


@router.get("/pending")
def pending(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rows = list_pending_resources(db, user.email)
    return {"success": True, "data": [_out(r) for r in rows], "count": len(rows)}


@router.post("/web-search")
async def web_search(body: WebSearchIn, transport=Depends(get_http_transport)):
    query = (body.query or "").strip()
    if not query:
        raise HTTPException(status_code=400, detail="Query parameter is required")
    return await search_web(query, transport)


@router.get("/{resource_id}")
def show(resource_id: int, db: Session = Depends(get_db), viewer: User | None = Depends(get_optional_user)):
    return {"success": True, "data": _out(get_resource(db, resource_id, viewer))}


@router.post("/submit", status_code=201)
def submit(body: ResourceIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    resource = submit_resource(db, body, user)
    message = (
        "Resource published successfully"
        if resource.is_approved
        else "Resource submitted successfully and is pending approval"
    )
    return {"success": True, "message": message, "data": _out(resource)}


@router.post("/approve")
def approve(body: ResourceAction, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    resource = approve_resource(db, body.resource_id, user.email)
    return {"success": True, "message": "Resource approved successfully", "data": _out(resource)}


@router.post("/reject")
def reject(body: ResourceAction, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    resource = reject_resource(db, body.resource_id, user.email)
    return {"success": True, "message": "Resource rejected successfully", "data": _out(resource)}


@router.put("/{resource_id}")
def update(resource_id: int, body: ResourceUpdate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"success": True, "data": _out(update_resource(db, resource_id, body, user.email))}


@router.delete("/{resource_id}")
def delete(resource_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    delete_resource(db, resource_id, user.email)
    return {"success": True, "message": "Resource deleted successfully"}
