import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import EmailStr
from sqlalchemy.orm import Session

from edulearn.auth.deps import get_db, get_current_user, get_http_transport, require_admin_key
from edulearn.auth.service import find_user_by_email, set_admin_status, update_api_key
from edulearn.config import settings
from edulearn.llm.keys import resolve_api_key, validate_api_key
from edulearn.models.user import User
from edulearn.schemas.auth import ApiKeyIn, ToggleAdminIn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/api-key-status")
def api_key_status(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    resolved = resolve_api_key(db, user.id)
    return {
        "source": resolved.source,
        "has_user_key": bool(user.openrouter_api_key),
        "has_env_key": bool(settings.openrouter_api_key),
    }


@router.post("/api-key")
async def save_api_key(
    body: ApiKeyIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    transport=Depends(get_http_transport),
):
    api_key = body.api_key.strip()
    credits = await validate_api_key(api_key, transport)
    update_api_key(db, user, api_key)
    logger.info("User %s stored an OpenRouter API key", user.id)
    return {"message": "API key saved successfully", "success": True, "credits": credits}


@router.delete("/api-key")
def delete_api_key(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    update_api_key(db, user, None)
    return {"message": "API key removed successfully", "success": True}


@router.get("/admin-status")
def admin_status(email: EmailStr = Query(...), db: Session = Depends(get_db)):
    user = find_user_by_email(db, email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"is_admin": bool(user.is_admin), "email": user.email}


@router.post("/toggle-admin", dependencies=[Depends(require_admin_key)])
def toggle_admin(body: ToggleAdminIn, db: Session = Depends(get_db)):
    user = set_admin_status(db, body.email, body.is_admin)
    logger.info("Admin flag for user %s set to %s", user.id, user.is_admin)
    return {
        "success": True,
        "message": f"User {user.email} admin status updated",
        "user": {"email": user.email, "is_admin": bool(user.is_admin)},
    }
