"""Auth API — identity-provider user lookups and the user sync webhook."""

from fastapi import APIRouter, Depends, HTTPException, Request
from loguru import logger
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db, utcnow
from ..dependencies import require_user
from ..models import User
from ..schemas.users import ProfileUpdate
from ..services import identity_service
from .users import check_color, full_profile

router = APIRouter(tags=["auth"])


def _self_by_external_id(external_id: str, user: User) -> None:
    if user.external_id != external_id:
        raise HTTPException(403, "No autorizado")


@router.get("/api/auth/{external_id}")
def get_by_external_id(
    external_id: str,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Profile for the caller's own identity-provider id."""
    _self_by_external_id(external_id, user)
    return full_profile(db, user)


@router.patch("/api/auth/{external_id}")
def update_by_external_id(
    external_id: str,
    body: ProfileUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    _self_by_external_id(external_id, user)
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    check_color(db, changes.get("color_id"))
    for field, value in changes.items():
        setattr(user, field, value)
    user.updated_at = utcnow()
    db.commit()
    return full_profile(db, user)


@router.post("/api/auth/webhook")
async def user_sync_webhook(request: Request, db: Session = Depends(get_db)):
    """Signed user.created / user.updated / user.deleted notifications."""
    if not settings.auth_webhook_secret:
        logger.error("Webhook received but auth_webhook_secret is not configured")
        raise HTTPException(500, "Webhook no configurado")

    body = await request.body()
    try:
        event = identity_service.verify_webhook(body, request.headers, settings.auth_webhook_secret)
    except identity_service.WebhookVerificationError as e:
        logger.warning("Rejected user webhook: {}", e)
        raise HTTPException(400, str(e))

    user = identity_service.apply_user_event(db, event)
    db.commit()
    return {"ok": True, "type": event.get("type"), "user_id": user.id if user else None}
