"""
events.py — Cooking events and participation

Business Rules:
- Any registered user may create an event; only admins may mark it official
- A new event must start in the future; the end may not precede the start
- Only the creator may update or delete an event
- Joining is closed once the event has started
- Capacity counts every non-cancelled participant
- A user registers at most once per event (409)

Called by: main.py (router include)
Depends on: models, schemas/events, dependencies
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database import get_db, utcnow
from ..dependencies import get_optional_user, is_admin, require_user
from ..models import Event, EventParticipant, User
from ..schemas.common import as_utc
from ..schemas.events import PARTICIPANT_STATUSES, EventIn, ParticipationIn
from ..services.recipe_service import ilike, iso, user_brief
from ..utils.pagination import PageParams, WidePageParams, envelope, paginate

router = APIRouter(tags=["events"])


def event_to_dict(e: Event) -> dict:
    return {
        "id": e.id,
        "creator_id": e.creator_id,
        "title": e.title,
        "description": e.description,
        "starts_at": iso(e.starts_at),
        "ends_at": iso(e.ends_at),
        "location": e.location,
        "is_virtual": bool(e.is_virtual),
        "virtual_url": e.virtual_url,
        "image_url": e.image_url,
        "is_official": bool(e.is_official),
        "max_capacity": e.max_capacity,
        "created_at": iso(e.created_at),
    }


def _active_participants(db: Session, event_id: int) -> int:
    return (
        db.query(func.count(EventParticipant.id))
        .filter(EventParticipant.event_id == event_id, EventParticipant.status != "cancelled")
        .scalar()
    )


def _event_or_404(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id)
    if not event:
        raise HTTPException(404, "Evento no encontrado")
    return event


def _owned_event(db: Session, event_id: int, user: User) -> Event:
    event = _event_or_404(db, event_id)
    if event.creator_id != user.id:
        raise HTTPException(403, "No autorizado para modificar este evento")
    return event


def _check_dates(starts_at: datetime, ends_at: datetime | None) -> None:
    if ends_at is not None and ends_at < starts_at:
        raise HTTPException(400, "La fecha de fin no puede ser anterior a la de inicio")


def _check_official(body: EventIn, user: User) -> None:
    if body.is_official and not is_admin(user):
        raise HTTPException(403, "Solo los administradores pueden crear eventos oficiales")


# ── Events ───────────────────────────────────────────────────────────


@router.get("/api/events")
def list_events(
    title: str | None = Query(None),
    since: datetime | None = Query(None),
    until: datetime | None = Query(None),
    is_virtual: bool | None = Query(None),
    creator: int | None = Query(None),
    upcoming_only: bool = Query(False),
    official: bool | None = Query(None),
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
):
    """Events ordered by start date with optional filters."""
    query = db.query(Event)
    if title:
        query = query.filter(ilike(Event.title, title))
    if since:
        query = query.filter(Event.starts_at >= as_utc(since))
    if until:
        query = query.filter(Event.starts_at <= as_utc(until))
    if is_virtual is not None:
        query = query.filter(Event.is_virtual.is_(is_virtual))
    if creator is not None:
        query = query.filter(Event.creator_id == creator)
    if upcoming_only:
        query = query.filter(Event.starts_at >= utcnow())
    if official is not None:
        query = query.filter(Event.is_official.is_(official))
    query = query.order_by(Event.starts_at.asc(), Event.id)
    rows, meta = paginate(query, pages.page, pages.limit)
    return envelope([event_to_dict(e) for e in rows], meta)


@router.post("/api/events", status_code=201)
def create_event(body: EventIn, user: User = Depends(require_user), db: Session = Depends(get_db)):
    if body.starts_at <= utcnow():
        raise HTTPException(400, "La fecha de inicio debe ser futura")
    _check_dates(body.starts_at, body.ends_at)
    _check_official(body, user)
    event = Event(creator_id=user.id, **body.model_dump())
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Event #{} '{}' created by user #{}", event.id, event.title, user.id)
    return event_to_dict(event)


@router.get("/api/events/{event_id}")
def get_event(
    event_id: int,
    viewer: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Event detail with participant count and the caller's own participation."""
    event = _event_or_404(db, event_id)
    mine = None
    if viewer:
        mine = (
            db.query(EventParticipant)
            .filter_by(event_id=event.id, user_id=viewer.id)
            .first()
        )
    return {
        **event_to_dict(event),
        "creator": user_brief(event.creator),
        "participant_count": _active_participants(db, event.id),
        "participating": mine is not None and mine.status != "cancelled",
        "participation_status": mine.status if mine else None,
    }


@router.put("/api/events/{event_id}")
def update_event(
    event_id: int,
    body: EventIn,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Title and start are required; omitted optional fields keep their stored value."""
    event = _owned_event(db, event_id, user)
    changes = body.model_dump(exclude_unset=True)
    _check_dates(body.starts_at, changes.get("ends_at", event.ends_at))
    official = changes.pop("is_official", None)
    if official is not None and official != bool(event.is_official):
        if not is_admin(user):
            raise HTTPException(403, "Solo los administradores pueden cambiar si un evento es oficial")
        event.is_official = official
    for field, value in changes.items():
        setattr(event, field, value)
    db.commit()
    db.refresh(event)
    return event_to_dict(event)


@router.delete("/api/events/{event_id}")
def delete_event(event_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    event = _owned_event(db, event_id, user)
    db.delete(event)
    db.commit()
    logger.info("Event #{} deleted by user #{}", event_id, user.id)
    return {"ok": True}


# ── Participants ─────────────────────────────────────────────────────


def participant_to_dict(p: EventParticipant) -> dict:
    return {
        "id": p.id,
        "event_id": p.event_id,
        "status": p.status,
        "registered_at": iso(p.registered_at),
        "user": user_brief(p.user),
    }


@router.get("/api/events/{event_id}/participants")
def list_participants(
    event_id: int,
    status: str | None = Query(None),
    pages: WidePageParams = Depends(),
    db: Session = Depends(get_db),
):
    """Participants in registration order; an unknown status filter is ignored."""
    event = _event_or_404(db, event_id)
    query = db.query(EventParticipant).filter(EventParticipant.event_id == event.id)
    if status in PARTICIPANT_STATUSES:
        query = query.filter(EventParticipant.status == status)
    query = query.order_by(EventParticipant.registered_at.asc(), EventParticipant.id)
    rows, meta = paginate(query, pages.page, pages.limit)
    return envelope([participant_to_dict(p) for p in rows], meta)


@router.post("/api/events/{event_id}/participants", status_code=201)
def join_event(
    event_id: int,
    body: ParticipationIn | None = None,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    event = _event_or_404(db, event_id)
    status = body.status if body else "confirmed"
    if event.starts_at <= utcnow():
        raise HTTPException(400, "El evento ya ha comenzado")
    if db.query(EventParticipant).filter_by(event_id=event.id, user_id=user.id).first():
        raise HTTPException(409, "Ya estás registrado en este evento")
    if event.max_capacity and _active_participants(db, event.id) >= event.max_capacity:
        raise HTTPException(400, "Evento lleno")
    participant = EventParticipant(event_id=event.id, user_id=user.id, status=status)
    db.add(participant)
    db.commit()
    db.refresh(participant)
    logger.info("User #{} joined event #{} ({})", user.id, event.id, status)
    return participant_to_dict(participant)


@router.delete("/api/events/{event_id}/participants")
def leave_event(event_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    event = _event_or_404(db, event_id)
    participant = db.query(EventParticipant).filter_by(event_id=event.id, user_id=user.id).first()
    if not participant:
        raise HTTPException(404, "No estás registrado en este evento")
    db.delete(participant)
    db.commit()
    return {"ok": True}
