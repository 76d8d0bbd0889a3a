"""
meal_plans.py — Date-ranged meal plans and their recipe slots

Business Rules:
- Plans are private: every endpoint is owner-only (403 otherwise)
- end_date must be on or after start_date; default name "Plan del X al Y"
- An entry's date must fall inside its plan's range
- One entry per (date, meal type) slot in a plan (409)
- Entry servings default to 1

Called by: main.py (router include)
Depends on: models, schemas/planning, dependencies
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_user
from ..models import MealPlan, MealPlanEntry, Recipe, User
from ..schemas.planning import MealPlanEntryIn, MealPlanIn, MealPlanUpdate, MealType
from ..services.recipe_service import iso
from ..utils.pagination import PageParams, envelope, paginate

router = APIRouter(tags=["meal-plans"])


def plan_to_dict(p: MealPlan) -> dict:
    return {
        "id": p.id,
        "user_id": p.user_id,
        "name": p.name,
        "start_date": p.start_date.isoformat(),
        "end_date": p.end_date.isoformat(),
        "created_at": iso(p.created_at),
    }


def entry_to_dict(e: MealPlanEntry) -> dict:
    return {
        "id": e.id,
        "plan_id": e.plan_id,
        "date": e.date.isoformat(),
        "meal_type": e.meal_type,
        "servings": e.servings,
        "recipe_id": e.recipe_id,
        "recipe_title": e.recipe.title if e.recipe else None,
        "recipe_image_url": e.recipe.image_url if e.recipe else None,
    }


def owned_plan(db: Session, plan_id: int, user: User) -> MealPlan:
    plan = db.get(MealPlan, plan_id)
    if not plan:
        raise HTTPException(404, "Plan de comidas no encontrado")
    if plan.user_id != user.id:
        raise HTTPException(403, "No autorizado para acceder a este plan")
    return plan


def _entries(db: Session, plan_id: int):
    return (
        db.query(MealPlanEntry)
        .filter(MealPlanEntry.plan_id == plan_id)
        .order_by(MealPlanEntry.date, MealPlanEntry.meal_type, MealPlanEntry.id)
    )


# ── Plans ────────────────────────────────────────────────────────────


@router.get("/api/meal-plans")
def list_plans(
    since: date | None = Query(None),
    until: date | None = Query(None),
    active_only: bool = Query(False),
    pages: PageParams = Depends(),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Caller's plans overlapping the given range, newest first."""
    query = db.query(MealPlan).filter(MealPlan.user_id == user.id)
    if since:
        query = query.filter(MealPlan.end_date >= since)
    if until:
        query = query.filter(MealPlan.start_date <= until)
    if active_only:
        today = date.today()
        query = query.filter(MealPlan.start_date <= today, MealPlan.end_date >= today)
    query = query.order_by(MealPlan.start_date.desc(), MealPlan.id.desc())
    rows, meta = paginate(query, pages.page, pages.limit)
    return envelope([plan_to_dict(p) for p in rows], meta)


@router.post("/api/meal-plans", status_code=201)
def create_plan(body: MealPlanIn, user: User = Depends(require_user), db: Session = Depends(get_db)):
    name = body.name or f"Plan del {body.start_date.isoformat()} al {body.end_date.isoformat()}"
    plan = MealPlan(user_id=user.id, name=name, start_date=body.start_date, end_date=body.end_date)
    db.add(plan)
    db.commit()
    db.refresh(plan)
    logger.info("Meal plan #{} created by user #{}", plan.id, user.id)
    return plan_to_dict(plan)


@router.get("/api/meal-plans/{plan_id}")
def get_plan(plan_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    plan = owned_plan(db, plan_id, user)
    return {**plan_to_dict(plan), "entries": [entry_to_dict(e) for e in _entries(db, plan.id).all()]}


@router.put("/api/meal-plans/{plan_id}")
def update_plan(
    plan_id: int,
    body: MealPlanUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    plan = owned_plan(db, plan_id, user)
    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    start = changes.get("start_date", plan.start_date)
    end = changes.get("end_date", plan.end_date)
    if end < start:
        raise HTTPException(400, "La fecha de fin debe ser posterior a la de inicio")
    for field, value in changes.items():
        setattr(plan, field, value)
    db.commit()
    db.refresh(plan)
    return plan_to_dict(plan)


@router.delete("/api/meal-plans/{plan_id}")
def delete_plan(plan_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    plan = owned_plan(db, plan_id, user)
    db.delete(plan)
    db.commit()
    logger.info("Meal plan #{} deleted by user #{}", plan_id, user.id)
    return {"ok": True}


# ── Entries ──────────────────────────────────────────────────────────


@router.get("/api/meal-plans/{plan_id}/entries")
def list_entries(
    plan_id: int,
    since: date | None = Query(None),
    until: date | None = Query(None),
    meal_type: MealType | None = Query(None),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Entries in a range; with only `since`, entries of that exact day."""
    plan = owned_plan(db, plan_id, user)
    query = _entries(db, plan.id)
    if since and until:
        query = query.filter(MealPlanEntry.date >= since, MealPlanEntry.date <= until)
    elif since:
        query = query.filter(MealPlanEntry.date == since)
    elif until:
        query = query.filter(MealPlanEntry.date <= until)
    if meal_type:
        query = query.filter(MealPlanEntry.meal_type == meal_type)
    return [entry_to_dict(e) for e in query.all()]


@router.post("/api/meal-plans/{plan_id}/entries", status_code=201)
def add_entry(
    plan_id: int,
    body: MealPlanEntryIn,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    plan = owned_plan(db, plan_id, user)
    if not plan.start_date <= body.date <= plan.end_date:
        raise HTTPException(400, "La fecha debe estar dentro del rango del plan")
    if not db.get(Recipe, body.recipe_id):
        raise HTTPException(404, "Receta no encontrada")
    taken = (
        db.query(MealPlanEntry)
        .filter_by(plan_id=plan.id, date=body.date, meal_type=body.meal_type)
        .first()
    )
    if taken:
        raise HTTPException(409, "Ya existe una comida para esa fecha y tipo")
    entry = MealPlanEntry(plan_id=plan.id, **body.model_dump())
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry_to_dict(entry)


@router.delete("/api/meal-plans/{plan_id}/entries")
def delete_entry(
    plan_id: int,
    entry_id: int | None = Query(None),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    plan = owned_plan(db, plan_id, user)
    if entry_id is None:
        raise HTTPException(400, "Se requiere entry_id")
    entry = db.get(MealPlanEntry, entry_id)
    if not entry or entry.plan_id != plan.id:
        raise HTTPException(404, "Comida no encontrada en el plan")
    db.delete(entry)
    db.commit()
    return {"ok": True}
