"""
users.py — Users, profile, goals, weight history, preferences and diets

Business Rules:
- The user list requires a signed-in caller
- Registration binds the row to the caller's identity-provider subject
- Full profiles are only shown to the user themself; others get name + avatar
- Everything under /api/users/{id}/... is self-only (403 otherwise)
- Goals are one row per user: POST creates (201) or updates (200)
- Logging a weight also updates the goal's current weight

Called by: main.py (router include)
Depends on: models, schemas/users, dependencies
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from loguru import logger
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database import get_db, utcnow
from ..dependencies import get_optional_user, require_self, require_subject, require_user
from ..models import (
    Category,
    Color,
    Diet,
    Favorite,
    Recipe,
    User,
    UserDiet,
    UserGoal,
    UserPreference,
    WeightEntry,
)
from ..schemas.common import as_utc
from ..schemas.users import (
    GoalUpsert,
    PreferenceCreate,
    PreferenceReplace,
    ProfileUpdate,
    UserCreate,
    UserDietCreate,
    UserUpdate,
    WeightCreate,
)
from ..services.recipe_service import ilike, iso, recipe_summary, user_brief
from ..utils.pagination import PageParams, envelope, paginate

router = APIRouter(tags=["users"])

USER_SORTS = {
    "date_desc": User.created_at.desc(),
    "date_asc": User.created_at.asc(),
    "name_asc": User.name.asc(),
    "name_desc": User.name.desc(),
}


# ── Serializers ──────────────────────────────────────────────────────


def goal_to_dict(goal: UserGoal | None) -> dict | None:
    if not goal:
        return None
    return {
        "id": goal.id,
        "height_cm": goal.height_cm,
        "weight_kg": goal.weight_kg,
        "activity_level": goal.activity_level,
        "calorie_limit": goal.calorie_limit,
        "purpose": goal.purpose,
        "started_at": iso(goal.started_at),
        "updated_at": iso(goal.updated_at),
    }


def weight_to_dict(entry: WeightEntry) -> dict:
    return {"id": entry.id, "weight_kg": entry.weight_kg, "recorded_at": iso(entry.recorded_at)}


def _preferences(db: Session, user_id: int) -> list[dict]:
    rows = (
        db.query(Category)
        .join(UserPreference, UserPreference.category_id == Category.id)
        .filter(UserPreference.user_id == user_id)
        .order_by(Category.name)
        .all()
    )
    return [{"id": c.id, "name": c.name} for c in rows]


def _diets(db: Session, user_id: int) -> list[dict]:
    rows = (
        db.query(UserDiet, Diet)
        .join(Diet, UserDiet.diet_id == Diet.id)
        .filter(UserDiet.user_id == user_id)
        .order_by(Diet.name)
        .all()
    )
    return [{"id": d.id, "name": d.name, "started_at": iso(ud.started_at)} for ud, d in rows]


def full_profile(db: Session, user: User, weight_limit: int = 0) -> dict:
    color = db.get(Color, user.color_id) if user.color_id else None
    goal = db.query(UserGoal).filter_by(user_id=user.id).first()
    profile = {
        "id": user.id,
        "external_id": user.external_id,
        "name": user.name,
        "email": user.email,
        "avatar_url": user.avatar_url,
        "dark_mode": bool(user.dark_mode),
        "is_admin": bool(user.is_admin),
        "color": {"id": color.id, "name": color.name, "code": color.code} if color else None,
        "created_at": iso(user.created_at),
        "updated_at": iso(user.updated_at),
        "goal": goal_to_dict(goal),
        "preferences": _preferences(db, user.id),
        "diets": _diets(db, user.id),
    }
    if weight_limit:
        entries = (
            db.query(WeightEntry)
            .filter_by(user_id=user.id)
            .order_by(WeightEntry.recorded_at.desc())
            .limit(weight_limit)
            .all()
        )
        profile["weight_history"] = [weight_to_dict(e) for e in entries]
    return profile


def check_color(db: Session, color_id: int | None) -> None:
    if color_id is not None and not db.get(Color, color_id):
        raise HTTPException(404, "Color no encontrado")


def _email_taken(db: Session, email: str, exclude_id: int | None = None) -> bool:
    q = db.query(User).filter(func.lower(User.email) == email.lower())
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    return db.query(q.exists()).scalar()


# ── Users ────────────────────────────────────────────────────────────


@router.get("/api/users")
def list_users(
    name: str | None = Query(None),
    email: str | None = Query(None),
    sort: str = Query("date_desc"),
    pages: PageParams = Depends(),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """List registered users with name/email filters."""
    query = db.query(User)
    if name:
        query = query.filter(ilike(User.name, name))
    if email:
        query = query.filter(ilike(User.email, email))
    query = query.order_by(USER_SORTS.get(sort, USER_SORTS["date_desc"]), User.id)
    rows, meta = paginate(query, pages.page, pages.limit)
    data = [
        {
            "id": u.id,
            "name": u.name,
            "email": u.email,
            "avatar_url": u.avatar_url,
            "created_at": iso(u.created_at),
        }
        for u in rows
    ]
    return envelope(data, meta)


@router.post("/api/users", status_code=201)
def register_user(
    body: UserCreate,
    subject: str = Depends(require_subject),
    db: Session = Depends(get_db),
):
    """Register the signed-in identity as a user."""
    if body.external_id and body.external_id != subject:
        raise HTTPException(403, "No autorizado para registrar a otro usuario")
    if db.query(User).filter_by(external_id=subject).first():
        raise HTTPException(409, "El usuario ya existe")
    if _email_taken(db, body.email):
        raise HTTPException(409, "El email ya está registrado")
    check_color(db, body.color_id)

    user = User(
        external_id=subject,
        email=body.email,
        name=body.name,
        avatar_url=body.avatar_url,
        color_id=body.color_id,
        dark_mode=body.dark_mode,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User #{} registered ({})", user.id, user.email)
    return full_profile(db, user)


@router.get("/api/users/me")
def get_me(user: User = Depends(require_user), db: Session = Depends(get_db)):
    """Own profile with goals, preferences, diets and the last 10 weigh-ins."""
    return full_profile(db, user, weight_limit=10)


@router.patch("/api/users/me")
def update_me(
    body: ProfileUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Update display name, dark mode and accent color."""
    changes = body.model_dump(exclude_unset=True)
    if "color_id" in changes:
        check_color(db, changes["color_id"])
    if "name" in changes and changes["name"] is not None:
        changes["name"] = changes["name"].strip() or None
    if "dark_mode" in changes and changes["dark_mode"] is None:
        del changes["dark_mode"]
    for field, value in changes.items():
        setattr(user, field, value)
    user.updated_at = utcnow()
    db.commit()
    return full_profile(db, user, weight_limit=10)


@router.get("/api/users/me/favorites")
def my_favorites(
    pages: PageParams = Depends(),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Recipes the caller marked as favorite, newest first."""
    query = (
        db.query(Favorite)
        .filter(Favorite.user_id == user.id)
        .order_by(Favorite.created_at.desc(), Favorite.id.desc())
    )
    rows, meta = paginate(query, pages.page, pages.limit)
    data = []
    for fav in rows:
        recipe = db.get(Recipe, fav.recipe_id)
        if recipe:
            data.append({**recipe_summary(recipe), "favorited_at": iso(fav.created_at)})
    return envelope(data, meta)


@router.get("/api/users/{user_id}")
def get_user_profile(
    user_id: int,
    viewer: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Full profile for the user themself, public card for everyone else."""
    target = db.get(User, user_id)
    if not target:
        raise HTTPException(404, "Usuario no encontrado")
    if viewer and viewer.id == target.id:
        return full_profile(db, target)
    return user_brief(target)


@router.put("/api/users/{user_id}")
def update_user(
    user_id: int,
    body: UserUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    require_self(user, user_id)
    changes = body.model_dump(exclude_unset=True)
    if changes.get("email") and _email_taken(db, changes["email"], exclude_id=user.id):
        raise HTTPException(409, "El email ya está registrado")
    if "color_id" in changes:
        check_color(db, changes["color_id"])
    for field, value in changes.items():
        if field in ("email", "dark_mode") and value is None:
            continue
        setattr(user, field, value)
    user.updated_at = utcnow()
    db.commit()
    logger.info("User #{} updated profile", user.id)
    return full_profile(db, user)


@router.delete("/api/users/{user_id}")
def delete_user(
    user_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    require_self(user, user_id)
    db.delete(user)
    db.commit()
    logger.info("User #{} deleted their account", user_id)
    return {"ok": True}


# ── Goals ────────────────────────────────────────────────────────────


@router.get("/api/users/{user_id}/goals")
def get_goals(user_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    require_self(user, user_id)
    goals = db.query(UserGoal).filter_by(user_id=user.id).all()
    return [goal_to_dict(g) for g in goals]


@router.post("/api/users/{user_id}/goals")
def upsert_goal(
    user_id: int,
    body: GoalUpsert,
    response: Response,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Create the user's goal (201) or update it in place (200)."""
    require_self(user, user_id)
    goal = db.query(UserGoal).filter_by(user_id=user.id).first()
    changes = body.model_dump(exclude_unset=True)
    if goal:
        for field, value in changes.items():
            setattr(goal, field, value)
        goal.updated_at = utcnow()
        response.status_code = 200
    else:
        goal = UserGoal(user_id=user.id, **changes)
        db.add(goal)
        response.status_code = 201
    db.commit()
    db.refresh(goal)
    return goal_to_dict(goal)


@router.delete("/api/users/{user_id}/goals")
def delete_goal(user_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    require_self(user, user_id)
    goal = db.query(UserGoal).filter_by(user_id=user.id).first()
    if not goal:
        raise HTTPException(404, "No hay metas registradas")
    db.delete(goal)
    db.commit()
    return {"ok": True}


# ── Weight history ───────────────────────────────────────────────────


def weight_stats(entries: list[WeightEntry]) -> dict:
    """Stats over entries in any order: first/last by date, change, kg/day trend."""
    if not entries:
        return {"initial": None, "current": None, "change": 0, "trend": 0, "total": 0}
    ordered = sorted(entries, key=lambda e: e.recorded_at)
    first, last = ordered[0], ordered[-1]
    change = last.weight_kg - first.weight_kg
    days = (last.recorded_at - first.recorded_at).total_seconds() / 86400
    trend = change / days if days > 0 else 0
    return {
        "initial": first.weight_kg,
        "current": last.weight_kg,
        "change": round(change, 2),
        "trend": round(trend, 3),
        "total": len(entries),
    }


@router.get("/api/users/{user_id}/weight")
def get_weight_history(
    user_id: int,
    limit: int = Query(100, ge=1, le=1000),
    since: str | None = Query(None),
    until: str | None = Query(None),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Weight entries (newest first) plus summary stats."""
    require_self(user, user_id)
    query = db.query(WeightEntry).filter_by(user_id=user.id)
    if since:
        query = query.filter(WeightEntry.recorded_at >= _parse_when(since))
    if until:
        query = query.filter(WeightEntry.recorded_at <= _parse_when(until))
    entries = query.order_by(WeightEntry.recorded_at.desc()).limit(limit).all()
    return {"data": [weight_to_dict(e) for e in entries], "stats": weight_stats(entries)}


def _parse_when(value: str) -> datetime:
    try:
        return as_utc(datetime.fromisoformat(value))
    except ValueError:
        raise HTTPException(400, f"Fecha no válida: {value}")


@router.post("/api/users/{user_id}/weight", status_code=201)
def add_weight(
    user_id: int,
    body: WeightCreate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Log a weigh-in; also refreshes the goal's current weight."""
    require_self(user, user_id)
    entry = WeightEntry(
        user_id=user.id,
        weight_kg=body.weight_kg,
        recorded_at=body.recorded_at or utcnow(),
    )
    db.add(entry)
    goal = db.query(UserGoal).filter_by(user_id=user.id).first()
    if goal:
        goal.weight_kg = body.weight_kg
        goal.updated_at = utcnow()
    db.commit()
    db.refresh(entry)
    return weight_to_dict(entry)


@router.delete("/api/users/{user_id}/weight")
def delete_weight(
    user_id: int,
    entry_id: int | None = Query(None),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    require_self(user, user_id)
    if entry_id is None:
        raise HTTPException(400, "Se requiere entry_id")
    entry = db.get(WeightEntry, entry_id)
    if not entry:
        raise HTTPException(404, "Registro no encontrado")
    if entry.user_id != user.id:
        raise HTTPException(403, "No autorizado")
    db.delete(entry)
    db.commit()
    return {"ok": True}


# ── Preferences (favorite categories) ────────────────────────────────


@router.get("/api/users/{user_id}/preferences")
def get_preferences(user_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    require_self(user, user_id)
    return _preferences(db, user.id)


@router.post("/api/users/{user_id}/preferences", status_code=201)
def add_preference(
    user_id: int,
    body: PreferenceCreate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    require_self(user, user_id)
    category = db.get(Category, body.category_id)
    if not category:
        raise HTTPException(404, "Categoría no encontrada")
    if db.query(UserPreference).filter_by(user_id=user.id, category_id=category.id).first():
        raise HTTPException(409, "La preferencia ya existe")
    db.add(UserPreference(user_id=user.id, category_id=category.id))
    db.commit()
    return {"id": category.id, "name": category.name}


@router.put("/api/users/{user_id}/preferences")
def replace_preferences(
    user_id: int,
    body: PreferenceReplace,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Replace the whole preference set with the given categories."""
    require_self(user, user_id)
    wanted = list(dict.fromkeys(body.categories))
    found = {c.id for c in db.query(Category).filter(Category.id.in_(wanted)).all()} if wanted else set()
    missing = [cid for cid in wanted if cid not in found]
    if missing:
        raise HTTPException(404, f"Categorías no encontradas: {missing}")
    db.query(UserPreference).filter_by(user_id=user.id).delete(synchronize_session=False)
    db.add_all(UserPreference(user_id=user.id, category_id=cid) for cid in wanted)
    db.commit()
    return _preferences(db, user.id)


@router.delete("/api/users/{user_id}/preferences")
def delete_preference(
    user_id: int,
    category_id: int | None = Query(None),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    require_self(user, user_id)
    if category_id is None:
        raise HTTPException(400, "Se requiere category_id")
    pref = db.query(UserPreference).filter_by(user_id=user.id, category_id=category_id).first()
    if not pref:
        raise HTTPException(404, "Preferencia no encontrada")
    db.delete(pref)
    db.commit()
    return {"ok": True}


# ── Diets followed ───────────────────────────────────────────────────


@router.get("/api/users/{user_id}/diets")
def get_user_diets(user_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    require_self(user, user_id)
    return _diets(db, user.id)


@router.post("/api/users/{user_id}/diets", status_code=201)
def add_user_diet(
    user_id: int,
    body: UserDietCreate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    require_self(user, user_id)
    diet = db.get(Diet, body.diet_id)
    if not diet:
        raise HTTPException(404, "Dieta no encontrada")
    if db.query(UserDiet).filter_by(user_id=user.id, diet_id=diet.id).first():
        raise HTTPException(409, "Ya sigues esta dieta")
    link = UserDiet(user_id=user.id, diet_id=diet.id)
    db.add(link)
    db.commit()
    db.refresh(link)
    return {"id": diet.id, "name": diet.name, "started_at": iso(link.started_at)}


@router.delete("/api/users/{user_id}/diets")
def remove_user_diet(
    user_id: int,
    diet_id: int | None = Query(None),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    require_self(user, user_id)
    if diet_id is None:
        raise HTTPException(400, "Se requiere diet_id")
    link = db.query(UserDiet).filter_by(user_id=user.id, diet_id=diet_id).first()
    if not link:
        raise HTTPException(404, "No sigues esta dieta")
    db.delete(link)
    db.commit()
    return {"ok": True}
