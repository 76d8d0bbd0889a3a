"""
taxonomy.py — Categories, diets, tags, colors and measurement units

Business Rules:
- Reading is public; creating, renaming and deleting taxonomy needs admin
- Names are unique (409 on duplicates, compared case-insensitively)
- A category or diet still referenced by recipes cannot be deleted (409);
  a diet followed by users cannot be deleted either
- Unit conversion uses the stored factor or the inverse of the reverse factor

Called by: main.py (router include)
Depends on: models, schemas/taxonomy, services/nutrition_service, dependencies
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_admin, require_user
from ..models import Category, Color, Diet, Recipe, Tag, Unit, User, UserDiet
from ..schemas.taxonomy import CategoryIn, ConversionRequest, DietIn, TagIn
from ..services.nutrition_service import convert_quantity
from ..services.recipe_service import ilike, iso, recipe_summaries_with_ratings
from ..utils.pagination import PageParams, WidePageParams, envelope, paginate

router = APIRouter(tags=["taxonomy"])


def _name_taken(db: Session, model, name: str, exclude_id: int | None = None) -> bool:
    q = db.query(model).filter(func.lower(model.name) == name.lower())
    if exclude_id is not None:
        q = q.filter(model.id != exclude_id)
    return db.query(q.exists()).scalar()


def _recipe_count(db: Session, **filters) -> int:
    return db.query(func.count(Recipe.id)).filter_by(**filters).scalar()


def _paged_recipes(db: Session, pages: PageParams, **filters) -> tuple[list[dict], dict]:
    query = db.query(Recipe).filter_by(**filters).order_by(Recipe.created_at.desc(), Recipe.id.desc())
    rows, meta = paginate(query, pages.page, pages.limit)
    return recipe_summaries_with_ratings(db, rows), meta


# ── Categories ───────────────────────────────────────────────────────


def category_to_dict(c: Category) -> dict:
    return {"id": c.id, "name": c.name, "description": c.description, "created_at": iso(c.created_at)}


def _category_or_404(db: Session, category_id: int) -> Category:
    category = db.get(Category, category_id)
    if not category:
        raise HTTPException(404, "Categoría no encontrada")
    return category


@router.get("/api/categories")
def list_categories(
    name: str | None = Query(None),
    pages: WidePageParams = Depends(),
    db: Session = Depends(get_db),
):
    query = db.query(Category)
    if name:
        query = query.filter(ilike(Category.name, name))
    rows, meta = paginate(query.order_by(Category.name), pages.page, pages.limit)
    return envelope([category_to_dict(c) for c in rows], meta)


@router.post("/api/categories", status_code=201)
def create_category(body: CategoryIn, user: User = Depends(require_admin), db: Session = Depends(get_db)):
    if _name_taken(db, Category, body.name):
        raise HTTPException(409, "Ya existe una categoría con ese nombre")
    category = Category(name=body.name, description=body.description)
    db.add(category)
    db.commit()
    db.refresh(category)
    logger.info("Category #{} '{}' created by user #{}", category.id, category.name, user.id)
    return category_to_dict(category)


@router.get("/api/categories/{category_id}")
def get_category(category_id: int, db: Session = Depends(get_db)):
    category = _category_or_404(db, category_id)
    return {**category_to_dict(category), "recipe_count": _recipe_count(db, category_id=category.id)}


@router.put("/api/categories/{category_id}")
def update_category(
    category_id: int,
    body: CategoryIn,
    user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    category = _category_or_404(db, category_id)
    if _name_taken(db, Category, body.name, exclude_id=category.id):
        raise HTTPException(409, "Ya existe una categoría con ese nombre")
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(category, field, value)
    db.commit()
    db.refresh(category)
    return category_to_dict(category)


@router.delete("/api/categories/{category_id}")
def delete_category(category_id: int, user: User = Depends(require_admin), db: Session = Depends(get_db)):
    category = _category_or_404(db, category_id)
    if _recipe_count(db, category_id=category.id):
        raise HTTPException(409, "No se puede eliminar: hay recetas en esta categoría")
    db.delete(category)
    db.commit()
    logger.info("Category #{} deleted by user #{}", category_id, user.id)
    return {"ok": True}


@router.get("/api/categories/{category_id}/recipes")
def category_recipes(category_id: int, pages: PageParams = Depends(), db: Session = Depends(get_db)):
    category = _category_or_404(db, category_id)
    data, meta = _paged_recipes(db, pages, category_id=category.id)
    return envelope(data, meta, category=category_to_dict(category))


# ── Diets ────────────────────────────────────────────────────────────


def diet_to_dict(d: Diet) -> dict:
    return {
        "id": d.id,
        "name": d.name,
        "description": d.description,
        "restrictions": d.restrictions,
        "created_at": iso(d.created_at),
    }


def _diet_or_404(db: Session, diet_id: int) -> Diet:
    diet = db.get(Diet, diet_id)
    if not diet:
        raise HTTPException(404, "Dieta no encontrada")
    return diet


def _follower_count(db: Session, diet_id: int) -> int:
    return db.query(func.count(UserDiet.id)).filter(UserDiet.diet_id == diet_id).scalar()


@router.get("/api/diets")
def list_diets(
    name: str | None = Query(None),
    pages: WidePageParams = Depends(),
    db: Session = Depends(get_db),
):
    query = db.query(Diet)
    if name:
        query = query.filter(ilike(Diet.name, name))
    rows, meta = paginate(query.order_by(Diet.name), pages.page, pages.limit)
    return envelope([diet_to_dict(d) for d in rows], meta)


@router.post("/api/diets", status_code=201)
def create_diet(body: DietIn, user: User = Depends(require_admin), db: Session = Depends(get_db)):
    if _name_taken(db, Diet, body.name):
        raise HTTPException(409, "Ya existe una dieta con ese nombre")
    diet = Diet(name=body.name, description=body.description, restrictions=body.restrictions)
    db.add(diet)
    db.commit()
    db.refresh(diet)
    logger.info("Diet #{} '{}' created by user #{}", diet.id, diet.name, user.id)
    return diet_to_dict(diet)


@router.get("/api/diets/{diet_id}")
def get_diet(diet_id: int, db: Session = Depends(get_db)):
    diet = _diet_or_404(db, diet_id)
    return {
        **diet_to_dict(diet),
        "recipe_count": _recipe_count(db, diet_id=diet.id),
        "user_count": _follower_count(db, diet.id),
    }


@router.put("/api/diets/{diet_id}")
def update_diet(
    diet_id: int,
    body: DietIn,
    user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    diet = _diet_or_404(db, diet_id)
    if _name_taken(db, Diet, body.name, exclude_id=diet.id):
        raise HTTPException(409, "Ya existe una dieta con ese nombre")
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(diet, field, value)
    db.commit()
    db.refresh(diet)
    return diet_to_dict(diet)


@router.delete("/api/diets/{diet_id}")
def delete_diet(diet_id: int, user: User = Depends(require_admin), db: Session = Depends(get_db)):
    diet = _diet_or_404(db, diet_id)
    if _recipe_count(db, diet_id=diet.id):
        raise HTTPException(409, "No se puede eliminar: hay recetas con esta dieta")
    if _follower_count(db, diet.id):
        raise HTTPException(409, "No se puede eliminar: hay usuarios siguiendo esta dieta")
    db.delete(diet)
    db.commit()
    logger.info("Diet #{} deleted by user #{}", diet_id, user.id)
    return {"ok": True}


@router.get("/api/diets/{diet_id}/recipes")
def diet_recipes(diet_id: int, pages: PageParams = Depends(), db: Session = Depends(get_db)):
    diet = _diet_or_404(db, diet_id)
    data, meta = _paged_recipes(db, pages, diet_id=diet.id)
    return envelope(data, meta, diet=diet_to_dict(diet))


@router.get("/api/diets/{diet_id}/users")
def diet_users(
    diet_id: int,
    pages: PageParams = Depends(),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Users following a diet (signed-in callers only)."""
    diet = _diet_or_404(db, diet_id)
    query = (
        db.query(UserDiet, User)
        .join(User, UserDiet.user_id == User.id)
        .filter(UserDiet.diet_id == diet.id)
        .order_by(UserDiet.started_at.desc(), UserDiet.id.desc())
    )
    rows, meta = paginate(query, pages.page, pages.limit)
    data = [
        {"id": u.id, "name": u.name, "avatar_url": u.avatar_url, "started_at": iso(ud.started_at)}
        for ud, u in rows
    ]
    return envelope(data, meta, diet=diet_to_dict(diet))


# ── Tags & colors ────────────────────────────────────────────────────


@router.get("/api/tags")
def list_tags(db: Session = Depends(get_db)):
    return [{"id": t.id, "name": t.name} for t in db.query(Tag).order_by(Tag.name).all()]


@router.post("/api/tags", status_code=201)
def create_tag(body: TagIn, user: User = Depends(require_admin), db: Session = Depends(get_db)):
    if _name_taken(db, Tag, body.name):
        raise HTTPException(409, "La etiqueta ya existe")
    tag = Tag(name=body.name)
    db.add(tag)
    db.commit()
    db.refresh(tag)
    return {"id": tag.id, "name": tag.name}


@router.get("/api/colors")
def list_colors(db: Session = Depends(get_db)):
    return [
        {"id": c.id, "name": c.name, "code": c.code}
        for c in db.query(Color).order_by(Color.id).all()
    ]


# ── Units ────────────────────────────────────────────────────────────


@router.get("/api/units")
def list_units(db: Session = Depends(get_db)):
    return [
        {"id": u.id, "name": u.name, "abbreviation": u.abbreviation, "kind": u.kind}
        for u in db.query(Unit).order_by(Unit.id).all()
    ]


@router.post("/api/units/convert")
def convert_units(body: ConversionRequest, db: Session = Depends(get_db)):
    source = db.get(Unit, body.from_unit_id)
    target = db.get(Unit, body.to_unit_id)
    if not source or not target:
        raise HTTPException(404, "Unidad de medida no encontrada")
    result = convert_quantity(db, body.quantity, source, target)
    if result is None:
        raise HTTPException(404, f"No hay conversión de {source.label} a {target.label}")
    return result
