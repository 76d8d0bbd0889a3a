"""
collections.py — User-curated recipe collections

Business Rules:
- Listing: ?user=<id> shows that user's collections (only public ones unless
  the caller is that user); else ?public_only=true shows public ones; else a
  signed-in caller sees their own; else anonymous callers see public ones
- Private collections: 401 for anonymous callers, 403 for non-owners
- Only the owner may rename, delete, or change the recipes in a collection
- A recipe appears at most once per collection (409)

Called by: main.py (router include)
Depends on: models, schemas/collections, services/recipe_service, dependencies
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database import get_db, utcnow
from ..dependencies import get_optional_user, require_user
from ..models import Collection, CollectionRecipe, Recipe, User
from ..schemas.collections import CollectionIn, CollectionRecipeIn
from ..services.recipe_service import iso, recipe_summaries_with_ratings
from ..utils.pagination import PageParams, envelope, paginate

router = APIRouter(tags=["collections"])


def _recipe_count(db: Session, collection_id: int) -> int:
    return (
        db.query(func.count(CollectionRecipe.id))
        .filter(CollectionRecipe.collection_id == collection_id)
        .scalar()
    )


def collection_to_dict(db: Session, c: Collection) -> dict:
    return {
        "id": c.id,
        "user_id": c.user_id,
        "name": c.name,
        "description": c.description,
        "is_public": bool(c.is_public),
        "created_at": iso(c.created_at),
        "updated_at": iso(c.updated_at),
        "recipe_count": _recipe_count(db, c.id),
    }


def _collection_or_404(db: Session, collection_id: int) -> Collection:
    collection = db.get(Collection, collection_id)
    if not collection:
        raise HTTPException(404, "Colección no encontrada")
    return collection


def _visible_collection(db: Session, collection_id: int, viewer: User | None) -> Collection:
    collection = _collection_or_404(db, collection_id)
    if not collection.is_public:
        if not viewer:
            raise HTTPException(401, "No autorizado")
        if viewer.id != collection.user_id:
            raise HTTPException(403, "Esta colección es privada")
    return collection


def _owned_collection(db: Session, collection_id: int, user: User) -> Collection:
    collection = _collection_or_404(db, collection_id)
    if collection.user_id != user.id:
        raise HTTPException(403, "No autorizado para modificar esta colección")
    return collection


@router.get("/api/collections")
def list_collections(
    user: int | None = Query(None, description="Owner user id"),
    public_only: bool = Query(False),
    pages: PageParams = Depends(),
    viewer: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    query = db.query(Collection)
    if user is not None:
        query = query.filter(Collection.user_id == user)
        if not viewer or viewer.id != user:
            query = query.filter(Collection.is_public.is_(True))
    elif public_only:
        query = query.filter(Collection.is_public.is_(True))
    elif viewer:
        query = query.filter(Collection.user_id == viewer.id)
    else:
        query = query.filter(Collection.is_public.is_(True))
    query = query.order_by(Collection.created_at.desc(), Collection.id.desc())
    rows, meta = paginate(query, pages.page, pages.limit)
    return envelope([collection_to_dict(db, c) for c in rows], meta)


@router.post("/api/collections", status_code=201)
def create_collection(body: CollectionIn, user: User = Depends(require_user), db: Session = Depends(get_db)):
    collection = Collection(
        user_id=user.id, name=body.name, description=body.description, is_public=body.is_public
    )
    db.add(collection)
    db.commit()
    db.refresh(collection)
    logger.info("Collection #{} created by user #{}", collection.id, user.id)
    return collection_to_dict(db, collection)


@router.get("/api/collections/{collection_id}")
def get_collection(
    collection_id: int,
    viewer: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return collection_to_dict(db, _visible_collection(db, collection_id, viewer))


@router.put("/api/collections/{collection_id}")
def update_collection(
    collection_id: int,
    body: CollectionIn,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Name is required; description and visibility keep their value when omitted."""
    collection = _owned_collection(db, collection_id, user)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(collection, field, value)
    collection.updated_at = utcnow()
    db.commit()
    db.refresh(collection)
    return collection_to_dict(db, collection)


@router.delete("/api/collections/{collection_id}")
def delete_collection(collection_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    collection = _owned_collection(db, collection_id, user)
    db.delete(collection)
    db.commit()
    logger.info("Collection #{} deleted by user #{}", collection_id, user.id)
    return {"ok": True}


# ── Recipes in a collection ──────────────────────────────────────────


@router.get("/api/collections/{collection_id}/recipes")
def collection_recipes(
    collection_id: int,
    pages: PageParams = Depends(),
    viewer: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    collection = _visible_collection(db, collection_id, viewer)
    query = (
        db.query(Recipe)
        .join(CollectionRecipe, CollectionRecipe.recipe_id == Recipe.id)
        .filter(CollectionRecipe.collection_id == collection.id)
        .order_by(CollectionRecipe.added_at.desc(), CollectionRecipe.id.desc())
    )
    rows, meta = paginate(query, pages.page, pages.limit)
    return envelope(
        recipe_summaries_with_ratings(db, rows), meta, collection=collection_to_dict(db, collection)
    )


@router.post("/api/collections/{collection_id}/recipes", status_code=201)
def add_collection_recipe(
    collection_id: int,
    body: CollectionRecipeIn,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    collection = _owned_collection(db, collection_id, user)
    if not db.get(Recipe, body.recipe_id):
        raise HTTPException(404, "Receta no encontrada")
    existing = (
        db.query(CollectionRecipe)
        .filter_by(collection_id=collection.id, recipe_id=body.recipe_id)
        .first()
    )
    if existing:
        raise HTTPException(409, "La receta ya está en la colección")
    db.add(CollectionRecipe(collection_id=collection.id, recipe_id=body.recipe_id))
    db.commit()
    return {"ok": True, "collection_id": collection.id, "recipe_id": body.recipe_id}


@router.delete("/api/collections/{collection_id}/recipes")
def remove_collection_recipe(
    collection_id: int,
    recipe_id: int | None = Query(None),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    collection = _owned_collection(db, collection_id, user)
    if recipe_id is None:
        raise HTTPException(400, "Se requiere recipe_id")
    link = (
        db.query(CollectionRecipe)
        .filter_by(collection_id=collection.id, recipe_id=recipe_id)
        .first()
    )
    if not link:
        raise HTTPException(404, "La receta no está en la colección")
    db.delete(link)
    db.commit()
    return {"ok": True}
