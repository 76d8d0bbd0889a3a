"""
feedback.py — Comments, ratings, attempts, tips and favorites on recipes

Business Rules:
- Comments, attempts and tips can be edited only by their author
- They can be deleted by their author or by the recipe's author
- One rating per user and recipe: POST creates (201) or updates (200)
- Ratings return fresh aggregate stats after every change
- Favorites are unique per user and recipe (409 on duplicates)

Called by: main.py (router include)
Depends on: models, schemas/feedback, services/recipe_service, dependencies
"""

from fastapi import APIRouter, Depends, HTTPException, Response
from loguru import logger
from sqlalchemy.orm import Session

from ..database import get_db, utcnow
from ..dependencies import require_user
from ..models import Comment, Favorite, Rating, Recipe, RecipeAttempt, RecipeTip, User
from ..schemas.feedback import AttemptIn, AttemptUpdate, CommentIn, RatingIn, TipIn
from ..services.recipe_service import get_recipe_or_404, iso, rating_stats, user_brief
from ..utils.pagination import PageParams, envelope, paginate

router = APIRouter(tags=["feedback"])


def _can_moderate(user: User, author_id: int | None, recipe: Recipe) -> bool:
    return user.id == author_id or user.id == recipe.author_id


# ── Comments ─────────────────────────────────────────────────────────


def comment_to_dict(c: Comment) -> dict:
    return {
        "id": c.id,
        "recipe_id": c.recipe_id,
        "content": c.content,
        "created_at": iso(c.created_at),
        "updated_at": iso(c.updated_at),
        "user": user_brief(c.user),
    }


def _comment_of(db: Session, recipe: Recipe, comment_id: int) -> Comment:
    comment = db.get(Comment, comment_id)
    if not comment or comment.recipe_id != recipe.id:
        raise HTTPException(404, "Comentario no encontrado")
    return comment


@router.get("/api/recipes/{recipe_id}/comments")
def list_comments(recipe_id: int, pages: PageParams = Depends(), db: Session = Depends(get_db)):
    recipe = get_recipe_or_404(db, recipe_id)
    query = (
        db.query(Comment)
        .filter(Comment.recipe_id == recipe.id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    rows, meta = paginate(query, pages.page, pages.limit)
    return envelope([comment_to_dict(c) for c in rows], meta)


@router.post("/api/recipes/{recipe_id}/comments", status_code=201)
def create_comment(
    recipe_id: int,
    body: CommentIn,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    recipe = get_recipe_or_404(db, recipe_id)
    comment = Comment(recipe_id=recipe.id, user_id=user.id, content=body.content)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    logger.info("Comment #{} on recipe #{} by user #{}", comment.id, recipe.id, user.id)
    return comment_to_dict(comment)


@router.get("/api/recipes/{recipe_id}/comments/{comment_id}")
def get_comment(recipe_id: int, comment_id: int, db: Session = Depends(get_db)):
    recipe = get_recipe_or_404(db, recipe_id)
    return comment_to_dict(_comment_of(db, recipe, comment_id))


@router.patch("/api/recipes/{recipe_id}/comments/{comment_id}")
def update_comment(
    recipe_id: int,
    comment_id: int,
    body: CommentIn,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    recipe = get_recipe_or_404(db, recipe_id)
    comment = _comment_of(db, recipe, comment_id)
    if comment.user_id != user.id:
        raise HTTPException(403, "No autorizado para editar este comentario")
    comment.content = body.content
    comment.updated_at = utcnow()
    db.commit()
    db.refresh(comment)
    return comment_to_dict(comment)


@router.delete("/api/recipes/{recipe_id}/comments/{comment_id}")
def delete_comment(
    recipe_id: int,
    comment_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    recipe = get_recipe_or_404(db, recipe_id)
    comment = _comment_of(db, recipe, comment_id)
    if not _can_moderate(user, comment.user_id, recipe):
        raise HTTPException(403, "No autorizado para eliminar este comentario")
    db.delete(comment)
    db.commit()
    return {"ok": True}


# ── Ratings ──────────────────────────────────────────────────────────


def rating_to_dict(r: Rating) -> dict:
    return {
        "id": r.id,
        "recipe_id": r.recipe_id,
        "score": r.score,
        "created_at": iso(r.created_at),
        "user": user_brief(r.user),
    }


@router.get("/api/recipes/{recipe_id}/ratings")
def list_ratings(recipe_id: int, db: Session = Depends(get_db)):
    """All ratings for a recipe plus average, extremes and 1–5 distribution."""
    recipe = get_recipe_or_404(db, recipe_id)
    rows = (
        db.query(Rating)
        .filter(Rating.recipe_id == recipe.id)
        .order_by(Rating.created_at.desc(), Rating.id.desc())
        .all()
    )
    return {"data": [rating_to_dict(r) for r in rows], "stats": rating_stats(db, recipe.id)}


@router.post("/api/recipes/{recipe_id}/ratings")
def rate_recipe(
    recipe_id: int,
    body: RatingIn,
    response: Response,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Create (201) or update (200) the caller's rating."""
    recipe = get_recipe_or_404(db, recipe_id)
    rating = db.query(Rating).filter_by(recipe_id=recipe.id, user_id=user.id).first()
    if rating:
        rating.score = body.score
        rating.created_at = utcnow()
        response.status_code = 200
    else:
        rating = Rating(recipe_id=recipe.id, user_id=user.id, score=body.score)
        db.add(rating)
        response.status_code = 201
    db.commit()
    db.refresh(rating)
    return {"rating": rating_to_dict(rating), "stats": rating_stats(db, recipe.id)}


@router.delete("/api/recipes/{recipe_id}/ratings")
def delete_rating(recipe_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    recipe = get_recipe_or_404(db, recipe_id)
    rating = db.query(Rating).filter_by(recipe_id=recipe.id, user_id=user.id).first()
    if not rating:
        raise HTTPException(404, "No has puntuado esta receta")
    db.delete(rating)
    db.commit()
    return {"ok": True, "stats": rating_stats(db, recipe.id)}


# ── Attempts ─────────────────────────────────────────────────────────


def attempt_to_dict(a: RecipeAttempt) -> dict:
    return {
        "id": a.id,
        "recipe_id": a.recipe_id,
        "image_url": a.image_url,
        "comment": a.comment,
        "created_at": iso(a.created_at),
        "user": user_brief(a.user),
    }


def _attempt_of(db: Session, recipe: Recipe, attempt_id: int) -> RecipeAttempt:
    attempt = db.get(RecipeAttempt, attempt_id)
    if not attempt or attempt.recipe_id != recipe.id:
        raise HTTPException(404, "Intento no encontrado")
    return attempt


@router.get("/api/recipes/{recipe_id}/attempts")
def list_attempts(recipe_id: int, pages: PageParams = Depends(), db: Session = Depends(get_db)):
    recipe = get_recipe_or_404(db, recipe_id)
    query = (
        db.query(RecipeAttempt)
        .filter(RecipeAttempt.recipe_id == recipe.id)
        .order_by(RecipeAttempt.created_at.desc(), RecipeAttempt.id.desc())
    )
    rows, meta = paginate(query, pages.page, pages.limit)
    return envelope([attempt_to_dict(a) for a in rows], meta)


@router.post("/api/recipes/{recipe_id}/attempts", status_code=201)
def create_attempt(
    recipe_id: int,
    body: AttemptIn,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    recipe = get_recipe_or_404(db, recipe_id)
    attempt = RecipeAttempt(
        recipe_id=recipe.id, user_id=user.id, image_url=body.image_url, comment=body.comment
    )
    db.add(attempt)
    db.commit()
    db.refresh(attempt)
    logger.info("Attempt #{} on recipe #{} by user #{}", attempt.id, recipe.id, user.id)
    return attempt_to_dict(attempt)


@router.get("/api/recipes/{recipe_id}/attempts/{attempt_id}")
def get_attempt(recipe_id: int, attempt_id: int, db: Session = Depends(get_db)):
    recipe = get_recipe_or_404(db, recipe_id)
    return attempt_to_dict(_attempt_of(db, recipe, attempt_id))


@router.patch("/api/recipes/{recipe_id}/attempts/{attempt_id}")
def update_attempt(
    recipe_id: int,
    attempt_id: int,
    body: AttemptUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    recipe = get_recipe_or_404(db, recipe_id)
    attempt = _attempt_of(db, recipe, attempt_id)
    if attempt.user_id != user.id:
        raise HTTPException(403, "No autorizado para editar este intento")
    changes = body.model_dump(exclude_unset=True)
    if changes.get("image_url"):
        attempt.image_url = changes["image_url"]
    if "comment" in changes:
        attempt.comment = changes["comment"]
    db.commit()
    db.refresh(attempt)
    return attempt_to_dict(attempt)


@router.delete("/api/recipes/{recipe_id}/attempts/{attempt_id}")
def delete_attempt(
    recipe_id: int,
    attempt_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    recipe = get_recipe_or_404(db, recipe_id)
    attempt = _attempt_of(db, recipe, attempt_id)
    if not _can_moderate(user, attempt.user_id, recipe):
        raise HTTPException(403, "No autorizado para eliminar este intento")
    db.delete(attempt)
    db.commit()
    return {"ok": True}


# ── Tips ─────────────────────────────────────────────────────────────


def tip_to_dict(t: RecipeTip) -> dict:
    return {
        "id": t.id,
        "recipe_id": t.recipe_id,
        "content": t.content,
        "kind": t.kind,
        "created_at": iso(t.created_at),
        "user": user_brief(t.user),
    }


@router.get("/api/recipes/{recipe_id}/tips")
def list_tips(recipe_id: int, db: Session = Depends(get_db)):
    recipe = get_recipe_or_404(db, recipe_id)
    rows = db.query(RecipeTip).filter_by(recipe_id=recipe.id).order_by(RecipeTip.id).all()
    return [tip_to_dict(t) for t in rows]


@router.post("/api/recipes/{recipe_id}/tips", status_code=201)
def create_tip(
    recipe_id: int,
    body: TipIn,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    recipe = get_recipe_or_404(db, recipe_id)
    tip = RecipeTip(recipe_id=recipe.id, user_id=user.id, content=body.content, kind=body.kind)
    db.add(tip)
    db.commit()
    db.refresh(tip)
    return tip_to_dict(tip)


@router.delete("/api/recipes/{recipe_id}/tips/{tip_id}")
def delete_tip(
    recipe_id: int,
    tip_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    recipe = get_recipe_or_404(db, recipe_id)
    tip = db.get(RecipeTip, tip_id)
    if not tip or tip.recipe_id != recipe.id:
        raise HTTPException(404, "Consejo no encontrado")
    if not _can_moderate(user, tip.user_id, recipe):
        raise HTTPException(403, "No autorizado para eliminar este consejo")
    db.delete(tip)
    db.commit()
    return {"ok": True}


# ── Favorites ────────────────────────────────────────────────────────


@router.post("/api/recipes/{recipe_id}/favorite", status_code=201)
def add_favorite(recipe_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    recipe = get_recipe_or_404(db, recipe_id)
    if db.query(Favorite).filter_by(recipe_id=recipe.id, user_id=user.id).first():
        raise HTTPException(409, "La receta ya está en favoritos")
    db.add(Favorite(recipe_id=recipe.id, user_id=user.id))
    db.commit()
    return {"ok": True, "recipe_id": recipe.id}


@router.delete("/api/recipes/{recipe_id}/favorite")
def remove_favorite(recipe_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    recipe = get_recipe_or_404(db, recipe_id)
    fav = db.query(Favorite).filter_by(recipe_id=recipe.id, user_id=user.id).first()
    if not fav:
        raise HTTPException(404, "La receta no está en favoritos")
    db.delete(fav)
    db.commit()
    return {"ok": True}
