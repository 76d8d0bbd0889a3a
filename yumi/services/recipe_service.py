"""Recipe queries and serializers shared across routers.

Business Rules:
- Text search is a case-insensitive substring match with LIKE wildcards escaped
- Relevance ranks title (3) over description (2) over instructions (1)
- Rating averages are rounded to one decimal; recipes without ratings get 0
- Only the author may modify a recipe or its children

Called by: routers/recipes.py, routers/feedback.py, routers/taxonomy.py,
           routers/collections.py, routers/users.py
Depends on: models
"""

from fastapi import HTTPException
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ..models import Category, Diet, Rating, Recipe, Tag, User


def like_pattern(text: str) -> str:
    safe = text.strip().replace("\\", "\\\\").replace("%", r"\%").replace("_", r"\_")
    return f"%{safe}%"


def ilike(column, text: str):
    return column.ilike(like_pattern(text), escape="\\")


def iso(value):
    return value.isoformat() if value else None


# ── Lookups ───────────────────────────────────────────────────────────


def get_recipe_or_404(db: Session, recipe_id: int) -> Recipe:
    recipe = db.get(Recipe, recipe_id)
    if not recipe:
        raise HTTPException(404, "Receta no encontrada")
    return recipe


def get_owned_recipe(db: Session, recipe_id: int, user: User) -> Recipe:
    recipe = get_recipe_or_404(db, recipe_id)
    if recipe.author_id != user.id:
        raise HTTPException(403, "No autorizado para modificar esta receta")
    return recipe


# ── Ratings ───────────────────────────────────────────────────────────


def rating_stats(db: Session, recipe_id: int) -> dict:
    avg, total, high, low = (
        db.query(
            func.avg(Rating.score),
            func.count(Rating.id),
            func.max(Rating.score),
            func.min(Rating.score),
        )
        .filter(Rating.recipe_id == recipe_id)
        .one()
    )
    distribution = {str(n): 0 for n in range(1, 6)}
    for score, count in (
        db.query(Rating.score, func.count(Rating.id))
        .filter(Rating.recipe_id == recipe_id)
        .group_by(Rating.score)
        .all()
    ):
        distribution[str(score)] = count
    return {
        "average": round(float(avg), 1) if avg is not None else 0,
        "total": total,
        "max": high,
        "min": low,
        "distribution": distribution,
    }


def rating_summaries(db: Session, recipe_ids: list[int]) -> dict[int, tuple[float, int]]:
    """Batch (average, count) per recipe, single query instead of N+1."""
    if not recipe_ids:
        return {}
    return {
        rid: (round(float(avg), 1), int(cnt))
        for rid, avg, cnt in (
            db.query(Rating.recipe_id, func.avg(Rating.score), func.count(Rating.id))
            .filter(Rating.recipe_id.in_(recipe_ids))
            .group_by(Rating.recipe_id)
            .all()
        )
    }


# ── Serializers ───────────────────────────────────────────────────────


def recipe_summary(r: Recipe) -> dict:
    return {
        "id": r.id,
        "title": r.title,
        "description": r.description,
        "image_url": r.image_url,
        "prep_minutes": r.prep_minutes,
        "cook_minutes": r.cook_minutes,
        "servings": r.servings,
        "difficulty": r.difficulty,
        "calories_per_serving": r.calories_per_serving,
        "author_id": r.author_id,
        "category_id": r.category_id,
        "diet_id": r.diet_id,
        "created_at": iso(r.created_at),
    }


def recipe_summaries_with_ratings(db: Session, recipes: list[Recipe]) -> list[dict]:
    stats = rating_summaries(db, [r.id for r in recipes])
    rows = []
    for r in recipes:
        avg, count = stats.get(r.id, (0, 0))
        rows.append({**recipe_summary(r), "average_rating": avg, "rating_count": count})
    return rows


def user_brief(u: User | None) -> dict | None:
    if not u:
        return None
    return {"id": u.id, "name": u.name, "avatar_url": u.avatar_url}


# ── Query building ────────────────────────────────────────────────────


def filtered_recipes(
    db: Session,
    *,
    title: str | None = None,
    q: str | None = None,
    category_id: int | None = None,
    diet_id: int | None = None,
    diet_ids: list[int] | None = None,
    author_id: int | None = None,
    tags: list[str] | None = None,
    min_calories: int | None = None,
    max_calories: int | None = None,
    difficulty: str | None = None,
):
    query = db.query(Recipe)
    if title:
        query = query.filter(ilike(Recipe.title, title))
    if q:
        query = query.filter(
            ilike(Recipe.title, q) | ilike(Recipe.description, q) | ilike(Recipe.instructions, q)
        )
    if category_id is not None:
        query = query.filter(Recipe.category_id == category_id)
    if diet_id is not None:
        query = query.filter(Recipe.diet_id == diet_id)
    elif diet_ids:
        query = query.filter(Recipe.diet_id.in_(diet_ids))
    if author_id is not None:
        query = query.filter(Recipe.author_id == author_id)
    if tags:
        names = [t.strip().lower() for t in tags if t.strip()]
        if names:
            query = query.filter(Recipe.tags.any(Tag.name.in_(names)))
    if min_calories is not None:
        query = query.filter(Recipe.calories_per_serving >= min_calories)
    if max_calories is not None:
        query = query.filter(Recipe.calories_per_serving <= max_calories)
    if difficulty:
        query = query.filter(Recipe.difficulty == difficulty)
    return query


def relevance(q: str):
    return case(
        (ilike(Recipe.title, q), 3),
        (ilike(Recipe.description, q), 2),
        (ilike(Recipe.instructions, q), 1),
        else_=0,
    )


def apply_sort(query, sort: str, q: str | None = None):
    total_time = func.coalesce(Recipe.prep_minutes, 0) + func.coalesce(Recipe.cook_minutes, 0)
    if sort == "relevance" and q:
        return query.order_by(relevance(q).desc(), Recipe.created_at.desc())
    if sort == "calories_asc":
        return query.order_by(Recipe.calories_per_serving.asc().nulls_last(), Recipe.id)
    if sort == "calories_desc":
        return query.order_by(Recipe.calories_per_serving.desc().nulls_last(), Recipe.id)
    if sort == "time_asc":
        return query.order_by(total_time.asc(), Recipe.id)
    return query.order_by(Recipe.created_at.desc(), Recipe.id.desc())


def search_rows(db: Session, recipes: list[Recipe]) -> list[dict]:
    """Summaries enriched with author, category and diet names."""
    author_ids = {r.author_id for r in recipes if r.author_id}
    category_ids = {r.category_id for r in recipes if r.category_id}
    diet_ids = {r.diet_id for r in recipes if r.diet_id}
    authors = dict(db.query(User.id, User.name).filter(User.id.in_(author_ids)).all()) if author_ids else {}
    categories = (
        dict(db.query(Category.id, Category.name).filter(Category.id.in_(category_ids)).all())
        if category_ids else {}
    )
    diets = dict(db.query(Diet.id, Diet.name).filter(Diet.id.in_(diet_ids)).all()) if diet_ids else {}
    return [
        {
            **recipe_summary(r),
            "author_name": authors.get(r.author_id),
            "category_name": categories.get(r.category_id),
            "diet_name": diets.get(r.diet_id),
        }
        for r in recipes
    ]
