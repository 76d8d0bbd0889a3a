"""
recipes.py — Recipe CRUD, search, random picks, ingredients, nutrition and tags

Business Rules:
- Anyone may read; creating needs a registered user
- Only the author may update or delete a recipe, its ingredients,
  nutrition or tags (403 otherwise)
- Search relevance ranks title > description > instructions
- Random picks for signed-in users are capped at a third of their daily
  calorie limit and restricted to their diets unless filters say otherwise
- Ingredient units must exist; PUT on ingredients replaces the whole list

Called by: main.py (router include)
Depends on: models, schemas/recipes, services/recipe_service, dependencies
"""

import math

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from loguru import logger
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db, utcnow
from ..dependencies import get_optional_user, require_user
from ..models import (
    Category,
    Comment,
    Diet,
    Ingredient,
    NutritionInfo,
    Recipe,
    Tag,
    Unit,
    User,
    UserDiet,
    UserGoal,
)
from ..rate_limit import limiter
from ..schemas.recipes import (
    IngredientIn,
    IngredientUpdate,
    NutritionUpsert,
    RecipeCreate,
    RecipeUpdate,
    TagReplace,
)
from ..services.recipe_service import (
    apply_sort,
    filtered_recipes,
    get_owned_recipe,
    get_recipe_or_404,
    iso,
    rating_summaries,
    rating_stats,
    recipe_summary,
    search_rows,
    user_brief,
)
from ..utils.pagination import PageParams, envelope, paginate

router = APIRouter(tags=["recipes"])


# ── Serializers ──────────────────────────────────────────────────────


def ingredient_to_dict(ing: Ingredient) -> dict:
    return {
        "id": ing.id,
        "recipe_id": ing.recipe_id,
        "name": ing.name,
        "quantity": ing.quantity,
        "unit_id": ing.unit_id,
        "unit": ing.unit.label if ing.unit else None,
        "calories_per_unit": ing.calories_per_unit,
        "is_optional": bool(ing.is_optional),
    }


def nutrition_to_dict(info: NutritionInfo | None) -> dict | None:
    if not info:
        return None
    return {
        "protein_g": info.protein_g,
        "carbs_g": info.carbs_g,
        "fat_g": info.fat_g,
        "fiber_g": info.fiber_g,
        "sugar_g": info.sugar_g,
    }


def recipe_detail(db: Session, recipe: Recipe) -> dict:
    ingredients = db.query(Ingredient).filter_by(recipe_id=recipe.id).order_by(Ingredient.id).all()
    comments = (
        db.query(Comment)
        .filter_by(recipe_id=recipe.id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .all()
    )
    nutrition = db.query(NutritionInfo).filter_by(recipe_id=recipe.id).first()
    stats = rating_stats(db, recipe.id)
    category = db.get(Category, recipe.category_id) if recipe.category_id else None
    diet = db.get(Diet, recipe.diet_id) if recipe.diet_id else None
    author = db.get(User, recipe.author_id) if recipe.author_id else None
    return {
        **recipe_summary(recipe),
        "instructions": recipe.instructions,
        "updated_at": iso(recipe.updated_at),
        "author": user_brief(author),
        "category": {"id": category.id, "name": category.name} if category else None,
        "diet": {"id": diet.id, "name": diet.name, "restrictions": diet.restrictions} if diet else None,
        "tags": [{"id": t.id, "name": t.name} for t in recipe.tags],
        "ingredients": [ingredient_to_dict(i) for i in ingredients],
        "nutrition": nutrition_to_dict(nutrition),
        "comments": [
            {
                "id": c.id,
                "content": c.content,
                "created_at": iso(c.created_at),
                "user": user_brief(c.user),
            }
            for c in comments
        ],
        "rating": {"average": stats["average"], "total": stats["total"]},
    }


# ── Validation helpers ───────────────────────────────────────────────


def _check_refs(db: Session, category_id: int | None, diet_id: int | None) -> None:
    if category_id is not None and not db.get(Category, category_id):
        raise HTTPException(404, "Categoría no encontrada")
    if diet_id is not None and not db.get(Diet, diet_id):
        raise HTTPException(404, "Dieta no encontrada")


def _check_unit(db: Session, unit_id: int | None) -> None:
    if unit_id is not None and not db.get(Unit, unit_id):
        raise HTTPException(404, "Unidad de medida no encontrada")


def _load_tags(db: Session, tag_ids: list[int]) -> list[Tag]:
    wanted = list(dict.fromkeys(tag_ids))
    if not wanted:
        return []
    tags = db.query(Tag).filter(Tag.id.in_(wanted)).all()
    if len(tags) != len(wanted):
        raise HTTPException(404, "Etiqueta no encontrada")
    return tags


# ── Recipes ──────────────────────────────────────────────────────────


@router.get("/api/recipes")
def list_recipes(
    title: str | None = Query(None),
    category: int | None = Query(None),
    diet: int | None = Query(None),
    author: int | None = Query(None),
    sort: str = Query("date_desc"),
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
):
    """Paged recipe list with simple filters."""
    query = filtered_recipes(db, title=title, category_id=category, diet_id=diet, author_id=author)
    query = apply_sort(query, "calories_asc" if sort == "calories_asc" else "date_desc")
    rows, meta = paginate(query, pages.page, pages.limit)
    return envelope([recipe_summary(r) for r in rows], meta)


@router.get("/api/recipes/search")
@limiter.limit(settings.rate_limit_search)
def search_recipes(
    request: Request,
    q: str | None = Query(None),
    category: int | None = Query(None),
    diet: int | None = Query(None),
    author: int | None = Query(None),
    tag: list[str] = Query(default=[]),
    min_calories: int | None = Query(None, ge=0),
    max_calories: int | None = Query(None, ge=0),
    difficulty: str | None = Query(None),
    sort: str = Query("relevance"),
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
):
    """Full search across text, taxonomy, tags, calories and difficulty."""
    q = (q or "").strip() or None
    query = filtered_recipes(
        db,
        q=q,
        category_id=category,
        diet_id=diet,
        author_id=author,
        tags=tag,
        min_calories=min_calories,
        max_calories=max_calories,
        difficulty=difficulty,
    )
    query = apply_sort(query, sort, q)
    rows, meta = paginate(query, pages.page, pages.limit)
    return envelope(search_rows(db, rows), meta, query=q, sort=sort)


@router.get("/api/recipes/random")
def random_recipes(
    count: int = Query(5, ge=1, le=50),
    category: int | None = Query(None),
    diet: int | None = Query(None),
    max_calories: int | None = Query(None, ge=0),
    difficulty: str | None = Query(None),
    user: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Random recipes, personalized to the caller's goal and diets when signed in."""
    diet_ids = None
    if user:
        if max_calories is None:
            goal = db.query(UserGoal).filter_by(user_id=user.id).first()
            if goal and goal.calorie_limit:
                max_calories = math.ceil(goal.calorie_limit / 3)
        if diet is None:
            diet_ids = [d for (d,) in db.query(UserDiet.diet_id).filter_by(user_id=user.id).all()]

    query = filtered_recipes(
        db,
        category_id=category,
        diet_id=diet,
        diet_ids=diet_ids,
        max_calories=max_calories,
        difficulty=difficulty,
    )
    rows = query.order_by(func.random()).limit(count).all()
    stats = rating_summaries(db, [r.id for r in rows])
    data = []
    for r in rows:
        avg, total = stats.get(r.id, (0, 0))
        data.append({**recipe_summary(r), "average_rating": avg, "rating_count": total})
    return {"data": data, "personalized": user is not None, "max_calories": max_calories}


@router.post("/api/recipes", status_code=201)
def create_recipe(
    body: RecipeCreate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    _check_refs(db, body.category_id, body.diet_id)
    for ing in body.ingredients:
        _check_unit(db, ing.unit_id)
    tags = _load_tags(db, body.tag_ids)

    fields = body.model_dump(exclude={"tag_ids", "ingredients"})
    recipe = Recipe(author_id=user.id, **fields)
    recipe.tags = tags
    db.add(recipe)
    db.flush()
    db.add_all(Ingredient(recipe_id=recipe.id, **ing.model_dump()) for ing in body.ingredients)
    db.commit()
    logger.info("Recipe #{} created by user #{}", recipe.id, user.id)
    return recipe_detail(db, recipe)


@router.get("/api/recipes/{recipe_id}")
def get_recipe(recipe_id: int, db: Session = Depends(get_db)):
    """Full recipe with author, ingredients, comments, nutrition and rating."""
    return recipe_detail(db, get_recipe_or_404(db, recipe_id))


@router.put("/api/recipes/{recipe_id}")
def update_recipe(
    recipe_id: int,
    body: RecipeUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Partial update; omitted fields keep their current value."""
    recipe = get_owned_recipe(db, recipe_id, user)
    changes = body.model_dump(exclude_unset=True)
    for required in ("title", "instructions"):
        if required in changes and changes[required] is None:
            del changes[required]
    _check_refs(db, changes.get("category_id"), changes.get("diet_id"))
    for field, value in changes.items():
        setattr(recipe, field, value)
    recipe.updated_at = utcnow()
    db.commit()
    logger.info("Recipe #{} updated by user #{}", recipe.id, user.id)
    return recipe_detail(db, recipe)


@router.delete("/api/recipes/{recipe_id}")
def delete_recipe(recipe_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    recipe = get_owned_recipe(db, recipe_id, user)
    db.delete(recipe)
    db.commit()
    logger.info("Recipe #{} deleted by user #{}", recipe_id, user.id)
    return {"ok": True}


# ── Ingredients ──────────────────────────────────────────────────────


@router.get("/api/recipes/{recipe_id}/ingredients")
def list_ingredients(recipe_id: int, db: Session = Depends(get_db)):
    recipe = get_recipe_or_404(db, recipe_id)
    rows = db.query(Ingredient).filter_by(recipe_id=recipe.id).order_by(Ingredient.id).all()
    return [ingredient_to_dict(i) for i in rows]


@router.post("/api/recipes/{recipe_id}/ingredients", status_code=201)
def add_ingredient(
    recipe_id: int,
    body: IngredientIn,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    recipe = get_owned_recipe(db, recipe_id, user)
    _check_unit(db, body.unit_id)
    ing = Ingredient(recipe_id=recipe.id, **body.model_dump())
    db.add(ing)
    db.commit()
    db.refresh(ing)
    return ingredient_to_dict(ing)


@router.put("/api/recipes/{recipe_id}/ingredients")
def replace_ingredients(
    recipe_id: int,
    body: list[IngredientIn],
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Replace the full ingredient list of a recipe."""
    recipe = get_owned_recipe(db, recipe_id, user)
    for ing in body:
        _check_unit(db, ing.unit_id)
    db.query(Ingredient).filter_by(recipe_id=recipe.id).delete(synchronize_session=False)
    db.add_all(Ingredient(recipe_id=recipe.id, **ing.model_dump()) for ing in body)
    db.commit()
    rows = db.query(Ingredient).filter_by(recipe_id=recipe.id).order_by(Ingredient.id).all()
    logger.info("Recipe #{} ingredients replaced ({} items)", recipe.id, len(rows))
    return [ingredient_to_dict(i) for i in rows]


def _ingredient_of(db: Session, recipe: Recipe, ingredient_id: int) -> Ingredient:
    ing = db.get(Ingredient, ingredient_id)
    if not ing or ing.recipe_id != recipe.id:
        raise HTTPException(404, "Ingrediente no encontrado")
    return ing


@router.get("/api/recipes/{recipe_id}/ingredients/{ingredient_id}")
def get_ingredient(recipe_id: int, ingredient_id: int, db: Session = Depends(get_db)):
    recipe = get_recipe_or_404(db, recipe_id)
    return ingredient_to_dict(_ingredient_of(db, recipe, ingredient_id))


@router.patch("/api/recipes/{recipe_id}/ingredients/{ingredient_id}")
def update_ingredient(
    recipe_id: int,
    ingredient_id: int,
    body: IngredientUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    recipe = get_owned_recipe(db, recipe_id, user)
    ing = _ingredient_of(db, recipe, ingredient_id)
    changes = body.model_dump(exclude_unset=True)
    if "unit_id" in changes:
        _check_unit(db, changes["unit_id"])
    for field, value in changes.items():
        if field in ("name", "is_optional") and value is None:
            continue
        setattr(ing, field, value)
    db.commit()
    db.refresh(ing)
    return ingredient_to_dict(ing)


@router.delete("/api/recipes/{recipe_id}/ingredients/{ingredient_id}")
def delete_ingredient(
    recipe_id: int,
    ingredient_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    recipe = get_owned_recipe(db, recipe_id, user)
    db.delete(_ingredient_of(db, recipe, ingredient_id))
    db.commit()
    return {"ok": True}


# ── Nutrition & tags ─────────────────────────────────────────────────


@router.put("/api/recipes/{recipe_id}/nutrition")
def upsert_nutrition(
    recipe_id: int,
    body: NutritionUpsert,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    recipe = get_owned_recipe(db, recipe_id, user)
    info = db.query(NutritionInfo).filter_by(recipe_id=recipe.id).first()
    if not info:
        info = NutritionInfo(recipe_id=recipe.id)
        db.add(info)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(info, field, value)
    db.commit()
    db.refresh(info)
    return nutrition_to_dict(info)


@router.put("/api/recipes/{recipe_id}/tags")
def replace_tags(
    recipe_id: int,
    body: TagReplace,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    recipe = get_owned_recipe(db, recipe_id, user)
    recipe.tags = _load_tags(db, body.tag_ids)
    db.commit()
    return [{"id": t.id, "name": t.name} for t in recipe.tags]
