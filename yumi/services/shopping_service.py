"""Shopping list generation from a meal plan.

Every entry contributes its recipe's ingredients scaled by
entry servings / recipe servings. Lines are merged on
(lower-cased name, unit); optional ingredients are skipped.
"""

from loguru import logger
from sqlalchemy.orm import Session

from ..models import Ingredient, MealPlan, MealPlanEntry, Recipe, ShoppingListItem


def aggregate_plan_ingredients(db: Session, plan: MealPlan) -> list[dict]:
    entries = (
        db.query(MealPlanEntry)
        .filter(MealPlanEntry.plan_id == plan.id, MealPlanEntry.recipe_id.isnot(None))
        .all()
    )
    merged: dict[tuple[str, str | None], dict] = {}
    for entry in entries:
        recipe = db.get(Recipe, entry.recipe_id)
        if not recipe:
            continue
        base_servings = recipe.servings or 1
        scale = (entry.servings or 1) / base_servings
        ingredients = (
            db.query(Ingredient)
            .filter(Ingredient.recipe_id == recipe.id, Ingredient.is_optional.is_(False))
            .all()
        )
        for ing in ingredients:
            unit = ing.unit.label if ing.unit else None
            key = (ing.name.strip().lower(), unit)
            line = merged.setdefault(key, {"name": ing.name.strip(), "quantity": None, "unit": unit})
            if ing.quantity is not None:
                line["quantity"] = (line["quantity"] or 0) + ing.quantity * scale
    lines = sorted(merged.values(), key=lambda x: x["name"].lower())
    for line in lines:
        if line["quantity"] is not None:
            line["quantity"] = round(line["quantity"], 2)
    return lines


def build_items(db: Session, plan: MealPlan, shopping_list_id: int) -> list[ShoppingListItem]:
    items = [
        ShoppingListItem(
            shopping_list_id=shopping_list_id,
            name=line["name"],
            quantity=line["quantity"],
            unit=line["unit"],
        )
        for line in aggregate_plan_ingredients(db, plan)
    ]
    db.add_all(items)
    logger.info("Shopping list #{} seeded with {} items from plan #{}", shopping_list_id, len(items), plan.id)
    return items
