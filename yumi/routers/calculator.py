"""Calculator API — daily calorie estimate and recipe nutrition arithmetic."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Ingredient
from ..schemas.calculator import CaloriesIn, DailyCaloriesIn, RecipeEstimateIn
from ..services import nutrition_service
from ..services.recipe_service import get_recipe_or_404

router = APIRouter(tags=["calculator"])


@router.post("/api/calculator/daily")
def daily_calories(body: DailyCaloriesIn):
    """Mifflin-St Jeor estimate with macro split, BMI and meal distribution."""
    try:
        return nutrition_service.estimate_daily_calories(
            body.weight_kg, body.height_cm, body.age, body.sex, body.activity_level, body.goal
        )
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.post("/api/calculator/calories")
def recipe_calories(body: CaloriesIn, db: Session = Depends(get_db)):
    """Calorie total for a stored recipe or an inline ingredient list."""
    if body.recipe_id is not None:
        recipe = get_recipe_or_404(db, body.recipe_id)
        ingredients = db.query(Ingredient).filter_by(recipe_id=recipe.id).all()
        servings = body.servings or recipe.servings
        return {
            "recipe_id": recipe.id,
            **nutrition_service.recipe_calories(ingredients, servings),
        }
    if body.ingredients:
        items = [i.model_dump() for i in body.ingredients]
        return nutrition_service.recipe_calories(items, body.servings)
    raise HTTPException(400, "Se requiere recipe_id o una lista de ingredientes")


@router.post("/api/calculator/recipe")
def recipe_nutrition(body: RecipeEstimateIn):
    """Estimate nutrition from ingredient names, quantities and units."""
    if not body.ingredients:
        raise HTTPException(400, "Se requiere al menos un ingrediente")
    try:
        return nutrition_service.estimate_recipe_nutrition(body.ingredients, body.servings)
    except ValueError as e:
        raise HTTPException(400, str(e))
