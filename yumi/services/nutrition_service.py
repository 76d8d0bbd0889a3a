"""Nutrition arithmetic — pure functions, no I/O except unit conversion lookups.

  - Daily calorie estimate (Mifflin-St Jeor BMR, activity factor, goal offset)
  - Macro split and meal distribution of a calorie target
  - BMI with category
  - Recipe calorie totals from stored or inline ingredients
  - Recipe nutrition estimate from a per-100 g reference table
  - Quantity conversion between stored units

Usage:
    from yumi.services.nutrition_service import estimate_daily_calories
    result = estimate_daily_calories(70, 175, 30, "male", "moderate", "maintain")
"""

from sqlalchemy.orm import Session

from ..models import Unit, UnitConversion

# ── Daily calorie estimate ────────────────────────────────────────────

ACTIVITY_FACTORS = {
    "sedentary": 1.2,
    "light": 1.375,
    "moderate": 1.55,
    "active": 1.725,
    "very_active": 1.9,
}

GOAL_OFFSETS = {"maintain": 0, "lose": -500, "gain": 500}

# protein / carbs / fat, percent of target calories
MACRO_SPLITS = {
    "lose": (40, 30, 30),
    "maintain": (30, 40, 30),
    "gain": (30, 45, 25),
}

KCAL_PER_GRAM = {"protein": 4, "carbs": 4, "fat": 9}

MEAL_DISTRIBUTION = {
    "breakfast": 0.25,
    "lunch": 0.35,
    "dinner": 0.30,
    "snack": 0.10,
}


def basal_metabolic_rate(weight_kg: float, height_cm: float, age: int, sex: str) -> float:
    """Mifflin-St Jeor equation."""
    base = 10 * weight_kg + 6.25 * height_cm - 5 * age
    if sex == "male":
        return base + 5
    if sex == "female":
        return base - 161
    raise ValueError(f"Sexo no válido: {sex}")


def body_mass_index(weight_kg: float, height_cm: float) -> dict:
    meters = height_cm / 100
    value = weight_kg / (meters * meters)
    if value < 18.5:
        category = "Bajo peso"
    elif value < 25:
        category = "Peso normal"
    elif value < 30:
        category = "Sobrepeso"
    else:
        category = "Obesidad"
    return {"value": round(value, 1), "category": category}


def macro_split(target_kcal: float, goal: str) -> dict:
    protein_pct, carbs_pct, fat_pct = MACRO_SPLITS[goal]
    macros = {}
    for key, pct in (("protein", protein_pct), ("carbs", carbs_pct), ("fat", fat_pct)):
        kcal = target_kcal * pct / 100
        macros[key] = {
            "percent": pct,
            "calories": round(kcal),
            "grams": round(kcal / KCAL_PER_GRAM[key]),
        }
    return macros


def meal_distribution(target_kcal: float) -> dict:
    return {meal: round(target_kcal * share) for meal, share in MEAL_DISTRIBUTION.items()}


def _check_range(value: float, low: float, high: float, message: str) -> None:
    if value is None or not low <= value <= high:
        raise ValueError(message)


def estimate_daily_calories(
    weight_kg: float,
    height_cm: float,
    age: int,
    sex: str,
    activity_level: str,
    goal: str = "maintain",
) -> dict:
    """Full daily estimate. Raises ValueError on out-of-range input."""
    _check_range(weight_kg, 1, 300, "El peso debe estar entre 1 y 300 kg")
    _check_range(height_cm, 1, 250, "La altura debe estar entre 1 y 250 cm")
    _check_range(age, 1, 120, "La edad debe estar entre 1 y 120 años")
    if activity_level not in ACTIVITY_FACTORS:
        raise ValueError(f"Nivel de actividad no válido: {activity_level}")
    if goal not in GOAL_OFFSETS:
        raise ValueError(f"Objetivo no válido: {goal}")

    bmr = basal_metabolic_rate(weight_kg, height_cm, age, sex)
    factor = ACTIVITY_FACTORS[activity_level]
    maintenance = bmr * factor
    target = maintenance + GOAL_OFFSETS[goal]

    return {
        "bmr": round(bmr),
        "activity_factor": factor,
        "maintenance_calories": round(maintenance),
        "target_calories": round(target),
        "goal": goal,
        "macros": macro_split(target, goal),
        "bmi": body_mass_index(weight_kg, height_cm),
        "meals": meal_distribution(target),
    }


# ── Recipe calorie totals ─────────────────────────────────────────────


def recipe_calories(ingredients, servings: int | None = None) -> dict:
    """Sum calories_per_unit × quantity over ingredient rows or dicts.

    Missing quantities or calorie values count as zero. Without servings the
    whole dish is one serving.
    """
    total = 0.0
    for ing in ingredients:
        if isinstance(ing, dict):
            qty, cpu = ing.get("quantity"), ing.get("calories_per_unit")
        else:
            qty, cpu = ing.quantity, ing.calories_per_unit
        total += (cpu or 0) * (qty or 0)
    servings = servings if servings and servings > 0 else 1
    return {
        "total_calories": round(total),
        "calories_per_serving": round(total / servings),
        "servings": servings,
    }


# ── Recipe nutrition estimate ─────────────────────────────────────────

# Per 100 g (or 100 ml): calories, protein, carbs, fat, fiber, sugar
REFERENCE_NUTRITION = {
    "arroz": (130, 2.7, 28, 0.3, 0.4, 0.1),
    "pollo": (165, 31, 0, 3.6, 0, 0),
    "aceite de oliva": (884, 0, 0, 100, 0, 0),
    "zanahoria": (41, 0.9, 10, 0.2, 2.8, 4.7),
    "cebolla": (40, 1.1, 9.3, 0.1, 1.7, 4.2),
    "tomate": (18, 0.9, 3.9, 0.2, 1.2, 2.6),
    "lechuga": (15, 1.4, 2.9, 0.2, 1.3, 0.8),
    "huevo": (155, 12.6, 1.1, 10.6, 0, 1.1),
    "leche": (42, 3.4, 5, 1, 0, 5),
    "pan": (265, 9.4, 49, 3.2, 2.7, 5),
}
DEFAULT_NUTRITION = (100, 5, 10, 5, 2, 2)
NUTRIENTS = ("calories", "protein", "carbs", "fat", "fiber", "sugar")

# Multiplier applied to the per-100 reference values
_UNIT_GRAMS = {
    "g": 1,
    "ml": 1,
    "kg": 1000,
    "l": 1000,
    "cucharada": 15,
    "cucharadita": 5,
    "taza": 240,
}


def reference_for(name: str) -> tuple:
    """Match an ingredient name against the reference table (substring either way)."""
    needle = name.strip().lower()
    for key, values in REFERENCE_NUTRITION.items():
        if key in needle or needle in key:
            return values
    return DEFAULT_NUTRITION


def unit_factor(quantity: float, unit: str) -> float:
    unit = unit.strip().lower()
    if unit == "unidad":
        return quantity
    grams = _UNIT_GRAMS.get(unit)
    if grams is None:
        return 1
    return quantity * grams / 100


def _rounded(values: dict) -> dict:
    return {k: round(v) if k == "calories" else round(v, 1) for k, v in values.items()}


def estimate_recipe_nutrition(ingredients, servings: int = 1) -> dict:
    """Estimate totals and per-serving nutrition for (name, quantity, unit) items."""
    if servings < 1:
        raise ValueError("Las porciones deben ser al menos 1")
    totals = dict.fromkeys(NUTRIENTS, 0.0)
    breakdown = []
    for ing in ingredients:
        if isinstance(ing, dict):
            name, qty, unit = ing.get("name"), ing.get("quantity"), ing.get("unit")
        else:
            name, qty, unit = ing.name, ing.quantity, ing.unit
        if not name or qty is None or qty <= 0 or not unit:
            raise ValueError("Cada ingrediente debe tener nombre, cantidad y unidad")
        factor = unit_factor(qty, unit)
        values = {k: v * factor for k, v in zip(NUTRIENTS, reference_for(name))}
        for k, v in values.items():
            totals[k] += v
        breakdown.append({"name": name, "quantity": qty, "unit": unit, **_rounded(values)})

    per_serving = {k: v / servings for k, v in totals.items()}
    return {
        "total": _rounded(totals),
        "per_serving": _rounded(per_serving),
        "servings": servings,
        "ingredients": breakdown,
    }


# ── Unit conversion ───────────────────────────────────────────────────


def conversion_factor(db: Session, from_unit_id: int, to_unit_id: int) -> float | None:
    """Direct factor, else the inverse of the reverse factor, else None."""
    if from_unit_id == to_unit_id:
        return 1.0
    direct = (
        db.query(UnitConversion)
        .filter_by(from_unit_id=from_unit_id, to_unit_id=to_unit_id)
        .first()
    )
    if direct:
        return direct.factor
    reverse = (
        db.query(UnitConversion)
        .filter_by(from_unit_id=to_unit_id, to_unit_id=from_unit_id)
        .first()
    )
    if reverse and reverse.factor:
        return 1 / reverse.factor
    return None


def convert_quantity(db: Session, quantity: float, from_unit: Unit, to_unit: Unit) -> dict | None:
    factor = conversion_factor(db, from_unit.id, to_unit.id)
    if factor is None:
        return None
    return {
        "quantity": quantity,
        "from_unit": from_unit.label,
        "to_unit": to_unit.label,
        "factor": factor,
        "result": round(quantity * factor, 4),
    }
