"""
schemas/calculator.py — Pydantic models for the nutrition calculators

Business Rules:
- Daily estimate: weight 1–300 kg, height 1–250 cm, age 1–120 years
- Calorie total needs either a recipe id or an inline ingredient list
- Nutrition estimate ingredients need name, quantity and unit

Called by: routers/calculator.py
Depends on: pydantic
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from .common import required_text


class DailyCaloriesIn(BaseModel):
    weight_kg: float
    height_cm: float
    age: int
    sex: Literal["male", "female"]
    activity_level: Literal["sedentary", "light", "moderate", "active", "very_active"]
    goal: Literal["maintain", "lose", "gain"] = "maintain"

    @field_validator("weight_kg")
    @classmethod
    def weight_range(cls, v: float) -> float:
        if not 1 <= v <= 300:
            raise ValueError("El peso debe estar entre 1 y 300 kg")
        return v

    @field_validator("height_cm")
    @classmethod
    def height_range(cls, v: float) -> float:
        if not 1 <= v <= 250:
            raise ValueError("La altura debe estar entre 1 y 250 cm")
        return v

    @field_validator("age")
    @classmethod
    def age_range(cls, v: int) -> int:
        if not 1 <= v <= 120:
            raise ValueError("La edad debe estar entre 1 y 120 años")
        return v


class CalorieIngredient(BaseModel):
    quantity: float | None = Field(None, ge=0)
    calories_per_unit: float | None = Field(None, ge=0)
    name: str | None = None


class CaloriesIn(BaseModel):
    recipe_id: int | None = None
    ingredients: list[CalorieIngredient] | None = None
    servings: int | None = Field(None, ge=1)


class EstimateIngredient(BaseModel):
    name: str
    quantity: float
    unit: str

    @field_validator("quantity")
    @classmethod
    def quantity_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Cada ingrediente debe tener nombre, cantidad y unidad")
        return v

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return required_text(v, "Cada ingrediente debe tener nombre, cantidad y unidad")

    @field_validator("unit")
    @classmethod
    def unit_not_blank(cls, v: str) -> str:
        return required_text(v, "Cada ingrediente debe tener nombre, cantidad y unidad").lower()


class RecipeEstimateIn(BaseModel):
    ingredients: list[EstimateIngredient]
    servings: int = Field(1, ge=1)
