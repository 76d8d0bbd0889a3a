"""
schemas/planning.py — Pydantic models for meal plans and shopping lists

Business Rules:
- A plan needs start and end dates, end on or after start
- Entries need a date, a recipe and a meal type; servings default to 1
- Meal type is one of: breakfast, lunch, dinner, snack, other
- Shopping list items need a name

Called by: routers/meal_plans.py, routers/shopping_lists.py
Depends on: pydantic
"""

from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from .common import optional_text, required_text

MealType = Literal["breakfast", "lunch", "dinner", "snack", "other"]


# ── Meal plans ───────────────────────────────────────────────────────


class MealPlanIn(BaseModel):
    start_date: dt.date
    end_date: dt.date
    name: str | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        return optional_text(v)

    @model_validator(mode="after")
    def dates_ordered(self):
        if self.end_date < self.start_date:
            raise ValueError("La fecha de fin debe ser posterior a la de inicio")
        return self


class MealPlanUpdate(BaseModel):
    name: str | None = None
    start_date: dt.date | None = None
    end_date: dt.date | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return required_text(v, "El nombre es obligatorio")


class MealPlanEntryIn(BaseModel):
    date: dt.date
    recipe_id: int
    meal_type: str
    servings: int = Field(1, ge=1)

    @field_validator("meal_type")
    @classmethod
    def meal_type_valid(cls, v: str) -> str:
        if v not in ("breakfast", "lunch", "dinner", "snack", "other"):
            raise ValueError("Tipo de comida no válido")
        return v


# ── Shopping lists ───────────────────────────────────────────────────


class ShoppingListIn(BaseModel):
    name: str | None = None
    meal_plan_id: int | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        return optional_text(v)


class ShoppingListUpdate(BaseModel):
    name: str | None = None
    completed: bool | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return required_text(v, "El nombre es obligatorio")


class ShoppingItemIn(BaseModel):
    name: str
    quantity: float | None = Field(None, ge=0)
    unit: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return required_text(v, "El nombre es obligatorio")


class ShoppingItemUpdate(BaseModel):
    name: str | None = None
    quantity: float | None = Field(None, ge=0)
    unit: str | None = None
    purchased: bool | None = None
