"""
schemas/recipes.py — Pydantic models for recipe, ingredient and nutrition endpoints

Business Rules:
- Recipe title and instructions are required and non-empty
- Difficulty is one of: easy, medium, hard
- Ingredient name is required; quantity and calories are non-negative
- Ingredient replace-all takes a JSON array of ingredients

Called by: routers/recipes.py
Depends on: pydantic
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from .common import optional_text, required_text

Difficulty = Literal["easy", "medium", "hard"]


# ── Ingredients ──────────────────────────────────────────────────────


class IngredientIn(BaseModel):
    name: str
    quantity: float | None = None
    unit_id: int | None = None
    calories_per_unit: float | None = None
    is_optional: bool = False

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return required_text(v, "El nombre del ingrediente es obligatorio")

    @field_validator("quantity", "calories_per_unit")
    @classmethod
    def non_negative(cls, v: float | None) -> float | None:
        if v is not None and v < 0:
            raise ValueError("Las cantidades no pueden ser negativas")
        return v


class IngredientUpdate(BaseModel):
    name: str | None = None
    quantity: float | None = None
    unit_id: int | None = None
    calories_per_unit: float | None = None
    is_optional: bool | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return required_text(v, "El nombre del ingrediente es obligatorio")

    @field_validator("quantity", "calories_per_unit")
    @classmethod
    def non_negative(cls, v: float | None) -> float | None:
        if v is not None and v < 0:
            raise ValueError("Las cantidades no pueden ser negativas")
        return v


# ── Recipes ──────────────────────────────────────────────────────────


class RecipeCreate(BaseModel):
    title: str
    instructions: str
    description: str | None = None
    prep_minutes: int | None = Field(None, ge=0)
    cook_minutes: int | None = Field(None, ge=0)
    servings: int | None = Field(None, ge=1)
    difficulty: Difficulty | None = None
    calories_per_serving: int | None = Field(None, ge=0)
    image_url: str | None = None
    category_id: int | None = None
    diet_id: int | None = None
    tag_ids: list[int] = Field(default_factory=list)
    ingredients: list[IngredientIn] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        return required_text(v, "El título es obligatorio")

    @field_validator("instructions")
    @classmethod
    def instructions_not_blank(cls, v: str) -> str:
        return required_text(v, "Las instrucciones son obligatorias")

    @field_validator("description", "image_url")
    @classmethod
    def strip_optional(cls, v: str | None) -> str | None:
        return optional_text(v)


class RecipeUpdate(BaseModel):
    title: str | None = None
    instructions: str | None = None
    description: str | None = None
    prep_minutes: int | None = Field(None, ge=0)
    cook_minutes: int | None = Field(None, ge=0)
    servings: int | None = Field(None, ge=1)
    difficulty: Difficulty | None = None
    calories_per_serving: int | None = Field(None, ge=0)
    image_url: str | None = None
    category_id: int | None = None
    diet_id: int | None = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return required_text(v, "El título es obligatorio")

    @field_validator("instructions")
    @classmethod
    def instructions_not_blank(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return required_text(v, "Las instrucciones son obligatorias")


class NutritionUpsert(BaseModel):
    protein_g: float | None = Field(None, ge=0)
    carbs_g: float | None = Field(None, ge=0)
    fat_g: float | None = Field(None, ge=0)
    fiber_g: float | None = Field(None, ge=0)
    sugar_g: float | None = Field(None, ge=0)


class TagReplace(BaseModel):
    tag_ids: list[int]
