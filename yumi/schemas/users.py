"""
schemas/users.py — Pydantic models for user, goal and tracking endpoints

Business Rules:
- Registration needs an email; the external id comes from the token
- Goal activity level and purpose are closed vocabularies
- Weight entries must be positive
- Preferences replace-all takes a list of category ids

Called by: routers/users.py, routers/auth.py
Depends on: pydantic
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, field_validator

from .common import as_utc, optional_text, required_text

ActivityLevel = Literal["sedentary", "light", "moderate", "active", "very_active"]
Purpose = Literal["maintain", "lose_weight", "gain_muscle", "define", "other"]


# ── Users ────────────────────────────────────────────────────────────


class UserCreate(BaseModel):
    email: str
    external_id: str | None = None
    name: str | None = None
    avatar_url: str | None = None
    color_id: int | None = None
    dark_mode: bool = False

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        v = required_text(v, "El email es obligatorio").lower()
        if "@" not in v:
            raise ValueError("El email no es válido")
        return v

    @field_validator("name", "avatar_url")
    @classmethod
    def strip_optional(cls, v: str | None) -> str | None:
        return optional_text(v)


class UserUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    avatar_url: str | None = None
    color_id: int | None = None
    dark_mode: bool | None = None

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = required_text(v, "El email es obligatorio").lower()
        if "@" not in v:
            raise ValueError("El email no es válido")
        return v


class ProfileUpdate(BaseModel):
    """Fields a user can change on their own profile from settings."""

    name: str | None = None
    dark_mode: bool | None = None
    color_id: int | None = None


# ── Goals & tracking ─────────────────────────────────────────────────


class GoalUpsert(BaseModel):
    height_cm: float | None = None
    weight_kg: float | None = None
    activity_level: ActivityLevel | None = None
    calorie_limit: int | None = None
    purpose: Purpose | None = None

    @field_validator("height_cm", "weight_kg", "calorie_limit")
    @classmethod
    def positive(cls, v):
        if v is not None and v <= 0:
            raise ValueError("Los valores de la meta deben ser positivos")
        return v


class WeightCreate(BaseModel):
    weight_kg: float
    recorded_at: datetime | None = None

    @field_validator("weight_kg")
    @classmethod
    def weight_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("El peso debe ser mayor que cero")
        return v

    @field_validator("recorded_at")
    @classmethod
    def utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v)


class PreferenceCreate(BaseModel):
    category_id: int


class PreferenceReplace(BaseModel):
    categories: list[int]


class UserDietCreate(BaseModel):
    diet_id: int
