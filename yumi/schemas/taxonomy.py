"""
schemas/taxonomy.py — Pydantic models for categories, diets, tags and units

Business Rules:
- Names are required and non-empty (uniqueness is checked in the router)
- Updates leave omitted description/restrictions untouched
- Unit conversion quantities are non-negative

Called by: routers/taxonomy.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from .common import optional_text, required_text


class CategoryIn(BaseModel):
    name: str
    description: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return required_text(v, "El nombre es obligatorio")

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str | None) -> str | None:
        return optional_text(v)


class DietIn(CategoryIn):
    restrictions: str | None = None


class TagIn(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return required_text(v, "El nombre es obligatorio").lower()


class ConversionRequest(BaseModel):
    quantity: float = Field(..., ge=0)
    from_unit_id: int
    to_unit_id: int
