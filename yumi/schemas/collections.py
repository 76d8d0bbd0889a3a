"""
schemas/collections.py — Pydantic models for collection endpoints

Business Rules:
- Collection name is required on create and on update
- On update, omitted description and is_public keep their stored value
- Collections are private unless is_public is set

Called by: routers/collections.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, field_validator

from .common import optional_text, required_text


class CollectionIn(BaseModel):
    name: str
    description: str | None = None
    is_public: bool = False

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return required_text(v, "El nombre es obligatorio")

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str | None) -> str | None:
        return optional_text(v)


class CollectionRecipeIn(BaseModel):
    recipe_id: int
