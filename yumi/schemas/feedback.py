"""
schemas/feedback.py — Pydantic models for comments, ratings, attempts and tips

Business Rules:
- Comment content is required and non-empty
- Rating score is an integer from 1 to 5
- Attempts require an image URL
- Tip kind is one of: tip, alternative, warning, other

Called by: routers/feedback.py
Depends on: pydantic
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, field_validator

from .common import optional_text, required_text


class CommentIn(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        return required_text(v, "El contenido es obligatorio")


class RatingIn(BaseModel):
    score: int

    @field_validator("score")
    @classmethod
    def score_range(cls, v: int) -> int:
        if v < 1 or v > 5:
            raise ValueError("La puntuación debe estar entre 1 y 5")
        return v


class AttemptIn(BaseModel):
    image_url: str
    comment: str | None = None

    @field_validator("image_url")
    @classmethod
    def image_required(cls, v: str) -> str:
        return required_text(v, "La imagen es obligatoria")

    @field_validator("comment")
    @classmethod
    def strip_comment(cls, v: str | None) -> str | None:
        return optional_text(v)


class AttemptUpdate(BaseModel):
    image_url: str | None = None
    comment: str | None = None

    @field_validator("image_url")
    @classmethod
    def image_not_blank(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return required_text(v, "La imagen es obligatoria")


class TipIn(BaseModel):
    content: str
    kind: Literal["tip", "alternative", "warning", "other"] = "tip"

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        return required_text(v, "El contenido es obligatorio")
