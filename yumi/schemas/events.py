"""
schemas/events.py — Pydantic models for event endpoints

Business Rules:
- Title and start date are required
- Naive datetimes are interpreted as UTC
- Participation status is one of: confirmed, pending, cancelled
- Date ordering and "start in the future" are checked in the router

Called by: routers/events.py
Depends on: pydantic
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, get_args

from pydantic import BaseModel, Field, field_validator

from .common import as_utc, optional_text, required_text

ParticipantStatus = Literal["confirmed", "pending", "cancelled"]
PARTICIPANT_STATUSES = get_args(ParticipantStatus)


class EventIn(BaseModel):
    title: str
    starts_at: datetime
    ends_at: datetime | None = None
    description: str | None = None
    location: str | None = None
    is_virtual: bool = False
    virtual_url: str | None = None
    image_url: str | None = None
    is_official: bool = False
    max_capacity: int | None = Field(None, ge=1)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        return required_text(v, "El título es obligatorio")

    @field_validator("starts_at", "ends_at")
    @classmethod
    def utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v)

    @field_validator("description", "location", "virtual_url", "image_url")
    @classmethod
    def strip_optional(cls, v: str | None) -> str | None:
        return optional_text(v)


class ParticipationIn(BaseModel):
    status: str = "confirmed"

    @field_validator("status")
    @classmethod
    def status_valid(cls, v: str) -> str:
        if v not in PARTICIPANT_STATUSES:
            raise ValueError("Estado de participación no válido")
        return v
