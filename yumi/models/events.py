"""Cooking events and their participants."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import UTCDateTime, utcnow
from .base import Base


class Event(Base):
    __tablename__ = "events"
    id = Column(Integer, primary_key=True)
    creator_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    starts_at = Column(UTCDateTime, nullable=False, index=True)
    ends_at = Column(UTCDateTime)
    location = Column(String(255))
    is_virtual = Column(Boolean, default=False, nullable=False)
    virtual_url = Column(Text)
    image_url = Column(Text)
    is_official = Column(Boolean, default=False, nullable=False)  # only admins may set
    max_capacity = Column(Integer)
    created_at = Column(UTCDateTime, default=utcnow)

    creator = relationship("User")
    participants = relationship(
        "EventParticipant", back_populates="event",
        cascade="all, delete-orphan", passive_deletes=True,
    )


class EventParticipant(Base):
    __tablename__ = "event_participants"
    __table_args__ = (UniqueConstraint("user_id", "event_id", name="uq_event_participant"),)
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), default="confirmed", nullable=False)  # confirmed | pending | cancelled
    registered_at = Column(UTCDateTime, default=utcnow)

    event = relationship("Event", back_populates="participants")
    user = relationship("User")
