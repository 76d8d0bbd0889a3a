"""User, profile personalization, goals and weight tracking."""

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..database import UTCDateTime, utcnow
from .base import Base


class Color(Base):
    __tablename__ = "colors"
    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False, unique=True)
    code = Column(String(20), nullable=False)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    external_id = Column(String(255), unique=True, nullable=False)  # identity-provider subject
    name = Column(String(255))
    email = Column(String(255), unique=True, nullable=False)
    color_id = Column(Integer, ForeignKey("colors.id", ondelete="SET NULL"))
    dark_mode = Column(Boolean, default=False, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    avatar_url = Column(Text)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    color = relationship("Color")
    goal = relationship(
        "UserGoal", back_populates="user", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True,
    )
    weight_entries = relationship(
        "WeightEntry", back_populates="user",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    recipes = relationship("Recipe", back_populates="author", passive_deletes=True)


class UserGoal(Base):
    __tablename__ = "user_goals"
    id = Column(Integer, primary_key=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    height_cm = Column(Float)
    weight_kg = Column(Float)
    activity_level = Column(String(20))  # sedentary | light | moderate | active | very_active
    calorie_limit = Column(Integer)
    purpose = Column(String(20))  # maintain | lose_weight | gain_muscle | define | other
    started_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="goal")


class WeightEntry(Base):
    __tablename__ = "weight_history"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    weight_kg = Column(Float, nullable=False)
    recorded_at = Column(UTCDateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="weight_entries")


class UserPreference(Base):
    """A category the user marked as a favorite."""

    __tablename__ = "user_preferences"
    __table_args__ = (UniqueConstraint("user_id", "category_id", name="uq_user_preference"),)
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(UTCDateTime, default=utcnow)

    category = relationship("Category")


class UserDiet(Base):
    __tablename__ = "user_diets"
    __table_args__ = (UniqueConstraint("user_id", "diet_id", name="uq_user_diet"),)
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    diet_id = Column(Integer, ForeignKey("diets.id", ondelete="CASCADE"), nullable=False)
    started_at = Column(UTCDateTime, default=utcnow)

    diet = relationship("Diet")
    user = relationship("User")
