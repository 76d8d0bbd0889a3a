"""Meal plans and the shopping lists derived from them."""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..database import UTCDateTime, utcnow
from .base import Base


class MealPlan(Base):
    __tablename__ = "meal_plans"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow)

    entries = relationship(
        "MealPlanEntry", back_populates="plan",
        cascade="all, delete-orphan", passive_deletes=True,
    )


class MealPlanEntry(Base):
    __tablename__ = "meal_plan_entries"
    __table_args__ = (UniqueConstraint("plan_id", "date", "meal_type", name="uq_meal_plan_slot"),)
    id = Column(Integer, primary_key=True)
    plan_id = Column(Integer, ForeignKey("meal_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="SET NULL"))
    date = Column(Date, nullable=False)
    meal_type = Column(String(20), nullable=False)  # breakfast | lunch | dinner | snack | other
    servings = Column(Integer, default=1, nullable=False)

    plan = relationship("MealPlan", back_populates="entries")
    recipe = relationship("Recipe")


class ShoppingList(Base):
    __tablename__ = "shopping_lists"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    meal_plan_id = Column(Integer, ForeignKey("meal_plans.id", ondelete="SET NULL"))
    name = Column(String(255), nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow)

    items = relationship(
        "ShoppingListItem", back_populates="shopping_list", order_by="ShoppingListItem.id",
        cascade="all, delete-orphan", passive_deletes=True,
    )


class ShoppingListItem(Base):
    __tablename__ = "shopping_list_items"
    id = Column(Integer, primary_key=True)
    shopping_list_id = Column(
        Integer, ForeignKey("shopping_lists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    quantity = Column(Float)
    unit = Column(String(20))
    purchased = Column(Boolean, default=False, nullable=False)

    shopping_list = relationship("ShoppingList", back_populates="items")
