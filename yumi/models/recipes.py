"""Recipes and everything hanging off a recipe: ingredients, nutrition,
comments, ratings, favorites, attempts and tips."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..database import UTCDateTime, utcnow
from .base import Base

recipe_tags = Table(
    "recipe_tags",
    Base.metadata,
    Column("recipe_id", Integer, ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Recipe(Base):
    __tablename__ = "recipes"
    id = Column(Integer, primary_key=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    instructions = Column(Text, nullable=False)
    prep_minutes = Column(Integer)
    cook_minutes = Column(Integer)
    servings = Column(Integer)
    difficulty = Column(String(10))  # easy | medium | hard
    calories_per_serving = Column(Integer)
    image_url = Column(Text)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), index=True)
    diet_id = Column(Integer, ForeignKey("diets.id", ondelete="SET NULL"), index=True)
    created_at = Column(UTCDateTime, default=utcnow, index=True)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    author = relationship("User", back_populates="recipes")
    category = relationship("Category")
    diet = relationship("Diet")
    tags = relationship("Tag", secondary=recipe_tags, order_by="Tag.name")
    ingredients = relationship(
        "Ingredient", back_populates="recipe", order_by="Ingredient.id",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    nutrition = relationship(
        "NutritionInfo", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True,
    )


class Ingredient(Base):
    __tablename__ = "ingredients"
    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_ingredient_quantity"),)
    id = Column(Integer, primary_key=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    quantity = Column(Float)
    unit_id = Column(Integer, ForeignKey("units.id", ondelete="SET NULL"))
    calories_per_unit = Column(Float)
    is_optional = Column(Boolean, default=False, nullable=False)

    recipe = relationship("Recipe", back_populates="ingredients")
    unit = relationship("Unit")


class NutritionInfo(Base):
    __tablename__ = "nutrition_info"
    id = Column(Integer, primary_key=True)
    recipe_id = Column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    protein_g = Column(Float)
    carbs_g = Column(Float)
    fat_g = Column(Float)
    fiber_g = Column(Float)
    sugar_g = Column(Float)


class Comment(Base):
    __tablename__ = "comments"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime)

    user = relationship("User")


class Rating(Base):
    __tablename__ = "ratings"
    __table_args__ = (
        UniqueConstraint("user_id", "recipe_id", name="uq_rating_user_recipe"),
        CheckConstraint("score BETWEEN 1 AND 5", name="ck_rating_score"),
    )
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    score = Column(Integer, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow)

    user = relationship("User")


class Favorite(Base):
    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("user_id", "recipe_id", name="uq_favorite_user_recipe"),)
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(UTCDateTime, default=utcnow)

    recipe = relationship("Recipe")


class RecipeAttempt(Base):
    """A user's photo of their own attempt at a recipe."""

    __tablename__ = "recipe_attempts"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(Text, nullable=False)
    comment = Column(Text)
    created_at = Column(UTCDateTime, default=utcnow)

    user = relationship("User")


class RecipeTip(Base):
    __tablename__ = "recipe_tips"
    id = Column(Integer, primary_key=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    content = Column(Text, nullable=False)
    kind = Column(String(20), default="tip")  # tip | alternative | warning | other
    created_at = Column(UTCDateTime, default=utcnow)

    user = relationship("User")
