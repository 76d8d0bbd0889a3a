"""User-curated recipe collections."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import UTCDateTime, utcnow
from .base import Base


class Collection(Base):
    __tablename__ = "collections"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    is_public = Column(Boolean, default=False, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    owner = relationship("User")
    entries = relationship(
        "CollectionRecipe", back_populates="collection",
        cascade="all, delete-orphan", passive_deletes=True,
    )


class CollectionRecipe(Base):
    __tablename__ = "collection_recipes"
    __table_args__ = (
        UniqueConstraint("collection_id", "recipe_id", name="uq_collection_recipe"),
    )
    id = Column(Integer, primary_key=True)
    collection_id = Column(
        Integer, ForeignKey("collections.id", ondelete="CASCADE"), nullable=False
    )
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)
    added_at = Column(UTCDateTime, default=utcnow)

    collection = relationship("Collection", back_populates="entries")
    recipe = relationship("Recipe")
