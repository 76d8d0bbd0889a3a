"""Classification taxonomies (categories, diets, tags) and measurement units."""

from sqlalchemy import Column, Float, ForeignKey, Integer, String, Text, UniqueConstraint

from ..database import UTCDateTime, utcnow
from .base import Base


class Category(Base):
    __tablename__ = "categories"
    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text)
    created_at = Column(UTCDateTime, default=utcnow)


class Diet(Base):
    __tablename__ = "diets"
    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text)
    restrictions = Column(Text)
    created_at = Column(UTCDateTime, default=utcnow)


class Tag(Base):
    __tablename__ = "tags"
    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False, unique=True)


class Unit(Base):
    __tablename__ = "units"
    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False, unique=True)
    abbreviation = Column(String(10))
    kind = Column(String(10), default="other")  # weight | volume | unit | other

    @property
    def label(self) -> str:
        return self.abbreviation or self.name


class UnitConversion(Base):
    __tablename__ = "unit_conversions"
    __table_args__ = (UniqueConstraint("from_unit_id", "to_unit_id", name="uq_unit_conversion"),)
    id = Column(Integer, primary_key=True)
    from_unit_id = Column(Integer, ForeignKey("units.id", ondelete="CASCADE"), nullable=False)
    to_unit_id = Column(Integer, ForeignKey("units.id", ondelete="CASCADE"), nullable=False)
    factor = Column(Float, nullable=False)
