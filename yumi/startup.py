"""
startup.py — Database Startup Migrations (Idempotent)

Tables are defined in the ORM models and created via
Base.metadata.create_all(checkfirst=True). This file also seeds the
reference data every deployment needs: recipe categories, diets,
measurement units with their conversion factors, and profile colors.

Called by: main.py lifespan
Depends on: database.py (engine, SessionLocal), models
"""

import logging
import os

from sqlalchemy.orm import Session

from .database import SessionLocal, engine
from .models import Base, Category, Color, Diet, Unit, UnitConversion

log = logging.getLogger(__name__)


CATEGORIES = [
    ("Desayuno", "Recetas para empezar el día"),
    ("Almuerzo", "Platos principales de mediodía"),
    ("Cena", "Opciones ligeras y completas para la noche"),
    ("Postres", "Dulces, tartas y helados"),
    ("Bebidas", "Batidos, zumos e infusiones"),
    ("Snacks", "Tentempiés entre comidas"),
]

DIETS = [
    ("Vegetariana", "Sin carne ni pescado", "carne, pescado"),
    ("Vegana", "Sin ingredientes de origen animal", "carne, pescado, huevo, lácteos, miel"),
    ("Sin gluten", "Apta para celíacos", "trigo, cebada, centeno"),
    ("Keto", "Muy baja en carbohidratos", "azúcar, cereales, legumbres"),
    ("Paleo", "Alimentos no procesados", "cereales, legumbres, lácteos, procesados"),
    ("Sin lácteos", "Sin leche ni derivados", "leche, queso, yogur, mantequilla"),
]

# (name, abbreviation, kind)
UNITS = [
    ("Gramo", "g", "weight"),
    ("Kilogramo", "kg", "weight"),
    ("Mililitro", "ml", "volume"),
    ("Litro", "l", "volume"),
    ("Cucharadita", "cdta", "volume"),
    ("Cucharada", "cda", "volume"),
    ("Taza", "taza", "volume"),
    ("Unidad", "u", "unit"),
    ("Pizca", "pizca", "other"),
    ("Al gusto", None, "other"),
]

# (from abbreviation, to abbreviation, factor)
CONVERSIONS = [
    ("g", "kg", 0.001),
    ("kg", "g", 1000),
    ("ml", "l", 0.001),
    ("l", "ml", 1000),
    ("cdta", "cda", 0.333),
    ("cda", "cdta", 3),
    ("cda", "taza", 0.0625),
    ("taza", "cda", 16),
    ("ml", "cdta", 0.2),
    ("cdta", "ml", 5),
]

COLORS = [
    ("Tomate", "#E4572E"),
    ("Aguacate", "#76B041"),
    ("Berenjena", "#5B3758"),
    ("Limón", "#F2C14E"),
    ("Arándano", "#3C6E9F"),
]


def run_startup_migrations() -> None:
    """Execute all idempotent startup operations. Safe to call on every app boot."""
    if os.environ.get("TESTING"):
        log.info("TESTING mode — skipping startup migrations")
        return

    Base.metadata.create_all(bind=engine, checkfirst=True)
    log.info("ORM schema sync complete (create_all checkfirst=True)")

    db = SessionLocal()
    try:
        created = seed_reference_data(db)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
    log.info("Startup migrations complete (%d reference rows created)", created)


def seed_reference_data(db: Session) -> int:
    """Insert missing reference rows; returns how many were created. Caller commits."""
    created = 0

    for name, description in CATEGORIES:
        if not db.query(Category).filter_by(name=name).first():
            db.add(Category(name=name, description=description))
            created += 1

    for name, description, restrictions in DIETS:
        if not db.query(Diet).filter_by(name=name).first():
            db.add(Diet(name=name, description=description, restrictions=restrictions))
            created += 1

    for name, abbreviation, kind in UNITS:
        if not db.query(Unit).filter_by(name=name).first():
            db.add(Unit(name=name, abbreviation=abbreviation, kind=kind))
            created += 1
    db.flush()

    units = {u.abbreviation: u.id for u in db.query(Unit).filter(Unit.abbreviation.isnot(None))}
    for source, target, factor in CONVERSIONS:
        if source not in units or target not in units:
            log.warning("Skipping conversion %s -> %s: unit missing", source, target)
            continue
        exists = (
            db.query(UnitConversion)
            .filter_by(from_unit_id=units[source], to_unit_id=units[target])
            .first()
        )
        if not exists:
            db.add(UnitConversion(from_unit_id=units[source], to_unit_id=units[target], factor=factor))
            created += 1

    for name, code in COLORS:
        if not db.query(Color).filter_by(name=name).first():
            db.add(Color(name=name, code=code))
            created += 1

    db.flush()
    return created
