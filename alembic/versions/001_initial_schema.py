"""initial schema - users, recipes, social features and meal planning

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

For EXISTING databases: run `alembic stamp 001_initial`.
For NEW databases: run `alembic upgrade head` (creates all tables from models).
"""
from typing import Sequence, Union

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables from the SQLAlchemy models (checkfirst, idempotent)."""
    from yumi.database import engine
    from yumi.models import Base

    Base.metadata.create_all(bind=engine, checkfirst=True)


def downgrade() -> None:
    """Drop all tables. Destructive: dev/test environments only."""
    from yumi.database import engine
    from yumi.models import Base

    Base.metadata.drop_all(bind=engine)
