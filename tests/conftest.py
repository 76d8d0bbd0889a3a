"""
conftest.py — Shared Test Fixtures for Yumi

Provides an in-memory SQLite database, a FastAPI TestClient with auth
overrides, and factory fixtures for the core models (users, taxonomy,
units, recipes).

Business Rules:
- All tests run against an isolated in-memory DB (no real data at risk)
- Auth is overridden so tests never call the identity provider
- login(user) switches the acting user; login(None) makes requests anonymous
- Each test function gets a fresh schema

Called by: all test files via pytest autodiscovery
Depends on: yumi.models (Base), yumi.database (get_db), yumi.dependencies
"""

import os

os.environ["TESTING"] = "1"  # Must be set before importing yumi modules
os.environ["RATE_LIMIT_ENABLED"] = "false"

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from yumi.models import (
    Base,
    Category,
    Diet,
    Ingredient,
    Recipe,
    Tag,
    Unit,
    UnitConversion,
    User,
)

# ── In-memory SQLite engine ──────────────────────────────────────────

TEST_DB_URL = "sqlite://"

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(bind=engine, autoflush=False)


@event.listens_for(engine, "connect")
def _enable_fk(dbapi_conn, _):
    """SQLite ignores FKs by default — turn them on."""
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def db_session():
    """Create all tables, yield a session, then tear down."""
    Base.metadata.create_all(bind=engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _make_user(db: Session, external_id: str, email: str, name: str, is_admin: bool = False) -> User:
    user = User(
        external_id=external_id,
        email=email,
        name=name,
        is_admin=is_admin,
        created_at=datetime.now(timezone.utc),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def test_user(db_session: Session) -> User:
    """The default signed-in user."""
    return _make_user(db_session, "user_test_001", "cook@yumi.test", "Test Cook")


@pytest.fixture()
def other_user(db_session: Session) -> User:
    """A second regular user (for ownership checks)."""
    return _make_user(db_session, "user_test_002", "other@yumi.test", "Other Cook")


@pytest.fixture()
def admin_user(db_session: Session) -> User:
    """A user allowed to manage taxonomy."""
    return _make_user(db_session, "user_admin_001", "admin@yumi.test", "Admin", is_admin=True)


@pytest.fixture()
def test_category(db_session: Session) -> Category:
    category = Category(name="Cena", description="Platos de noche")
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture()
def test_diet(db_session: Session) -> Diet:
    diet = Diet(name="Vegana", description="Sin productos animales", restrictions="carne, huevo")
    db_session.add(diet)
    db_session.commit()
    db_session.refresh(diet)
    return diet


@pytest.fixture()
def units(db_session: Session) -> dict:
    """Gram, kilogram and cup, with a single stored g -> kg factor."""
    gram = Unit(name="Gramo", abbreviation="g", kind="weight")
    kilo = Unit(name="Kilogramo", abbreviation="kg", kind="weight")
    cup = Unit(name="Taza", abbreviation="taza", kind="volume")
    db_session.add_all([gram, kilo, cup])
    db_session.flush()
    db_session.add(UnitConversion(from_unit_id=gram.id, to_unit_id=kilo.id, factor=0.001))
    db_session.commit()
    return {"g": gram, "kg": kilo, "taza": cup}


@pytest.fixture()
def test_recipe(db_session: Session, test_user: User, test_category: Category, units: dict) -> Recipe:
    """A recipe by test_user: 5 servings, rice and chicken, one optional garnish."""
    recipe = Recipe(
        author_id=test_user.id,
        title="Arroz con pollo",
        description="Clásico de domingo",
        instructions="Sofreír el pollo, añadir el arroz y cocer 20 minutos.",
        prep_minutes=15,
        cook_minutes=30,
        servings=5,
        difficulty="easy",
        calories_per_serving=450,
        category_id=test_category.id,
    )
    db_session.add(recipe)
    db_session.flush()
    db_session.add_all([
        Ingredient(recipe_id=recipe.id, name="Arroz", quantity=200, unit_id=units["g"].id,
                   calories_per_unit=1.3),
        Ingredient(recipe_id=recipe.id, name="Pollo", quantity=100, unit_id=units["g"].id,
                   calories_per_unit=1.65),
        Ingredient(recipe_id=recipe.id, name="Perejil", quantity=5, unit_id=units["g"].id,
                   is_optional=True),
    ])
    db_session.commit()
    db_session.refresh(recipe)
    return recipe


@pytest.fixture()
def make_recipe(db_session: Session, test_user: User):
    """Factory for extra recipes; defaults to test_user as author."""

    def _make(title: str, author: User | None = None, **fields) -> Recipe:
        fields.setdefault("instructions", "Mezclar y servir.")
        recipe = Recipe(author_id=(author or test_user).id, title=title, **fields)
        db_session.add(recipe)
        db_session.commit()
        db_session.refresh(recipe)
        return recipe

    return _make


@pytest.fixture()
def make_tag(db_session: Session):
    def _make(name: str) -> Tag:
        tag = Tag(name=name)
        db_session.add(tag)
        db_session.commit()
        db_session.refresh(tag)
        return tag

    return _make


@pytest.fixture()
def login():
    """Switch the acting user for subsequent requests (None = anonymous)."""
    from yumi.dependencies import get_optional_user, get_subject, require_subject, require_user
    from yumi.main import app

    def _login(user: User | None) -> None:
        if user is None:
            for dep in (require_user, get_optional_user, require_subject):
                app.dependency_overrides.pop(dep, None)
            app.dependency_overrides[get_subject] = lambda: None
            return
        app.dependency_overrides.pop(get_subject, None)
        app.dependency_overrides[require_user] = lambda: user
        app.dependency_overrides[get_optional_user] = lambda: user
        app.dependency_overrides[require_subject] = lambda: user.external_id

    return _login


@pytest.fixture()
def client(db_session: Session, test_user: User, login) -> TestClient:
    """FastAPI TestClient with auth overridden to return test_user.

    Overrides get_db to use the test session and the auth dependencies
    to skip the identity provider entirely.
    """
    from yumi.database import get_db
    from yumi.main import app

    def _override_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_db
    login(test_user)

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture()
def anon_client(client: TestClient, login) -> TestClient:
    """Same client, but requests carry no identity."""
    login(None)
    return client
