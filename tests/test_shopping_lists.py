"""
test_shopping_lists.py — Tests for routers/shopping_lists.py and services/shopping_service.py

Lists generated from a meal plan (scaled, merged, optional ingredients
skipped), manual items and owner-only access.

Called by: pytest
Depends on: routers/shopping_lists.py, services/shopping_service.py
"""

from datetime import date

import pytest

from yumi.models import Ingredient, MealPlan, MealPlanEntry, ShoppingList
from yumi.services.shopping_service import aggregate_plan_ingredients


@pytest.fixture()
def plan(db_session, test_user, test_recipe):
    """A plan with test_recipe twice: 10 and 5 servings (recipe serves 5)."""
    p = MealPlan(user_id=test_user.id, name="Semana 1",
                 start_date=date(2026, 3, 2), end_date=date(2026, 3, 8))
    db_session.add(p)
    db_session.flush()
    db_session.add_all([
        MealPlanEntry(plan_id=p.id, recipe_id=test_recipe.id, date=date(2026, 3, 2),
                      meal_type="lunch", servings=10),
        MealPlanEntry(plan_id=p.id, recipe_id=test_recipe.id, date=date(2026, 3, 3),
                      meal_type="lunch", servings=5),
    ])
    db_session.commit()
    return p


# ── Aggregation ──────────────────────────────────────────────────────


def test_aggregate_scales_and_merges(db_session, plan):
    lines = aggregate_plan_ingredients(db_session, plan)
    assert lines == [
        {"name": "Arroz", "quantity": 600, "unit": "g"},
        {"name": "Pollo", "quantity": 300, "unit": "g"},
    ]


def test_aggregate_merges_case_insensitive_names(db_session, plan, make_recipe, units):
    other = make_recipe("Pollo asado", servings=1)
    db_session.add(Ingredient(recipe_id=other.id, name="pollo", quantity=50, unit_id=units["g"].id))
    db_session.add(MealPlanEntry(plan_id=plan.id, recipe_id=other.id, date=date(2026, 3, 4),
                                 meal_type="dinner", servings=2))
    db_session.commit()
    lines = {line["name"].lower(): line["quantity"] for line in aggregate_plan_ingredients(db_session, plan)}
    assert lines["pollo"] == 400


def test_aggregate_keeps_unquantified_lines(db_session, plan, make_recipe):
    other = make_recipe("Ensalada", servings=2)
    db_session.add(Ingredient(recipe_id=other.id, name="Sal"))
    db_session.add(MealPlanEntry(plan_id=plan.id, recipe_id=other.id, date=date(2026, 3, 4),
                                 meal_type="dinner"))
    db_session.commit()
    lines = aggregate_plan_ingredients(db_session, plan)
    assert {"name": "Sal", "quantity": None, "unit": None} in lines


# ── Lists ────────────────────────────────────────────────────────────


def test_create_list_from_plan(client, plan):
    resp = client.post("/api/shopping-lists", json={"meal_plan_id": plan.id})
    assert resp.status_code == 201
    data = resp.json()
    assert data["name"] == "Lista: Semana 1"
    assert data["meal_plan_id"] == plan.id
    assert [(i["name"], i["quantity"], i["unit"]) for i in data["items"]] == [
        ("Arroz", 600, "g"),
        ("Pollo", 300, "g"),
    ]
    assert all(i["purchased"] is False for i in data["items"])


def test_create_empty_list(client):
    resp = client.post("/api/shopping-lists", json={})
    assert resp.status_code == 201
    assert resp.json()["name"] == "Lista de compras"
    assert resp.json()["items"] == []


def test_create_list_from_foreign_plan(client, plan, other_user, login):
    login(other_user)
    assert client.post("/api/shopping-lists", json={"meal_plan_id": plan.id}).status_code == 403


def test_create_list_unknown_plan(client):
    assert client.post("/api/shopping-lists", json={"meal_plan_id": 999}).status_code == 404


def test_list_and_get(client, db_session, test_user, other_user):
    db_session.add_all([
        ShoppingList(user_id=test_user.id, name="Mía"),
        ShoppingList(user_id=other_user.id, name="Ajena"),
    ])
    db_session.commit()
    rows = client.get("/api/shopping-lists").json()
    assert [r["name"] for r in rows] == ["Mía"]
    assert "items" not in rows[0]
    assert client.get(f"/api/shopping-lists/{rows[0]['id']}").json()["items"] == []


def test_get_foreign_list(client, db_session, other_user):
    s = ShoppingList(user_id=other_user.id, name="Ajena")
    db_session.add(s)
    db_session.commit()
    resp = client.get(f"/api/shopping-lists/{s.id}")
    assert resp.status_code == 403
    assert resp.json()["error"] == "No autorizado para acceder a esta lista"


def test_update_and_delete_list(client, db_session):
    list_id = client.post("/api/shopping-lists", json={"name": "Súper"}).json()["id"]
    resp = client.patch(f"/api/shopping-lists/{list_id}", json={"completed": True, "name": None})
    assert resp.json()["completed"] is True
    assert resp.json()["name"] == "Súper"
    assert client.delete(f"/api/shopping-lists/{list_id}").json() == {"ok": True}
    assert client.get(f"/api/shopping-lists/{list_id}").status_code == 404


# ── Items ────────────────────────────────────────────────────────────


def test_item_lifecycle(client):
    list_id = client.post("/api/shopping-lists", json={}).json()["id"]
    base = f"/api/shopping-lists/{list_id}/items"

    resp = client.post(base, json={"name": " Leche ", "quantity": 2, "unit": "l"})
    assert resp.status_code == 201
    item = resp.json()
    assert item["name"] == "Leche"

    resp = client.patch(f"{base}/{item['id']}", json={"purchased": True, "name": None})
    assert resp.json()["purchased"] is True
    assert resp.json()["name"] == "Leche"

    assert client.delete(f"{base}/{item['id']}").status_code == 200
    resp = client.delete(f"{base}/{item['id']}")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Artículo no encontrado"


def test_item_requires_name(client):
    list_id = client.post("/api/shopping-lists", json={}).json()["id"]
    resp = client.post(f"/api/shopping-lists/{list_id}/items", json={"name": ""})
    assert resp.status_code == 400
    assert resp.json()["error"] == "El nombre es obligatorio"


def test_item_of_other_list_not_found(client):
    first = client.post("/api/shopping-lists", json={}).json()["id"]
    second = client.post("/api/shopping-lists", json={}).json()["id"]
    item = client.post(f"/api/shopping-lists/{first}/items", json={"name": "Pan"}).json()
    resp = client.patch(f"/api/shopping-lists/{second}/items/{item['id']}", json={"purchased": True})
    assert resp.status_code == 404
