"""
test_taxonomy.py — Tests for routers/taxonomy.py

Categories, diets, tags, colors and units: public reads, admin-only
writes, uniqueness, delete guards and unit conversion.

Called by: pytest
Depends on: routers/taxonomy.py, services/nutrition_service.py
"""

import pytest

from yumi.models import Category, Color, UserDiet


@pytest.fixture()
def as_admin(client, admin_user, login):
    login(admin_user)
    return client


# ── Categories ───────────────────────────────────────────────────────


def test_list_categories_public(anon_client, db_session, test_category):
    db_session.add(Category(name="Almuerzo"))
    db_session.commit()
    body = anon_client.get("/api/categories").json()
    assert [c["name"] for c in body["data"]] == ["Almuerzo", "Cena"]
    assert body["meta"]["limit"] == 20


def test_list_categories_name_filter(anon_client, test_category):
    body = anon_client.get("/api/categories", params={"name": "cen"}).json()
    assert body["meta"]["total"] == 1


def test_create_category_admin(as_admin):
    resp = as_admin.post("/api/categories", json={"name": " Postres ", "description": "Dulces"})
    assert resp.status_code == 201
    assert resp.json()["name"] == "Postres"


def test_create_category_non_admin(client):
    resp = client.post("/api/categories", json={"name": "Postres"})
    assert resp.status_code == 403
    assert resp.json()["error"] == "Se requieren permisos de administrador"


def test_create_category_duplicate_case_insensitive(as_admin, test_category):
    resp = as_admin.post("/api/categories", json={"name": "CENA"})
    assert resp.status_code == 409


def test_get_category_with_count(anon_client, test_recipe):
    resp = anon_client.get(f"/api/categories/{test_recipe.category_id}")
    assert resp.json()["recipe_count"] == 1


def test_update_category(as_admin, test_category):
    resp = as_admin.put(f"/api/categories/{test_category.id}", json={"name": "Cenas"})
    assert resp.status_code == 200
    assert resp.json()["name"] == "Cenas"
    assert resp.json()["description"] == "Platos de noche"


def test_update_category_clears_description_when_sent(as_admin, test_category):
    resp = as_admin.put(f"/api/categories/{test_category.id}", json={"name": "Cena", "description": None})
    assert resp.status_code == 200
    assert resp.json()["description"] is None


def test_update_category_name_clash(as_admin, db_session, test_category):
    db_session.add(Category(name="Almuerzo"))
    db_session.commit()
    resp = as_admin.put(f"/api/categories/{test_category.id}", json={"name": "almuerzo"})
    assert resp.status_code == 409


def test_delete_category_in_use(as_admin, test_recipe):
    resp = as_admin.delete(f"/api/categories/{test_recipe.category_id}")
    assert resp.status_code == 409


def test_delete_unused_category(as_admin, test_category):
    assert as_admin.delete(f"/api/categories/{test_category.id}").status_code == 200
    assert as_admin.get(f"/api/categories/{test_category.id}").status_code == 404


def test_category_recipes(anon_client, test_recipe):
    body = anon_client.get(f"/api/categories/{test_recipe.category_id}/recipes").json()
    assert body["category"]["name"] == "Cena"
    assert [r["title"] for r in body["data"]] == ["Arroz con pollo"]
    assert body["data"][0]["average_rating"] == 0


# ── Diets ────────────────────────────────────────────────────────────


def test_create_diet_admin(as_admin):
    resp = as_admin.post("/api/diets", json={"name": "Keto", "restrictions": "azúcar"})
    assert resp.status_code == 201
    assert resp.json()["restrictions"] == "azúcar"


def test_update_diet_keeps_omitted_fields(as_admin, test_diet):
    resp = as_admin.put(f"/api/diets/{test_diet.id}", json={"name": "Vegana estricta"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "Vegana estricta"
    assert data["description"] == "Sin productos animales"
    assert data["restrictions"] == "carne, huevo"


def test_update_diet_restrictions_only_changes_those(as_admin, test_diet):
    resp = as_admin.put(f"/api/diets/{test_diet.id}", json={"name": "Vegana", "restrictions": "carne, huevo, miel"})
    assert resp.status_code == 200
    assert resp.json()["restrictions"] == "carne, huevo, miel"
    assert resp.json()["description"] == "Sin productos animales"


def test_get_diet_counts(anon_client, db_session, test_diet, test_user, make_recipe):
    make_recipe("Curry", diet_id=test_diet.id)
    db_session.add(UserDiet(user_id=test_user.id, diet_id=test_diet.id))
    db_session.commit()
    data = anon_client.get(f"/api/diets/{test_diet.id}").json()
    assert data["recipe_count"] == 1
    assert data["user_count"] == 1


def test_delete_diet_followed(as_admin, db_session, test_diet, test_user):
    db_session.add(UserDiet(user_id=test_user.id, diet_id=test_diet.id))
    db_session.commit()
    resp = as_admin.delete(f"/api/diets/{test_diet.id}")
    assert resp.status_code == 409
    assert resp.json()["error"] == "No se puede eliminar: hay usuarios siguiendo esta dieta"


def test_diet_users_requires_login(anon_client, test_diet):
    assert anon_client.get(f"/api/diets/{test_diet.id}/users").status_code == 401


def test_diet_users(client, db_session, test_diet, other_user):
    db_session.add(UserDiet(user_id=other_user.id, diet_id=test_diet.id))
    db_session.commit()
    body = client.get(f"/api/diets/{test_diet.id}/users").json()
    assert [u["name"] for u in body["data"]] == ["Other Cook"]
    assert body["diet"]["name"] == "Vegana"


def test_diet_recipes_not_found(anon_client):
    assert anon_client.get("/api/diets/999/recipes").status_code == 404


# ── Tags & colors ────────────────────────────────────────────────────


def test_create_tag_lowercased(as_admin):
    resp = as_admin.post("/api/tags", json={"name": "Rápido"})
    assert resp.status_code == 201
    assert resp.json()["name"] == "rápido"
    assert as_admin.post("/api/tags", json={"name": "rápido"}).status_code == 409


def test_list_tags(anon_client, make_tag):
    make_tag("verano")
    make_tag("barbacoa")
    assert [t["name"] for t in anon_client.get("/api/tags").json()] == ["barbacoa", "verano"]


def test_list_colors(anon_client, db_session):
    db_session.add(Color(name="Tomate", code="#E4572E"))
    db_session.commit()
    assert anon_client.get("/api/colors").json() == [{"id": 1, "name": "Tomate", "code": "#E4572E"}]


# ── Units ────────────────────────────────────────────────────────────


def test_list_units(anon_client, units):
    assert [u["abbreviation"] for u in anon_client.get("/api/units").json()] == ["g", "kg", "taza"]


def test_convert_units(anon_client, units):
    resp = anon_client.post("/api/units/convert", json={
        "quantity": 1500, "from_unit_id": units["g"].id, "to_unit_id": units["kg"].id,
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["result"] == pytest.approx(1.5)
    assert data["from_unit"] == "g"


def test_convert_units_reverse_factor(anon_client, units):
    resp = anon_client.post("/api/units/convert", json={
        "quantity": 2, "from_unit_id": units["kg"].id, "to_unit_id": units["g"].id,
    })
    assert resp.json()["result"] == pytest.approx(2000)


def test_convert_units_no_path(anon_client, units):
    resp = anon_client.post("/api/units/convert", json={
        "quantity": 1, "from_unit_id": units["g"].id, "to_unit_id": units["taza"].id,
    })
    assert resp.status_code == 404
    assert resp.json()["error"] == "No hay conversión de g a taza"


def test_convert_units_unknown_unit(anon_client, units):
    resp = anon_client.post("/api/units/convert", json={
        "quantity": 1, "from_unit_id": units["g"].id, "to_unit_id": 999,
    })
    assert resp.status_code == 404
