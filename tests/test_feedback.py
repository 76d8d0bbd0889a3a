"""
test_feedback.py — Tests for routers/feedback.py

Comments, ratings with aggregate stats, attempts, tips and favorites,
including the author vs. recipe-author moderation rules.

Called by: pytest
Depends on: routers/feedback.py, tests/conftest.py (client, login, test_recipe)
"""

from yumi.models import Comment, Favorite, RecipeTip


# ── Comments ─────────────────────────────────────────────────────────


def test_comment_lifecycle(client, test_recipe):
    base = f"/api/recipes/{test_recipe.id}/comments"
    resp = client.post(base, json={"content": "  ¡Riquísimo!  "})
    assert resp.status_code == 201
    comment = resp.json()
    assert comment["content"] == "¡Riquísimo!"
    assert comment["user"]["name"] == "Test Cook"
    assert comment["updated_at"] is None

    resp = client.patch(f"{base}/{comment['id']}", json={"content": "Muy bueno"})
    assert resp.status_code == 200
    assert resp.json()["content"] == "Muy bueno"
    assert resp.json()["updated_at"]

    listing = client.get(base).json()
    assert listing["meta"]["total"] == 1

    assert client.delete(f"{base}/{comment['id']}").json() == {"ok": True}
    assert client.get(f"{base}/{comment['id']}").status_code == 404


def test_comment_blank_content(client, test_recipe):
    resp = client.post(f"/api/recipes/{test_recipe.id}/comments", json={"content": "   "})
    assert resp.status_code == 400
    assert resp.json()["error"] == "El contenido es obligatorio"


def test_comment_on_missing_recipe(client):
    assert client.post("/api/recipes/999/comments", json={"content": "Hola"}).status_code == 404


def test_only_author_edits_comment(client, db_session, test_recipe, other_user):
    comment = Comment(recipe_id=test_recipe.id, user_id=other_user.id, content="Le falta sal")
    db_session.add(comment)
    db_session.commit()
    resp = client.patch(f"/api/recipes/{test_recipe.id}/comments/{comment.id}", json={"content": "x"})
    assert resp.status_code == 403


def test_recipe_author_may_delete_any_comment(client, db_session, test_recipe, other_user):
    comment = Comment(recipe_id=test_recipe.id, user_id=other_user.id, content="Spam")
    db_session.add(comment)
    db_session.commit()
    resp = client.delete(f"/api/recipes/{test_recipe.id}/comments/{comment.id}")
    assert resp.status_code == 200


def test_third_party_cannot_delete_comment(client, db_session, test_recipe, other_user, admin_user, login):
    comment = Comment(recipe_id=test_recipe.id, user_id=other_user.id, content="Hola")
    db_session.add(comment)
    db_session.commit()
    login(admin_user)
    resp = client.delete(f"/api/recipes/{test_recipe.id}/comments/{comment.id}")
    assert resp.status_code == 403


def test_comment_of_other_recipe_not_found(client, db_session, test_recipe, make_recipe):
    other = make_recipe("Otra")
    comment = Comment(recipe_id=other.id, content="Aquí no")
    db_session.add(comment)
    db_session.commit()
    assert client.get(f"/api/recipes/{test_recipe.id}/comments/{comment.id}").status_code == 404


# ── Ratings ──────────────────────────────────────────────────────────


def test_rate_create_then_update(client, test_recipe):
    url = f"/api/recipes/{test_recipe.id}/ratings"
    resp = client.post(url, json={"score": 4})
    assert resp.status_code == 201
    assert resp.json()["stats"]["average"] == 4

    resp = client.post(url, json={"score": 2})
    assert resp.status_code == 200
    assert resp.json()["rating"]["score"] == 2
    assert resp.json()["stats"]["total"] == 1


def test_rating_stats_across_users(client, test_recipe, other_user, login):
    url = f"/api/recipes/{test_recipe.id}/ratings"
    client.post(url, json={"score": 5})
    login(other_user)
    client.post(url, json={"score": 2})

    body = client.get(url).json()
    assert len(body["data"]) == 2
    stats = body["stats"]
    assert stats["average"] == 3.5
    assert stats["max"] == 5 and stats["min"] == 2
    assert stats["distribution"] == {"1": 0, "2": 1, "3": 0, "4": 0, "5": 1}


def test_rating_out_of_range(client, test_recipe):
    resp = client.post(f"/api/recipes/{test_recipe.id}/ratings", json={"score": 6})
    assert resp.status_code == 400
    assert resp.json()["error"] == "La puntuación debe estar entre 1 y 5"


def test_delete_rating(client, test_recipe):
    url = f"/api/recipes/{test_recipe.id}/ratings"
    assert client.delete(url).status_code == 404
    client.post(url, json={"score": 3})
    resp = client.delete(url)
    assert resp.status_code == 200
    assert resp.json()["stats"]["total"] == 0
    assert resp.json()["stats"]["average"] == 0


def test_rating_shows_in_recipe_detail(client, test_recipe):
    client.post(f"/api/recipes/{test_recipe.id}/ratings", json={"score": 4})
    assert client.get(f"/api/recipes/{test_recipe.id}").json()["rating"] == {"average": 4, "total": 1}


# ── Attempts ─────────────────────────────────────────────────────────


def test_attempt_lifecycle(client, test_recipe):
    base = f"/api/recipes/{test_recipe.id}/attempts"
    resp = client.post(base, json={"image_url": "https://img/mio.jpg", "comment": " Quedó bien "})
    assert resp.status_code == 201
    attempt = resp.json()
    assert attempt["comment"] == "Quedó bien"

    resp = client.patch(f"{base}/{attempt['id']}", json={"comment": None})
    assert resp.status_code == 200
    assert resp.json()["comment"] is None
    assert resp.json()["image_url"] == "https://img/mio.jpg"

    assert client.get(base).json()["meta"]["total"] == 1
    assert client.delete(f"{base}/{attempt['id']}").status_code == 200
    assert client.get(f"{base}/{attempt['id']}").status_code == 404


def test_attempt_requires_image(client, test_recipe):
    resp = client.post(f"/api/recipes/{test_recipe.id}/attempts", json={"image_url": ""})
    assert resp.status_code == 400
    assert resp.json()["error"] == "La imagen es obligatoria"


def test_attempt_edit_by_other_forbidden(client, test_recipe, other_user, login):
    attempt = client.post(
        f"/api/recipes/{test_recipe.id}/attempts", json={"image_url": "https://img/a.jpg"}
    ).json()
    login(other_user)
    resp = client.patch(f"/api/recipes/{test_recipe.id}/attempts/{attempt['id']}", json={"comment": "x"})
    assert resp.status_code == 403


# ── Tips ─────────────────────────────────────────────────────────────


def test_tips_create_and_list(client, test_recipe, login):
    resp = client.post(f"/api/recipes/{test_recipe.id}/tips", json={"content": "Usa caldo", "kind": "alternative"})
    assert resp.status_code == 201
    login(None)
    tips = client.get(f"/api/recipes/{test_recipe.id}/tips").json()
    assert [(t["content"], t["kind"]) for t in tips] == [("Usa caldo", "alternative")]


def test_tip_bad_kind(client, test_recipe):
    resp = client.post(f"/api/recipes/{test_recipe.id}/tips", json={"content": "x", "kind": "rumor"})
    assert resp.status_code == 400


def test_tip_delete_rules(client, db_session, test_recipe, other_user, admin_user, login):
    tip = RecipeTip(recipe_id=test_recipe.id, user_id=other_user.id, content="Más ajo")
    db_session.add(tip)
    db_session.commit()
    url = f"/api/recipes/{test_recipe.id}/tips/{tip.id}"

    login(admin_user)
    assert client.delete(url).status_code == 403
    login(other_user)
    assert client.delete(url).status_code == 200
    assert client.delete(url).status_code == 404


# ── Favorites ────────────────────────────────────────────────────────


def test_favorite_add_duplicate_remove(client, db_session, test_recipe, test_user):
    url = f"/api/recipes/{test_recipe.id}/favorite"
    resp = client.post(url)
    assert resp.status_code == 201
    assert resp.json() == {"ok": True, "recipe_id": test_recipe.id}
    assert client.post(url).status_code == 409
    assert db_session.query(Favorite).filter_by(user_id=test_user.id).count() == 1

    assert client.delete(url).status_code == 200
    resp = client.delete(url)
    assert resp.status_code == 404
    assert resp.json()["error"] == "La receta no está en favoritos"


def test_favorite_requires_login(anon_client, test_recipe):
    assert anon_client.post(f"/api/recipes/{test_recipe.id}/favorite").status_code == 401
