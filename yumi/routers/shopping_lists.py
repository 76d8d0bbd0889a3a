"""Shopping lists — empty or generated from a meal plan, owner-only."""

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_user
from ..models import ShoppingList, ShoppingListItem, User
from ..schemas.planning import ShoppingItemIn, ShoppingItemUpdate, ShoppingListIn, ShoppingListUpdate
from ..services import shopping_service
from ..services.recipe_service import iso
from .meal_plans import owned_plan

router = APIRouter(tags=["shopping-lists"])


def item_to_dict(i: ShoppingListItem) -> dict:
    return {
        "id": i.id,
        "name": i.name,
        "quantity": i.quantity,
        "unit": i.unit,
        "purchased": bool(i.purchased),
    }


def list_to_dict(db: Session, s: ShoppingList, with_items: bool = True) -> dict:
    data = {
        "id": s.id,
        "name": s.name,
        "meal_plan_id": s.meal_plan_id,
        "completed": bool(s.completed),
        "created_at": iso(s.created_at),
    }
    if with_items:
        items = (
            db.query(ShoppingListItem)
            .filter_by(shopping_list_id=s.id)
            .order_by(ShoppingListItem.id)
            .all()
        )
        data["items"] = [item_to_dict(i) for i in items]
    return data


def _owned_list(db: Session, list_id: int, user: User) -> ShoppingList:
    shopping_list = db.get(ShoppingList, list_id)
    if not shopping_list:
        raise HTTPException(404, "Lista de compras no encontrada")
    if shopping_list.user_id != user.id:
        raise HTTPException(403, "No autorizado para acceder a esta lista")
    return shopping_list


def _item_of(db: Session, shopping_list: ShoppingList, item_id: int) -> ShoppingListItem:
    item = db.get(ShoppingListItem, item_id)
    if not item or item.shopping_list_id != shopping_list.id:
        raise HTTPException(404, "Artículo no encontrado")
    return item


@router.get("/api/shopping-lists")
def list_shopping_lists(user: User = Depends(require_user), db: Session = Depends(get_db)):
    rows = (
        db.query(ShoppingList)
        .filter_by(user_id=user.id)
        .order_by(ShoppingList.created_at.desc(), ShoppingList.id.desc())
        .all()
    )
    return [list_to_dict(db, s, with_items=False) for s in rows]


@router.post("/api/shopping-lists", status_code=201)
def create_shopping_list(
    body: ShoppingListIn,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Create a list; with meal_plan_id it is filled from the plan's recipes."""
    plan = owned_plan(db, body.meal_plan_id, user) if body.meal_plan_id is not None else None
    name = body.name or (f"Lista: {plan.name}" if plan else "Lista de compras")
    shopping_list = ShoppingList(user_id=user.id, name=name, meal_plan_id=plan.id if plan else None)
    db.add(shopping_list)
    db.flush()
    if plan:
        shopping_service.build_items(db, plan, shopping_list.id)
    db.commit()
    logger.info("Shopping list #{} created by user #{}", shopping_list.id, user.id)
    return list_to_dict(db, shopping_list)


@router.get("/api/shopping-lists/{list_id}")
def get_shopping_list(list_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    return list_to_dict(db, _owned_list(db, list_id, user))


@router.patch("/api/shopping-lists/{list_id}")
def update_shopping_list(
    list_id: int,
    body: ShoppingListUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    shopping_list = _owned_list(db, list_id, user)
    for field, value in body.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(shopping_list, field, value)
    db.commit()
    return list_to_dict(db, shopping_list)


@router.delete("/api/shopping-lists/{list_id}")
def delete_shopping_list(list_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    db.delete(_owned_list(db, list_id, user))
    db.commit()
    return {"ok": True}


@router.post("/api/shopping-lists/{list_id}/items", status_code=201)
def add_item(
    list_id: int,
    body: ShoppingItemIn,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    shopping_list = _owned_list(db, list_id, user)
    item = ShoppingListItem(shopping_list_id=shopping_list.id, **body.model_dump())
    db.add(item)
    db.commit()
    db.refresh(item)
    return item_to_dict(item)


@router.patch("/api/shopping-lists/{list_id}/items/{item_id}")
def update_item(
    list_id: int,
    item_id: int,
    body: ShoppingItemUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    item = _item_of(db, _owned_list(db, list_id, user), item_id)
    changes = body.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if field in ("name", "purchased") and value is None:
            continue
        setattr(item, field, value)
    db.commit()
    db.refresh(item)
    return item_to_dict(item)


@router.delete("/api/shopping-lists/{list_id}/items/{item_id}")
def delete_item(
    list_id: int,
    item_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    item = _item_of(db, _owned_list(db, list_id, user), item_id)
    db.delete(item)
    db.commit()
    return {"ok": True}
