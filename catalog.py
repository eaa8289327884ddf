"""Categories and menu items: POS reads and admin CRUD."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from errors import Conflict, NotFound, ValidationError
from models import Category, MenuItem, TransactionItem
from order_builder import MAX_AMOUNT, to_money

logger = logging.getLogger(__name__)

DEFAULT_ICON = "Utensils"

# fields frozen once a transaction line points at the item
FROZEN_FIELDS = ("name", "price", "category_id")


# -----------------------
# Reads
# -----------------------
def list_active_categories(s: Session) -> List[Category]:
    return list(s.scalars(
        select(Category).where(Category.is_active.is_(True)).order_by(Category.name)
    ))


def list_all_categories(s: Session) -> List[Category]:
    return list(s.scalars(select(Category).order_by(Category.name)))


def list_available_menu_items(s: Session, category_id: Optional[int] = None) -> List[MenuItem]:
    stmt = (
        select(MenuItem)
        .join(Category, MenuItem.category_id == Category.id)
        .options(selectinload(MenuItem.category))
        .where(MenuItem.is_available.is_(True), Category.is_active.is_(True))
        .order_by(MenuItem.name)
    )
    if category_id is not None:
        stmt = stmt.where(MenuItem.category_id == category_id)
    return list(s.scalars(stmt))


def list_all_menu_items(s: Session) -> List[MenuItem]:
    return list(s.scalars(
        select(MenuItem).options(selectinload(MenuItem.category)).order_by(MenuItem.name)
    ))


def get_category(s: Session, category_id: int) -> Category:
    cat = s.get(Category, category_id)
    if not cat:
        raise NotFound("Category not found.")
    return cat


def get_menu_item(s: Session, item_id: int) -> MenuItem:
    item = s.get(MenuItem, item_id)
    if not item:
        raise NotFound("Menu item not found.")
    return item


def get_available_menu_item(s: Session, item_id: int) -> MenuItem:
    item = s.get(MenuItem, item_id)
    if not item or not item.is_available or not item.category.is_active:
        raise NotFound(f"Menu item {item_id} is not available.")
    return item


def ensure_menu_items_exist(s: Session, item_ids: Iterable[int]) -> None:
    wanted = set(item_ids)
    found = set(s.scalars(select(MenuItem.id).where(MenuItem.id.in_(wanted))))
    missing = sorted(wanted - found)
    if missing:
        raise NotFound(f"Menu items no longer exist: {', '.join(map(str, missing))}")


def is_menu_item_referenced(s: Session, item_id: int) -> bool:
    return bool(s.scalar(select(exists().where(TransactionItem.menu_item_id == item_id))))


# -----------------------
# Input parsing
# -----------------------
def _parse_price(value) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(value)
    v = str(value if value is not None else "").strip().replace(",", "")
    price = Decimal(v)
    if not price.is_finite() or price < 0 or price > MAX_AMOUNT:
        raise ValueError(value)
    return to_money(price)


def _parse_flag(value, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def parse_category(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    errors = {}
    out = {}

    if not partial or "name" in data:
        name = str(data.get("name") or "").strip()
        if not name:
            errors["name"] = "Category name is required."
        elif len(name) > 100:
            errors["name"] = "Category name is too long."
        out["name"] = name
    if not partial or "description" in data:
        out["description"] = (str(data.get("description") or "").strip() or None)
    if not partial or "icon" in data:
        out["icon"] = str(data.get("icon") or "").strip() or DEFAULT_ICON
    if not partial or "is_active" in data:
        out["is_active"] = _parse_flag(data.get("is_active"), True)

    if errors:
        raise ValidationError(errors=errors)
    return out


def parse_menu_item(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    errors = {}
    out = {}

    if not partial or "name" in data:
        name = str(data.get("name") or "").strip()
        if not name:
            errors["name"] = "Name is required."
        elif len(name) > 200:
            errors["name"] = "Name is too long."
        out["name"] = name
    if not partial or "price" in data:
        try:
            out["price"] = _parse_price(data.get("price"))
        except (ValueError, InvalidOperation):
            errors["price"] = "Price must be a non-negative number like 25000."
    if not partial or "category_id" in data:
        try:
            out["category_id"] = int(data.get("category_id"))
        except (TypeError, ValueError):
            errors["category_id"] = "Category is required."
    if not partial or "description" in data:
        out["description"] = (str(data.get("description") or "").strip() or None)
    if not partial or "image_url" in data:
        out["image_url"] = (str(data.get("image_url") or "").strip() or None)
    if not partial or "is_available" in data:
        out["is_available"] = _parse_flag(data.get("is_available"), True)

    if errors:
        raise ValidationError(errors=errors)
    return out


def _commit_unique(s: Session, what: str, name: str) -> None:
    try:
        s.commit()
    except IntegrityError:
        s.rollback()
        raise Conflict(f"A {what} named '{name}' already exists.")


# -----------------------
# Categories (admin)
# -----------------------
def create_category(s: Session, data: Dict[str, Any]) -> Category:
    fields = parse_category(data)
    cat = Category(**fields)
    s.add(cat)
    _commit_unique(s, "category", fields["name"])
    logger.info("category created: %s", cat.name)
    return cat


def update_category(s: Session, category_id: int, data: Dict[str, Any]) -> Category:
    cat = get_category(s, category_id)
    fields = parse_category(data, partial=True)
    for k, v in fields.items():
        setattr(cat, k, v)
    _commit_unique(s, "category", fields.get("name", cat.name))
    return cat


def delete_category(s: Session, category_id: int) -> None:
    """
    Delete a category and its menu items.

    Refused with Conflict when any of its items appears on a transaction;
    deactivate the category instead in that case.
    """
    cat = get_category(s, category_id)
    item_ids = [mi.id for mi in cat.menu_items]
    if item_ids:
        used = s.scalar(select(exists().where(TransactionItem.menu_item_id.in_(item_ids))))
        if used:
            raise Conflict(
                f"Category '{cat.name}' has menu items that appear on transactions; "
                "deactivate it instead."
            )
    s.delete(cat)
    s.commit()
    logger.info("category %s deleted with %d menu items", category_id, len(item_ids))


# -----------------------
# Menu items (admin)
# -----------------------
def create_menu_item(s: Session, data: Dict[str, Any]) -> MenuItem:
    fields = parse_menu_item(data)
    get_category(s, fields["category_id"])
    item = MenuItem(**fields)
    s.add(item)
    _commit_unique(s, "menu item", fields["name"])
    logger.info("menu item created: %s @ %s", item.name, item.price)
    return item


def update_menu_item(s: Session, item_id: int, data: Dict[str, Any]) -> MenuItem:
    item = get_menu_item(s, item_id)
    fields = parse_menu_item(data, partial=True)
    if "category_id" in fields:
        get_category(s, fields["category_id"])

    changed = [k for k in FROZEN_FIELDS if k in fields and fields[k] != getattr(item, k)]
    if changed and is_menu_item_referenced(s, item_id):
        raise Conflict(
            f"'{item.name}' appears on recorded transactions; "
            f"{', '.join(changed)} can no longer change.",
            {k: "frozen" for k in changed},
        )

    for k, v in fields.items():
        setattr(item, k, v)
    _commit_unique(s, "menu item", fields.get("name", item.name))
    return item


def delete_menu_item(s: Session, item_id: int) -> None:
    item = get_menu_item(s, item_id)
    if is_menu_item_referenced(s, item_id):
        raise Conflict(f"'{item.name}' appears on recorded transactions; mark it unavailable instead.")
    s.delete(item)
    s.commit()
    logger.info("menu item %s deleted", item_id)
