# Overview: Service-layer operations for items; the authoritative record of each SKU and its stock.

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Item
from ..errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from .concurrency import lock_for_update, run_atomic


# current_stock is deliberately absent: stock only moves through the ledger.
ITEM_MUTABLE_FIELDS = {
    "sku",
    "name",
    "description",
    "barcode",
    "unit",
    "min_stock",
    "max_stock",
    "reorder_level",
    "cost_price_cents",
    "selling_price_cents",
    "tax_rate_bps",
    "is_active",
}

# opening_stock is the ledger baseline and may only be set once.
ITEM_CREATE_FIELDS = ITEM_MUTABLE_FIELDS | {"opening_stock"}


def apply_item_patch(item: Item, patch: dict, *, allowed: set[str] = ITEM_MUTABLE_FIELDS) -> None:
    for k, v in patch.items():
        if k not in allowed:
            continue
        setattr(item, k, v)


def _ensure_sku_available(sku: str, *, exclude_id: int | None = None) -> None:
    q = db.session.query(Item.id).filter(Item.sku == sku)
    if exclude_id is not None:
        q = q.filter(Item.id != exclude_id)
    if q.first():
        raise ConflictError(f"SKU already exists: {sku}")


def get_item(item_id: int, *, require_active: bool = False, lock: bool = False) -> Item:
    q = db.session.query(Item).filter(Item.id == item_id)
    if lock:
        q = lock_for_update(q)
    item = q.first()
    if not item:
        raise NotFoundError(f"Item {item_id} not found", details={"item_id": item_id})
    if require_active and not item.is_active:
        raise NotFoundError(f"Item {item_id} is inactive", details={"item_id": item_id})
    return item


def lock_items(item_ids) -> dict[int, Item]:
    """
    Lock item rows in ascending id order.

    Every writer that touches more than one item goes through here so two
    requests can never acquire the same rows in opposite orders.
    """
    ordered = sorted(set(item_ids))
    if not ordered:
        return {}
    rows = (
        lock_for_update(db.session.query(Item).filter(Item.id.in_(ordered)))
        .order_by(Item.id.asc())
        .all()
    )
    return {item.id: item for item in rows}


def adjust_stock(item_id: int, delta: int) -> Item:
    """
    Apply a signed delta to current_stock.

    Internal: the ledger writer is the only caller. Runs inside the caller's
    unit of work and never commits.
    """
    item = get_item(item_id, require_active=True, lock=True)

    new_stock = item.current_stock + delta
    if new_stock < 0:
        raise InsufficientStockError(
            f"Insufficient stock for {item.name}: available {item.current_stock}, "
            f"requested {-delta}",
            details={
                "item_id": item.id,
                "item_name": item.name,
                "available": item.current_stock,
                "requested": -delta,
            },
        )

    item.current_stock = new_stock
    db.session.flush()
    return item


def create_item(*, patch: dict, actor_id: int | None = None) -> Item:
    """
    Create an item from a validated patch.

    opening_stock seeds both the baseline and current_stock; no ledger entry
    is written for it.
    """
    def _op() -> Item:
        sku = patch.get("sku")
        if not sku:
            raise ValidationError("sku is required")
        _ensure_sku_available(sku)

        item = Item(created_by=actor_id)
        apply_item_patch(item, patch, allowed=ITEM_CREATE_FIELDS)
        item.opening_stock = item.opening_stock or 0
        item.current_stock = item.opening_stock

        db.session.add(item)
        db.session.flush()
        return item

    return run_atomic(_op)


def update_item(*, item_id: int, patch: dict) -> Item:
    def _op() -> Item:
        forbidden = sorted(set(patch) - ITEM_MUTABLE_FIELDS)
        if forbidden:
            raise ValidationError(f"Field not allowed: {', '.join(forbidden)}")

        item = get_item(item_id)
        if "sku" in patch and patch["sku"] != item.sku:
            _ensure_sku_available(patch["sku"], exclude_id=item.id)

        apply_item_patch(item, patch)
        db.session.flush()
        return item

    return run_atomic(_op)


def deactivate_item(*, item_id: int) -> Item:
    """Soft-delete; history keeps pointing at the row."""
    def _op() -> Item:
        item = get_item(item_id)
        if item.is_active:
            item.is_active = False
            db.session.flush()
        return item

    return run_atomic(_op)


def list_items(*, search: str | None = None, include_inactive: bool = False, limit: int = 200) -> list[Item]:
    q = db.session.query(Item)
    if not include_inactive:
        q = q.filter(Item.is_active.is_(True))
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(Item.name.ilike(like), Item.sku.ilike(like), Item.barcode.ilike(like)))
    return q.order_by(Item.name.asc(), Item.id.asc()).limit(limit).all()


def list_low_stock_items() -> list[dict]:
    """Active items at or below their reorder level, most urgent first."""
    rows = (
        db.session.query(Item)
        .filter(Item.is_active.is_(True))
        .filter(Item.current_stock <= Item.reorder_level)
        .order_by(Item.current_stock.asc(), Item.name.asc())
        .all()
    )
    return [item_summary(item) for item in rows]


def item_summary(item: Item) -> dict:
    data = item.to_dict()
    data["needs_reorder"] = item.current_stock <= item.reorder_level
    data["reorder_quantity"] = max(item.max_stock - item.current_stock, 0) if item.max_stock else 0
    return data
