# Overview: Inventory items, stock movements and stock alerts.

from __future__ import annotations

from typing import Iterable

from ..errors import InvalidInputError
from ..models import InventoryItem
from ..models.inventory import ITEM_PRODUCT, ITEM_SERVICE, ITEM_TYPES
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_inventory_item,
    validate_payload,
)
from .concurrency import run_with_retry
from .ledger_types import LineItem, TYPE_SALE
from .repository import Filter, Page, Repository, Search, Sort


STOCK_OUT = "out_of_stock"
STOCK_LOW = "low_stock"
STOCK_OK = "in_stock"

ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"type", "name", "sku", "quantity", "selling_price", "cost_price"},
    required_on_create={"name", "selling_price"},
    choices={"type": ITEM_TYPES},
)


def stock_status(item_type: str, quantity: int | None, threshold: int) -> str | None:
    """
    Stock classification for products; services have none.

    out_of_stock: quantity == 0
    low_stock:    0 < quantity <= threshold
    in_stock:     otherwise
    """
    if item_type != ITEM_PRODUCT or quantity is None:
        return None
    if quantity == 0:
        return STOCK_OUT
    if quantity <= threshold:
        return STOCK_LOW
    return STOCK_OK


def create_item(business_id: int, payload: dict, *, repo: Repository | None = None) -> InventoryItem:
    repo = repo or Repository()
    patch = validate_payload(model=InventoryItem, payload=payload, policy=ITEM_POLICY, partial=False)
    item_type = patch.setdefault("type", ITEM_PRODUCT)
    enforce_rules_inventory_item(patch, item_type)
    if item_type == ITEM_PRODUCT and patch.get("quantity") is None:
        patch["quantity"] = 0

    def _op():
        return repo.insert("inventory_items", {"business_id": business_id, **patch})

    return run_with_retry(_op)


def update_item(item_id: int, payload: dict, *, business_id: int | None = None, repo: Repository | None = None) -> InventoryItem:
    repo = repo or Repository()
    item = repo.require("inventory_items", item_id, business_id=business_id)
    patch = validate_payload(model=InventoryItem, payload=payload, policy=ITEM_POLICY, partial=True)
    new_type = patch.get("type", item.type)
    enforce_rules_inventory_item(patch, new_type)
    if new_type == ITEM_SERVICE:
        patch["quantity"] = None
    elif patch.get("quantity", item.quantity) is None:
        patch["quantity"] = 0

    def _op():
        return repo.update("inventory_items", item_id, patch)

    return run_with_retry(_op)


def delete_item(item_id: int, *, business_id: int | None = None, repo: Repository | None = None) -> None:
    repo = repo or Repository()
    repo.require("inventory_items", item_id, business_id=business_id)
    repo.delete("inventory_items", item_id)


def list_items(
    business_id: int,
    *,
    item_type: str | None = None,
    search: str | None = None,
    sort: Sort | None = None,
    page: Page | None = None,
    repo: Repository | None = None,
) -> tuple[list[InventoryItem], int]:
    repo = repo or Repository()
    filters: list = [Filter("business_id", "eq", business_id)]
    if item_type:
        if item_type not in ITEM_TYPES:
            raise InvalidInputError(f"type must be one of: {', '.join(sorted(ITEM_TYPES))}")
        filters.append(Filter("type", "eq", item_type))
    if search:
        filters.append(Search(("name", "sku"), search))
    rows = repo.fetch("inventory_items", filters, [sort or Sort("name")], page)
    return rows, repo.count("inventory_items", filters)


def stock_alerts(business_id: int, threshold: int, *, repo: Repository | None = None) -> dict:
    """Products that are out of stock or at/below the low-stock threshold."""
    repo = repo or Repository()
    products = repo.fetch(
        "inventory_items",
        [Filter("business_id", "eq", business_id), Filter("type", "eq", ITEM_PRODUCT)],
        [Sort("quantity"), Sort("name")],
    )
    low = [p for p in products if stock_status(p.type, p.quantity, threshold) == STOCK_LOW]
    out = [p for p in products if stock_status(p.type, p.quantity, threshold) == STOCK_OUT]
    return {
        "threshold": threshold,
        "total_products": len(products),
        "low_stock": [p.to_dict() for p in low],
        "out_of_stock": [p.to_dict() for p in out],
    }


# =============================================================================
# STOCK MOVEMENTS
# =============================================================================

def _quantities_by_item(items: Iterable[LineItem]) -> dict[int, int]:
    totals: dict[int, int] = {}
    for item in items:
        if item.inventory_item_id is None or item.item_type == ITEM_SERVICE:
            continue
        totals[item.inventory_item_id] = totals.get(item.inventory_item_id, 0) + item.quantity_selected
    return totals


def stock_deltas(transaction_type: str, items: Iterable[LineItem], *, reverse: bool = False) -> dict[int, int]:
    """Sales take stock out, expenses (purchases) put it back in."""
    sign = -1 if transaction_type == TYPE_SALE else 1
    if reverse:
        sign = -sign
    return {item_id: sign * qty for item_id, qty in _quantities_by_item(items).items()}


def apply_stock_deltas(deltas: dict[int, int], *, repo: Repository) -> None:
    """
    Apply quantity changes to products without committing.

    Raises InvalidInputError listing every product that would go negative;
    nothing is changed in that case.
    """
    insufficient = []
    staged = []
    for item_id, delta in sorted(deltas.items()):
        item = repo.get("inventory_items", item_id)
        if item is None or item.type != ITEM_PRODUCT:
            continue
        new_quantity = (item.quantity or 0) + delta
        if new_quantity < 0:
            insufficient.append({
                "inventory_item_id": item_id,
                "name": item.name,
                "available": item.quantity or 0,
                "requested": -delta,
            })
            continue
        staged.append((item, new_quantity))

    if insufficient:
        raise InvalidInputError("Insufficient stock", details={"items": insufficient})

    for item, new_quantity in staged:
        repo.update("inventory_items", item.id, {"quantity": new_quantity}, commit=False)
