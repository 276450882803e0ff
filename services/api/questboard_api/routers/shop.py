from __future__ import annotations

from fastapi import APIRouter

from questboard_engine.shop import ITEMS

router = APIRouter(prefix="/api/shop", tags=["shop"])


@router.get("/items")
def shop_items() -> dict[str, object]:
    grouped: dict[str, list[dict[str, object]]] = {}
    for item in ITEMS.values():
        grouped.setdefault(item.category, []).append(item.to_wire())
    return {"success": True, "items": grouped}
