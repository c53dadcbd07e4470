"""
Inventory part routes: listing, lookup, manual updates, soft delete and restore.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.database.session import get_session
from app.models.part import InventoryPart
from app.services.inventory_service import InventoryRuleError, InventoryService, PartNotFoundError

router = APIRouter(prefix="/parts", tags=["parts"])
logger = logging.getLogger("app.inventory")

inventory_service = InventoryService()


class PartUpdate(BaseModel):
    internal_article_number: Optional[str] = None
    title: Optional[str] = None
    brand_and_part_number: Optional[str] = None
    price: Optional[Decimal] = None
    condition: Optional[int] = None
    deposit: Optional[int] = None
    shipping_class: Optional[int] = None
    delivery_days: Optional[int] = None


def part_to_dict(part: InventoryPart) -> Dict[str, Any]:
    return {
        "internal_article_number": part.internal_article_number,
        "title": part.title,
        "brand_and_part_number": part.brand_and_part_number,
        "price": str(part.price),
        "condition": part.condition,
        "deposit": part.deposit,
        "shipping_class": part.shipping_class,
        "delivery_days": part.delivery_days,
        "created_at": part.created_at.isoformat() if part.created_at else None,
        "updated_at": part.updated_at.isoformat() if part.updated_at else None,
        "deleted_at": part.deleted_at.isoformat() if part.deleted_at else None,
    }


def _get_active_part(internal_article_number: str, db: Session) -> InventoryPart:
    part = inventory_service.get_by_number(internal_article_number, db)
    if part is None:
        raise HTTPException(status_code=404, detail="Part not found")
    return part


@router.get("")
async def list_parts(
    search: Optional[str] = None,
    brand: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    sort_by: str = "created_at",
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=15, ge=1, le=100),
    db: Session = Depends(get_session),
) -> Dict[str, Any]:
    """
    Paginated listing of active parts.

    Returns:
        Parts of the requested page with paging information
    """
    listing = inventory_service.list_parts(
        db,
        search=search,
        brand=brand,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        per_page=per_page,
    )
    listing["items"] = [part_to_dict(part) for part in listing["items"]]
    return listing


@router.get("/stats")
async def part_stats(db: Session = Depends(get_session)) -> Dict[str, Any]:
    return inventory_service.stats(db)


@router.get("/deleted")
async def deleted_parts(db: Session = Depends(get_session)) -> Dict[str, Any]:
    parts = inventory_service.deleted_parts(db)
    return {"items": [part_to_dict(part) for part in parts], "total": len(parts)}


@router.get("/{internal_article_number}")
async def get_part(internal_article_number: str, db: Session = Depends(get_session)) -> Dict[str, Any]:
    return part_to_dict(_get_active_part(internal_article_number, db))


@router.patch("/{internal_article_number}")
async def update_part(
    internal_article_number: str,
    update: PartUpdate,
    db: Session = Depends(get_session),
) -> Dict[str, Any]:
    """
    Apply a manual change to a part.

    Args:
        internal_article_number: Article number of the part
        update: Fields to change
        db: Database session

    Returns:
        Updated part and the changed fields
    """
    part = _get_active_part(internal_article_number, db)

    try:
        outcome = inventory_service.update_part(part, update.model_dump(exclude_unset=True, exclude_none=True), db)
    except InventoryRuleError as e:
        logger.warning(f"Rejected update of part {internal_article_number}: {e}")
        raise HTTPException(status_code=422, detail=str(e))

    changes = {
        field: {"old": str(change["old"]), "new": str(change["new"])}
        for field, change in outcome["changes"].items()
    }
    return {
        "message": "No changes detected" if outcome["unchanged"] else "Part updated",
        "changes": changes,
        "part": part_to_dict(part),
    }


@router.delete("/{internal_article_number}")
async def delete_part(internal_article_number: str, db: Session = Depends(get_session)) -> Dict[str, Any]:
    part = _get_active_part(internal_article_number, db)
    inventory_service.soft_delete(part, db)
    return {"message": "Part deleted", "internal_article_number": internal_article_number}


@router.post("/{internal_article_number}/restore")
async def restore_part(internal_article_number: str, db: Session = Depends(get_session)) -> Dict[str, Any]:
    try:
        part = inventory_service.restore(internal_article_number, db)
    except PartNotFoundError:
        raise HTTPException(status_code=404, detail="Part not found")
    return {"message": "Part restored", "part": part_to_dict(part)}
