"""
Inventory part service: lookups, guarded updates, soft delete and restore.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.models.part import InventoryPart
from app.services.config_service import config_service

logger = logging.getLogger("app.inventory")

UPDATABLE_FIELDS = (
    "title",
    "brand_and_part_number",
    "price",
    "condition",
    "deposit",
    "shipping_class",
    "delivery_days",
)

SORTABLE_FIELDS = ("created_at", "updated_at", "price", "internal_article_number", "condition")


class InventoryRuleError(Exception):
    """Requested change violates an inventory business rule."""


class PartNotFoundError(Exception):
    pass


class InventoryService:
    """Service for reading and maintaining inventory parts."""

    def get_by_number(self, internal_article_number: str, db: Session,
                      include_deleted: bool = False) -> Optional[InventoryPart]:
        query = db.query(InventoryPart).filter(
            InventoryPart.internal_article_number == internal_article_number
        )
        if not include_deleted:
            query = query.filter(InventoryPart.deleted_at.is_(None))
        return query.first()

    def list_parts(self, db: Session, search: str = None, brand: str = None,
                   min_price: Decimal = None, max_price: Decimal = None,
                   sort_by: str = "created_at", sort_order: str = "desc",
                   page: int = 1, per_page: int = 15) -> Dict[str, Any]:
        """
        Paginated listing of active parts.

        Args:
            db: Database session
            search: Substring of brand/part number or article number
            brand: Prefix of brand/part number
            min_price: Lower price bound, used together with max_price
            max_price: Upper price bound
            sort_by: Column to sort by
            sort_order: "asc" or "desc"
            page: 1-based page number
            per_page: Page size

        Returns:
            Dictionary with items and paging information
        """
        query = db.query(InventoryPart).filter(InventoryPart.deleted_at.is_(None))

        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    InventoryPart.brand_and_part_number.like(pattern),
                    InventoryPart.internal_article_number.like(pattern),
                )
            )
        if brand:
            query = query.filter(InventoryPart.brand_and_part_number.like(f"{brand}%"))
        if min_price is not None and max_price is not None:
            query = query.filter(InventoryPart.price.between(min_price, max_price))

        if sort_by not in SORTABLE_FIELDS:
            sort_by = "created_at"
        column = getattr(InventoryPart, sort_by)
        query = query.order_by(column.asc() if sort_order == "asc" else column.desc())

        total = query.count()
        page = max(page, 1)
        items = query.offset((page - 1) * per_page).limit(per_page).all()

        return {"items": items, "total": total, "page": page, "per_page": per_page}

    def update_part(self, part: InventoryPart, data: Dict[str, Any], db: Session) -> Dict[str, Any]:
        """
        Apply a manual change to a part.

        Returns:
            Dictionary with the changed fields (old/new) and an unchanged flag

        Raises:
            InventoryRuleError: the change breaks a business rule
        """
        self._validate_business_rules(part, data)

        changes = {}
        for field in UPDATABLE_FIELDS:
            if field in data and getattr(part, field) != data[field]:
                changes[field] = {"old": getattr(part, field), "new": data[field]}

        if not changes:
            return {"changes": {}, "unchanged": True}

        for field, change in changes.items():
            setattr(part, field, change["new"])
        part.updated_at = config_service.utcnow()
        db.commit()
        db.refresh(part)

        logger.info(f"Inventory part updated: {part.internal_article_number} fields={sorted(changes)}")
        return {"changes": changes, "unchanged": False}

    def _validate_business_rules(self, part: InventoryPart, data: Dict[str, Any]) -> None:
        number = data.get("internal_article_number")
        if number is not None and number != part.internal_article_number:
            raise InventoryRuleError("Internal article number cannot be changed once created")

        if "price" in data and Decimal(str(data["price"])) < 0:
            raise InventoryRuleError("Price cannot be negative")
        if "condition" in data and not 0 <= data["condition"] <= 5:
            raise InventoryRuleError("Condition must be between 0 and 5")
        if "deposit" in data and data["deposit"] < 0:
            raise InventoryRuleError("Deposit cannot be negative")
        if "shipping_class" in data and not 1 <= data["shipping_class"] <= 5:
            raise InventoryRuleError("Shipping class must be between 1 and 5")
        if "delivery_days" in data and data["delivery_days"] < 1:
            raise InventoryRuleError("Delivery time must be at least 1 day")

    def soft_delete(self, part: InventoryPart, db: Session) -> None:
        part.deleted_at = config_service.utcnow()
        db.commit()
        logger.info(f"Inventory part deleted: {part.internal_article_number}")

    def restore(self, internal_article_number: str, db: Session) -> InventoryPart:
        part = self.get_by_number(internal_article_number, db, include_deleted=True)
        if part is None:
            raise PartNotFoundError(internal_article_number)

        part.deleted_at = None
        db.commit()
        db.refresh(part)
        logger.info(f"Inventory part restored: {internal_article_number}")
        return part

    def stats(self, db: Session) -> Dict[str, Any]:
        active = db.query(InventoryPart).filter(InventoryPart.deleted_at.is_(None))
        total_value = active.with_entities(func.sum(InventoryPart.price)).scalar()
        average_price = active.with_entities(func.avg(InventoryPart.price)).scalar()

        return {
            "total_parts": active.count(),
            "total_brands": active.with_entities(
                func.count(func.distinct(InventoryPart.brand_and_part_number))
            ).scalar(),
            "average_price": round(float(average_price), 2) if average_price is not None else 0.0,
            "total_value": round(float(total_value), 2) if total_value is not None else 0.0,
            "deleted_parts": db.query(InventoryPart).filter(InventoryPart.deleted_at.isnot(None)).count(),
        }

    def deleted_parts(self, db: Session) -> List[InventoryPart]:
        return db.query(InventoryPart).filter(InventoryPart.deleted_at.isnot(None)).all()
