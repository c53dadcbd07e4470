"""
Inventory part model.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlmodel import SQLModel, Field

from app.services.config_service import config_service


class InventoryPart(SQLModel, table=True):
    """Spare part listed in the inventory, keyed by its internal article number."""

    __tablename__ = "inventory_parts"

    id: Optional[int] = Field(default=None, primary_key=True)
    internal_article_number: str = Field(max_length=100, unique=True, index=True)
    title: Optional[str] = Field(default=None, max_length=255)
    brand_and_part_number: str = Field(default="", max_length=255, index=True)
    price: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2, index=True)
    condition: int = Field(index=True)
    deposit: int = Field(default=0)
    shipping_class: int = Field(default=1)
    delivery_days: int = Field(default=1)
    # Naive UTC, see ConfigService.utcnow
    created_at: datetime = Field(default_factory=config_service.utcnow, sa_column=Column(DateTime, nullable=False))
    updated_at: datetime = Field(default_factory=config_service.utcnow, sa_column=Column(DateTime, nullable=False))
    deleted_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime, nullable=True, index=True)
    )  # soft-delete marker

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
