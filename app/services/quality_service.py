"""
Data quality score and business figures for an import.
"""
import logging
from typing import List, Sequence

import pandas as pd

from app.models.import_results import BusinessIntelligence, InventoryRecord
from app.services.config_service import config_service

logger = logging.getLogger("app.quality")


class QualityAssessor:
    """Service for scoring an import and summarising its valid records."""

    def __init__(self, penalty_per_error: float = None, penalty_cap: float = None,
                 new_condition_codes: Sequence[int] = None):
        self.penalty_per_error = (
            penalty_per_error if penalty_per_error is not None
            else config_service.get_float("QUALITY_PENALTY_PER_ERROR", 5)
        )
        self.penalty_cap = (
            penalty_cap if penalty_cap is not None
            else config_service.get_float("QUALITY_PENALTY_CAP", 30)
        )
        self.new_condition_codes = list(
            new_condition_codes if new_condition_codes is not None
            else config_service.get_int_list("BI_NEW_CONDITION_CODES", "1")
        )

    def assess(self, valid_rows: int, total_rows: int, error_count: int) -> float:
        """
        Score between 0 and 100.

        The validity ratio counts fully; every error costs a fixed number of
        points up to the cap.
        """
        if total_rows <= 0:
            return 0.0

        penalty = min(error_count * self.penalty_per_error, self.penalty_cap)
        score = round((valid_rows / total_rows) * 100 - penalty, 2)
        return max(0.0, score)

    def business_intelligence(self, records: List[InventoryRecord]) -> BusinessIntelligence:
        """
        Aggregate figures over the valid records of an import.

        Args:
            records: Valid records in file order, repeats included

        Returns:
            BusinessIntelligence summary
        """
        if not records:
            return BusinessIntelligence()

        df = pd.DataFrame(
            [
                {
                    "price": float(r.price),
                    "brand_and_part_number": r.brand_and_part_number,
                    "title": r.title,
                    "condition": r.condition,
                    "in_stock": r.in_stock,
                }
                for r in records
            ]
        )

        brands = df["brand_and_part_number"].str.extract(r"^\s*([^,\s]+)")[0]
        stock = df["in_stock"].dropna()
        in_stock_count = int(stock.astype(bool).sum())
        new_count = int(df["condition"].isin(self.new_condition_codes).sum())

        summary = BusinessIntelligence(
            total_value=round(float(df["price"].sum()), 2),
            average_price=round(float(df["price"].mean()), 2),
            unique_brands=int(brands.nunique()),
            unique_categories=int(df["title"].dropna().nunique()),
            in_stock_count=in_stock_count,
            out_of_stock_count=int(len(stock)) - in_stock_count,
            new_condition_count=new_count,
            used_condition_count=int(len(df)) - new_count,
        )

        logger.debug(f"Business intelligence computed for {len(df)} records: {summary}")
        return summary
