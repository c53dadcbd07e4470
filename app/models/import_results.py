"""
Value types produced while importing a CSV file.
"""
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union


@dataclass(frozen=True)
class InventoryRecord:
    """Validated, typed form of one CSV row."""

    internal_article_number: str
    price: Decimal
    condition: int
    brand_and_part_number: str = ""
    title: Optional[str] = None
    deposit: int = 0
    shipping_class: int = 1
    delivery_days: int = 1
    in_stock: Optional[bool] = None  # only used for reporting, not persisted

    def to_columns(self) -> Dict[str, Any]:
        """Column values written to the inventory table."""
        return {
            "internal_article_number": self.internal_article_number,
            "title": self.title,
            "brand_and_part_number": self.brand_and_part_number,
            "price": self.price,
            "condition": self.condition,
            "deposit": self.deposit,
            "shipping_class": self.shipping_class,
            "delivery_days": self.delivery_days,
        }


@dataclass(frozen=True)
class RowOk:
    record: InventoryRecord
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RowErr:
    messages: List[str]


RowResult = Union[RowOk, RowErr]


class ErrorType:
    VALIDATION = "validation_error"
    STRUCTURE = "structure_error"
    PERSISTENCE = "persistence_error"
    SYSTEM = "system_error"


@dataclass
class ImportErrorEntry:
    """One reported problem; row is None for file-level errors."""

    error_type: str
    messages: List[str]
    row: Optional[int] = None
    raw_data: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row": self.row,
            "type": self.error_type,
            "messages": list(self.messages),
            "raw_data": list(self.raw_data),
        }


@dataclass
class FileInfo:
    name: str
    size: int
    mime_type: Optional[str]
    uploaded_at: Optional[str]


@dataclass
class ProcessingStats:
    total_rows: int = 0
    valid_rows: int = 0
    invalid_rows: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    duplicates: int = 0
    errors: List[ImportErrorEntry] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)


@dataclass
class Performance:
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration_seconds: float = 0.0
    memory_peak_bytes: int = 0


@dataclass
class ValidationSummary:
    structure_valid: bool = False
    headers_valid: bool = False
    encoding_valid: bool = True
    data_format_valid: bool = False
    required_fields_present: bool = False
    validation_errors: int = 0
    data_quality_score: float = 0.0


@dataclass
class BusinessIntelligence:
    total_value: float = 0.0
    average_price: float = 0.0
    unique_brands: int = 0
    unique_categories: int = 0
    in_stock_count: int = 0
    out_of_stock_count: int = 0
    new_condition_count: int = 0
    used_condition_count: int = 0


@dataclass
class ProcessingResult:
    """Everything known about one pipeline run; stored as the job result."""

    file_info: FileInfo
    success: bool = False
    message: str = ""
    error_type: Optional[str] = None
    processing_stats: ProcessingStats = field(default_factory=ProcessingStats)
    performance: Performance = field(default_factory=Performance)
    validation_summary: ValidationSummary = field(default_factory=ValidationSummary)
    business_intelligence: BusinessIntelligence = field(default_factory=BusinessIntelligence)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["processing_stats"]["errors"] = [e.to_dict() for e in self.processing_stats.errors]
        return data
