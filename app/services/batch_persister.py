"""
Writes validated inventory records to the database.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.import_options import ProcessingOptions
from app.models.import_results import InventoryRecord
from app.models.part import InventoryPart
from app.services.config_service import config_service

logger = logging.getLogger("app.batch_persister")


class PersistStrategy(str, Enum):
    ATOMIC = "atomic"
    BEST_EFFORT = "best_effort"


class PersistenceError(Exception):
    """Atomic batch could not be committed and was rolled back."""


@dataclass
class PersistOutcome:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    failed: List[Tuple[str, str]] = field(default_factory=list)  # (article number, error)


class BatchPersister:
    """
    Upserts records keyed by internal article number.

    ATOMIC commits everything in one transaction and raises PersistenceError
    after a rollback. BEST_EFFORT commits every record on its own and carries
    on past failing records.
    """

    def __init__(self, db: Session):
        self.db = db

    def persist(self, records: List[InventoryRecord], options: ProcessingOptions,
                strategy: PersistStrategy) -> PersistOutcome:
        unique_records, skipped = self._collapse_duplicates(records, options)
        outcome = PersistOutcome(skipped=skipped)

        logger.info(
            f"Persisting {len(unique_records)} records ({strategy.value}, "
            f"update_existing={options.update_existing})"
        )

        if strategy is PersistStrategy.ATOMIC:
            self._persist_atomic(unique_records, options, outcome)
        else:
            self._persist_best_effort(unique_records, options, outcome)

        logger.info(
            f"Persisted: {outcome.inserted} inserted, {outcome.updated} updated, "
            f"{outcome.skipped} skipped, {len(outcome.failed)} failed"
        )
        return outcome

    def _collapse_duplicates(self, records: List[InventoryRecord],
                             options: ProcessingOptions) -> Tuple[List[InventoryRecord], int]:
        """
        Keep one record per article number.

        The last occurrence wins unless skip_duplicates is set, in which case
        the first one is kept and the repeats are counted as skipped.
        """
        by_key: Dict[str, InventoryRecord] = {}
        skipped = 0
        for record in records:
            key = record.internal_article_number
            if key in by_key and options.skip_duplicates:
                skipped += 1
                continue
            by_key[key] = record
        return list(by_key.values()), skipped

    def _persist_atomic(self, records: List[InventoryRecord], options: ProcessingOptions,
                        outcome: PersistOutcome) -> None:
        try:
            for index, record in enumerate(records, start=1):
                self._count(outcome, self._upsert(record, options))
                if index % options.batch_size == 0:
                    self.db.flush()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Atomic batch failed, rolled back {len(records)} records: {e}")
            raise PersistenceError(f"Batch rolled back: {e}") from e

    def _persist_best_effort(self, records: List[InventoryRecord], options: ProcessingOptions,
                             outcome: PersistOutcome) -> None:
        for record in records:
            try:
                action = self._upsert(record, options)
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Failed to persist {record.internal_article_number}: {e}")
                outcome.failed.append((record.internal_article_number, str(e)))
                continue
            self._count(outcome, action)

    def _upsert(self, record: InventoryRecord, options: ProcessingOptions) -> str:
        existing = self.db.query(InventoryPart).filter(
            InventoryPart.internal_article_number == record.internal_article_number
        ).first()

        if existing is None:
            self.db.add(InventoryPart(**record.to_columns()))
            return "inserted"

        if not options.update_existing:
            return "skipped"

        for column, value in record.to_columns().items():
            if column == "internal_article_number":
                continue
            setattr(existing, column, value)
        # Re-imported parts come back from the trash
        existing.deleted_at = None
        existing.updated_at = config_service.utcnow()
        return "updated"

    @staticmethod
    def _count(outcome: PersistOutcome, action: str) -> None:
        if action == "inserted":
            outcome.inserted += 1
        elif action == "updated":
            outcome.updated += 1
        else:
            outcome.skipped += 1
