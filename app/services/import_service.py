"""
Import service for processing inventory CSV files.
"""
import csv
import logging
import mimetypes
import os
import time
import uuid
from pathlib import Path
from typing import List, Optional

import psutil
from celery.exceptions import SoftTimeLimitExceeded
from sqlalchemy.orm import Session

from app.models.import_options import ProcessingOptions
from app.models.import_results import (
    ErrorType,
    FileInfo,
    ImportErrorEntry,
    InventoryRecord,
    ProcessingResult,
    ProcessingStats,
    RowOk,
)
from app.services.batch_persister import BatchPersister, PersistenceError, PersistStrategy
from app.services.config_service import config_service
from app.services.csv_row_validator import RowValidator
from app.services.csv_structure_validator import StructureValidator
from app.services.quality_service import QualityAssessor

logger = logging.getLogger("app.import")

MEMORY_SAMPLE_EVERY = 1000


class _MemoryTracker:
    """Keeps the highest resident set size seen during a run."""

    def __init__(self):
        self._process = psutil.Process(os.getpid())
        self.peak = 0
        self.sample()

    def sample(self) -> None:
        self.peak = max(self.peak, self._process.memory_info().rss)


class CsvImportService:
    """Service for running the CSV import pipeline on one file."""

    def __init__(self, structure_validator: StructureValidator = None, row_validator: RowValidator = None,
                 quality_assessor: QualityAssessor = None):
        self.delimiter = config_service.get_setting("CSV_DELIMITER", ";")
        self.structure_validator = structure_validator or StructureValidator(delimiter=self.delimiter)
        self.row_validator = row_validator or RowValidator()
        self.quality_assessor = quality_assessor or QualityAssessor()
        self.error_tolerance = config_service.get_float("IMPORT_ERROR_TOLERANCE", 0.1)
        self.atomic_max_rows = config_service.get_int("IMPORT_ATOMIC_MAX_ROWS", 5000)
        self.upload_dir = Path(config_service.get_setting("UPLOAD_DIR", "uploads"))

    def run(self, file_path: str, options: ProcessingOptions, db: Session,
            file_info: Optional[FileInfo] = None) -> ProcessingResult:
        """
        Validate, persist and assess one CSV file.

        Structural problems, rolled back batches and unexpected exceptions all
        end up in the returned result. Only the worker's soft time limit
        propagates.

        Args:
            file_path: Path to the uploaded CSV file
            options: Processing options
            db: Database session
            file_info: Upload metadata, derived from the file when omitted

        Returns:
            ProcessingResult for the file
        """
        started = time.monotonic()
        memory = _MemoryTracker()
        result = ProcessingResult(file_info=file_info or self.describe_file(file_path))
        result.performance.start_time = config_service.now().isoformat()

        try:
            logger.info(f"Starting CSV import for {result.file_info.name} ({options.model_dump()})")
            self._execute(file_path, options, db, result, memory)
        except SoftTimeLimitExceeded:
            # Job budget exhausted, the worker fails the job
            raise
        except Exception as e:
            logger.error(f"CSV import failed for {result.file_info.name}: {e}", exc_info=True)
            result.success = False
            result.error_type = ErrorType.SYSTEM
            result.message = f"CSV processing failed: {e}"
            result.processing_stats.errors.append(
                ImportErrorEntry(error_type=ErrorType.SYSTEM, messages=[f"{type(e).__name__}: {e}"])
            )
        finally:
            memory.sample()
            result.performance.end_time = config_service.now().isoformat()
            result.performance.duration_seconds = round(time.monotonic() - started, 2)
            result.performance.memory_peak_bytes = memory.peak

        result.recommendations = self._recommendations(result)
        logger.info(
            f"CSV import finished for {result.file_info.name}: success={result.success} "
            f"stats=total:{result.processing_stats.total_rows} valid:{result.processing_stats.valid_rows} "
            f"inserted:{result.processing_stats.inserted} updated:{result.processing_stats.updated} "
            f"errors:{result.processing_stats.error_count}"
        )
        return result

    def _execute(self, file_path: str, options: ProcessingOptions, db: Session,
                 result: ProcessingResult, memory: _MemoryTracker) -> None:
        stats = result.processing_stats
        summary = result.validation_summary

        with open(file_path, "r", encoding="utf-8-sig", newline="") as handle:
            check = self.structure_validator.validate(handle)
            summary.structure_valid = check.valid
            summary.headers_valid = check.headers_valid
            summary.required_fields_present = check.headers_valid
            summary.encoding_valid = check.encoding_valid

            if not check.valid:
                result.success = False
                result.error_type = ErrorType.STRUCTURE
                result.message = "CSV structure validation failed"
                stats.errors.append(ImportErrorEntry(error_type=ErrorType.STRUCTURE, messages=check.errors))
                return

            records = self._scan_rows(handle, check.headers, options, stats, memory)

        memory.sample()
        self._persist(records, options, db, result)

        stats.duplicates = self.count_duplicates(records)

        summary.data_format_valid = stats.invalid_rows == 0
        summary.validation_errors = stats.invalid_rows
        summary.data_quality_score = self.quality_assessor.assess(
            stats.valid_rows, stats.total_rows, stats.error_count
        )
        result.business_intelligence = self.quality_assessor.business_intelligence(records)

        result.success = result.error_type is None and self.is_acceptable(stats.error_count, stats.valid_rows)
        result.message = self._message(result)

    def _scan_rows(self, handle, headers: List[str], options: ProcessingOptions,
                   stats: ProcessingStats, memory: _MemoryTracker) -> List[InventoryRecord]:
        reader = csv.reader(handle, delimiter=self.delimiter)
        next(reader, None)  # header

        records: List[InventoryRecord] = []
        for raw_row in reader:
            if not raw_row:
                continue

            stats.total_rows += 1
            row_number = reader.line_num
            outcome = self.row_validator.validate(headers, raw_row, row_number, options)

            if isinstance(outcome, RowOk):
                records.append(outcome.record)
                stats.valid_rows += 1
                for warning in outcome.warnings:
                    logger.debug(f"Row {row_number}: {warning}")
            else:
                stats.invalid_rows += 1
                stats.errors.append(
                    ImportErrorEntry(
                        error_type=ErrorType.VALIDATION,
                        messages=outcome.messages,
                        row=row_number,
                        raw_data=raw_row,
                    )
                )

            if stats.total_rows % MEMORY_SAMPLE_EVERY == 0:
                memory.sample()

        logger.info(f"Scanned {stats.total_rows} rows: {stats.valid_rows} valid, {stats.invalid_rows} invalid")
        return records

    def _persist(self, records: List[InventoryRecord], options: ProcessingOptions, db: Session,
                 result: ProcessingResult) -> None:
        if not records:
            logger.info("No valid records to persist")
            return

        stats = result.processing_stats
        strategy = self.choose_strategy(len(records), options)

        try:
            outcome = BatchPersister(db).persist(records, options, strategy)
        except PersistenceError as e:
            result.error_type = ErrorType.PERSISTENCE
            stats.errors.append(ImportErrorEntry(error_type=ErrorType.PERSISTENCE, messages=[str(e)]))
            return

        stats.inserted = outcome.inserted
        stats.updated = outcome.updated
        stats.skipped = outcome.skipped
        for article_number, message in outcome.failed:
            stats.errors.append(
                ImportErrorEntry(
                    error_type=ErrorType.PERSISTENCE,
                    messages=[f"Could not save article {article_number}: {message}"],
                )
            )

    def choose_strategy(self, record_count: int, options: ProcessingOptions) -> PersistStrategy:
        """
        Atomic for regular uploads, best-effort for large files, skip_errors
        mode or when rollback is switched off.
        """
        if (
            options.rollback_on_error
            and options.validation_mode != "skip_errors"
            and 0 < record_count <= self.atomic_max_rows
        ):
            return PersistStrategy.ATOMIC
        return PersistStrategy.BEST_EFFORT

    def is_acceptable(self, error_count: int, valid_rows: int) -> bool:
        return error_count == 0 or error_count <= self.error_tolerance * valid_rows

    @staticmethod
    def count_duplicates(records: List[InventoryRecord]) -> int:
        keys = [r.internal_article_number for r in records]
        return len(keys) - len(set(keys))

    def _message(self, result: ProcessingResult) -> str:
        if result.error_type == ErrorType.PERSISTENCE:
            return "CSV data could not be saved, all changes were rolled back"

        error_count = result.processing_stats.error_count
        if not result.success:
            return f"CSV processing completed with {error_count} error(s) that need attention"

        quality = result.validation_summary.data_quality_score
        if quality >= 95:
            return f"CSV file processed successfully with excellent data quality ({quality}%)"
        if quality >= 80:
            return f"CSV file processed successfully with good data quality ({quality}%)"
        return f"CSV file processed with some data quality issues ({quality}%)"

    def _recommendations(self, result: ProcessingResult) -> List[str]:
        stats = result.processing_stats
        recommendations = []

        if result.error_type == ErrorType.STRUCTURE:
            recommendations.append(
                "Check that the file is semicolon separated and contains the columns "
                "'interne Artikelnummer', 'Preis' and 'Zustand'."
            )
            return recommendations

        if result.validation_summary.structure_valid and stats.total_rows == 0:
            recommendations.append("The file contains no data rows.")
        elif result.validation_summary.data_quality_score < 80:
            recommendations.append("Data quality is below 80%. Review your CSV file for formatting issues.")

        if stats.invalid_rows > 0:
            recommendations.append("Some rows failed to process. Check the error details for specific issues.")

        if stats.duplicates > 0:
            recommendations.append(
                "Duplicate article numbers found in the file. Only one row per article number is kept."
            )

        if result.performance.duration_seconds > 30:
            recommendations.append("Processing took longer than 30 seconds. Consider splitting large files.")

        return recommendations

    def describe_file(self, file_path: str, name: str = None, mime_type: str = None,
                      uploaded_at: str = None) -> FileInfo:
        path = Path(file_path)
        return FileInfo(
            name=name or path.name,
            size=path.stat().st_size if path.exists() else 0,
            mime_type=mime_type or mimetypes.guess_type(path.name)[0] or "text/csv",
            uploaded_at=uploaded_at,
        )

    def save_uploaded_file(self, file_content: bytes, filename: str) -> str:
        """
        Save uploaded file to the temporary upload directory.

        Args:
            file_content: File content as bytes
            filename: Original filename

        Returns:
            Path to saved file
        """
        self.upload_dir.mkdir(parents=True, exist_ok=True)

        timestamp = config_service.utcnow().strftime("%Y%m%d_%H%M%S")
        safe_filename = "".join(c for c in filename if c.isalnum() or c in "._-")
        unique_filename = f"{timestamp}_{uuid.uuid4().hex[:8]}_{safe_filename}"

        file_path = self.upload_dir / unique_filename

        with open(file_path, "wb") as f:
            f.write(file_content)

        logger.info(f"File saved: {file_path}")
        return str(file_path)

    def cleanup_file(self, file_path: str) -> bool:
        """
        Delete an uploaded file.

        Args:
            file_path: Path to file to delete

        Returns:
            True when the file is gone afterwards
        """
        try:
            if os.path.exists(file_path):
                os.remove(file_path)
                logger.info(f"File cleaned up: {file_path}")
            return True
        except OSError as e:
            logger.error(f"Failed to cleanup file {file_path}: {e}")
            return False
