"""
Result snapshots of finished import jobs, kept for a limited time.
"""
import json
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.models.import_models import CsvJobResult
from app.services.config_service import config_service

logger = logging.getLogger("app.job_status")


class JobStatusStore:
    """Key-value store of job id -> result payload with expiry."""

    def __init__(self, ttl_seconds: int = None):
        self.ttl_seconds = ttl_seconds or config_service.get_int("JOB_RESULT_TTL_SECONDS", 86400)

    def put(self, job_id: str, status: str, results: Dict[str, Any], db: Session,
            file_name: Optional[str] = None) -> CsvJobResult:
        """
        Store or replace the snapshot for a job.

        Args:
            job_id: Import job ID
            status: Terminal job status
            results: JSON-serialisable result payload
            db: Database session
            file_name: Original file name

        Returns:
            Stored row
        """
        completed_at = config_service.utcnow()
        entry = db.get(CsvJobResult, job_id)
        if entry is None:
            entry = CsvJobResult(job_id=job_id, status=status, result_json="{}", expires_at=completed_at)
            db.add(entry)

        entry.status = status
        entry.file_name = file_name
        entry.result_json = json.dumps(results, default=str)
        entry.completed_at = completed_at
        entry.expires_at = completed_at + timedelta(seconds=self.ttl_seconds)
        db.commit()

        logger.info(f"Job result stored: {job_id} ({status}), expires at {entry.expires_at.isoformat()}")
        return entry

    def get(self, job_id: str, db: Session) -> Optional[Dict[str, Any]]:
        """
        Look up a snapshot.

        Returns:
            Snapshot dict, or None if the id is unknown or expired
        """
        entry = db.get(CsvJobResult, job_id)
        if entry is None:
            return None

        if entry.expires_at <= config_service.utcnow():
            logger.info(f"Job result expired: {job_id}")
            db.delete(entry)
            db.commit()
            return None

        return {
            "job_id": entry.job_id,
            "status": entry.status,
            "file_name": entry.file_name,
            "results": json.loads(entry.result_json),
            "completed_at": entry.completed_at.isoformat(),
            "expires_at": entry.expires_at.isoformat(),
        }

    def purge_expired(self, db: Session) -> int:
        """Delete every expired snapshot, returning how many were removed."""
        removed = db.query(CsvJobResult).filter(
            CsvJobResult.expires_at <= config_service.utcnow()
        ).delete(synchronize_session=False)
        db.commit()

        if removed:
            logger.info(f"Purged {removed} expired job results")
        return removed
