"""
Celery Beat tasks for periodic housekeeping.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError

from app.database.session import get_db_session
from app.services.config_service import config_service
from app.services.job_status_store import JobStatusStore

from worker.celery_app import celery_app

logger = logging.getLogger("worker.beat_tasks")
status_store = JobStatusStore()


@celery_app.task
def purge_expired_job_results():
    """
    Remove job result snapshots whose retention window has passed.
    Expired snapshots are already invisible to readers.
    """
    logger.info("Starting purge of expired job results")

    try:
        with get_db_session() as db:
            removed = status_store.purge_expired(db)

        logger.info(f"Purged {removed} expired job results")
        return {
            "status": "success",
            "removed": removed,
            "timestamp": config_service.now().isoformat()
        }

    except SQLAlchemyError as e:
        logger.error(f"Error in purge_expired_job_results: {e}")
        return {
            "status": "error",
            "error": str(e),
            "timestamp": config_service.now().isoformat()
        }
