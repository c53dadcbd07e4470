"""
Email tasks for sending import notifications.
"""
import logging
from typing import Any, Dict

from jinja2 import TemplateError

from app.services.email_service import EmailService
from worker.celery_app import celery_app

logger = logging.getLogger("worker.email_tasks")
email_service = EmailService()


@celery_app.task(name="email.send_import_completion")
def send_import_completion_email(user_email: str, payload: Dict[str, Any]):
    """
    Send email notification about a finished import.

    Args:
        user_email: User email address
        payload: Flattened processing result of the job
    """
    job_id = payload.get("job_id")
    logger.info(f"Sending import completion email for job: {job_id} to {user_email}")

    try:
        success = email_service.send_import_completion(user_email, payload)
    except TemplateError as e:
        logger.error(f"Error rendering import completion email: {e}")
        return {"status": "error", "message": str(e)}

    if success:
        logger.info(f"Import completion email sent successfully for job: {job_id}")
        return {"status": "success", "message": "Email sent successfully"}

    logger.error(f"Failed to send import completion email for job: {job_id}")
    return {"status": "error", "message": "Failed to send email"}


@celery_app.task(name="email.send_import_failure")
def send_import_failure_email(user_email: str, payload: Dict[str, Any]):
    """
    Send email notification about a failed import.

    Args:
        user_email: User email address
        payload: file_name, error and failed_at
    """
    file_name = payload.get("file_name")
    logger.info(f"Sending import failure email for {file_name} to {user_email}")

    try:
        success = email_service.send_import_failure(user_email, payload)
    except TemplateError as e:
        logger.error(f"Error rendering import failure email: {e}")
        return {"status": "error", "message": str(e)}

    if success:
        logger.info(f"Import failure email sent successfully for {file_name}")
        return {"status": "success", "message": "Email sent successfully"}

    logger.error(f"Failed to send import failure email for {file_name}")
    return {"status": "error", "message": "Failed to send email"}
