"""
Builds import notification payloads and hands them to the e-mail worker.
"""
import logging
from typing import Any, Dict

from app.services.config_service import config_service

logger = logging.getLogger("app.notifications")


def build_success_payload(job_id: str, file_name: str, results: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a processing result into the fields of the completion e-mail."""
    file_info = results.get("file_info") or {}
    stats = results.get("processing_stats") or {}
    performance = results.get("performance") or {}
    summary = results.get("validation_summary") or {}
    bi = results.get("business_intelligence") or {}

    return {
        "job_id": job_id,
        "file_name": file_name,
        "file_size": file_info.get("size", 0),
        "uploaded_at": file_info.get("uploaded_at"),
        "processing_started_at": performance.get("start_time"),
        "completed_at": performance.get("end_time") or config_service.now().isoformat(),
        "success": results.get("success", False),
        "message": results.get("message", ""),
        "total_rows": stats.get("total_rows", 0),
        "valid_rows": stats.get("valid_rows", 0),
        "invalid_rows": stats.get("invalid_rows", 0),
        "inserted": stats.get("inserted", 0),
        "updated": stats.get("updated", 0),
        "skipped": stats.get("skipped", 0),
        "duplicates": stats.get("duplicates", 0),
        "validation_errors": len(stats.get("errors", [])),
        "processing_time": performance.get("duration_seconds", 0),
        "memory_peak": performance.get("memory_peak_bytes", 0),
        "data_quality_score": summary.get("data_quality_score", 0),
        "structure_valid": summary.get("structure_valid", False),
        "headers_valid": summary.get("headers_valid", False),
        "data_format_valid": summary.get("data_format_valid", False),
        "encoding_valid": summary.get("encoding_valid", True),
        "total_value": bi.get("total_value", 0),
        "average_price": bi.get("average_price", 0),
        "unique_brands": bi.get("unique_brands", 0),
        "unique_categories": bi.get("unique_categories", 0),
        "in_stock_count": bi.get("in_stock_count", 0),
        "out_of_stock_count": bi.get("out_of_stock_count", 0),
        "new_condition_count": bi.get("new_condition_count", 0),
        "used_condition_count": bi.get("used_condition_count", 0),
        "recommendations": results.get("recommendations", []),
        "app_base_url": config_service.get_setting("APP_BASE_URL", "http://localhost:8000"),
    }


def build_failure_payload(file_name: str, error: str) -> Dict[str, Any]:
    return {
        "file_name": file_name,
        "error": error,
        "failed_at": config_service.now().strftime("%Y-%m-%d %H:%M:%S"),
    }


class ImportNotifier:
    """Queues completion and failure e-mails on the email worker."""

    def notify_success(self, user_email: str, payload: Dict[str, Any]) -> None:
        from worker.email_tasks import send_import_completion_email

        result = send_import_completion_email.delay(user_email, payload)
        logger.info(f"Import completion email queued for {user_email}: task {result.id}")

    def notify_failure(self, user_email: str, payload: Dict[str, Any]) -> None:
        from worker.email_tasks import send_import_failure_email

        result = send_import_failure_email.delay(user_email, payload)
        logger.info(f"Import failure email queued for {user_email}: task {result.id}")
