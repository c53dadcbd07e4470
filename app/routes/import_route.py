"""
Import routes for CSV upload and job status.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database.session import get_session
from app.models.import_models import CsvImportJob, JobStatus
from app.models.import_options import ProcessingOptions
from app.services.job_runner import JobRunner
from app.services.job_status_store import JobStatusStore
from worker.tasks import process_csv_import_job

router = APIRouter(prefix="/import", tags=["import"])
logger = logging.getLogger("app.import")

ALLOWED_EXTENSIONS = (".csv", ".txt")
ALLOWED_MIME_TYPES = ("text/csv", "text/plain")
MAX_UPLOAD_BYTES = 50 * 1024 * 1024

job_runner = JobRunner()
status_store = JobStatusStore()


@router.post("/upload", status_code=202)
async def upload_file(
    file: UploadFile = File(...),
    validation_mode: str = Form("strict"),
    update_existing: bool = Form(True),
    skip_duplicates: bool = Form(False),
    batch_size: int = Form(1000),
    rollback_on_error: bool = Form(True),
    email_notification: bool = Form(False),
    notify_email: Optional[str] = Form(None),
    submitted_by: Optional[str] = Form(None),
    db: Session = Depends(get_session),
) -> Any:
    """
    Upload a CSV file and queue an import job.

    Args:
        file: Uploaded CSV file
        db: Database session

    Returns:
        Queued job information
    """
    logger.info(f"CSV upload requested: {file.filename}")

    # Validate file type
    if not file.filename or not file.filename.lower().endswith(ALLOWED_EXTENSIONS):
        raise HTTPException(status_code=400, detail="Only CSV files (.csv, .txt) are allowed")

    content_type = (file.content_type or "").split(";")[0].strip()
    if content_type not in ALLOWED_MIME_TYPES:
        raise HTTPException(status_code=400, detail=f"Unsupported content type: {content_type or 'unknown'}")

    try:
        options = ProcessingOptions(
            validation_mode=validation_mode,
            update_existing=update_existing,
            skip_duplicates=skip_duplicates,
            batch_size=batch_size,
            rollback_on_error=rollback_on_error,
            email_notification=email_notification,
            notify_email=notify_email,
        )
    except ValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise HTTPException(status_code=422, detail=errors)

    file_content = await file.read()
    if not file_content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(file_content) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File exceeds the 50 MB upload limit")

    file_path = job_runner.import_service.save_uploaded_file(file_content, file.filename)
    try:
        job = job_runner.submit(
            db,
            file_path=file_path,
            file_name=file.filename,
            options=options,
            file_size=len(file_content),
            mime_type=content_type,
            submitted_by=submitted_by,
        )
    except SQLAlchemyError as e:
        logger.error(f"Failed to register import job for {file.filename}: {e}")
        db.rollback()
        job_runner.import_service.cleanup_file(file_path)
        raise HTTPException(status_code=500, detail="Upload failed: could not register import job")

    try:
        task = process_csv_import_job.delay(job.job_id)
    except Exception as e:
        # Broker unreachable: the job can never run
        logger.error(f"Failed to dispatch import job {job.job_id}: {e}")
        job_runner.fail_permanently(job.job_id, f"Could not queue import job: {e}")
        raise HTTPException(status_code=500, detail="Upload failed: import queue unavailable")

    logger.info(f"Import job dispatched: {job.job_id}, task: {task.id}")

    return JSONResponse(
        status_code=202,
        content={
            "job_id": job.job_id,
            "status": JobStatus.QUEUED,
            "message": "File uploaded successfully, processing has been queued",
            "file_name": file.filename,
            "file_size": len(file_content),
            "status_url": f"/import/jobs/{job.job_id}",
        },
    )


@router.get("/jobs")
async def list_jobs(limit: int = 50, db: Session = Depends(get_session)) -> Dict[str, Any]:
    """
    List the most recent import jobs.

    Args:
        limit: Maximum number of jobs
        db: Database session

    Returns:
        List of import jobs
    """
    logger.info("Import jobs list requested")

    limit = max(1, min(limit, 200))
    jobs = db.query(CsvImportJob).order_by(CsvImportJob.created_at.desc()).limit(limit).all()

    jobs_data = []
    for job in jobs:
        jobs_data.append(
            {
                "job_id": job.job_id,
                "file_name": job.file_name,
                "status": job.status,
                "attempts": job.attempts,
                "error_message": job.error_message,
                "created_at": job.created_at.isoformat() if job.created_at else None,
                "completed_at": job.completed_at.isoformat() if job.completed_at else None,
            }
        )

    return {"status": "success", "jobs": jobs_data, "total": len(jobs_data)}


@router.get("/jobs/{job_id}")
async def get_job_status(job_id: str, db: Session = Depends(get_session)) -> Dict[str, Any]:
    """
    Get the status of an import job, with its results once finished.

    Args:
        job_id: Import job ID
        db: Database session

    Returns:
        Job status, results when available
    """
    logger.info(f"Job status requested: {job_id}")

    snapshot = status_store.get(job_id, db)
    if snapshot is not None:
        return snapshot

    job = db.get(CsvImportJob, job_id)
    if job is None or job.status in JobStatus.TERMINAL:
        raise HTTPException(status_code=404, detail="Job not found or results expired")

    return {
        "job_id": job.job_id,
        "status": job.status,
        "file_name": job.file_name,
        "attempts": job.attempts,
        "created_at": job.created_at.isoformat() if job.created_at else None,
        "started_at": job.started_at.isoformat() if job.started_at else None,
    }
