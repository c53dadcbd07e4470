"""
CSV import job models.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, Text
from sqlmodel import SQLModel, Field

from app.services.config_service import config_service


class JobStatus:
    """Lifecycle states of a CSV import job."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    TERMINAL = (COMPLETED, FAILED)


class CsvImportJob(SQLModel, table=True):
    """Import job tracking model."""

    __tablename__ = "csv_import_jobs"

    job_id: str = Field(primary_key=True, max_length=50)
    file_path: str = Field(max_length=500)
    file_name: str = Field(max_length=255)
    file_size: int = Field(default=0)
    mime_type: Optional[str] = Field(default=None, max_length=100)
    options_json: str = Field(default="{}", max_length=2000)
    submitted_by: Optional[str] = Field(default=None, max_length=100)
    notify_email: Optional[str] = Field(default=None, max_length=255)
    status: str = Field(max_length=20, default=JobStatus.QUEUED)  # queued, running, completed, failed
    attempts: int = Field(default=0)
    error_message: Optional[str] = Field(default=None, max_length=2000)
    # Timestamps are naive UTC, see ConfigService.utcnow
    created_at: datetime = Field(default_factory=config_service.utcnow, sa_column=Column(DateTime, nullable=False))
    started_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))
    completed_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))


class CsvJobResult(SQLModel, table=True):
    """Result snapshot of a finished job, served to pollers until it expires."""

    __tablename__ = "csv_job_results"

    job_id: str = Field(primary_key=True, max_length=50)
    file_name: Optional[str] = Field(default=None, max_length=255)
    status: str = Field(max_length=20)
    result_json: str = Field(sa_column=Column(Text, nullable=False))
    completed_at: datetime = Field(default_factory=config_service.utcnow, sa_column=Column(DateTime, nullable=False))
    expires_at: datetime = Field(sa_column=Column(DateTime, nullable=False, index=True))
