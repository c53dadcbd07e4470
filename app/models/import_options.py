"""
Processing options accepted with a CSV upload.
"""
from typing import Literal, Optional

from pydantic import BaseModel, Field

ValidationMode = Literal["strict", "flexible", "skip_errors"]


class ProcessingOptions(BaseModel):
    """Options controlling validation, persistence and notification of one import."""

    validation_mode: ValidationMode = "strict"
    update_existing: bool = True
    skip_duplicates: bool = False
    batch_size: int = Field(default=1000, ge=100, le=10000)
    rollback_on_error: bool = True
    email_notification: bool = False
    notify_email: Optional[str] = None

    @property
    def wants_notification(self) -> bool:
        return self.email_notification and bool(self.notify_email)
