"""Audit log data models."""

from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field, field_serializer


class AuditStatus(str, Enum):
    """Status of an audit log entry."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"


class AuditLogEntry(BaseModel):
    """Represents a single audit log entry for a tag mutation call."""

    id: int | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_id: str | None = None
    operation: str
    requested: int = Field(..., ge=0)
    successful: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    status: AuditStatus
    error_message: str | None = None

    @field_serializer('timestamp')
    def serialize_timestamp(self, timestamp: datetime) -> str:
        return timestamp.isoformat()
