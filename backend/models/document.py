"""Source document data models."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def utcnow() -> datetime:
    """Timezone-aware current time, used for every persisted timestamp."""
    return datetime.now(timezone.utc)


class DocumentStatus(str, Enum):
    """Processing state of an uploaded document."""
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"


@dataclass
class SourceDocument:
    """One uploaded course file and the state of its ingestion."""
    document_id: str
    course_id: str
    storage_location: str
    media_type: str
    status: DocumentStatus = DocumentStatus.PROCESSING
    chunk_count: int = 0
    error: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    processed_at: Optional[datetime] = None

    def status_record(self) -> dict:
        """Status view exposed to API and UI layers."""
        return {
            "status": self.status.value,
            "chunk_count": self.chunk_count,
            "error": self.error,
        }


@dataclass
class IngestionResult:
    """Outcome of a single ingestion run."""
    document_id: str
    run_id: str
    status: DocumentStatus
    chunk_count: int = 0
    error: Optional[str] = None
    stage: Optional[str] = None  # stage that failed, None on success
