"""Per-document processing status records."""
import logging
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple
from supabase import create_client, Client

from models.document import SourceDocument, DocumentStatus, utcnow
from services.vector_store import StorageError
from config import SUPABASE_URL, SUPABASE_KEY, DOCUMENTS_TABLE

logger = logging.getLogger(__name__)


class DocumentRegistry:
    """Tracks SourceDocument status in a Supabase table keyed by (course_id, document_id)."""

    def __init__(
        self,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        table_name: str = DOCUMENTS_TABLE,
        client: Optional[Client] = None
    ):
        if client is None:
            if not supabase_url or not supabase_key:
                raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")
            client = create_client(supabase_url, supabase_key)

        self.client: Client = client
        self.table_name = table_name
        logger.info(f"Initialized DocumentRegistry with table: {table_name}")

    def get(self, course_id: str, document_id: str) -> Optional[SourceDocument]:
        try:
            result = (
                self.client.table(self.table_name)
                .select("*")
                .eq("course_id", course_id)
                .eq("document_id", document_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error retrieving document {document_id}: {e}")
            raise StorageError(f"Failed to read document {document_id}: {e}") from e

        if not result.data:
            return None
        return self._row_to_document(result.data[0])

    def mark_processing(
        self,
        course_id: str,
        document_id: str,
        storage_location: str,
        media_type: str
    ) -> SourceDocument:
        """Create or reset the status record at the start of an ingestion run."""
        now = utcnow()
        record = {
            "course_id": course_id,
            "document_id": document_id,
            "storage_location": storage_location,
            "media_type": media_type,
            "status": DocumentStatus.PROCESSING.value,
            "error": None,
            "updated_at": now.isoformat(),
        }
        self._write(document_id, record, upsert=True)
        existing = self.get(course_id, document_id)
        return existing or SourceDocument(
            document_id=document_id,
            course_id=course_id,
            storage_location=storage_location,
            media_type=media_type,
        )

    def mark_processed(self, course_id: str, document_id: str, chunk_count: int) -> None:
        now = utcnow().isoformat()
        self._write(document_id, {
            "course_id": course_id,
            "document_id": document_id,
            "status": DocumentStatus.PROCESSED.value,
            "chunk_count": chunk_count,
            "error": None,
            "updated_at": now,
            "processed_at": now,
        })

    def mark_failed(self, course_id: str, document_id: str, error: str) -> None:
        self._write(document_id, {
            "course_id": course_id,
            "document_id": document_id,
            "status": DocumentStatus.FAILED.value,
            "error": error,
            "updated_at": utcnow().isoformat(),
        })

    def find_stale(self, older_than: timedelta) -> List[SourceDocument]:
        """Documents still in `processing` whose last update is older than the cutoff."""
        cutoff = utcnow() - older_than
        try:
            result = (
                self.client.table(self.table_name)
                .select("*")
                .eq("status", DocumentStatus.PROCESSING.value)
                .lt("updated_at", cutoff.isoformat())
                .execute()
            )
        except Exception as e:
            logger.error(f"Error listing stale documents: {e}")
            raise StorageError(f"Failed to list stale documents: {e}") from e
        return [self._row_to_document(row) for row in result.data or []]

    def _write(self, document_id: str, record: dict, upsert: bool = False) -> None:
        try:
            table = self.client.table(self.table_name)
            if upsert:
                table.upsert(record, on_conflict="course_id,document_id").execute()
            else:
                (
                    table.update(record)
                    .eq("course_id", record["course_id"])
                    .eq("document_id", document_id)
                    .execute()
                )
        except Exception as e:
            logger.error(f"Error updating status of document {document_id}: {e}")
            raise StorageError(f"Failed to update document {document_id}: {e}") from e

    @staticmethod
    def _parse_timestamp(value) -> Optional[datetime]:
        if not value:
            return None
        if isinstance(value, datetime):
            return value
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))

    @classmethod
    def _row_to_document(cls, row: dict) -> SourceDocument:
        return SourceDocument(
            document_id=row["document_id"],
            course_id=row["course_id"],
            storage_location=row.get("storage_location", ""),
            media_type=row.get("media_type", ""),
            status=DocumentStatus(row.get("status", DocumentStatus.PROCESSING.value)),
            chunk_count=row.get("chunk_count") or 0,
            error=row.get("error"),
            created_at=cls._parse_timestamp(row.get("created_at")) or utcnow(),
            updated_at=cls._parse_timestamp(row.get("updated_at")) or utcnow(),
            processed_at=cls._parse_timestamp(row.get("processed_at")),
        )


class InMemoryDocumentRegistry:
    """Process-local registry with the same interface as DocumentRegistry."""

    def __init__(self):
        self._documents: Dict[Tuple[str, str], SourceDocument] = {}
        self._lock = threading.Lock()

    def get(self, course_id: str, document_id: str) -> Optional[SourceDocument]:
        with self._lock:
            document = self._documents.get((course_id, document_id))
            return replace(document) if document else None

    def mark_processing(
        self,
        course_id: str,
        document_id: str,
        storage_location: str,
        media_type: str
    ) -> SourceDocument:
        key = (course_id, document_id)
        with self._lock:
            document = self._documents.get(key)
            if document is None:
                document = SourceDocument(
                    document_id=document_id,
                    course_id=course_id,
                    storage_location=storage_location,
                    media_type=media_type,
                )
                self._documents[key] = document
            else:
                document.storage_location = storage_location
                document.media_type = media_type
                document.status = DocumentStatus.PROCESSING
                document.error = None
                document.updated_at = utcnow()
            return replace(document)

    def mark_processed(self, course_id: str, document_id: str, chunk_count: int) -> None:
        with self._lock:
            document = self._require(course_id, document_id)
            document.status = DocumentStatus.PROCESSED
            document.chunk_count = chunk_count
            document.error = None
            document.updated_at = document.processed_at = utcnow()

    def mark_failed(self, course_id: str, document_id: str, error: str) -> None:
        with self._lock:
            document = self._require(course_id, document_id)
            document.status = DocumentStatus.FAILED
            document.error = error
            document.updated_at = utcnow()

    def find_stale(self, older_than: timedelta) -> List[SourceDocument]:
        cutoff = utcnow() - older_than
        with self._lock:
            return [
                replace(d) for d in self._documents.values()
                if d.status == DocumentStatus.PROCESSING and d.updated_at < cutoff
            ]

    def _require(self, course_id: str, document_id: str) -> SourceDocument:
        document = self._documents.get((course_id, document_id))
        if document is None:
            raise StorageError(f"Unknown document {document_id} in course {course_id}")
        return document
