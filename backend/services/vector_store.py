"""Chunk storage backends: Supabase pgvector table and an in-memory store."""
import json
import logging
import threading
from typing import Dict, List, Optional
from supabase import create_client, Client
from models.chunk import Chunk
from config import SUPABASE_URL, SUPABASE_KEY, CHUNKS_TABLE

logger = logging.getLogger(__name__)

PAGE_SIZE = 1000  # PostgREST default max rows per request


class StorageError(RuntimeError):
    """Raised when a storage backend operation fails."""


class VectorStore:
    """Store course chunks and their embeddings in a Supabase table.

    Expected schema::

        create table course_chunks (
          chunk_id text primary key,
          course_id text not null,
          document_id text not null,
          run_id text not null,
          ordinal int not null,
          text text not null,
          embedding vector(768),
          metadata jsonb
        );
    """

    def __init__(
        self,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        table_name: str = CHUNKS_TABLE,
        client: Optional[Client] = None
    ):
        """
        Initialize the vector store with Supabase client.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase API key
            table_name: Name of the table to store chunks
            client: Pre-built Supabase client to share between stores

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if client is None:
            if not supabase_url or not supabase_key:
                raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")
            client = create_client(supabase_url, supabase_key)

        self.client: Client = client
        self.table_name = table_name

        logger.info(f"Initialized VectorStore with table: {table_name}")

    def add_chunks(self, chunks: List[Chunk]) -> None:
        """
        Persist chunks in a single batch write.

        All rows go out in one upsert request, which PostgREST executes as a
        single statement: either every chunk is stored or none is.

        Args:
            chunks: Chunks with embeddings to store

        Raises:
            ValueError: If chunks list is empty
            StorageError: If database operation fails
        """
        if not chunks:
            raise ValueError("Chunks list cannot be empty")

        records = [
            {
                "chunk_id": chunk.chunk_id,
                "course_id": chunk.course_id,
                "document_id": chunk.document_id,
                "run_id": chunk.run_id,
                "ordinal": chunk.ordinal,
                "text": chunk.text,
                "embedding": chunk.embedding,
                "metadata": chunk.metadata,
            }
            for chunk in chunks
        ]

        try:
            self.client.table(self.table_name).upsert(records).execute()
        except Exception as e:
            error_msg = f"Failed to add chunks to vector store: {str(e)}"
            logger.error(error_msg)
            raise StorageError(error_msg) from e

        logger.info(f"Stored {len(chunks)} chunks in {self.table_name}")

    def get_course_chunks(self, course_id: str) -> List[Chunk]:
        """
        Load every chunk belonging to a course, in insertion order.

        Raises:
            StorageError: If database operation fails
        """
        chunks: List[Chunk] = []
        offset = 0
        try:
            while True:
                response = (
                    self.client.table(self.table_name)
                    .select("*")
                    .eq("course_id", course_id)
                    .order("chunk_id")
                    .range(offset, offset + PAGE_SIZE - 1)
                    .execute()
                )
                rows = response.data or []
                chunks.extend(self._row_to_chunk(row) for row in rows)
                if len(rows) < PAGE_SIZE:
                    break
                offset += PAGE_SIZE
        except Exception as e:
            error_msg = f"Failed to load chunks for course {course_id}: {str(e)}"
            logger.error(error_msg)
            raise StorageError(error_msg) from e

        logger.debug(f"Loaded {len(chunks)} chunks for course {course_id}")
        return chunks

    def get_document_chunks(self, course_id: str, document_id: str) -> List[Chunk]:
        """Load the chunks of a single document."""
        try:
            response = (
                self.client.table(self.table_name)
                .select("*")
                .eq("course_id", course_id)
                .eq("document_id", document_id)
                .order("ordinal")
                .execute()
            )
        except Exception as e:
            error_msg = f"Failed to load chunks for document {document_id}: {str(e)}"
            logger.error(error_msg)
            raise StorageError(error_msg) from e
        return [self._row_to_chunk(row) for row in response.data or []]

    def delete_document_chunks(
        self,
        course_id: str,
        document_id: str,
        keep_run_id: Optional[str] = None
    ) -> int:
        """
        Delete a document's chunks, optionally keeping those of one run.

        Returns:
            Number of deleted chunks
        """
        try:
            query = (
                self.client.table(self.table_name)
                .delete()
                .eq("course_id", course_id)
                .eq("document_id", document_id)
            )
            if keep_run_id is not None:
                query = query.neq("run_id", keep_run_id)
            response = query.execute()
        except Exception as e:
            error_msg = f"Failed to delete chunks for document {document_id}: {str(e)}"
            logger.error(error_msg)
            raise StorageError(error_msg) from e

        deleted = len(response.data or [])
        logger.info(f"Deleted {deleted} chunks for document {document_id}")
        return deleted

    def count(self, course_id: Optional[str] = None) -> int:
        """
        Get the number of stored chunks, optionally for one course.

        Raises:
            StorageError: If database operation fails
        """
        try:
            query = self.client.table(self.table_name).select("chunk_id", count="exact")
            if course_id is not None:
                query = query.eq("course_id", course_id)
            response = query.execute()
            return response.count if response.count is not None else 0
        except Exception as e:
            error_msg = f"Failed to count chunks in vector store: {str(e)}"
            logger.error(error_msg)
            raise StorageError(error_msg) from e

    @staticmethod
    def _row_to_chunk(row: dict) -> Chunk:
        embedding = row.get("embedding")
        # pgvector columns come back as "[0.1,0.2,...]" strings
        if isinstance(embedding, str):
            embedding = json.loads(embedding)
        return Chunk(
            chunk_id=row["chunk_id"],
            course_id=row["course_id"],
            document_id=row["document_id"],
            text=row["text"],
            ordinal=row.get("ordinal", 0),
            run_id=row.get("run_id", ""),
            embedding=embedding,
            metadata=row.get("metadata") or {},
        )


class InMemoryVectorStore:
    """Process-local chunk store with the same interface as VectorStore."""

    def __init__(self):
        self._chunks: Dict[str, Chunk] = {}
        self._lock = threading.Lock()

    def add_chunks(self, chunks: List[Chunk]) -> None:
        if not chunks:
            raise ValueError("Chunks list cannot be empty")
        with self._lock:
            self._chunks.update({chunk.chunk_id: chunk for chunk in chunks})
        logger.info(f"Stored {len(chunks)} chunks in memory")

    def get_course_chunks(self, course_id: str) -> List[Chunk]:
        with self._lock:
            return [c for c in self._chunks.values() if c.course_id == course_id]

    def get_document_chunks(self, course_id: str, document_id: str) -> List[Chunk]:
        with self._lock:
            chunks = [
                c for c in self._chunks.values()
                if c.course_id == course_id and c.document_id == document_id
            ]
        return sorted(chunks, key=lambda c: c.ordinal)

    def delete_document_chunks(
        self,
        course_id: str,
        document_id: str,
        keep_run_id: Optional[str] = None
    ) -> int:
        with self._lock:
            doomed = [
                chunk_id for chunk_id, c in self._chunks.items()
                if c.course_id == course_id
                and c.document_id == document_id
                and (keep_run_id is None or c.run_id != keep_run_id)
            ]
            for chunk_id in doomed:
                del self._chunks[chunk_id]
        logger.info(f"Deleted {len(doomed)} chunks for document {document_id}")
        return len(doomed)

    def count(self, course_id: Optional[str] = None) -> int:
        with self._lock:
            if course_id is None:
                return len(self._chunks)
            return sum(1 for c in self._chunks.values() if c.course_id == course_id)
