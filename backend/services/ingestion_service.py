"""Ingestion pipeline: download, extract, chunk, embed and index one document."""
import logging
import time
import uuid
from datetime import timedelta
from typing import List, Optional

from models.chunk import Chunk
from models.document import DocumentStatus, IngestionResult, SourceDocument, utcnow
from services.chunking_engine import ChunkingEngine
from services.text_extractor import TextExtractor, ExtractionError
from services.vector_store import StorageError
from config import REINGEST_POLICY, STALE_PROCESSING_MINUTES

logger = logging.getLogger(__name__)

REINGEST_POLICIES = ("replace", "append")


class IngestionService:
    """Turns an uploaded document into embedded, indexed chunks.

    A run is all-or-nothing: chunks are embedded one after another and written
    in a single batch only once every embedding succeeded. Run failures never
    propagate to the caller; they are recorded on the document status and
    returned in the IngestionResult.
    """

    def __init__(
        self,
        blob_store,
        text_extractor: TextExtractor,
        chunking_engine: ChunkingEngine,
        embedding_model,
        vector_store,
        document_registry,
        reingest_policy: str = REINGEST_POLICY
    ):
        """
        Initialize the ingestion service.

        Args:
            blob_store: BlobStore used to fetch uploaded files
            text_extractor: TextExtractor for blob -> text
            chunking_engine: ChunkingEngine for text -> chunks
            embedding_model: EmbeddingProvider for chunk vectors
            vector_store: Chunk store (VectorStore or InMemoryVectorStore)
            document_registry: Status store (DocumentRegistry or InMemoryDocumentRegistry)
            reingest_policy: "replace" deletes chunks of earlier runs after a
                successful commit, "append" leaves them in place
        """
        if reingest_policy not in REINGEST_POLICIES:
            raise ValueError(f"reingest_policy must be one of {REINGEST_POLICIES}")

        self.blob_store = blob_store
        self.text_extractor = text_extractor
        self.chunking_engine = chunking_engine
        self.embedding_model = embedding_model
        self.vector_store = vector_store
        self.document_registry = document_registry
        self.reingest_policy = reingest_policy

    def ingest(
        self,
        course_id: str,
        document_id: str,
        storage_location: str,
        media_type: str
    ) -> IngestionResult:
        """
        Run one ingestion for a document.

        Args:
            course_id: Owning course
            document_id: Document being ingested
            storage_location: Path of the uploaded file in the blob store
            media_type: Declared media type of the file

        Returns:
            IngestionResult describing the outcome
        """
        run_id = uuid.uuid4().hex[:12]
        start_time = time.time()
        logger.info(
            f"Starting ingestion for document {document_id} (course={course_id}, run={run_id}, "
            f"media_type={media_type})"
        )

        try:
            self.document_registry.mark_processing(course_id, document_id, storage_location, media_type)
        except StorageError as e:
            logger.error(f"[{document_id}] Could not register ingestion run: {e}", exc_info=True)
            return IngestionResult(
                document_id=document_id,
                run_id=run_id,
                status=DocumentStatus.FAILED,
                error=str(e),
                stage="register",
            )

        stage = "download"
        try:
            blob = self.blob_store.download(storage_location)
            logger.info(f"[{document_id}] Downloaded {len(blob)} bytes from {storage_location}")

            stage = "extract"
            text = self.text_extractor.extract_text(blob, media_type)
            logger.info(f"[{document_id}] Extracted {len(text)} chars")

            stage = "chunk"
            chunk_texts = self.chunking_engine.chunk(text)
            if not chunk_texts:
                raise ExtractionError("Extracted text produced no chunks")
            logger.info(f"[{document_id}] Generated {len(chunk_texts)} chunks")

            stage = "embed"
            chunks = self._embed_chunks(course_id, document_id, run_id, storage_location, chunk_texts)

            stage = "persist"
            self.vector_store.add_chunks(chunks)
            logger.info(f"[{document_id}] Committed {len(chunks)} chunks (run={run_id})")
        except Exception as e:
            return self._fail(course_id, document_id, run_id, stage, e)

        if self.reingest_policy == "replace":
            self._remove_previous_runs(course_id, document_id, run_id)

        try:
            self.document_registry.mark_processed(course_id, document_id, len(chunks))
        except StorageError as e:
            logger.error(
                f"[{document_id}] Chunks committed but status update failed: {e}",
                exc_info=True
            )
            return IngestionResult(
                document_id=document_id,
                run_id=run_id,
                status=DocumentStatus.FAILED,
                chunk_count=len(chunks),
                error=str(e),
                stage="finalize",
            )

        elapsed = time.time() - start_time
        logger.info(
            f"Ingestion complete for document {document_id}: {len(chunks)} chunks in {elapsed:.1f}s"
        )
        return IngestionResult(
            document_id=document_id,
            run_id=run_id,
            status=DocumentStatus.PROCESSED,
            chunk_count=len(chunks),
        )

    def reingest(self, course_id: str, document_id: str) -> Optional[IngestionResult]:
        """
        Re-run ingestion for a known document using its recorded location.

        Returns:
            IngestionResult, or None if the document is unknown
        """
        try:
            document = self.document_registry.get(course_id, document_id)
        except StorageError as e:
            logger.error(f"[{document_id}] Could not look up document for re-ingestion: {e}", exc_info=True)
            return IngestionResult(
                document_id=document_id,
                run_id="",
                status=DocumentStatus.FAILED,
                error=str(e),
                stage="register",
            )

        if document is None:
            logger.warning(f"Re-ingestion requested for unknown document {document_id}")
            return None

        logger.info(
            f"Manual re-ingestion of document {document_id} "
            f"(previous status={document.status.value})"
        )
        return self.ingest(course_id, document_id, document.storage_location, document.media_type)

    def delete_chunks(self, course_id: str, document_id: str) -> int:
        """Explicit cleanup: remove every chunk of a document."""
        return self.vector_store.delete_document_chunks(course_id, document_id)

    def find_stale_documents(
        self,
        older_than: timedelta = timedelta(minutes=STALE_PROCESSING_MINUTES)
    ) -> List[SourceDocument]:
        """Documents stuck in `processing` longer than ``older_than``.

        Raises:
            StorageError: If the registry cannot be read
        """
        stale = self.document_registry.find_stale(older_than)
        if stale:
            logger.warning(f"Found {len(stale)} documents stuck in processing")
        return stale

    def _embed_chunks(
        self,
        course_id: str,
        document_id: str,
        run_id: str,
        source: str,
        chunk_texts: List[str]
    ) -> List[Chunk]:
        """Embed chunk texts sequentially; the first failure aborts the run."""
        processed_at = utcnow().isoformat()
        chunks = []
        for ordinal, text in enumerate(chunk_texts):
            embedding = self.embedding_model.embed_text(text)
            chunks.append(Chunk(
                chunk_id=Chunk.make_id(document_id, run_id, ordinal),
                course_id=course_id,
                document_id=document_id,
                text=text,
                ordinal=ordinal,
                run_id=run_id,
                embedding=embedding,
                metadata={"source": source, "processed_at": processed_at},
            ))
            logger.debug(f"[{document_id}] Embedded chunk {ordinal + 1}/{len(chunk_texts)}")
        return chunks

    def _remove_previous_runs(self, course_id: str, document_id: str, run_id: str) -> None:
        try:
            removed = self.vector_store.delete_document_chunks(course_id, document_id, keep_run_id=run_id)
        except StorageError as e:
            logger.warning(f"[{document_id}] Could not remove chunks of earlier runs: {e}")
            return
        if removed:
            logger.info(f"[{document_id}] Replaced {removed} chunks from earlier runs")

    def _fail(
        self,
        course_id: str,
        document_id: str,
        run_id: str,
        stage: str,
        error: Exception
    ) -> IngestionResult:
        message = str(error) or type(error).__name__
        logger.error(
            f"Ingestion failed for document {document_id} at stage '{stage}': "
            f"{type(error).__name__}: {message}"
        )
        try:
            self.document_registry.mark_failed(course_id, document_id, message)
        except StorageError as e:
            logger.error(f"[{document_id}] Could not record failure: {e}", exc_info=True)

        return IngestionResult(
            document_id=document_id,
            run_id=run_id,
            status=DocumentStatus.FAILED,
            error=message,
            stage=stage,
        )
