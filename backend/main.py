"""Main entry point for the course knowledge assistant API."""
import logging
import time
from fastapi import FastAPI, HTTPException, BackgroundTasks
from fastapi.middleware.cors import CORSMiddleware

from config import (
    PORT,
    LOG_LEVEL,
    LOG_FORMAT,
    CORS_ORIGINS,
    STORE_BACKEND,
    CHAT_TOP_K,
    NOTEBOOK_TOP_K,
)
from logger import setup_logging
from models.api import (
    IngestRequest,
    IngestResponse,
    DocumentStatusResponse,
    ChunkCleanupResponse,
    QueryRequest,
    QueryResponse,
)
from models.document import DocumentStatus
from services.answer_synthesizer import AnswerSynthesizer
from services.blob_store import SupabaseBlobStore, LocalBlobStore
from services.chunking_engine import ChunkingEngine
from services.document_registry import DocumentRegistry, InMemoryDocumentRegistry
from services.embedding_model import EmbeddingModel
from services.ingestion_service import IngestionService
from services.llm_client import LLMClient
from services.ocr_provider import PyMuPDFOCRProvider
from services.retrieval_engine import RetrievalEngine
from services.text_extractor import TextExtractor
from services.vector_store import VectorStore, InMemoryVectorStore, StorageError

# Initialize logging
setup_logging(LOG_LEVEL, LOG_FORMAT)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Course Knowledge Assistant",
    description="Document ingestion and retrieval-augmented answers for course materials",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
ingestion_service: IngestionService = None
answer_synthesizer: AnswerSynthesizer = None
document_registry = None


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global ingestion_service, answer_synthesizer, document_registry

    logger.info(f"Initializing course knowledge assistant services (store={STORE_BACKEND})...")

    try:
        embedding_model = EmbeddingModel()

        if STORE_BACKEND == "memory":
            vector_store = InMemoryVectorStore()
            document_registry = InMemoryDocumentRegistry()
            blob_store = LocalBlobStore()
        else:
            vector_store = VectorStore()
            document_registry = DocumentRegistry(client=vector_store.client)
            blob_store = SupabaseBlobStore(client=vector_store.client)
        logger.info("Initialized storage backends")

        ingestion_service = IngestionService(
            blob_store=blob_store,
            text_extractor=TextExtractor(structured_provider=PyMuPDFOCRProvider()),
            chunking_engine=ChunkingEngine(),
            embedding_model=embedding_model,
            vector_store=vector_store,
            document_registry=document_registry,
        )
        logger.info("Initialized IngestionService")

        retrieval_engine = RetrievalEngine(vector_store, embedding_model)
        answer_synthesizer = AnswerSynthesizer(retrieval_engine, LLMClient())
        logger.info("Initialized AnswerSynthesizer")

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Course Knowledge Assistant API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "course-knowledge-assistant",
        "version": "1.0.0"
    }


@app.post("/courses/{course_id}/documents", response_model=IngestResponse, status_code=202)
async def ingest_document(
    course_id: str,
    request: IngestRequest,
    background_tasks: BackgroundTasks
) -> IngestResponse:
    """
    Register an uploaded document and start ingestion in the background.

    The response is returned immediately; poll the document status endpoint
    to observe completion.
    """
    try:
        document_registry.mark_processing(
            course_id, request.document_id, request.storage_location, request.media_type
        )
    except StorageError as e:
        logger.error(f"Could not register document {request.document_id}: {e}")
        raise HTTPException(status_code=503, detail="Document registry unavailable")

    background_tasks.add_task(
        ingestion_service.ingest,
        course_id,
        request.document_id,
        request.storage_location,
        request.media_type,
    )
    logger.info(f"Scheduled ingestion for document {request.document_id} in course {course_id}")

    return IngestResponse(
        document_id=request.document_id,
        course_id=course_id,
        status=DocumentStatus.PROCESSING.value,
        message="File registered and processing started",
    )


@app.post(
    "/courses/{course_id}/documents/{document_id}/reingest",
    response_model=IngestResponse,
    status_code=202
)
async def reingest_document(
    course_id: str,
    document_id: str,
    background_tasks: BackgroundTasks
) -> IngestResponse:
    """Manually re-run ingestion for a known document."""
    document = _get_document_or_404(course_id, document_id)

    background_tasks.add_task(
        ingestion_service.ingest,
        course_id,
        document_id,
        document.storage_location,
        document.media_type,
    )
    logger.info(f"Scheduled re-ingestion for document {document_id} in course {course_id}")

    return IngestResponse(
        document_id=document_id,
        course_id=course_id,
        status=DocumentStatus.PROCESSING.value,
        message="Re-ingestion started",
    )


@app.get("/courses/{course_id}/documents/{document_id}", response_model=DocumentStatusResponse)
async def document_status(course_id: str, document_id: str) -> DocumentStatusResponse:
    """Processing status of a document."""
    document = _get_document_or_404(course_id, document_id)
    record = document.status_record()
    return DocumentStatusResponse(document_id=document_id, course_id=course_id, **record)


@app.delete("/courses/{course_id}/documents/{document_id}/chunks", response_model=ChunkCleanupResponse)
async def delete_document_chunks(course_id: str, document_id: str) -> ChunkCleanupResponse:
    """Remove every indexed chunk of a document."""
    try:
        deleted = ingestion_service.delete_chunks(course_id, document_id)
    except StorageError as e:
        logger.error(f"Chunk cleanup failed for document {document_id}: {e}")
        raise HTTPException(status_code=503, detail="Chunk store unavailable")
    return ChunkCleanupResponse(document_id=document_id, deleted=deleted)


@app.post("/courses/{course_id}/chat", response_model=QueryResponse)
def chat(course_id: str, request: QueryRequest) -> QueryResponse:
    """Conversational question answering over a course's materials."""
    return _answer(course_id, request, CHAT_TOP_K)


@app.post("/courses/{course_id}/notebook/query", response_model=QueryResponse)
def notebook_query(course_id: str, request: QueryRequest) -> QueryResponse:
    """Single-shot notebook query over a course's materials."""
    return _answer(course_id, request, NOTEBOOK_TOP_K)


def _answer(course_id: str, request: QueryRequest, default_top_k: int) -> QueryResponse:
    if not request.question or not request.question.strip():
        raise HTTPException(status_code=400, detail="Question field is required and cannot be empty")

    start_time = time.time()
    logger.info(f"Processing query for course {course_id}: {request.question[:100]}...")

    answer = answer_synthesizer.answer(
        request.question,
        course_id,
        top_k=request.top_k or default_top_k
    )

    total_latency_ms = int((time.time() - start_time) * 1000)
    logger.info(
        f"Query answered in {total_latency_ms}ms "
        f"(chunks={answer.chunks_used}, grounded={answer.grounded}, degraded={answer.degraded})"
    )

    return QueryResponse(
        answer=answer.text,
        sources=answer.source_refs,
        chunks_used=answer.chunks_used,
        grounded=answer.grounded,
        degraded=answer.degraded,
    )


def _get_document_or_404(course_id: str, document_id: str):
    try:
        document = document_registry.get(course_id, document_id)
    except StorageError as e:
        logger.error(f"Status lookup failed for document {document_id}: {e}")
        raise HTTPException(status_code=503, detail="Document registry unavailable")

    if document is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return document


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Course Knowledge Assistant API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
