"""
Manual re-ingestion tool for the course knowledge assistant.

Ingestion never retries on its own. This script is the operator's retry path:
1. Re-run ingestion for one document using its recorded storage location
2. List documents stuck in `processing` (stale runs)

Usage:
    python reingest_document.py --course CS101 --document lecture-03
    python reingest_document.py --stale --minutes 60
"""
import argparse
import sys
import logging
from datetime import timedelta
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from models.document import DocumentStatus
from services.blob_store import SupabaseBlobStore
from services.chunking_engine import ChunkingEngine
from services.document_registry import DocumentRegistry
from services.embedding_model import EmbeddingModel
from services.ingestion_service import IngestionService
from services.ocr_provider import PyMuPDFOCRProvider
from services.text_extractor import TextExtractor
from services.vector_store import VectorStore, StorageError
from config import STALE_PROCESSING_MINUTES

logger = logging.getLogger(__name__)


def build_ingestion_service() -> IngestionService:
    """Wire the ingestion pipeline against the Supabase backends."""
    vector_store = VectorStore()
    embedding_model = EmbeddingModel()
    # Wake the inference endpoint before the first chunk
    embedding_model.warmup()
    return IngestionService(
        blob_store=SupabaseBlobStore(client=vector_store.client),
        text_extractor=TextExtractor(structured_provider=PyMuPDFOCRProvider()),
        chunking_engine=ChunkingEngine(),
        embedding_model=embedding_model,
        vector_store=vector_store,
        document_registry=DocumentRegistry(client=vector_store.client),
    )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Re-run document ingestion or list stale runs")
    parser.add_argument("--course", help="Course id of the document")
    parser.add_argument("--document", help="Document id to re-ingest")
    parser.add_argument("--stale", action="store_true", help="List documents stuck in processing")
    parser.add_argument(
        "--minutes",
        type=int,
        default=STALE_PROCESSING_MINUTES,
        help="Age in minutes after which a processing document counts as stale"
    )
    args = parser.parse_args(argv)

    if not args.stale and not (args.course and args.document):
        parser.error("either --stale or both --course and --document are required")
    return args


def main(argv=None) -> int:
    """Entry point; returns the process exit code."""
    args = parse_args(argv)

    try:
        service = build_ingestion_service()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 2

    if args.stale:
        try:
            stale = service.find_stale_documents(timedelta(minutes=args.minutes))
        except StorageError as e:
            logger.error(f"Could not list stale documents: {e}")
            return 1
        if not stale:
            logger.info(f"No documents stuck in processing for more than {args.minutes} minutes")
            return 0
        for document in stale:
            logger.info(
                f"  - course={document.course_id} document={document.document_id} "
                f"last update={document.updated_at.isoformat()}"
            )
        return 0

    logger.info(f"Re-ingesting document {args.document} in course {args.course}...")
    result = service.reingest(args.course, args.document)

    if result is None:
        logger.error(f"Document {args.document} not found in course {args.course}")
        return 1

    if result.status == DocumentStatus.PROCESSED:
        logger.info(f"✓ Document {args.document} processed: {result.chunk_count} chunks (run {result.run_id})")
        return 0

    logger.error(f"✗ Ingestion failed at stage '{result.stage}': {result.error}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
