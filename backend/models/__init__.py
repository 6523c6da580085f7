"""Data models for the course knowledge assistant."""
from .document import SourceDocument, DocumentStatus, IngestionResult
from .chunk import Chunk, ScoredChunk
from .answer import Answer
from .api import (
    IngestRequest,
    IngestResponse,
    DocumentStatusResponse,
    ChunkCleanupResponse,
    QueryRequest,
    QueryResponse,
)

__all__ = [
    "SourceDocument",
    "DocumentStatus",
    "IngestionResult",
    "Chunk",
    "ScoredChunk",
    "Answer",
    "IngestRequest",
    "IngestResponse",
    "DocumentStatusResponse",
    "ChunkCleanupResponse",
    "QueryRequest",
    "QueryResponse",
]
