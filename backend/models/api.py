"""Request/response models for the HTTP API."""
from typing import List, Optional
from pydantic import BaseModel, Field


class IngestRequest(BaseModel):
    """Registers an uploaded file and starts its ingestion."""
    document_id: str = Field(..., min_length=1)
    storage_location: str = Field(..., min_length=1)
    media_type: str = "application/octet-stream"


class IngestResponse(BaseModel):
    document_id: str
    course_id: str
    status: str
    message: str


class DocumentStatusResponse(BaseModel):
    document_id: str
    course_id: str
    status: str
    chunk_count: int
    error: Optional[str] = None


class ChunkCleanupResponse(BaseModel):
    document_id: str
    deleted: int


class QueryRequest(BaseModel):
    question: str
    top_k: Optional[int] = Field(default=None, ge=1, le=50)


class QueryResponse(BaseModel):
    answer: str
    sources: List[str]
    chunks_used: int
    grounded: bool
    degraded: bool
