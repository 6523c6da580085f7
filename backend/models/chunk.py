"""Chunk data models."""
from dataclasses import dataclass, field
from typing import Optional, List, Dict


@dataclass
class Chunk:
    """Represents a retrievable segment of a course document."""
    chunk_id: str  # Format: "{document_id}_{run_id}_{ordinal}"
    course_id: str
    document_id: str
    text: str
    ordinal: int = 0
    run_id: str = ""
    embedding: Optional[List[float]] = None
    metadata: Dict[str, str] = field(default_factory=dict)  # source, processed_at

    @staticmethod
    def make_id(document_id: str, run_id: str, ordinal: int) -> str:
        return f"{document_id}_{run_id}_{ordinal}"


@dataclass
class ScoredChunk:
    """Chunk with cosine similarity score from retrieval."""
    chunk: Chunk
    relevance_score: float  # -1.0 to 1.0
