"""Answer data model."""
from dataclasses import dataclass, field
from typing import List


@dataclass
class Answer:
    """Synthesized answer for a student question."""
    text: str
    source_refs: List[str] = field(default_factory=list)  # document ids, rank order
    chunks_used: int = 0
    grounded: bool = False
    degraded: bool = False  # retrieval or completion failed
