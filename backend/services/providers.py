"""Collaborator interfaces consumed by the ingestion and query pipelines.

Concrete providers (Supabase Storage, Hugging Face, Groq, PyMuPDF OCR) are
injected into the services so any of them can be swapped out.
"""
from typing import List, Optional, Protocol


class BlobStore(Protocol):
    def download(self, storage_location: str) -> bytes:
        ...


class EmbeddingProvider(Protocol):
    def embed_text(self, text: str) -> List[float]:
        ...


class CompletionProvider(Protocol):
    def complete(self, prompt: str) -> Optional[str]:
        """Return generated text, or None when the model produced no candidate."""
        ...


class StructuredExtractionProvider(Protocol):
    def extract_structured_text(self, blob: bytes, media_type: str) -> str:
        ...
