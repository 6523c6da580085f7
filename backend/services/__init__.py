"""Services for the course knowledge assistant."""
from .providers import BlobStore, EmbeddingProvider, CompletionProvider, StructuredExtractionProvider
from .text_extractor import TextExtractor, ExtractionError, ExtractionTooShort
from .ocr_provider import PyMuPDFOCRProvider, OCRNotConfiguredError
from .chunking_engine import ChunkingEngine
from .embedding_model import EmbeddingModel, EmbeddingError
from .vector_store import VectorStore, InMemoryVectorStore, StorageError
from .document_registry import DocumentRegistry, InMemoryDocumentRegistry
from .blob_store import SupabaseBlobStore, LocalBlobStore
from .ingestion_service import IngestionService
from .retrieval_engine import RetrievalEngine, RetrievalError, cosine_similarity
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError
from .answer_synthesizer import AnswerSynthesizer

__all__ = [
    'BlobStore', 'EmbeddingProvider', 'CompletionProvider', 'StructuredExtractionProvider',
    'TextExtractor', 'ExtractionError', 'ExtractionTooShort',
    'PyMuPDFOCRProvider', 'OCRNotConfiguredError',
    'ChunkingEngine',
    'EmbeddingModel', 'EmbeddingError',
    'VectorStore', 'InMemoryVectorStore', 'StorageError',
    'DocumentRegistry', 'InMemoryDocumentRegistry',
    'SupabaseBlobStore', 'LocalBlobStore',
    'IngestionService',
    'RetrievalEngine', 'RetrievalError', 'cosine_similarity',
    'LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError',
    'AnswerSynthesizer',
]
