"""Unit tests for RetrievalEngine."""
import math
import random
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock
from services.retrieval_engine import RetrievalEngine, RetrievalError, cosine_similarity
from services.vector_store import InMemoryVectorStore, StorageError
from services.embedding_model import EmbeddingError
from models.chunk import Chunk, ScoredChunk


def _chunk(chunk_id, embedding, course_id="cs101", document_id="doc1"):
    return Chunk(
        chunk_id=chunk_id,
        course_id=course_id,
        document_id=document_id,
        text=f"text of {chunk_id}",
        embedding=embedding,
    )


def _unit(similarity):
    """2-d unit vector whose cosine with [1, 0] equals ``similarity``."""
    return [similarity, math.sqrt(1 - similarity ** 2)]


class TestCosineSimilarity:
    """Test suite for cosine_similarity."""

    def test_identical_vectors(self):
        assert cosine_similarity([0.3, 0.4, 0.5], [0.3, 0.4, 0.5]) == pytest.approx(1.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1, 2], [-1, -2]) == pytest.approx(-1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)

    def test_zero_norm_scores_zero(self):
        assert cosine_similarity([0, 0, 0], [1, 2, 3]) == 0.0
        assert cosine_similarity([1, 2, 3], [0, 0, 0]) == 0.0

    def test_dimension_mismatch(self):
        with pytest.raises(ValueError, match="dimensions differ"):
            cosine_similarity([1, 2, 3], [1, 2])


class TestRetrievalEngine:
    """Test suite for RetrievalEngine class."""

    @pytest.fixture
    def mock_vector_store(self):
        """Create a mock chunk store."""
        return Mock()

    @pytest.fixture
    def mock_embedding_model(self):
        """Create a mock EmbeddingModel."""
        model = Mock()
        model.embed_text.return_value = [1.0, 0.0]
        return model

    @pytest.fixture
    def retrieval_engine(self, mock_vector_store, mock_embedding_model):
        """Create a RetrievalEngine instance with mocks."""
        return RetrievalEngine(mock_vector_store, mock_embedding_model)

    def test_initialization(self, retrieval_engine, mock_vector_store, mock_embedding_model):
        """Test that RetrievalEngine initializes correctly."""
        assert retrieval_engine.vector_store == mock_vector_store
        assert retrieval_engine.embedding_model == mock_embedding_model

    def test_returns_top_k_in_descending_order(self, retrieval_engine, mock_vector_store):
        """Ten chunks with known similarities; the best three come back in order."""
        scores = [0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 0.95]
        chunks = [_chunk(f"c{i}", _unit(s)) for i, s in enumerate(scores)]
        random.Random(7).shuffle(chunks)
        mock_vector_store.get_course_chunks.return_value = chunks

        results = retrieval_engine.retrieve("What is entropy?", "cs101", top_k=3)

        assert len(results) == 3
        assert all(isinstance(r, ScoredChunk) for r in results)
        assert [r.chunk.chunk_id for r in results] == ["c9", "c8", "c7"]
        assert [round(r.relevance_score, 6) for r in results] == [0.95, 0.9, 0.8]

    def test_returns_all_when_fewer_than_top_k(self, retrieval_engine, mock_vector_store):
        mock_vector_store.get_course_chunks.return_value = [_chunk("a", _unit(0.2)), _chunk("b", _unit(0.7))]

        results = retrieval_engine.retrieve("query", "cs101", top_k=5)

        assert [r.chunk.chunk_id for r in results] == ["b", "a"]

    def test_chunks_without_embedding_are_skipped(self, retrieval_engine, mock_vector_store):
        mock_vector_store.get_course_chunks.return_value = [
            _chunk("missing", None),
            _chunk("empty", []),
            _chunk("ok", _unit(0.5)),
        ]

        results = retrieval_engine.retrieve("query", "cs101", top_k=5)

        assert [r.chunk.chunk_id for r in results] == ["ok"]

    def test_dimension_mismatch_chunk_is_skipped(self, retrieval_engine, mock_vector_store):
        mock_vector_store.get_course_chunks.return_value = [
            _chunk("wrong", [1.0, 0.0, 0.0]),
            _chunk("ok", _unit(0.5)),
        ]

        results = retrieval_engine.retrieve("query", "cs101", top_k=5)

        assert [r.chunk.chunk_id for r in results] == ["ok"]

    def test_zero_vector_chunk_scores_zero(self, retrieval_engine, mock_vector_store):
        mock_vector_store.get_course_chunks.return_value = [_chunk("zero", [0.0, 0.0])]

        results = retrieval_engine.retrieve("query", "cs101", top_k=1)

        assert results[0].relevance_score == 0.0

    def test_query_matches_own_chunk_exactly(self, retrieval_engine, mock_vector_store, mock_embedding_model):
        vector = [0.12, -0.5, 0.33, 0.9]
        mock_embedding_model.embed_text.return_value = vector
        mock_vector_store.get_course_chunks.return_value = [
            _chunk("other", [0.9, 0.1, -0.3, 0.0]),
            _chunk("self", list(vector)),
        ]

        results = retrieval_engine.retrieve("the chunk text itself", "cs101", top_k=1)

        assert results[0].chunk.chunk_id == "self"
        assert results[0].relevance_score == pytest.approx(1.0)

    def test_ties_keep_store_order(self, retrieval_engine, mock_vector_store):
        mock_vector_store.get_course_chunks.return_value = [
            _chunk("first", [2.0, 0.0]),
            _chunk("second", [1.0, 0.0]),
            _chunk("third", [5.0, 0.0]),
        ]

        results = retrieval_engine.retrieve("query", "cs101", top_k=3)

        assert [r.chunk.chunk_id for r in results] == ["first", "second", "third"]

    def test_empty_course_returns_empty(self, retrieval_engine, mock_vector_store):
        mock_vector_store.get_course_chunks.return_value = []

        assert retrieval_engine.retrieve("query", "empty-course") == []
        mock_vector_store.get_course_chunks.assert_called_once_with("empty-course")

    def test_retrieve_empty_query(self, retrieval_engine, mock_embedding_model, mock_vector_store):
        """Test that empty query returns empty list without calling providers."""
        assert retrieval_engine.retrieve("", "cs101") == []
        assert retrieval_engine.retrieve("   ", "cs101") == []
        mock_embedding_model.embed_text.assert_not_called()
        mock_vector_store.get_course_chunks.assert_not_called()

    def test_non_positive_top_k_rejected(self, retrieval_engine):
        with pytest.raises(ValueError, match="top_k must be positive"):
            retrieval_engine.retrieve("query", "cs101", top_k=0)

        with pytest.raises(ValueError):
            retrieval_engine.retrieve("query", "cs101", top_k=-3)

    def test_embedding_failure_raises_retrieval_error(
        self, retrieval_engine, mock_embedding_model, mock_vector_store
    ):
        mock_embedding_model.embed_text.side_effect = EmbeddingError("Rate limit exceeded")
        mock_vector_store.get_course_chunks.return_value = [_chunk("a", _unit(0.5))]

        with pytest.raises(RetrievalError, match="Failed to embed query"):
            retrieval_engine.retrieve("query", "cs101")

    def test_store_failure_raises_retrieval_error(self, retrieval_engine, mock_vector_store):
        mock_vector_store.get_course_chunks.side_effect = StorageError("connection reset")

        with pytest.raises(RetrievalError, match="Failed to load chunks for course cs101"):
            retrieval_engine.retrieve("query", "cs101")

    def test_results_scoped_to_course(self, mock_embedding_model):
        store = InMemoryVectorStore()
        store.add_chunks([
            _chunk("cs-1", _unit(0.9), course_id="cs101"),
            _chunk("math-1", [1.0, 0.0], course_id="math200"),
        ])
        engine = RetrievalEngine(store, mock_embedding_model)

        results = engine.retrieve("query", "cs101", top_k=5)

        assert [r.chunk.chunk_id for r in results] == ["cs-1"]
