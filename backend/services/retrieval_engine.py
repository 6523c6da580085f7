"""Retrieval engine: embeds the query and ranks a course's chunks by cosine similarity."""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence
import numpy as np

from models.chunk import Chunk, ScoredChunk

logger = logging.getLogger(__name__)


class RetrievalError(RuntimeError):
    """Raised when the query cannot be embedded or the course chunks cannot be read."""


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (|a| * |b|); 0.0 when either vector has zero norm."""
    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)
    if vec_a.shape != vec_b.shape:
        raise ValueError(f"Vector dimensions differ: {vec_a.shape} vs {vec_b.shape}")
    norm = np.linalg.norm(vec_a) * np.linalg.norm(vec_b)
    if norm == 0:
        return 0.0
    return float(np.dot(vec_a, vec_b) / norm)


class RetrievalEngine:
    """Exhaustive nearest-neighbour search over one course's chunks.

    Every chunk of the course is scored, which is fine for a single course's
    materials. Swap the chunk store for an ANN index when courses grow large.
    """

    def __init__(self, vector_store, embedding_model):
        """
        Initialize the retrieval engine.

        Args:
            vector_store: Chunk store providing get_course_chunks()
            embedding_model: EmbeddingProvider for query embedding
        """
        self.vector_store = vector_store
        self.embedding_model = embedding_model
        logger.info("Initialized RetrievalEngine")

    def retrieve(self, query: str, course_id: str, top_k: int = 5) -> List[ScoredChunk]:
        """
        Retrieve the top_k chunks of a course most similar to the query.

        The query embedding and the chunk read are issued concurrently and
        joined before scoring.

        Args:
            query: User question
            course_id: Course whose chunks are searched
            top_k: Maximum number of chunks to return

        Returns:
            Scored chunks sorted by descending similarity, empty if the course
            has no chunks or the query is blank

        Raises:
            ValueError: If top_k is not positive
            RetrievalError: If embedding or chunk loading fails
        """
        if top_k <= 0:
            raise ValueError("top_k must be positive")

        # Handle empty query strings gracefully
        if not query or not query.strip():
            logger.warning("Empty query string provided, returning empty results")
            return []

        with ThreadPoolExecutor(max_workers=2) as executor:
            embedding_future = executor.submit(self.embedding_model.embed_text, query)
            chunks_future = executor.submit(self.vector_store.get_course_chunks, course_id)

            try:
                query_embedding = embedding_future.result()
            except Exception as e:
                logger.error(f"Query embedding failed for course {course_id}: {e}")
                raise RetrievalError(f"Failed to embed query: {e}") from e

            try:
                chunks = chunks_future.result()
            except Exception as e:
                logger.error(f"Loading chunks failed for course {course_id}: {e}")
                raise RetrievalError(f"Failed to load chunks for course {course_id}: {e}") from e

        if not chunks:
            logger.info(f"No chunks indexed for course {course_id}")
            return []

        scored = self.rank(query_embedding, chunks)
        results = scored[:top_k]

        logger.info(
            f"Retrieved {len(results)} of {len(scored)} scored chunks for course {course_id}"
            + (f" (top score: {results[0].relevance_score:.3f})" if results else "")
        )
        return results

    @staticmethod
    def rank(query_embedding: Sequence[float], chunks: List[Chunk]) -> List[ScoredChunk]:
        """Score chunks against the query; chunks without an embedding are skipped.

        The sort is stable, so ties keep the order the store returned.
        """
        scored = []
        skipped = 0
        for chunk in chunks:
            if not chunk.embedding:
                skipped += 1
                continue
            try:
                score = cosine_similarity(query_embedding, chunk.embedding)
            except ValueError as e:
                logger.warning(f"Skipping chunk {chunk.chunk_id}: {e}")
                skipped += 1
                continue
            scored.append(ScoredChunk(chunk=chunk, relevance_score=score))

        if skipped:
            logger.debug(f"Skipped {skipped} chunks without a usable embedding")

        return sorted(scored, key=lambda sc: sc.relevance_score, reverse=True)
