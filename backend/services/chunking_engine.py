"""Chunking engine with sentence-boundary cuts and fixed overlap."""
import logging
from typing import List, Optional

from config import CHUNK_SIZE, CHUNK_OVERLAP, MIN_CHUNK_LENGTH

logger = logging.getLogger(__name__)

# A period is a safe cut point only if it falls past this share of the window.
SEMANTIC_CUT_RATIO = 0.8


class ChunkingEngine:
    """Segments extracted text into overlapping character windows."""

    def __init__(
        self,
        chunk_size: int = CHUNK_SIZE,
        chunk_overlap: int = CHUNK_OVERLAP,
        min_chunk_length: int = MIN_CHUNK_LENGTH
    ):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Target chunk size in characters
            chunk_overlap: Overlap between consecutive chunks in characters
            min_chunk_length: Chunks whose trimmed length is at or below this are dropped
        """
        self._validate(chunk_size, chunk_overlap)
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.min_chunk_length = min_chunk_length

    def chunk(
        self,
        text: str,
        target_size: Optional[int] = None,
        overlap: Optional[int] = None
    ) -> List[str]:
        """
        Split text into overlapping chunks.

        Each window of ``target_size`` characters is cut after its last period
        when that period lies past 80% of the window and the window does not
        already reach the end of the text. The cursor then advances by the cut
        position (or the full window) minus ``overlap``.

        Args:
            text: Text to chunk
            target_size: Window size in characters (defaults to the engine's chunk_size)
            overlap: Overlap in characters (defaults to the engine's chunk_overlap)

        Returns:
            List of trimmed chunk strings, each longer than min_chunk_length

        Raises:
            ValueError: If the size/overlap combination cannot make progress
        """
        target_size = self.chunk_size if target_size is None else target_size
        overlap = self.chunk_overlap if overlap is None else overlap
        self._validate(target_size, overlap)

        if not text:
            return []

        chunks: List[str] = []
        text_length = len(text)
        start = 0

        while start < text_length:
            end = min(start + target_size, text_length)
            window = text[start:end]
            reaches_end = end >= text_length

            cut = window.rfind(".") + 1  # 0 when there is no period
            if (
                not reaches_end
                and cut - 1 > target_size * SEMANTIC_CUT_RATIO
                and cut > overlap
            ):
                window = window[:cut]
                start += cut - overlap
            else:
                start += target_size - overlap

            candidate = window.strip()
            if len(candidate) > self.min_chunk_length:
                chunks.append(candidate)

            if reaches_end:
                break

        logger.debug(
            f"Chunked {text_length} chars into {len(chunks)} chunks "
            f"(size={target_size}, overlap={overlap})"
        )
        return chunks

    @staticmethod
    def _validate(target_size: int, overlap: int) -> None:
        if target_size <= 0:
            raise ValueError("target_size must be positive")
        if overlap < 0 or overlap >= target_size:
            raise ValueError("overlap must be non-negative and smaller than target_size")
