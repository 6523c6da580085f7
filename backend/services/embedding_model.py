"""Embedding model integration with Hugging Face Inference API."""
import time
import logging
from typing import List, Optional
import httpx
from config import HUGGINGFACE_API_KEY, EMBEDDING_MODEL

logger = logging.getLogger(__name__)


class EmbeddingError(RuntimeError):
    """Raised when the embedding provider fails to return a vector."""


class EmbeddingModel:
    """Wrapper for Hugging Face Inference API embedding model.

    Every call is a single request. Failures are raised to the caller and never
    replaced by a zero vector, which would silently corrupt similarity ranking.
    """

    def __init__(
        self,
        api_key: Optional[str] = HUGGINGFACE_API_KEY,
        model_name: str = EMBEDDING_MODEL,
        timeout: float = 60.0
    ):
        """
        Initialize the embedding model client.

        Args:
            api_key: Hugging Face API key
            model_name: Model identifier (default: sentence-transformers/all-mpnet-base-v2)
            timeout: Request timeout in seconds
        """
        if not api_key:
            raise ValueError("HUGGINGFACE_API_KEY environment variable is required")

        self.api_key = api_key
        self.model_name = model_name
        self.timeout = timeout
        self.api_url = (
            f"https://router.huggingface.co/hf-inference/models/{model_name}/pipeline/feature-extraction"
        )

        logger.info(f"Initialized EmbeddingModel with model: {model_name}")

    def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text string.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats

        Raises:
            ValueError: If text is empty
            EmbeddingError: If the API request fails
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        payload = {
            "inputs": [text],
            "options": {
                "wait_for_model": True  # Wait for model to load if sleeping
            }
        }

        start_time = time.time()
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.api_url, headers=headers, json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"Embedding request timed out after {self.timeout}s")
            raise EmbeddingError(f"Request timeout after {self.timeout}s") from e
        except httpx.RequestError as e:
            logger.error(f"Embedding request network error: {e}")
            raise EmbeddingError(f"Network error: {e}") from e

        elapsed = time.time() - start_time

        if response.status_code == 429:
            logger.error("Rate limit exceeded for Hugging Face API")
            raise EmbeddingError("Rate limit exceeded. Please try again later.")

        if response.status_code == 401:
            logger.error("Authentication failed for Hugging Face API")
            raise EmbeddingError("Invalid API key")

        if response.status_code != 200:
            error_msg = f"API request failed with status {response.status_code}: {response.text}"
            logger.error(error_msg)
            raise EmbeddingError(error_msg)

        vector = self._parse_vector(response.json())
        logger.debug(f"Generated {len(vector)}-dim embedding in {elapsed:.2f}s")
        return vector

    @staticmethod
    def _parse_vector(data) -> List[float]:
        """Unwrap the single-input batch response into a flat float vector."""
        if isinstance(data, list) and data and isinstance(data[0], list):
            data = data[0]
        if not isinstance(data, list) or not data or not all(isinstance(v, (int, float)) for v in data):
            raise EmbeddingError("No embedding generated")
        return [float(v) for v in data]

    def warmup(self) -> bool:
        """
        Warm up the model with a dummy query to avoid cold start delays.

        Returns:
            True if warmup successful, False otherwise
        """
        try:
            logger.info("Warming up embedding model...")
            start_time = time.time()

            self.embed_text("warmup query")

            elapsed = time.time() - start_time
            logger.info(f"Model warmup completed in {elapsed:.1f}s")
            return True

        except (EmbeddingError, ValueError) as e:
            logger.error(f"Model warmup failed: {str(e)}")
            return False
