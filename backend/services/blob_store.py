"""Blob storage backends for uploaded course files."""
import logging
from pathlib import Path
from typing import Optional
from supabase import create_client, Client

from services.vector_store import StorageError
from config import SUPABASE_URL, SUPABASE_KEY, SUPABASE_BUCKET

logger = logging.getLogger(__name__)


class SupabaseBlobStore:
    """Downloads uploaded files from a Supabase Storage bucket."""

    def __init__(
        self,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        bucket: str = SUPABASE_BUCKET,
        client: Optional[Client] = None
    ):
        if client is None:
            if not supabase_url or not supabase_key:
                raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")
            client = create_client(supabase_url, supabase_key)

        self.client: Client = client
        self.bucket = bucket

    def download(self, storage_location: str) -> bytes:
        """
        Download a file by its path inside the bucket.

        Raises:
            StorageError: If the file is missing or the request fails
        """
        if not storage_location:
            raise StorageError("Storage location is required")

        try:
            data = self.client.storage.from_(self.bucket).download(storage_location)
        except Exception as e:
            logger.error(f"Failed to download {self.bucket}/{storage_location}: {e}")
            raise StorageError(f"Download failed for {storage_location}: {e}") from e

        logger.debug(f"Downloaded {len(data)} bytes from {self.bucket}/{storage_location}")
        return data


class LocalBlobStore:
    """Reads uploaded files from a local directory (development and tests)."""

    def __init__(self, root_directory: str = "course_materials"):
        self.root = Path(root_directory).resolve()

    def download(self, storage_location: str) -> bytes:
        path = (self.root / storage_location).resolve()
        if self.root not in path.parents:
            raise StorageError(f"Storage location escapes the blob root: {storage_location}")
        try:
            return path.read_bytes()
        except OSError as e:
            logger.error(f"Failed to read {path}: {e}")
            raise StorageError(f"Download failed for {storage_location}: {e}") from e
