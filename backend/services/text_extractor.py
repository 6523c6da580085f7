"""Text extraction for uploaded course documents."""
import logging
import os
import tempfile
from typing import Optional
import fitz  # PyMuPDF
from pptx import Presentation

from config import MIN_TEXT_LENGTH
from services.providers import StructuredExtractionProvider

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
MARKDOWN_MEDIA_TYPES = ("application/markdown", "text/markdown", "text/x-markdown")


class ExtractionError(Exception):
    """Raised when no usable text can be extracted from a document."""


class ExtractionTooShort(ExtractionError):
    """Raised when extracted text is empty or below the minimum viable length."""

    def __init__(self, length: int, minimum: int):
        self.length = length
        self.minimum = minimum
        super().__init__(
            f"Could not extract text or text is too short ({length} chars, minimum {minimum})"
        )


class TextExtractor:
    """Converts a raw document blob into plain text using an ordered fallback chain."""

    def __init__(
        self,
        structured_provider: Optional[StructuredExtractionProvider] = None,
        min_text_length: int = MIN_TEXT_LENGTH
    ):
        """
        Initialize TextExtractor.

        Args:
            structured_provider: OCR/document-structure provider tried first for PDFs
            min_text_length: Minimum number of characters a document must yield
        """
        self.structured_provider = structured_provider
        self.min_text_length = min_text_length

    def extract_text(self, blob: bytes, media_type: str) -> str:
        """
        Extract plain text from a document blob.

        Args:
            blob: Raw file content
            media_type: Declared media type of the upload

        Returns:
            Extracted text

        Raises:
            ExtractionTooShort: If the text is empty or shorter than the minimum
            ExtractionError: If every extraction strategy failed
        """
        # Drop parameters such as "; charset=utf-8" or "; name=notes.pdf"
        media_type = (media_type or "").split(";")[0].strip().lower()

        if media_type == PDF_MEDIA_TYPE:
            text = self._extract_pdf(blob)
        elif media_type.startswith("text/") or media_type in MARKDOWN_MEDIA_TYPES:
            text = self._decode(blob)
        elif "presentation" in media_type:
            text = self._extract_presentation(blob)
        else:
            logger.info(f"Unknown media type '{media_type}', decoding as UTF-8")
            text = self._decode(blob)

        length = len(text.strip()) if text else 0
        if length < self.min_text_length:
            raise ExtractionTooShort(length, self.min_text_length)

        return text

    def _extract_pdf(self, blob: bytes) -> str:
        """Try OCR/structured extraction first, then fall back to the PDF text layer."""
        if self.structured_provider is not None:
            try:
                text = self.structured_provider.extract_structured_text(blob, PDF_MEDIA_TYPE)
                if text and text.strip():
                    logger.info(f"Extracted {len(text)} chars using structured extraction")
                    return text
                logger.warning("Structured extraction returned no text, falling back to PDF text layer")
            except Exception as e:
                logger.warning(
                    f"Structured extraction failed ({type(e).__name__}: {e}), "
                    "falling back to PDF text layer"
                )
        else:
            logger.info("No structured extraction provider configured, using PDF text layer")

        try:
            pdf_document = fitz.open(stream=blob, filetype="pdf")
            try:
                text = "\n".join(page.get_text() for page in pdf_document)
            finally:
                pdf_document.close()
        except Exception as e:
            logger.error(f"PDF text-layer extraction failed: {type(e).__name__}: {e}")
            raise ExtractionError(f"PDF text extraction failed: {e}") from e

        logger.info(f"Extracted {len(text)} chars using PDF text layer")
        return text

    def _extract_presentation(self, blob: bytes) -> str:
        """Extract slide and speaker-note text via a scoped temporary file."""
        with tempfile.NamedTemporaryFile(delete=False, suffix=".pptx") as temp_file:
            temp_file.write(blob)
            temp_path = temp_file.name

        try:
            presentation = Presentation(temp_path)
            parts = []
            for slide in presentation.slides:
                for shape in slide.shapes:
                    if shape.has_text_frame and shape.text_frame.text.strip():
                        parts.append(shape.text_frame.text)
                if slide.has_notes_slide:
                    notes_frame = slide.notes_slide.notes_text_frame
                    if notes_frame is not None and notes_frame.text.strip():
                        parts.append(notes_frame.text)
        except Exception as e:
            logger.error(f"Presentation extraction failed: {type(e).__name__}: {e}")
            raise ExtractionError(f"Presentation extraction failed: {e}") from e
        finally:
            if os.path.exists(temp_path):
                os.remove(temp_path)

        text = "\n".join(parts)
        logger.info(f"Extracted {len(text)} chars from presentation")
        return text

    @staticmethod
    def _decode(blob: bytes) -> str:
        return blob.decode("utf-8", errors="replace")
