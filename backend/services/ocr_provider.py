"""OCR extraction for scanned PDFs using PyMuPDF's Tesseract integration."""
import logging
from typing import Optional
import fitz  # PyMuPDF

from config import OCR_LANGUAGE, OCR_DPI, TESSDATA_PREFIX

logger = logging.getLogger(__name__)


class OCRNotConfiguredError(RuntimeError):
    """Raised when no Tesseract language data location is configured."""


class PyMuPDFOCRProvider:
    """Structured extraction provider that OCRs every page of a PDF."""

    def __init__(
        self,
        tessdata: Optional[str] = TESSDATA_PREFIX,
        language: str = OCR_LANGUAGE,
        dpi: int = OCR_DPI
    ):
        """
        Initialize the OCR provider.

        Args:
            tessdata: Path to Tesseract language data (None disables OCR)
            language: Tesseract language code(s), e.g. "eng" or "eng+deu"
            dpi: Rendering resolution used for OCR
        """
        self.tessdata = tessdata
        self.language = language
        self.dpi = dpi

    def extract_structured_text(self, blob: bytes, media_type: str) -> str:
        """
        OCR a PDF blob page by page.

        Raises:
            OCRNotConfiguredError: If tessdata is not configured
            RuntimeError: If PyMuPDF or Tesseract fail
        """
        if not self.tessdata:
            raise OCRNotConfiguredError("OCR processor not configured (TESSDATA_PREFIX is not set)")

        pdf_document = fitz.open(stream=blob, filetype="pdf")
        try:
            pages = []
            for page in pdf_document:
                textpage = page.get_textpage_ocr(
                    language=self.language,
                    dpi=self.dpi,
                    full=True,
                    tessdata=self.tessdata
                )
                pages.append(page.get_text(textpage=textpage))
        finally:
            pdf_document.close()

        logger.debug(f"OCR processed {len(pages)} pages ({media_type})")
        return "\n".join(pages)
