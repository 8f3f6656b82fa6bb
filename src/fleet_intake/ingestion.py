"""Page-text extraction from work order PDFs."""

import io
import logging
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Tuple, Union

import pypdfium2 as pdfium

from fleet_intake.errors import ExtractionError
from fleet_intake.utils.progress import FULL_RANGE, ProgressCallback, ScaledProgress

logger = logging.getLogger(__name__)

DEFAULT_MIN_TEXT_LENGTH = 50
PAGE_SEPARATOR = "\n\n"

DocumentSource = Union[bytes, bytearray, str, Path, BinaryIO]

TOO_SPARSE_MESSAGE = (
    "Could not extract text from PDF. Document may be scanned or image-based."
)


def read_document_bytes(document: DocumentSource) -> bytes:
    """Read a document given as bytes, a path or a binary stream."""
    if isinstance(document, (bytes, bytearray)):
        return bytes(document)
    if isinstance(document, (str, Path)):
        path = Path(document)
        if not path.is_file():
            raise ExtractionError(f"File not found: {path}")
        return path.read_bytes()
    if isinstance(document, io.IOBase) or hasattr(document, "read"):
        return document.read()
    raise ExtractionError(f"Unsupported document source: {type(document).__name__}")


def _page_text(pdf_doc: "pdfium.PdfDocument", page_index: int) -> str:
    try:
        page = pdf_doc[page_index]
        try:
            textpage = page.get_textpage()
            try:
                return textpage.get_text_range()
            finally:
                textpage.close()
        finally:
            page.close()
    except pdfium.PdfiumError as e:
        raise ExtractionError(
            f"Cannot read text of page {page_index + 1}: {e}", original_error=e
        ) from e


class DocumentTextExtractor:
    """Turns a paginated document into one text blob.

    Pages are read sequentially and joined with paragraph breaks. Progress is
    reported per page, scaled onto the caller's declared sub-range.
    """

    def __init__(self, min_text_length: int = DEFAULT_MIN_TEXT_LENGTH, max_pages: Optional[int] = None):
        self.min_text_length = min_text_length
        self.max_pages = max_pages

    @classmethod
    def from_settings(cls, settings) -> "DocumentTextExtractor":
        return cls(min_text_length=settings.min_text_length, max_pages=settings.max_pages)

    def extract(
        self,
        document: DocumentSource,
        on_progress: Optional[ProgressCallback] = None,
        progress_range: Tuple[float, float] = FULL_RANGE,
    ) -> str:
        """
        Extract the text of every page.

        Args:
            document: PDF bytes, a path to a PDF or a binary stream
            on_progress: Optional callback receiving floats in [0, 100]
            progress_range: Sub-range of the 0-100 scale owned by this step

        Returns:
            The page texts joined by blank lines

        Raises:
            ExtractionError: If the document cannot be opened or read, or yields fewer
                than ``min_text_length`` characters
        """
        progress = ScaledProgress(on_progress, progress_range)
        progress.report(0.0)

        data = read_document_bytes(document)
        page_texts = []
        for page_number, page_count, text in self._read_pages(data):
            page_texts.append(text)
            progress.report(page_number / page_count)

        full_text = PAGE_SEPARATOR.join(page_texts).strip()
        progress.done()

        if len(full_text) < self.min_text_length:
            logger.warning(
                f"Extracted {len(full_text)} characters, minimum is {self.min_text_length}"
            )
            raise ExtractionError(TOO_SPARSE_MESSAGE)

        logger.info(f"Extracted {len(full_text)} characters from {len(page_texts)} page(s)")
        return full_text

    def _read_pages(self, data: bytes) -> Iterator[Tuple[int, int, str]]:
        """Yield ``(page_number, page_count, text)`` for each page to read."""
        try:
            pdf_doc = pdfium.PdfDocument(data)
        except pdfium.PdfiumError as e:
            raise ExtractionError(f"Cannot open PDF document: {e}", original_error=e) from e

        try:
            total_pages = len(pdf_doc)
            pages_to_read = total_pages
            if self.max_pages is not None and total_pages > self.max_pages:
                logger.warning(
                    f"PDF has {total_pages} pages, reading only first {self.max_pages} pages"
                )
                pages_to_read = self.max_pages

            for page_index in range(pages_to_read):
                text = _page_text(pdf_doc, page_index)
                logger.debug(f"Read page {page_index + 1}/{pages_to_read}: {len(text)} chars")
                yield page_index + 1, pages_to_read, text
        finally:
            pdf_doc.close()
