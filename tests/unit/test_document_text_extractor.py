"""Unit tests for PDF page-text extraction."""

import io
from unittest.mock import MagicMock

import pypdfium2 as pdfium
import pytest

from fleet_intake.errors import ExtractionError
from fleet_intake.ingestion import (
    TOO_SPARSE_MESSAGE,
    DocumentTextExtractor,
    read_document_bytes,
)

PAGE_ONE = "WORK ORDER 1001 UNIT 42 VIN 1FTFW1ET1EKE12345 ODOMETER 412000"
PAGE_TWO = "COMPLAINT BRAKES GRINDING CORRECTION REPLACED FRONT PADS"


class FakePagesExtractor(DocumentTextExtractor):
    """Extractor reading canned page texts instead of a PDF."""

    def __init__(self, pages, **kwargs):
        super().__init__(**kwargs)
        self.pages = pages

    def _read_pages(self, data):
        for index, text in enumerate(self.pages, start=1):
            yield index, len(self.pages), text


class TestReadDocumentBytes:
    def test_bytes(self):
        assert read_document_bytes(b"%PDF") == b"%PDF"

    def test_path(self, tmp_path):
        path = tmp_path / "wo.pdf"
        path.write_bytes(b"%PDF-1.4")

        assert read_document_bytes(path) == b"%PDF-1.4"
        assert read_document_bytes(str(path)) == b"%PDF-1.4"

    def test_stream(self):
        assert read_document_bytes(io.BytesIO(b"abc")) == b"abc"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ExtractionError, match="File not found"):
            read_document_bytes(tmp_path / "missing.pdf")


class TestExtract:
    def test_pages_joined_with_blank_line(self):
        extractor = FakePagesExtractor([PAGE_ONE, PAGE_TWO])

        assert extractor.extract(b"ignored") == f"{PAGE_ONE}\n\n{PAGE_TWO}"

    def test_too_sparse_text(self):
        extractor = FakePagesExtractor(["   ", "short"])

        with pytest.raises(ExtractionError) as excinfo:
            extractor.extract(b"ignored")

        assert excinfo.value.message == TOO_SPARSE_MESSAGE

    def test_min_length_configurable(self):
        extractor = FakePagesExtractor(["short text"], min_text_length=5)

        assert extractor.extract(b"ignored") == "short text"

    def test_progress_monotonic_within_range(self):
        values = []
        extractor = FakePagesExtractor([PAGE_ONE, PAGE_TWO, PAGE_ONE, PAGE_TWO])

        extractor.extract(b"ignored", on_progress=values.append, progress_range=(0.0, 50.0))

        assert values[0] == 0.0
        assert values[-1] == 50.0
        assert values == sorted(values)
        assert all(0.0 <= v <= 50.0 for v in values)

    def test_from_settings(self):
        from fleet_intake.config import IntakeSettings

        extractor = DocumentTextExtractor.from_settings(IntakeSettings(min_text_length=80, max_pages=3))

        assert extractor.min_text_length == 80
        assert extractor.max_pages == 3


class TestPdfDocuments:
    def test_reads_real_pdf(self, make_pdf):
        text = DocumentTextExtractor().extract(make_pdf([PAGE_ONE, PAGE_TWO]))

        assert "1FTFW1ET1EKE12345" in text
        assert "REPLACED FRONT PADS" in text

    def test_max_pages(self, make_pdf):
        text = DocumentTextExtractor(max_pages=1).extract(make_pdf([PAGE_ONE, PAGE_TWO]))

        assert "1FTFW1ET1EKE12345" in text
        assert "REPLACED FRONT PADS" not in text

    def test_invalid_pdf_bytes(self):
        with pytest.raises(ExtractionError, match="Cannot open PDF"):
            DocumentTextExtractor().extract(b"this is not a pdf")

    def test_unreadable_page(self, make_pdf, monkeypatch):
        pdf_bytes = make_pdf([PAGE_ONE])
        broken_doc = MagicMock()
        broken_doc.__len__.return_value = 2
        broken_doc.__getitem__.side_effect = pdfium.PdfiumError("Failed to load page.")
        monkeypatch.setattr(pdfium, "PdfDocument", lambda data: broken_doc)

        with pytest.raises(ExtractionError) as excinfo:
            DocumentTextExtractor(min_text_length=1).extract(pdf_bytes)

        assert "page 1" in excinfo.value.message
        assert isinstance(excinfo.value.original_error, pdfium.PdfiumError)
        broken_doc.close.assert_called_once()
