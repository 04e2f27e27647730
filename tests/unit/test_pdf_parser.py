"""Unit tests for PDF parser module."""

from pathlib import Path

import pytest
import pytest_check as check

from chat_relay.parsing.pdf_parser import (
    MAX_FILE_SIZE,
    PDFParseError,
    PDFValidationError,
    parse_pdf,
    parse_pdf_file,
)


class TestParsePdfValid:
    """Tests for successful PDF parsing."""

    def test_extracts_text_and_page_count(self, text_pdf: bytes) -> None:
        """Valid PDF returns text content and correct page count."""
        result = parse_pdf(text_pdf)

        check.is_in("Quarterly", result.text)
        check.equal(result.pages, 1)

    def test_blank_page_pdf_succeeds(self, blank_pdf: bytes) -> None:
        """PDF with no text parses to empty text without error."""
        result = parse_pdf(blank_pdf)

        check.equal(result.pages, 1)
        check.equal(result.text.strip(), "")


class TestParsePdfRejection:
    """Tests for PDF validation and rejection."""

    def test_rejects_empty_bytes(self) -> None:
        """Empty bytes raises PDFValidationError."""
        with pytest.raises(PDFValidationError, match="Empty file"):
            parse_pdf(b"")

    def test_rejects_non_pdf_file(self) -> None:
        """Non-PDF content raises PDFValidationError."""
        with pytest.raises(PDFValidationError, match="Invalid PDF"):
            parse_pdf(b"This is a plain text file, not a PDF.")

    def test_rejects_oversized_file(self) -> None:
        """File over 10MB raises PDFValidationError."""
        oversized = b"%PDF-1.4" + b"\x00" * (MAX_FILE_SIZE + 1)

        with pytest.raises(PDFValidationError, match="exceeds maximum"):
            parse_pdf(oversized)

    def test_truncated_pdf_is_extraction_failure(self) -> None:
        """Truncated PDF raises PDFParseError, not a validation error."""
        with pytest.raises(PDFParseError, match="Corrupt|Failed|no pages") as exc_info:
            parse_pdf(b"%PDF-1.4\n1 0 obj\n<<")

        assert not isinstance(exc_info.value, PDFValidationError)


class TestParsePdfFile:
    """Tests for extraction from a spooled file."""

    def test_extracts_text_from_path(self, text_pdf: bytes, tmp_path: Path) -> None:
        path = tmp_path / "report.pdf"
        path.write_bytes(text_pdf)

        result = parse_pdf_file(path)

        check.is_in("Quarterly", result.text)
        check.equal(result.pages, 1)

    @pytest.mark.parametrize(
        ("content", "match"),
        [(b"", "Empty file"), (b"GIF89a not a pdf", "Invalid PDF")],
    )
    def test_rejects_invalid_file(self, tmp_path: Path, content: bytes, match: str) -> None:
        path = tmp_path / "upload.pdf"
        path.write_bytes(content)

        with pytest.raises(PDFValidationError, match=match):
            parse_pdf_file(path)
