"""PDF text extraction using pypdf.

Turns an uploaded document into plain grounding text. The upload endpoint
spools uploads to disk and hands the path to ``parse_pdf_file``;
``parse_pdf`` covers documents already held in memory.
"""

import io
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

from pydantic import BaseModel, Field
from pypdf import PdfReader
from pypdf.errors import PdfReadError

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
PDF_MAGIC_BYTES = b"%PDF"
HEADER_READ_SIZE = 1024


class PDFContent(BaseModel):
    """Grounding text pulled out of a PDF.

    Attributes:
        text: Page texts joined by blank lines.
        pages: Total number of pages in the document.
    """

    text: str
    pages: int = Field(ge=0)


class PDFParseError(Exception):
    """Raised when text extraction fails on a file that looked like a PDF."""


class PDFValidationError(PDFParseError):
    """Raised when the input is not an acceptable PDF at all."""


def _check_size(size: int) -> None:
    if size == 0:
        raise PDFValidationError("Empty file provided")
    if size > MAX_FILE_SIZE:
        raise PDFValidationError(
            f"File size ({size / (1024 * 1024):.1f}MB) exceeds maximum allowed (10MB)"
        )


def _check_header(head: bytes) -> None:
    # Some generators emit whitespace before the header
    if not head.lstrip()[:10].startswith(PDF_MAGIC_BYTES):
        raise PDFValidationError("Invalid PDF: file does not start with PDF header")


def validate_pdf_bytes(file_content: bytes) -> None:
    """Validate in-memory PDF content before parsing.

    Raises:
        PDFValidationError: If the file is empty, too large, or lacks a PDF header.
    """
    _check_size(len(file_content))
    _check_header(file_content[:HEADER_READ_SIZE])


def _page_texts(reader: PdfReader) -> Iterator[str]:
    for number, page in enumerate(reader.pages, start=1):
        try:
            text = page.extract_text()
        except Exception as e:
            logger.warning(f"Skipping page {number}, text extraction failed: {e}")
            continue
        if text:
            yield text


def _read_document(source: Path | BinaryIO) -> PDFContent:
    try:
        reader = PdfReader(source)
        pages = len(reader.pages)
    except PdfReadError as e:
        raise PDFParseError(f"Corrupt or invalid PDF: {e}") from e
    except Exception as e:
        raise PDFParseError(f"Failed to read PDF: {e}") from e

    if pages == 0:
        raise PDFParseError("PDF contains no pages")

    text = "\n\n".join(_page_texts(reader))
    if not text.strip():
        logger.warning("PDF contains no extractable text (may be scanned/image-based)")

    logger.debug(f"Extracted {len(text)} characters from {pages} page(s)")
    return PDFContent(text=text, pages=pages)


def parse_pdf(file_content: bytes) -> PDFContent:
    """Extract the text of a PDF held in memory.

    Raises:
        PDFValidationError: If the bytes are not an acceptable PDF.
        PDFParseError: If the PDF is corrupt or has no pages.
    """
    validate_pdf_bytes(file_content)
    return _read_document(io.BytesIO(file_content))


def parse_pdf_file(path: Path) -> PDFContent:
    """Extract the text of a PDF spooled to disk.

    Size and header are checked from the file before pypdf opens it.

    Args:
        path: Location of the (spooled) upload.

    Returns:
        PDFContent with extracted text and page count.

    Raises:
        PDFValidationError: If the file is not an acceptable PDF.
        PDFParseError: If the PDF is corrupt or has no pages.
    """
    _check_size(path.stat().st_size)
    with path.open("rb") as f:
        _check_header(f.read(HEADER_READ_SIZE))
    return _read_document(path)
