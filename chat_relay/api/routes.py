"""PDF upload endpoint for grounding documents.

Handles file upload, validation, and text extraction. The extracted text
goes back to the caller, which holds it as the session's grounding text.
"""

import asyncio
import logging
import os
import tempfile
from pathlib import Path

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from chat_relay.models.schemas import PDFUploadResponse
from chat_relay.parsing.pdf_parser import (
    MAX_FILE_SIZE,
    PDFContent,
    PDFParseError,
    PDFValidationError,
    parse_pdf_file,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["upload"])

# 10MB limit matches pdf_parser constant
MAX_UPLOAD_SIZE = MAX_FILE_SIZE
PDF_CONTENT_TYPE = "application/pdf"
EXTRACTION_TIMEOUT_SECONDS = 30.0


def _validate_pdf_upload(file: UploadFile | None) -> UploadFile:
    """Check that a PDF file was attached.

    A file counts as PDF if its name ends in ``.pdf`` or it was sent as
    ``application/pdf``; the content itself is checked by the parser.

    Raises:
        HTTPException: 400 if no file was sent or it is not a PDF.
    """
    if file is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No PDF file uploaded",
        )

    filename = (file.filename or "").lower()
    if not filename.endswith(".pdf") and file.content_type != PDF_CONTENT_TYPE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file format: only PDF files are accepted",
        )

    return file


async def _spool_to_tempfile(file: UploadFile) -> Path:
    """Copy the upload to a named temporary file.

    Returns:
        Path of the temporary file. The caller must delete it.

    Raises:
        HTTPException: 413 if the upload exceeds the size limit.
    """
    fd, name = tempfile.mkstemp(prefix="upload-", suffix=".pdf")
    path = Path(name)
    try:
        written = 0
        with os.fdopen(fd, "wb") as tmp:
            while chunk := await file.read(64 * 1024):
                written += len(chunk)
                if written > MAX_UPLOAD_SIZE:
                    raise HTTPException(
                        status_code=413,
                        detail="File size exceeds maximum allowed (10MB)",
                    )
                tmp.write(chunk)
    except BaseException:
        _remove_tempfile(path)
        raise
    return path


def _remove_tempfile(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
        logger.debug(f"Deleted temporary file: {path}")
    except OSError as e:
        logger.error(f"Error deleting temporary file {path}: {e}")


async def _extract(path: Path) -> PDFContent:
    """Run text extraction off the event loop, bounded by a timeout."""
    return await asyncio.wait_for(
        asyncio.to_thread(parse_pdf_file, path),
        timeout=EXTRACTION_TIMEOUT_SECONDS,
    )


@router.post("/upload-pdf", response_model=PDFUploadResponse)
async def upload_pdf(file: UploadFile | None = File(None, alias="pdf")) -> PDFUploadResponse:
    """Upload a PDF and return its text.

    Args:
        file: The uploaded PDF, sent as multipart field ``pdf``.

    Returns:
        PDFUploadResponse with the extracted text, filename and page count.

    Raises:
        400: No file, not a PDF, or empty.
        413: File exceeds 10MB limit.
        500: Extraction failed or timed out.
    """
    upload = _validate_pdf_upload(file)
    filename = upload.filename
    path = await _spool_to_tempfile(upload)

    try:
        pdf_content = await _extract(path)
    except PDFValidationError as e:
        logger.warning(f"Rejected upload {filename}: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    except PDFParseError as e:
        logger.error(f"Error processing PDF {filename}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process PDF",
        ) from e
    except TimeoutError as e:
        logger.error(f"Timed out extracting text from {filename}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Request timed out",
        ) from e
    finally:
        _remove_tempfile(path)

    logger.info(f"Extracted text from {filename} ({pdf_content.pages} pages)")
    return PDFUploadResponse(
        content=pdf_content.text,
        filename=filename,
        pages=pdf_content.pages,
    )
