"""PDF parsing utilities for grounding text.

Responsibilities:
    - PDF validation (size, header)
    - Text extraction with pypdf

The extracted text is returned to the chat widget, which keeps it for the
rest of the session and sends it along with every chat request.
"""

from chat_relay.parsing.pdf_parser import (
    MAX_FILE_SIZE,
    PDFContent,
    PDFParseError,
    PDFValidationError,
    parse_pdf,
    parse_pdf_file,
)

__all__ = [
    "MAX_FILE_SIZE",
    "PDFContent",
    "PDFParseError",
    "PDFValidationError",
    "parse_pdf",
    "parse_pdf_file",
]
