"""
Paperless-ngx API Client.

Reads OCR text for statement documents:
- Get document detail and OCR content
- List documents by tag
- Retry/backoff for transient network failures
"""

from .client import (
    PaperlessAPIError,
    PaperlessClient,
    PaperlessConnectionError,
    PaperlessDocument,
    PaperlessError,
)

__all__ = [
    "PaperlessClient",
    "PaperlessDocument",
    "PaperlessError",
    "PaperlessAPIError",
    "PaperlessConnectionError",
]
