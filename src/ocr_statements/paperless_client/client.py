"""
Paperless-ngx API client implementation.

Paperless runs OCR on uploaded statements; this client only reads the
resulting text. Any failure is fatal for that document and is not retried
beyond the transport-level backoff.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..errors import ExternalFailure

logger = logging.getLogger(__name__)


class PaperlessError(ExternalFailure):
    """Base exception for Paperless client errors."""

    pass


class PaperlessAPIError(PaperlessError):
    """API returned an error response."""

    def __init__(self, status_code: int, message: str, response_body: Optional[str] = None):
        self.status_code = status_code
        self.message = message
        self.response_body = response_body
        super().__init__(f"Paperless API error {status_code}: {message}")


class PaperlessConnectionError(PaperlessError):
    """Failed to connect to Paperless."""

    pass


@dataclass
class PaperlessDocument:
    """A Paperless document and its OCR text."""

    id: int
    title: str
    content: str  # OCR text
    created: Optional[str] = None
    original_file_name: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: dict) -> "PaperlessDocument":
        """Create from Paperless API response."""
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            content=data.get("content") or "",
            created=data.get("created"),
            original_file_name=data.get("original_file_name"),
        )


class PaperlessClient:
    """
    Client for the Paperless-ngx document API.

    Features:
    - Fetch the OCR text of a statement by document ID
    - List statement documents by tag
    - Automatic retry with backoff
    """

    DEFAULT_TIMEOUT = 30
    DEFAULT_PAGE_SIZE = 25

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
    ):
        """
        Initialize Paperless client.

        Args:
            base_url: Paperless instance URL (e.g., "http://paperless:8000")
            token: API token for authentication
            timeout: Request timeout in seconds
            max_retries: Maximum retry attempts for transient failures
            backoff_factor: Backoff factor for retries
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Token {token}",
                "Accept": "application/json",
            }
        )

        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def _request(self, endpoint: str, params: Optional[dict] = None) -> requests.Response:
        """Make a GET request with error handling."""
        url = f"{self.base_url}{endpoint}"

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.ConnectionError as e:
            raise PaperlessConnectionError(
                f"Failed to connect to Paperless at {self.base_url}: {e}"
            ) from e
        except requests.exceptions.Timeout as e:
            raise PaperlessConnectionError(f"Request to Paperless timed out: {e}") from e
        except requests.exceptions.RequestException as e:
            raise PaperlessError(f"Request failed: {e}") from e

        if not response.ok:
            raise PaperlessAPIError(
                status_code=response.status_code,
                message=response.reason,
                response_body=response.text,
            )

        return response

    def test_connection(self) -> bool:
        """Test connection to Paperless API."""
        try:
            self._request("/api/")
            return True
        except PaperlessError:
            return False

    def get_document(self, document_id: int) -> PaperlessDocument:
        """Get a document, including its OCR text, by ID."""
        response = self._request(f"/api/documents/{document_id}/")
        return PaperlessDocument.from_api_response(response.json())

    def get_document_content(self, document_id: int) -> str:
        """OCR text of a document."""
        document = self.get_document(document_id)
        logger.debug(f"Fetched {len(document.content)} chars of OCR text for #{document_id}")
        return document.content

    def list_documents(
        self,
        tags: Optional[list[str]] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        ordering: str = "-added",
    ) -> Iterator[PaperlessDocument]:
        """
        List documents, optionally filtered by tag names (all must match).

        Nothing is listed when a requested tag does not exist.

        Yields:
            PaperlessDocument objects
        """
        params: dict[str, Any] = {
            "page_size": page_size,
            "ordering": ordering,
        }

        if tags:
            tag_ids = self._resolve_tag_ids(tags)
            if len(tag_ids) < len(tags):
                return
            params["tags__id__all"] = ",".join(str(t) for t in tag_ids)

        page = 1
        while True:
            params["page"] = page
            data = self._request("/api/documents/", params=params).json()

            for doc_data in data.get("results", []):
                yield PaperlessDocument.from_api_response(doc_data)

            if not data.get("next"):
                break
            page += 1

    def _resolve_tag_ids(self, tag_names: list[str]) -> list[int]:
        """Resolve tag names to IDs."""
        data = self._request("/api/tags/", params={"page_size": 1000}).json()
        name_to_id = {t["name"].lower(): t["id"] for t in data.get("results", [])}

        tag_ids = []
        for name in tag_names:
            if name.lower() in name_to_id:
                tag_ids.append(name_to_id[name.lower()])
            else:
                logger.warning(f"Tag not found: {name}")
        return tag_ids
