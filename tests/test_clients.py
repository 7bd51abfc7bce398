"""
Tests for the Paperless API client.

These tests use responses library to mock HTTP requests,
validating client behavior without making real API calls.
"""

import pytest
import requests
import responses

from ocr_statements.errors import ExternalFailure
from ocr_statements.paperless_client import (
    PaperlessAPIError,
    PaperlessClient,
    PaperlessConnectionError,
    PaperlessDocument,
    PaperlessError,
)


class TestPaperlessClient:
    """Test Paperless-ngx API client."""

    BASE_URL = "http://paperless.test:8000"
    TOKEN = "test-token-12345"

    @pytest.fixture
    def client(self):
        return PaperlessClient(base_url=self.BASE_URL, token=self.TOKEN, max_retries=0)

    @responses.activate
    def test_test_connection_success(self, client):
        """Test connection check succeeds with valid response."""
        responses.add(responses.GET, f"{self.BASE_URL}/api/", json={"status": "ok"}, status=200)

        assert client.test_connection() is True

    @responses.activate
    def test_test_connection_failure(self, client):
        """Test connection check fails with auth error."""
        responses.add(responses.GET, f"{self.BASE_URL}/api/", json={"detail": "Invalid token"}, status=401)

        assert client.test_connection() is False

    @responses.activate
    def test_token_header(self, client):
        responses.add(responses.GET, f"{self.BASE_URL}/api/", json={}, status=200)

        client.test_connection()

        assert responses.calls[0].request.headers["Authorization"] == f"Token {self.TOKEN}"

    @responses.activate
    def test_get_document_content(self, client, sample_paperless_document):
        """OCR text comes from the document's content field."""
        responses.add(
            responses.GET,
            f"{self.BASE_URL}/api/documents/4711/",
            json=sample_paperless_document,
            status=200,
        )

        content = client.get_document_content(4711)

        assert content == sample_paperless_document["content"]

    @responses.activate
    def test_get_document(self, client, sample_paperless_document):
        responses.add(
            responses.GET,
            f"{self.BASE_URL}/api/documents/4711/",
            json=sample_paperless_document,
            status=200,
        )

        document = client.get_document(4711)

        assert isinstance(document, PaperlessDocument)
        assert document.id == 4711
        assert document.title == "Checking statement 2025-03"
        assert document.original_file_name == "statement_2025_03.pdf"

    def test_document_without_content(self):
        document = PaperlessDocument.from_api_response({"id": 1, "content": None})

        assert document.content == ""

    @responses.activate
    def test_not_found(self, client):
        responses.add(
            responses.GET,
            f"{self.BASE_URL}/api/documents/999/",
            json={"detail": "Not found."},
            status=404,
        )

        with pytest.raises(PaperlessAPIError) as exc_info:
            client.get_document_content(999)

        assert exc_info.value.status_code == 404
        assert isinstance(exc_info.value, ExternalFailure)

    @responses.activate
    def test_connection_error(self, client):
        responses.add(
            responses.GET,
            f"{self.BASE_URL}/api/documents/1/",
            body=requests.exceptions.ConnectionError("refused"),
        )

        with pytest.raises(PaperlessConnectionError):
            client.get_document(1)

    @responses.activate
    def test_timeout(self, client):
        responses.add(
            responses.GET,
            f"{self.BASE_URL}/api/documents/1/",
            body=requests.exceptions.ReadTimeout("slow"),
        )

        with pytest.raises(PaperlessError):
            client.get_document(1)

    @responses.activate
    def test_list_documents_paginates(self, client):
        responses.add(
            responses.GET,
            f"{self.BASE_URL}/api/documents/",
            json={
                "next": f"{self.BASE_URL}/api/documents/?page=2",
                "results": [{"id": 1, "title": "Jan", "content": "a"}],
            },
            status=200,
        )
        responses.add(
            responses.GET,
            f"{self.BASE_URL}/api/documents/",
            json={"next": None, "results": [{"id": 2, "title": "Feb", "content": "b"}]},
            status=200,
        )

        documents = list(client.list_documents())

        assert [d.id for d in documents] == [1, 2]

    @responses.activate
    def test_list_documents_by_tag(self, client):
        responses.add(
            responses.GET,
            f"{self.BASE_URL}/api/tags/",
            json={"results": [{"id": 7, "name": "finance/statements"}]},
            status=200,
        )
        responses.add(
            responses.GET,
            f"{self.BASE_URL}/api/documents/",
            json={"next": None, "results": []},
            status=200,
        )

        list(client.list_documents(tags=["Finance/Statements"]))

        assert "tags__id__all=7" in responses.calls[1].request.url

    @responses.activate
    def test_list_documents_unknown_tag(self, client, caplog):
        """An unknown tag lists nothing rather than every document."""
        responses.add(
            responses.GET,
            f"{self.BASE_URL}/api/tags/",
            json={"results": [{"id": 7, "name": "finance/statements"}]},
            status=200,
        )

        documents = list(client.list_documents(tags=["finance/statements", "missing"]))

        assert documents == []
        assert len(responses.calls) == 1
        assert "Tag not found: missing" in caplog.text
