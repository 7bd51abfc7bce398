"""Statement extraction and correction learning services."""

from ocr_statements.services.statement_service import StatementService

__all__ = ["StatementService"]
