"""Test fixtures and utilities."""

from pathlib import Path

import pytest

from ocr_statements.extractors import TransactionAccumulator
from ocr_statements.learning import MerchantPatternStore

STATEMENT_YEAR = 2025

# Sample OCR text of one statement page
SAMPLE_STATEMENT_TEXT = """
FIRST EXAMPLE BANK
Statement Period 03/01/2025 - 03/31/2025
Account Number XXXX1234
Date Transaction Description Amount Balance
03/01 Beginning Balance 1,000.00
3/1 NETFLIX.COM 15.99 984.01
CA US
3/3 DEBIT CARD PURCHASE COFFEE SHOP 4.50 979.51
3/5 ACH PAYROLL ACME INC 2,500.00 3,479.51
3/7 SPOTIFY 1234 SPOTIFY 9.99 3,469.52
03/31 Ending Balance 3,469.52
Page 1 of 1
"""

# Rows that score below the review threshold
SAMPLE_NOISY_TEXT = """
3/10 ??? 0.00
2/30 GROCERY OUTLET 25.00
"""


@pytest.fixture
def sample_statement() -> str:
    """Clean statement page: four transactions, all accepted."""
    return SAMPLE_STATEMENT_TEXT


@pytest.fixture
def sample_noisy_statement() -> str:
    """Statement rows with an unreadable amount and an impossible date."""
    return SAMPLE_NOISY_TEXT


@pytest.fixture
def pattern_store() -> MerchantPatternStore:
    """In-memory pattern store."""
    return MerchantPatternStore()


@pytest.fixture
def accumulator(pattern_store) -> TransactionAccumulator:
    """Accumulator sharing the in-memory store, dates in 2025."""
    return TransactionAccumulator(store=pattern_store, default_year=STATEMENT_YEAR)


@pytest.fixture
def sample_paperless_document() -> dict:
    """Sample Paperless document API response."""
    return {
        "id": 4711,
        "title": "Checking statement 2025-03",
        "content": SAMPLE_STATEMENT_TEXT,
        "created": "2025-03-31",
        "added": "2025-04-02T08:14:22Z",
        "correspondent": 5,
        "document_type": 2,
        "tags": [1, 3],
        "original_file_name": "statement_2025_03.pdf",
    }


@pytest.fixture
def temp_db(tmp_path) -> Path:
    """Temporary database path for testing."""
    return tmp_path / "test_state.db"
