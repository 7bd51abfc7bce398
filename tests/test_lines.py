"""Tests for statement line classification."""

import pytest

from ocr_statements.extractors.lines import (
    LineClassifier,
    LineKind,
    is_known_continuation,
    parse_leading_date,
)


@pytest.fixture
def classifier():
    return LineClassifier(default_year=2025)


class TestParseLeadingDate:
    """Tests for leading date tokens."""

    def test_month_day_uses_default_year(self):
        token = parse_leading_date("3/14 COFFEE SHOP 4.50", default_year=2023)

        assert token.token == "3/14"
        assert token.iso == "2023-03-14"
        assert token.kind == "md"

    def test_two_digit_year(self):
        assert parse_leading_date("03/14/25 SHOP 1.00").iso == "2025-03-14"

    def test_four_digit_year(self):
        assert parse_leading_date("3/14/2024 SHOP 1.00").iso == "2024-03-14"

    def test_iso(self):
        token = parse_leading_date("2025-03-14 SHOP 1.00")

        assert token.iso == "2025-03-14"
        assert token.kind == "iso"

    def test_impossible_date_is_kept(self):
        """Calendar validity is a scoring concern, not a parsing one."""
        assert parse_leading_date("2/30 SHOP 1.00", default_year=2024).iso == "2024-02-30"

    @pytest.mark.parametrize("line", ["COFFEE 3/14", "13/45 junk", "Page 1 of 2"])
    def test_no_leading_date(self, line):
        assert parse_leading_date(line) is None


class TestSkipLines:
    """Tests for boilerplate and summary lines."""

    @pytest.mark.parametrize(
        "line",
        [
            "03/31 Ending Balance 500.00",
            "Beginning balance 1,000.00",
            "Statement Period 03/01/2025 - 03/31/2025",
            "Account Number XXXX1234",
            "Page 2 of 3",
            "Date Transaction Description Amount Balance",
            "Total dividend of 12.00",
            "A payment of 25.00 is due",
            "Year-to-date summary",
        ],
    )
    def test_skip(self, classifier, line):
        assert classifier.classify(line, has_open_draft=True) == LineKind.SKIP

    def test_dated_summary_keyword(self, classifier):
        """A dated row with a summary keyword anywhere is skipped."""
        assert classifier.classify("3/31 Statement Total 1,234.56", False) == LineKind.SKIP


class TestClassify:
    """Tests for start/continuation/close decisions."""

    def test_transaction_start(self, classifier):
        assert classifier.classify("3/14 COFFEE SHOP 4.50 102.33", False) == LineKind.TRANSACTION_START

    def test_start_while_open(self, classifier):
        assert classifier.classify("3/15 GAS 30.00", True) == LineKind.TRANSACTION_START

    def test_dated_line_without_amount_closes(self, classifier):
        assert classifier.classify("3/15 PENDING", True) == LineKind.CLOSE

    def test_continuation_needs_open_draft(self, classifier):
        assert classifier.classify("CA US", True) == LineKind.CONTINUATION
        assert classifier.classify("CA US", False) == LineKind.CLOSE

    def test_trailing_amount_pair_closes(self, classifier):
        """An undated line ending in amount + balance is not description text."""
        assert classifier.classify("MISC FEE 10.00 20.00", True) == LineKind.CLOSE

    def test_broken_date_closes(self, classifier):
        assert classifier.classify("13/45 junk", True) == LineKind.CLOSE


class TestKnownContinuation:
    """Tests for the continuation shape heuristic."""

    @pytest.mark.parametrize("line", ["CA US", "NY New York", "FROM SAVINGS", "amazon.com/bill"])
    def test_known_shapes(self, line):
        assert is_known_continuation(line)

    def test_unknown_shape(self):
        assert not is_known_continuation("Ref 88213")
