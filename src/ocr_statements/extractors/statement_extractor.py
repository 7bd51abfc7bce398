"""
Statement transaction extractor.

Single-pass state machine over the normalized lines of one document:

    IDLE --TRANSACTION_START--> OPEN     open a draft
    OPEN --TRANSACTION_START--> OPEN     finalize, open a new draft
    OPEN --CONTINUATION-->      OPEN     append a description fragment
    any  --SKIP-->              IDLE     finalize any open draft
    OPEN --CLOSE-->             IDLE     finalize
    end of input                         finalize any open draft

Lines are processed strictly in order: the state at line n depends on every
line before it.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from ..confidence.scorer import ConfidenceScorer
from ..errors import InputError
from ..schemas.transactions import (
    ExtractionResult,
    FinalizedTransaction,
    OriginalRef,
    PatternType,
    RawLine,
    TransactionDraft,
    TransactionType,
)
from .amounts import normalize_token, resolve_amounts
from .lines import LineClassifier, LineKind, is_known_continuation
from .merchants import dedupe_merchant, has_income_hint, strip_type_prefix

if TYPE_CHECKING:
    from ..learning.patterns import MerchantPatternStore

logger = logging.getLogger(__name__)


class ScanState(str, Enum):
    """Accumulator state."""

    IDLE = "IDLE"
    OPEN = "OPEN"


class TransactionAccumulator:
    """
    Extract transactions from OCR statement text.

    Each call to ``extract`` has its own scan state; only the pattern store
    is shared between documents.
    """

    def __init__(
        self,
        scorer: Optional[ConfidenceScorer] = None,
        store: Optional["MerchantPatternStore"] = None,
        classifier: Optional[LineClassifier] = None,
        default_year: Optional[int] = None,
    ):
        """
        Initialize accumulator.

        Args:
            scorer: Confidence scorer (defaults share ``store``)
            store: Learned merchant patterns, None to extract without learning
            classifier: Line classifier
            default_year: Year for dates printed without one (default: current year)
        """
        self.store = store
        self.scorer = scorer or ConfidenceScorer(store=store)
        self.classifier = classifier or LineClassifier(default_year=default_year)

    @property
    def name(self) -> str:
        return "ocr_statement_lines"

    def can_extract(self, content: Optional[str]) -> bool:
        """Any non-blank text can be scanned."""
        return bool(content and content.strip())

    def extract(self, text: Optional[str]) -> ExtractionResult:
        """
        Scan one document and route finalized transactions.

        Raises:
            InputError: The document has no text
        """
        if not self.can_extract(text):
            raise InputError("No text to extract transactions from")

        result = ExtractionResult()
        draft: Optional[TransactionDraft] = None

        for raw in RawLine.split(text):
            state = ScanState.OPEN if draft is not None else ScanState.IDLE
            kind = self.classifier.classify(raw.text, state == ScanState.OPEN)

            if kind == LineKind.SKIP:
                logger.debug(f"Skipping summary line {raw.index}: {raw.text!r}")
                self._close(draft, result)
                draft = None

            elif kind == LineKind.TRANSACTION_START:
                self._close(draft, result)
                draft = self.open_draft(raw.text)

            elif kind == LineKind.CONTINUATION:
                draft.add_continuation(raw.text, is_known_continuation(raw.text))
                draft.confidence = self.scorer.seed(draft)

            else:
                self._close(draft, result)
                draft = None

        self._close(draft, result)

        logger.info(
            f"Extracted {len(result.accepted)} accepted, "
            f"{len(result.needs_review)} for review"
        )
        return result

    def open_draft(self, line: str) -> TransactionDraft:
        """Create a draft from a transaction-start line."""
        date_token = self.classifier.leading_date(line)
        if date_token is None:
            raise ValueError(f"Not a transaction start line: {line!r}")

        rest = line[len(date_token.token) :]
        match = resolve_amounts(rest, line)
        if match is None:
            raise ValueError(f"No amount on transaction start line: {line!r}")

        draft = TransactionDraft(
            date=date_token.iso,
            description_parts=[match.description],
            amount=match.amount,
            raw_line=line,
            original=OriginalRef(
                line=line,
                date_token=date_token.token,
                amount_tokens=[normalize_token(t) for t in match.tokens],
            ),
            match_shape=match.shape,
            explicit_sign=match.explicit_sign,
        )

        if self.store is not None:
            draft.known_merchant = self.store.is_known(strip_type_prefix(match.description))

        draft.confidence = self.scorer.seed(draft)
        return draft

    def finalize(self, draft: TransactionDraft) -> FinalizedTransaction:
        """
        Close a draft into an immutable transaction.

        Steps: join fragments, resolve sign, strip a leading type label,
        deduplicate a repeated merchant name, score.
        """
        full_description = draft.description
        raw_amount = self._resolve_sign(draft, full_description)

        description = dedupe_merchant(strip_type_prefix(full_description))
        amount = abs(raw_amount)
        tx_type = TransactionType.EXPENSE if raw_amount < 0 else TransactionType.INCOME
        disputed = amount > self.scorer.weights.large_amount_limit

        confidence, signals = self.scorer.score(draft, description, draft.date, amount)

        return FinalizedTransaction(
            date=draft.date,
            description=description,
            amount=amount,
            type=tx_type,
            raw_amount=raw_amount,
            confidence=confidence,
            disputed=disputed,
            original=replace(draft.original, description=description),
            signals=signals,
        )

    def _resolve_sign(self, draft: TransactionDraft, description: str) -> Decimal:
        """
        Decide the direction of an amount printed without a sign.

        Order: explicit sign or line hint, learned merchant type, income
        words in the description, otherwise an expense.
        """
        amount = draft.amount
        if draft.explicit_sign or amount == 0:
            return amount

        if self.store is not None:
            dominant = self.store.dominant_type(strip_type_prefix(description))
            if dominant == PatternType.EXPENSE:
                return -abs(amount)
            if dominant == PatternType.INCOME:
                return abs(amount)

        if has_income_hint(description):
            return abs(amount)

        return -abs(amount)

    def _close(self, draft: Optional[TransactionDraft], result: ExtractionResult) -> None:
        """Finalize and route an open draft, if any."""
        if draft is None:
            return

        tx = self.finalize(draft)
        if self.scorer.needs_review(tx.confidence):
            result.needs_review.append(tx)
        else:
            result.accepted.append(tx)

        logger.debug(
            f"Finalized {tx.date} {tx.description!r} {tx.raw_amount} "
            f"(confidence {tx.confidence:.2f})"
        )
