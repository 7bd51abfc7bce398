"""
Confidence scoring implementation.

Confidence is a deterministic weighted sum over a fixed list of named
signals, clamped to [0, 1]. Seed signals are known while a draft is open;
final signals need the finalized description, date and amount.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from ..schemas.transactions import FinalizedTransaction, MatchShape, TransactionDraft

if TYPE_CHECKING:
    from ..learning.patterns import MerchantPatternStore

logger = logging.getLogger(__name__)


@dataclass
class ScoringWeights:
    """Signal weights. Hand-tuned policy, not contract."""

    base: float = 0.5
    dual_amount_match: float = 0.3
    ambiguous_amount_match: float = 0.1
    known_merchant: float = 0.2
    known_continuation: float = 0.1
    unknown_continuation: float = -0.05

    large_amount: float = -0.1
    description_length_ok: float = 0.1
    description_length_bad: float = -0.1
    iso_date_ok: float = 0.1
    iso_date_bad: float = -0.2
    amount_in_range: float = 0.1
    zero_amount: float = -0.3
    previously_corrected: float = -0.2

    # Limits used by the signals
    large_amount_limit: Decimal = Decimal("1000")
    max_reasonable_amount: Decimal = Decimal("10000")
    min_description_length: int = 5
    max_description_length: int = 100


@dataclass
class ConfidenceThresholds:
    """Configurable threshold for review routing."""

    review_threshold: float = 0.70  # Below this: needs review


def clamp(score: float) -> float:
    """Clamp a score into [0, 1]."""
    return max(0.0, min(1.0, score))


def is_valid_iso_date(date_str: str) -> bool:
    """Check if date string is a real calendar date in YYYY-MM-DD format."""
    if not date_str or len(date_str) != 10:
        return False
    if date_str[4] != "-" or date_str[7] != "-":
        return False

    try:
        datetime.strptime(date_str, "%Y-%m-%d")
    except ValueError:
        return False
    return True


class ConfidenceScorer:
    """
    Computes confidence scores and routes transactions.

    Signals (in evaluation order):
    - Seed: base, amount_match, known_merchant, continuations
    - Final: large_amount, description_length, iso_date, amount_range,
      previously_corrected

    Every signal contributes independently; the breakdown is kept on the
    finalized transaction so a score can be audited.
    """

    SEED_SIGNALS = ("base", "amount_match", "known_merchant", "continuations")
    FINAL_SIGNALS = (
        "large_amount",
        "description_length",
        "iso_date",
        "amount_range",
        "previously_corrected",
    )

    def __init__(
        self,
        weights: Optional[ScoringWeights] = None,
        thresholds: Optional[ConfidenceThresholds] = None,
        store: Optional["MerchantPatternStore"] = None,
    ):
        """Initialize scorer with weights, thresholds and learned patterns."""
        self.weights = weights or ScoringWeights()
        self.thresholds = thresholds or ConfidenceThresholds()
        self.store = store

    # Seed signals

    def _signal_base(self, draft: TransactionDraft) -> float:
        return self.weights.base

    def _signal_amount_match(self, draft: TransactionDraft) -> float:
        if draft.match_shape == MatchShape.DUAL:
            return self.weights.dual_amount_match
        if draft.match_shape == MatchShape.AMBIGUOUS:
            return self.weights.ambiguous_amount_match
        return 0.0

    def _signal_known_merchant(self, draft: TransactionDraft) -> float:
        return self.weights.known_merchant if draft.known_merchant else 0.0

    def _signal_continuations(self, draft: TransactionDraft) -> float:
        total = 0.0
        for known in draft.continuation_hits:
            total += (
                self.weights.known_continuation if known else self.weights.unknown_continuation
            )
        return total

    # Final signals

    def _signal_large_amount(self, description: str, date: str, amount: Decimal) -> float:
        return self.weights.large_amount if amount > self.weights.large_amount_limit else 0.0

    def _signal_description_length(self, description: str, date: str, amount: Decimal) -> float:
        if self.weights.min_description_length < len(description) < (
            self.weights.max_description_length
        ):
            return self.weights.description_length_ok
        return self.weights.description_length_bad

    def _signal_iso_date(self, description: str, date: str, amount: Decimal) -> float:
        if is_valid_iso_date(date):
            return self.weights.iso_date_ok
        return self.weights.iso_date_bad

    def _signal_amount_range(self, description: str, date: str, amount: Decimal) -> float:
        if amount == 0:
            return self.weights.zero_amount
        if 0 < amount < self.weights.max_reasonable_amount:
            return self.weights.amount_in_range
        return 0.0

    def _signal_previously_corrected(
        self, description: str, date: str, amount: Decimal
    ) -> float:
        if self.store is not None and self.store.was_corrected(description):
            return self.weights.previously_corrected
        return 0.0

    # Public API

    def seed_signals(self, draft: TransactionDraft) -> dict[str, float]:
        """Signals available while the draft is still open."""
        return {name: getattr(self, f"_signal_{name}")(draft) for name in self.SEED_SIGNALS}

    def seed(self, draft: TransactionDraft) -> float:
        """Running confidence of an open draft."""
        return clamp(round(sum(self.seed_signals(draft).values()), 6))

    def score(
        self,
        draft: TransactionDraft,
        description: str,
        date: str,
        amount: Decimal,
    ) -> tuple[float, dict[str, float]]:
        """
        Compute the final confidence for a draft being finalized.

        Args:
            draft: The draft being closed (seed evidence)
            description: Final cleaned description
            date: Final date string
            amount: Absolute amount

        Returns:
            Tuple of (clamped confidence, per-signal breakdown)
        """
        signals = self.seed_signals(draft)
        for name in self.FINAL_SIGNALS:
            signals[name] = getattr(self, f"_signal_{name}")(description, date, amount)

        confidence = clamp(round(sum(signals.values()), 6))
        logger.debug(f"Scored {description!r}: {confidence:.2f} {signals}")
        return confidence, signals

    def needs_review(self, confidence: float) -> bool:
        """Whether a score falls below the review threshold."""
        return confidence < self.thresholds.review_threshold

    def explain(self, tx: FinalizedTransaction) -> list[str]:
        """
        List the signals that lowered a transaction's confidence.

        Used to tell a reviewer why a row was queued.
        """
        issues = []
        for name, value in tx.signals.items():
            if value < 0:
                issues.append(f"{name}: {value:+.2f}")

        if tx.amount == 0:
            issues.append("Amount could not be read")

        return issues
