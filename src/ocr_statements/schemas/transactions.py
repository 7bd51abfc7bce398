"""
Canonical statement transaction objects.

Every module in the extractor maps into and out of these records. Amounts are
Decimals in memory and strings when serialized.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class TransactionType(str, Enum):
    """Direction of money for a finalized transaction."""

    INCOME = "income"
    EXPENSE = "expense"


class PatternType(str, Enum):
    """Dominant direction learned for a merchant."""

    INCOME = "income"
    EXPENSE = "expense"
    UNKNOWN = "unknown"


class MatchShape(str, Enum):
    """How the transaction amount was picked from a line."""

    DUAL = "dual"  # amount + trailing balance
    AMBIGUOUS = "ambiguous"  # several amounts, no clean trailing pair
    SINGLE = "single"


@dataclass(frozen=True)
class RawLine:
    """One trimmed input line with internal whitespace collapsed."""

    index: int
    text: str

    @classmethod
    def split(cls, text: str) -> list["RawLine"]:
        """Split document text into non-empty normalized lines.

        ``index`` is the 0-based position of the line in the original text.
        """
        lines = []
        for index, raw in enumerate(text.splitlines()):
            normalized = " ".join(raw.split())
            if normalized:
                lines.append(cls(index=index, text=normalized))
        return lines


@dataclass
class OriginalRef:
    """Traceability back to the OCR line a transaction came from."""

    line: str
    date_token: str
    amount_tokens: list[str] = field(default_factory=list)
    description: str = ""  # Description as first finalized

    def to_dict(self) -> dict:
        return {
            "line": self.line,
            "date_token": self.date_token,
            "amount_tokens": list(self.amount_tokens),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OriginalRef":
        return cls(
            line=data.get("line", ""),
            date_token=data.get("date_token", data.get("date", "")),
            amount_tokens=list(data.get("amount_tokens", data.get("amounts", []))),
            description=data.get("description", ""),
        )


@dataclass
class TransactionDraft:
    """
    In-progress transaction accumulated across one or more lines.

    Scan-local and mutable. ``confidence`` is the running seed score kept by
    the scorer; the evidence fields are what the scorer reads.
    """

    date: str
    description_parts: list[str]
    amount: Decimal
    raw_line: str
    original: OriginalRef
    match_shape: MatchShape = MatchShape.SINGLE
    explicit_sign: bool = False
    known_merchant: bool = False
    continuation_hits: list[bool] = field(default_factory=list)
    confidence: float = 0.5

    def add_continuation(self, fragment: str, known_shape: bool) -> None:
        """Append an extra description fragment."""
        self.description_parts.append(fragment)
        self.continuation_hits.append(known_shape)

    @property
    def description(self) -> str:
        return " ".join(" ".join(self.description_parts).split())


@dataclass(frozen=True)
class FinalizedTransaction:
    """Immutable transaction ready for categorization and reporting."""

    date: str  # YYYY-MM-DD
    description: str
    amount: Decimal  # Always >= 0
    type: TransactionType
    raw_amount: Decimal  # Signed
    confidence: float
    disputed: bool = False
    original: Optional[OriginalRef] = None
    signals: dict[str, float] = field(default_factory=dict)
    corrected: bool = False

    def to_dict(self) -> dict:
        """Serialize to dictionary for JSON output."""
        return {
            "date": self.date,
            "description": self.description,
            "amount": str(self.amount),
            "type": self.type.value,
            "raw_amount": str(self.raw_amount),
            "confidence": self.confidence,
            "disputed": self.disputed,
            "original": self.original.to_dict() if self.original else None,
            "signals": dict(self.signals),
            "corrected": self.corrected,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FinalizedTransaction":
        """Deserialize from dictionary."""
        raw_amount = Decimal(str(data.get("raw_amount", data["amount"])))
        return cls(
            date=data["date"],
            description=data["description"],
            amount=abs(raw_amount),
            type=TransactionType(data["type"]),
            raw_amount=raw_amount,
            confidence=float(data.get("confidence", 0.0)),
            disputed=bool(data.get("disputed", False)),
            original=OriginalRef.from_dict(data["original"]) if data.get("original") else None,
            signals=dict(data.get("signals", {})),
            corrected=bool(data.get("corrected", False)),
        )


@dataclass
class MerchantPatternEntry:
    """Learned statistics about one recurring merchant."""

    count: int = 0
    amounts: list[Decimal] = field(default_factory=list)
    type: PatternType = PatternType.UNKNOWN

    def add(self, signed_amount: Decimal) -> None:
        """
        Record one confirmed amount.

        Past two observations, a dominant type is set only when one sign
        outnumbers the other by more than 2:1.
        """
        self.count += 1
        self.amounts.append(signed_amount)

        if self.count > 2:
            expense_count = sum(1 for a in self.amounts if a < 0)
            income_count = sum(1 for a in self.amounts if a > 0)
            if expense_count > income_count * 2:
                self.type = PatternType.EXPENSE
            elif income_count > expense_count * 2:
                self.type = PatternType.INCOME
            else:
                self.type = PatternType.UNKNOWN

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "amounts": [str(a) for a in self.amounts],
            "type": self.type.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MerchantPatternEntry":
        amounts = [Decimal(str(a)) for a in data.get("amounts", [])]
        return cls(
            count=len(amounts),
            amounts=amounts,
            type=PatternType(data.get("type") or PatternType.UNKNOWN.value),
        )


@dataclass(frozen=True)
class CorrectionRecord:
    """Append-only log entry for one user-approved correction."""

    date_format_original: str
    original_line: str
    corrected_date: str
    corrected_description: str
    corrected_amount: Decimal  # Signed
    corrected_type: str

    def to_dict(self) -> dict:
        return {
            "date_format_original": self.date_format_original,
            "original_line": self.original_line,
            "corrected_date": self.corrected_date,
            "corrected_description": self.corrected_description,
            "corrected_amount": str(self.corrected_amount),
            "corrected_type": self.corrected_type,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CorrectionRecord":
        return cls(
            date_format_original=data.get("date_format_original", ""),
            original_line=data.get("original_line", ""),
            corrected_date=data.get("corrected_date", ""),
            corrected_description=data.get("corrected_description", ""),
            corrected_amount=Decimal(str(data.get("corrected_amount", "0"))),
            corrected_type=data.get("corrected_type", ""),
        )


@dataclass
class CorrectionEntry:
    """
    One item of a review batch.

    Transaction-shaped, as edited by the reviewer, optionally flagged
    ``removed``, ``corrected`` or ``skipped``. ``amount`` is the reviewer's
    absolute amount; ``type`` carries the direction.
    """

    date: str
    description: str
    amount: Decimal
    type: TransactionType
    original: Optional[OriginalRef] = None
    confidence: float = 1.0
    removed: bool = False
    corrected: bool = False
    skipped: bool = False

    @property
    def signed_amount(self) -> Decimal:
        amount = abs(self.amount)
        return -amount if self.type == TransactionType.EXPENSE else amount

    def to_transaction(self) -> FinalizedTransaction:
        """Build the transaction that replaces the original in results."""
        raw_amount = self.signed_amount
        return FinalizedTransaction(
            date=self.date,
            description=self.description,
            amount=abs(raw_amount),
            type=TransactionType.EXPENSE if raw_amount < 0 else TransactionType.INCOME,
            raw_amount=raw_amount,
            confidence=max(0.0, min(1.0, self.confidence)),
            original=self.original,
            corrected=True,
        )

    @classmethod
    def from_transaction(
        cls, tx: FinalizedTransaction, **changes: Any
    ) -> "CorrectionEntry":
        """Start a correction from an extracted transaction."""
        values: dict[str, Any] = {
            "date": tx.date,
            "description": tx.description,
            "amount": tx.amount,
            "type": tx.type,
            "original": tx.original,
            "confidence": tx.confidence,
        }
        values.update(changes)
        return cls(**values)

    @classmethod
    def from_dict(cls, data: dict) -> "CorrectionEntry":
        return cls(
            date=data.get("date", ""),
            description=data.get("description", ""),
            amount=Decimal(str(data.get("amount", "0"))),
            type=TransactionType(data.get("type", TransactionType.EXPENSE.value)),
            original=OriginalRef.from_dict(data["original"]) if data.get("original") else None,
            confidence=float(data.get("confidence", 1.0)),
            removed=bool(data.get("removed", False)),
            corrected=bool(data.get("corrected", False)),
            skipped=bool(data.get("skipped", False)),
        )


@dataclass
class ExtractionResult:
    """Output of one document scan, both lists in scan order."""

    accepted: list[FinalizedTransaction] = field(default_factory=list)
    needs_review: list[FinalizedTransaction] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "accepted": [tx.to_dict() for tx in self.accepted],
            "needs_review": [tx.to_dict() for tx in self.needs_review],
        }
