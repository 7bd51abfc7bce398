"""
Statement line extractors.

Provides:
- TransactionAccumulator: Line-by-line state machine producing transactions
- LineClassifier: Skip / start / continuation / close decisions per line
- parse_amount / resolve_amounts: Noisy amount parsing and selection
- Merchant heuristics: extraction, deduplication, type-prefix stripping
"""

from .amounts import AmountMatch, parse_amount, resolve_amounts
from .lines import LineClassifier, LineKind
from .merchants import dedupe_merchant, extract_merchant, strip_type_prefix
from .statement_extractor import ScanState, TransactionAccumulator

__all__ = [
    "TransactionAccumulator",
    "ScanState",
    "LineClassifier",
    "LineKind",
    "AmountMatch",
    "parse_amount",
    "resolve_amounts",
    "dedupe_merchant",
    "extract_merchant",
    "strip_type_prefix",
]
