"""
Schemas for statement extraction.

Defines the canonical data structures:
- RawLine: One normalized OCR line
- TransactionDraft: Scan-local accumulation across lines
- FinalizedTransaction: Immutable output record
- MerchantPatternEntry / CorrectionRecord: Learned, persisted state
- CorrectionEntry: One item of a review batch
"""

from .transactions import (
    CorrectionEntry,
    CorrectionRecord,
    ExtractionResult,
    FinalizedTransaction,
    MatchShape,
    MerchantPatternEntry,
    OriginalRef,
    PatternType,
    RawLine,
    TransactionDraft,
    TransactionType,
)

__all__ = [
    "CorrectionEntry",
    "CorrectionRecord",
    "ExtractionResult",
    "FinalizedTransaction",
    "MatchShape",
    "MerchantPatternEntry",
    "OriginalRef",
    "PatternType",
    "RawLine",
    "TransactionDraft",
    "TransactionType",
]
