"""
Correction learning.

Provides:
- MerchantPatternStore: Learned merchant statistics + correction log
- CorrectionLearner: Records approved corrections into the store
- merge_corrections: Splices a review batch into prior results
"""

from .corrections import CorrectionLearner, merge_corrections
from .patterns import MerchantPatternStore, PersistedState

__all__ = [
    "CorrectionLearner",
    "MerchantPatternStore",
    "PersistedState",
    "merge_corrections",
]
