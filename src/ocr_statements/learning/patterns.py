"""
Merchant pattern store.

Holds what past corrections taught us: per-merchant statistics and the
append-only correction log. Persistence is injected as a loader/saver pair so
the store itself does no I/O and can be used in pure unit tests.

The saver only ever receives what changed since the last successful save, so
a backend appends rather than rewrites. A failed load therefore never causes
earlier records to be dropped or overwritten.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import InvalidOperation
from typing import Callable, Optional

from ..errors import PersistenceError
from ..extractors.merchants import extract_merchant
from ..schemas.transactions import CorrectionRecord, MerchantPatternEntry, PatternType

logger = logging.getLogger(__name__)


@dataclass
class PersistedState:
    """
    The two independent persisted records.

    Returned by a loader as the full stored state. Passed to a saver as the
    unsaved changes: amounts recorded per merchant and correction records
    appended since the last successful save.
    """

    patterns: dict[str, MerchantPatternEntry] = field(default_factory=dict)
    corrections: list[CorrectionRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "patterns": {key: entry.to_dict() for key, entry in self.patterns.items()},
            "corrections": [record.to_dict() for record in self.corrections],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PersistedState":
        return cls(
            patterns={
                key: MerchantPatternEntry.from_dict(entry)
                for key, entry in (data.get("patterns") or {}).items()
            },
            corrections=[
                CorrectionRecord.from_dict(record) for record in data.get("corrections") or []
            ],
        )


Loader = Callable[[], PersistedState]
Saver = Callable[[PersistedState], None]

# Failures a loader/saver may raise; all are recovered locally
PERSISTENCE_FAILURES = (
    PersistenceError,
    OSError,
    ValueError,
    TypeError,
    KeyError,
    InvalidOperation,
)


class MerchantPatternStore:
    """
    Learned merchant statistics and correction log.

    Loaded once at construction, saved after each correction batch. A load or
    save failure is logged and falls back to empty or in-memory state; it is
    never raised to the caller. Records stay pending until a save succeeds.
    """

    def __init__(self, loader: Optional[Loader] = None, saver: Optional[Saver] = None):
        """
        Initialize store.

        Args:
            loader: Returns persisted state (None for a purely in-memory store)
            saver: Persists state (None to keep changes in memory only)
        """
        self._loader = loader
        self._saver = saver
        self.patterns: dict[str, MerchantPatternEntry] = {}
        self.corrections: list[CorrectionRecord] = []
        self._unsaved_amounts: dict[str, MerchantPatternEntry] = {}
        self._unsaved_corrections: list[CorrectionRecord] = []
        self.load()

    def load(self) -> bool:
        """Load persisted state. Returns False when falling back to empty state."""
        if self._loader is None:
            return False

        try:
            state = self._loader()
        except PERSISTENCE_FAILURES as e:
            logger.warning(f"Could not load merchant patterns, starting empty: {e}")
            self.patterns = {}
            self.corrections = []
            return False

        self.patterns = dict(state.patterns)
        self.corrections = list(state.corrections)
        logger.debug(
            f"Loaded {len(self.patterns)} merchant patterns, "
            f"{len(self.corrections)} corrections"
        )
        return True

    def save(self) -> bool:
        """
        Persist changes recorded since the last successful save.

        Returns False when the save failed; the changes then stay pending and
        are retried by the next save.
        """
        if self._saver is None:
            return False

        if not self._unsaved_corrections:
            return True

        changes = self.pending()
        try:
            self._saver(changes)
        except PERSISTENCE_FAILURES as e:
            logger.warning(f"Could not save merchant patterns, keeping in memory: {e}")
            return False

        self._unsaved_amounts = {}
        self._unsaved_corrections = []
        logger.debug(f"Saved {len(changes.corrections)} corrections")
        return True

    def pending(self) -> PersistedState:
        """Changes not yet handed to a successful save."""
        return PersistedState(
            patterns={
                merchant: MerchantPatternEntry(
                    count=entry.count, amounts=list(entry.amounts), type=entry.type
                )
                for merchant, entry in self._unsaved_amounts.items()
            },
            corrections=list(self._unsaved_corrections),
        )

    def snapshot(self) -> PersistedState:
        """Copy of the full in-memory state."""
        return PersistedState(patterns=dict(self.patterns), corrections=list(self.corrections))

    def get(self, description: Optional[str]) -> Optional[MerchantPatternEntry]:
        """Pattern entry for the merchant of a description."""
        merchant = extract_merchant(description)
        if not merchant:
            return None
        return self.patterns.get(merchant)

    def is_known(self, description: Optional[str]) -> bool:
        """Whether the merchant of a description was learned from corrections."""
        return self.get(description) is not None

    def dominant_type(self, description: Optional[str]) -> PatternType:
        """Learned direction for the merchant, or UNKNOWN."""
        entry = self.get(description)
        return entry.type if entry else PatternType.UNKNOWN

    def was_corrected(self, description: Optional[str]) -> bool:
        """Whether a prior correction mentions the merchant of a description."""
        if not self.corrections:
            return False

        merchant = extract_merchant(description)
        if not merchant:
            return False

        return any(merchant in record.corrected_description for record in self.corrections)

    def record(self, correction: CorrectionRecord) -> Optional[str]:
        """
        Append a correction and update its merchant's statistics.

        Returns:
            The merchant key that was updated, or None when no merchant could
            be extracted from the corrected description
        """
        self.corrections.append(correction)
        self._unsaved_corrections.append(correction)

        merchant = extract_merchant(correction.corrected_description)
        if not merchant:
            return None

        entry = self.patterns.setdefault(merchant, MerchantPatternEntry())
        entry.add(correction.corrected_amount)
        self._unsaved_amounts.setdefault(merchant, MerchantPatternEntry()).add(
            correction.corrected_amount
        )
        return merchant
