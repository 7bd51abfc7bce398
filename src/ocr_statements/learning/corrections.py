"""
Correction learning.

Consumes user-approved review batches. Learning and splicing are separate:
- CorrectionLearner records corrections into the pattern store (side effects)
- merge_corrections splices a batch into prior results (pure)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import Optional, Union

from ..schemas.transactions import CorrectionEntry, CorrectionRecord, FinalizedTransaction
from .patterns import MerchantPatternStore

logger = logging.getLogger(__name__)

BatchItem = Union[CorrectionEntry, dict]


def coerce_batch(batch: Optional[Iterable[BatchItem]]) -> list[CorrectionEntry]:
    """Accept CorrectionEntry objects or transaction-shaped dicts."""
    if not batch:
        return []
    return [
        item if isinstance(item, CorrectionEntry) else CorrectionEntry.from_dict(item)
        for item in batch
    ]


def _find_match(results: list[FinalizedTransaction], entry: CorrectionEntry) -> Optional[int]:
    """
    Index of the result an entry refers to, matched by (date, original description).

    Only the first match is used when duplicates exist.
    """
    if entry.original is None:
        return None

    for index, tx in enumerate(results):
        if tx.date == entry.date and tx.description == entry.original.description:
            return index
    return None


def merge_corrections(
    results: Iterable[FinalizedTransaction], batch: Optional[Iterable[BatchItem]]
) -> list[FinalizedTransaction]:
    """
    Splice a review batch into previously accepted results.

    Rules:
    - removed: dropped, and a matching result is removed too
    - corrected: replaces the matching result, else appended
    - skipped / unflagged: no change
    """
    merged = list(results)

    for entry in coerce_batch(batch):
        index = _find_match(merged, entry)

        if entry.removed:
            if index is not None:
                del merged[index]
            continue

        if entry.corrected:
            replacement = entry.to_transaction()
            if index is not None:
                merged[index] = replacement
            else:
                merged.append(replacement)

    return merged


class CorrectionLearner:
    """
    Learns from user-approved corrections.

    Batches are applied serially: concurrent batches against one store would
    lose updates to merchant counts.
    """

    def __init__(self, store: MerchantPatternStore):
        """Initialize with the shared pattern store."""
        self.store = store
        self._lock = threading.Lock()

    def apply_user_corrections(self, batch: Optional[Iterable[BatchItem]]) -> None:
        """
        Record every entry that carries an original reference, then persist.

        A persistence failure is logged by the store and does not raise.
        """
        entries = coerce_batch(batch)
        if not entries:
            return

        with self._lock:
            learned = 0
            for entry in entries:
                if entry.original is None:
                    continue

                record = CorrectionRecord(
                    date_format_original=entry.original.date_token,
                    original_line=entry.original.line,
                    corrected_date=entry.date,
                    corrected_description=entry.description,
                    corrected_amount=entry.signed_amount,
                    corrected_type=entry.type.value,
                )
                merchant = self.store.record(record)
                learned += 1
                logger.debug(f"Learned correction for merchant {merchant!r}")

            self.store.save()

        logger.info(f"Applied {learned} of {len(entries)} corrections")
