"""
Statement extraction service.

Wires the accumulator, scorer, pattern store and correction learner around
one shared MerchantPatternStore, and remembers the accepted results of the
last scan so a review batch can be merged into them.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import Optional

from ..confidence.scorer import ConfidenceScorer, ConfidenceThresholds, ScoringWeights
from ..config import Config
from ..errors import InputError, PersistenceError
from ..extractors.statement_extractor import TransactionAccumulator
from ..learning.corrections import BatchItem, CorrectionLearner, merge_corrections
from ..learning.patterns import MerchantPatternStore
from ..paperless_client import PaperlessClient, PaperlessDocument
from ..schemas.transactions import ExtractionResult, FinalizedTransaction
from ..state_store import StateStore

logger = logging.getLogger(__name__)


class StatementService:
    """
    Extract transactions from statements and learn from reviewed corrections.

    One instance per pattern store. Extraction may run concurrently; review
    batches are applied serially by the learner.
    """

    def __init__(
        self,
        store: Optional[MerchantPatternStore] = None,
        weights: Optional[ScoringWeights] = None,
        thresholds: Optional[ConfidenceThresholds] = None,
        default_year: Optional[int] = None,
        paperless: Optional[PaperlessClient] = None,
        filter_tag: str = "finance/statements",
    ):
        """
        Initialize service.

        Args:
            store: Shared pattern store (default: in-memory)
            weights: Signal weights
            thresholds: Review threshold
            default_year: Year for dates printed without one
            paperless: Optional OCR text source
            filter_tag: Paperless tag marking statement documents
        """
        self.store = store if store is not None else MerchantPatternStore()
        self.scorer = ConfidenceScorer(weights=weights, thresholds=thresholds, store=self.store)
        self.accumulator = TransactionAccumulator(
            scorer=self.scorer, store=self.store, default_year=default_year
        )
        self.learner = CorrectionLearner(self.store)
        self.paperless = paperless
        self.filter_tag = filter_tag

        self._last_results: Optional[list[FinalizedTransaction]] = None
        self._results_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: Config) -> "StatementService":
        """
        Build a service backed by the configured SQLite state.

        An unusable state database falls back to an in-memory store.
        """
        try:
            state = StateStore(config.state_db_path)
        except PersistenceError as e:
            logger.warning(f"State database unavailable, learning in memory only: {e}")
            store = MerchantPatternStore()
        else:
            store = MerchantPatternStore(loader=state.load_state, saver=state.save_state)

        paperless = None
        if config.paperless.enabled:
            paperless = PaperlessClient(
                base_url=config.paperless.base_url,
                token=config.paperless.token,
            )

        return cls(
            store=store,
            weights=config.scoring.to_weights(),
            thresholds=config.scoring.to_thresholds(),
            default_year=config.statement_year,
            paperless=paperless,
            filter_tag=config.paperless.filter_tag,
        )

    def extract(self, text: Optional[str]) -> ExtractionResult:
        """
        Extract transactions from one document's OCR text.

        Raises:
            InputError: The text is empty
        """
        result = self.accumulator.extract(text)
        with self._results_lock:
            self._last_results = list(result.accepted)
        return result

    def extract_document(self, document_id: int) -> ExtractionResult:
        """
        Extract transactions from a Paperless document.

        Raises:
            ValueError: No Paperless source is configured
            ExternalFailure: The document could not be fetched
            InputError: The document has no OCR text
        """
        if self.paperless is None:
            raise ValueError("Paperless is not configured")

        text = self.paperless.get_document_content(document_id)
        logger.info(f"Extracting statement document #{document_id}")
        return self.extract(text)

    def extract_tagged(
        self, tag: Optional[str] = None, limit: Optional[int] = None
    ) -> list[tuple[PaperlessDocument, ExtractionResult]]:
        """
        Extract every Paperless document carrying the statement tag.

        Documents without OCR text are skipped. The accepted transactions of
        all scanned documents together become the last results.

        Args:
            tag: Tag name (default: the configured statement tag)
            limit: Stop after this many documents

        Raises:
            ValueError: No Paperless source is configured
            ExternalFailure: Listing failed
        """
        if self.paperless is None:
            raise ValueError("Paperless is not configured")

        tag = tag or self.filter_tag
        scanned: list[tuple[PaperlessDocument, ExtractionResult]] = []
        for document in self.paperless.list_documents(tags=[tag]):
            if limit is not None and len(scanned) >= limit:
                break
            try:
                result = self.accumulator.extract(document.content)
            except InputError:
                logger.warning(f"Skipping document #{document.id} without OCR text")
                continue
            scanned.append((document, result))

        logger.info(f"Extracted {len(scanned)} documents tagged {tag!r}")
        if scanned:
            with self._results_lock:
                self._last_results = [tx for _, result in scanned for tx in result.accepted]
        return scanned

    def get_last_results(self) -> list[FinalizedTransaction]:
        """Accepted transactions of the last scan (a copy; empty before any scan)."""
        with self._results_lock:
            return list(self._last_results or [])

    def apply_user_corrections(self, batch: Optional[Iterable[BatchItem]]) -> None:
        """Learn from a reviewed batch without touching the last results."""
        self.learner.apply_user_corrections(batch)

    def apply_review(self, batch: Optional[Iterable[BatchItem]]) -> list[FinalizedTransaction]:
        """
        Learn from a reviewed batch and merge it into the last results.

        Returns:
            The merged transaction list, which also becomes the last results
        """
        batch = list(batch or [])
        self.learner.apply_user_corrections(batch)

        with self._results_lock:
            merged = merge_corrections(self._last_results or [], batch)
            self._last_results = merged
            return list(merged)
