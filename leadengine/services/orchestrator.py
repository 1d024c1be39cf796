"""
Batch rescore orchestrator.

Fetches one page of leads, fans the scoring pipeline out over a bounded
ThreadPoolExecutor and merge-writes each result back through the store.
Writes happen on the calling thread, and only for leads whose worker
finished inside the deadline; a timed-out lead is never written, even if
its worker completes later.

A lead that fails (scoring raised, store write failed, timed out) becomes an
entry in `errors` keyed by its input index; it never aborts the batch.

Workers only return values; counters and the classification histogram are
built by the calling thread after the pool drains, so there is no shared
mutable state between workers.

Stateless between calls: the caller passes next_offset back in to get the
following page.
"""
import logging
import math
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Any, Optional, Tuple

from leadengine.config import RESCORE_POOL_SIZE, RESCORE_LEAD_TIMEOUT_SECONDS
from leadengine.errors import Result, ScoringFailure, PersistenceFailure
from leadengine.scoring.base import ScoreResult
from leadengine.scoring.engine import score_raw, to_storage_fields

logger = logging.getLogger('services.orchestrator')


@dataclass
class LeadOutcome:
    index: int
    buyer_id: Optional[str]
    result: Optional[ScoreResult] = None
    error: Optional[str] = None
    kind: Optional[str] = None  # 'scoring' | 'persistence' | 'timeout'

    @property
    def ok(self):
        return self.error is None

    def to_result_item(self) -> Dict[str, Any]:
        r = self.result
        return {
            'index': self.index,
            'buyer_id': self.buyer_id,
            'quality_score': r.quality_score,
            'intent_score': r.intent_score,
            'confidence_score': r.confidence_score,
            'classification': r.classification,
            'call_priority': r.priority,
            'is_28_day_buyer': r.is_28_day_buyer,
            'is_fake_lead': r.is_fake,
            'risk_flags': list(r.risk_flags),
        }

    def to_error_item(self) -> Dict[str, Any]:
        return {'index': self.index, 'buyer_id': self.buyer_id, 'error': self.error, 'kind': self.kind}


@dataclass
class BatchOutcome:
    """Everything one batch call reports back."""
    requested: int
    succeeded: int
    failed: int
    results: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    classification_distribution: Dict[str, int] = field(default_factory=dict)
    has_more: bool = False
    next_offset: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Rescore-all response body."""
        return {
            'success': True,
            'total': self.requested,
            'scored': self.succeeded,
            'failed': self.failed,
            'has_more': self.has_more,
            'next_offset': self.next_offset,
            'classificationDistribution': dict(self.classification_distribution),
            'errors': list(self.errors),
        }


class RescoreOrchestrator:
    """
    Usage:
        orchestrator = RescoreOrchestrator(LeadStore(get_session))
        page = orchestrator.rescore(company_id, limit=100, offset=0, force=True)
        if page.ok:
            outcome = page.value   # BatchOutcome
    """

    def __init__(self, store, pool_size: int = RESCORE_POOL_SIZE,
                 lead_timeout: float = RESCORE_LEAD_TIMEOUT_SECONDS,
                 scorer: Callable[..., ScoreResult] = score_raw,
                 clock: Callable[[], datetime] = None):
        self.store = store
        self.pool_size = pool_size
        self.lead_timeout = lead_timeout
        self.scorer = scorer
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # ── Page-level entry points ───────────────────────────────────────────

    def rescore(self, company_id: Optional[str] = None, limit: int = 100, offset: int = 0,
                force: bool = True, buyer_ids: Optional[List[str]] = None) -> Result:
        """Score one page of stored leads and write the results back."""
        page = self.store.fetch_page(company_id, limit=limit, offset=offset, force=force, buyer_ids=buyer_ids)
        if not page.ok:
            return page

        leads = page.value
        logger.info("Rescoring %d leads (company=%s offset=%d limit=%d force=%s)",
                    len(leads), company_id or '*', offset, limit, force)

        outcome = self.process(list(enumerate(leads)), company_id=company_id, persist=True)
        outcome.has_more = len(leads) == limit
        outcome.next_offset = offset + limit
        return Result.success(outcome)

    def status(self, company_id: Optional[str] = None) -> Result:
        return self.store.score_status(company_id)

    # ── Fan-out ───────────────────────────────────────────────────────────

    def process(self, items: List[Tuple[int, Dict[str, Any]]], company_id: Optional[str] = None,
                persist: bool = True, failed: Optional[List[LeadOutcome]] = None) -> BatchOutcome:
        """
        Score (and optionally persist) (index, raw lead) pairs on the worker pool.

        `failed` lets callers fold in items that were rejected before scoring
        (e.g. unknown buyer ids) so they show up in the same errors list.
        """
        outcomes: List[LeadOutcome] = list(failed or [])
        developments = self._developments(company_id)
        now = self.clock()

        if items:
            executor = ThreadPoolExecutor(max_workers=self.pool_size)
            try:
                futures = {
                    executor.submit(self._score_one, index, raw, developments, now): (index, raw)
                    for index, raw in items
                }
                rounds = math.ceil(len(items) / self.pool_size)
                done, pending = wait(futures, timeout=self.lead_timeout * rounds)

                for future in done:
                    index, raw = futures[future]
                    try:
                        outcome = future.result()
                    except Exception as e:
                        logger.error("Worker crashed for lead index %d: %s", index, e, exc_info=True)
                        outcomes.append(LeadOutcome(index, _buyer_id(raw), error=str(e), kind='scoring'))
                        continue
                    if persist and outcome.ok and outcome.buyer_id:
                        outcome = self._persist(outcome)
                    outcomes.append(outcome)

                for future in pending:
                    index, raw = futures[future]
                    future.cancel()
                    logger.error("Lead index %d timed out after %ss", index, self.lead_timeout)
                    outcomes.append(LeadOutcome(index, _buyer_id(raw), error='Timed out', kind='timeout'))
            finally:
                executor.shutdown(wait=False, cancel_futures=True)

        return self._aggregate(outcomes)

    def _developments(self, company_id):
        found = self.store.list_developments(company_id)
        if not found.ok:
            logger.warning("Developments unavailable for company %s, inventory fit neutral", company_id)
            return None
        return found.value or None

    def _score_one(self, index: int, raw: Dict[str, Any], developments, now: datetime) -> LeadOutcome:
        """Score one lead on a worker. Never raises, never writes."""
        buyer_id = _buyer_id(raw)
        try:
            result = self.scorer(raw, developments, now=now)
        except Exception as e:
            failure = ScoringFailure(f'Scoring failed: {e}')
            logger.error("Scoring failed for lead %s (index %d): %s", buyer_id, index, e, exc_info=True)
            return LeadOutcome(index, buyer_id, error=failure.message, kind='scoring')

        return LeadOutcome(index, buyer_id, result=result)

    def _persist(self, outcome: LeadOutcome) -> LeadOutcome:
        buyer_id, index = outcome.buyer_id, outcome.index
        try:
            written = self.store.update_scores(buyer_id, to_storage_fields(outcome.result))
        except Exception as e:
            written = Result.failure(PersistenceFailure(str(e)))
        if not written.ok:
            # Score was computed but is lost; logged separately from scoring failures
            logger.error("Persisting score failed for lead %s (index %d): %s",
                         buyer_id, index, written.error.message)
            return LeadOutcome(index, buyer_id, error=written.error.message, kind='persistence')
        return outcome

    def _aggregate(self, outcomes: List[LeadOutcome]) -> BatchOutcome:
        outcomes = sorted(outcomes, key=lambda o: o.index)
        succeeded = [o for o in outcomes if o.ok]
        failures = [o for o in outcomes if not o.ok]
        histogram = Counter(o.result.classification for o in succeeded)
        if failures:
            logger.warning("Batch finished with %d/%d failures", len(failures), len(outcomes))
        return BatchOutcome(
            requested=len(outcomes),
            succeeded=len(succeeded),
            failed=len(failures),
            results=[o.to_result_item() for o in succeeded],
            errors=[o.to_error_item() for o in failures],
            classification_distribution=dict(histogram),
        )


def _buyer_id(raw) -> Optional[str]:
    if not isinstance(raw, dict):
        return None
    value = raw.get('id') or raw.get('buyer_id')
    return str(value) if value is not None else None
