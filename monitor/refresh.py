from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from . import guardrails
from .logging_setup import LOGGER_NAME
from .scraper_observability import StepTimer, log_event, new_run_id
from .scrapers.extractor import extract as default_extract
from .scrapers.fetcher import FetchError, Fetcher
from .store import OrganizationNotFound, OrganizationStore
from .types import (
    OUTCOME_ERROR,
    OUTCOME_SUCCESS,
    SCRAPER_UNAVAILABLE,
    OrganizationRecord,
    ScrapeResult,
)

logger = logging.getLogger(LOGGER_NAME)

BULK_MESSAGE = "Bulk refresh completed"


@dataclass
class RefreshOutcome:
    record: OrganizationRecord
    ok: bool
    status_code: int = 200

    @property
    def tag(self) -> str:
        return OUTCOME_SUCCESS if self.ok else OUTCOME_ERROR


@dataclass
class BulkRefreshResult:
    results: Dict[str, str] = field(default_factory=dict)
    data: Dict[str, dict] = field(default_factory=dict)

    @property
    def summary(self) -> Dict[str, int]:
        success = sum(1 for tag in self.results.values() if tag == OUTCOME_SUCCESS)
        return {
            "total": len(self.results),
            "success": success,
            "errors": len(self.results) - success,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": BULK_MESSAGE,
            "results": dict(self.results),
            "data": self.data,
            "summary": self.summary,
        }


class RefreshOrchestrator:
    """Fetch -> extract -> sanity merge for one organization or for all of them.

    With ``fetcher=None`` the scraper counts as unavailable: every refresh
    records that as its error and answers 503.
    """

    def __init__(
        self,
        store: OrganizationStore,
        fetcher: Optional[Fetcher],
        extractor: Callable[[str], ScrapeResult] = default_extract,
        delay_s: float = 0.6,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.fetcher = fetcher
        self.extractor = extractor
        self.delay_s = delay_s
        self.sleep = sleep

    @property
    def scraper_available(self) -> bool:
        return self.fetcher is not None

    def _scrape(self, record: OrganizationRecord, run_id: str) -> RefreshOutcome:
        if self.fetcher is None:
            updated = guardrails.failed(record, SCRAPER_UNAVAILABLE)
            return RefreshOutcome(self.store.put(updated), ok=False, status_code=503)

        timer = StepTimer()
        try:
            response = self.fetcher.fetch(record.url)
        except FetchError as exc:
            logger.warning("Refresh failed for %s: %s", record.id, exc)
            updated = guardrails.failed(record, str(exc))
            log_event("END", run_id=run_id, org=record.id, success=False, status=exc.status)
            return RefreshOutcome(self.store.put(updated), ok=False, status_code=502)

        scraped = self.extractor(response.text)
        log_event(
            "PARSE",
            run_id=run_id,
            org=record.id,
            total=scraped.total,
            donors=scraped.donors,
            goal=scraped.goal,
        )
        merged = guardrails.merge(record, scraped, record.name)
        log_event(
            "MERGE",
            run_id=run_id,
            org=record.id,
            total=merged.total,
            previous_total=record.total,
            duration_ms=timer.elapsed_ms(),
        )
        return RefreshOutcome(self.store.put(merged), ok=merged.error is None)

    def refresh_one(self, org_id: str, run_id: Optional[str] = None) -> RefreshOutcome:
        """Refresh a single organization. Raises OrganizationNotFound for unknown ids."""
        record = self.store.get(org_id)
        run_id = run_id or new_run_id()
        log_event("START", run_id=run_id, org=org_id)
        try:
            return self._scrape(record, run_id)
        except Exception as exc:
            logger.exception("Unexpected refresh failure for %s", org_id)
            updated = guardrails.failed(record, f"{type(exc).__name__}: {exc}")
            if org_id in self.store:
                self.store.put(updated)
            log_event("END", run_id=run_id, org=org_id, success=False, error_type=type(exc).__name__)
            return RefreshOutcome(updated, ok=False, status_code=502)

    def refresh_all(self) -> BulkRefreshResult:
        """Refresh every organization in seed order, pausing between them. Never stops early."""
        run_id = new_run_id()
        ids = self.store.ids()
        result = BulkRefreshResult()
        log_event("START", run_id=run_id, organizations=len(ids), bulk=True)

        for i, org_id in enumerate(ids):
            try:
                result.results[org_id] = self.refresh_one(org_id, run_id=run_id).tag
            except OrganizationNotFound:
                # removed while the loop was running
                result.results[org_id] = OUTCOME_ERROR
            if i < len(ids) - 1 and self.delay_s > 0:
                self.sleep(self.delay_s)

        result.data = self.store.snapshot()
        log_event("END", run_id=run_id, bulk=True, **result.summary)
        return result
