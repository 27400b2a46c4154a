"""Scrape guardrails: keep one bad reading from corrupting a stored total."""
from __future__ import annotations

import logging
import math
from typing import Any, Optional

from .logging_setup import LOGGER_NAME
from .scraper_observability import utc_now_iso
from .types import OrganizationRecord, ScrapeResult

logger = logging.getLogger(LOGGER_NAME)

# A new total above previous * factor is treated as a mis-parse
SUSPICIOUS_JUMP_FACTOR = 5


def _finite(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def passes_jump_check(previous_total: float, new_total: float, factor: float = SUSPICIOUS_JUMP_FACTOR) -> bool:
    """Return True unless the previous total was positive and the new one exceeds it by more than ``factor``.

    A previous total of zero means "never read", so anything goes.
    """
    if previous_total > 0 and new_total > previous_total * factor:
        return False
    return True


def sane_total(previous_total: float, scraped_total: Any, label: str = "") -> float:
    if not _finite(scraped_total) or scraped_total <= 0:
        return previous_total
    if not passes_jump_check(previous_total, scraped_total):
        logger.warning(
            "Rejecting suspicious jump for %s: %s -> %s", label, previous_total, scraped_total
        )
        return previous_total
    return scraped_total


def sane_count(previous: Any, scraped: Any) -> Any:
    if _finite(scraped) and scraped >= 0:
        return scraped
    return previous


def merge(
    previous: OrganizationRecord,
    scraped: ScrapeResult,
    label: str = "",
    now: Optional[str] = None,
) -> OrganizationRecord:
    """Combine a fresh scrape with the stored record; each field is judged on its own."""
    return previous.with_values(
        total=sane_total(previous.total, scraped.total, label or previous.name),
        donors=sane_count(previous.donors, scraped.donors),
        goal=sane_count(previous.goal, scraped.goal),
        last_updated=now or utc_now_iso(),
        error=scraped.error or None,
    )


def failed(previous: OrganizationRecord, message: str, now: Optional[str] = None) -> OrganizationRecord:
    """Record a refresh that never produced a scrape; numbers stay as they were."""
    return previous.with_values(
        error=message or "refresh failed",
        last_updated=now or utc_now_iso(),
    )
