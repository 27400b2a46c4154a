from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional


# Per-organization outcome tags reported by a bulk refresh
OUTCOME_SUCCESS = "success"
OUTCOME_ERROR = "error"

SCRAPER_UNAVAILABLE = "scraper unavailable"


@dataclass
class OrganizationRecord:
    id: str
    name: str
    url: str
    total: float = 0
    donors: int = 0
    goal: float = 0
    last_updated: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "total": self.total,
            "donors": self.donors,
            "goal": self.goal,
            "lastUpdated": self.last_updated,
            "error": self.error,
        }

    def with_values(self, **changes: Any) -> "OrganizationRecord":
        """Return a copy with the given fields replaced; id/name/url never change."""
        for key in ("id", "name", "url"):
            changes.pop(key, None)
        return replace(self, **changes)


@dataclass
class ScrapeResult:
    """One extractor reading. Zero means "not found on the page"."""

    total: float = 0
    donors: int = 0
    goal: float = 0
    last_updated: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "donors": self.donors,
            "goal": self.goal,
            "lastUpdated": self.last_updated,
            "error": self.error,
        }
