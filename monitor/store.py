from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, Iterator, List, Mapping, Optional
from urllib.parse import urlparse

from .config import ORG_HOST
from .logging_setup import LOGGER_NAME
from .types import OrganizationRecord

logger = logging.getLogger(LOGGER_NAME)

_ORG_ID_RE = re.compile(r"/organization/([^/?#]+)", re.I)


class OrganizationNotFound(KeyError):
    def __init__(self, org_id: str):
        super().__init__(org_id)
        self.org_id = org_id

    def __str__(self) -> str:
        return "Organization not found"


def url_to_id(url: str) -> str:
    """Slug after ``/organization/``, lowercased; empty string if the URL has none."""
    match = _ORG_ID_RE.search(str(url or ""))
    return match.group(1).lower() if match else ""


def is_valid_org_url(url: str, host: str = ORG_HOST) -> bool:
    """Strict check for user-supplied URLs: https://<host>/organization/<slug> and nothing else."""
    try:
        parsed = urlparse(str(url or ""))
    except ValueError:
        return False
    if parsed.scheme != "https" or parsed.hostname != host.lower():
        return False
    parts = [p for p in parsed.path.split("/") if p]
    return len(parts) == 2 and parts[0] == "organization" and bool(parts[1])


def name_from_id(org_id: str) -> str:
    return " ".join(word.capitalize() for word in org_id.split("-") if word)


class OrganizationStore:
    """Latest record per organization, keyed by id, in seed (insertion) order.

    Concurrent refreshes may interleave writes to the same record; there is
    no locking.
    """

    def __init__(self, seeds: Optional[Iterable[Mapping[str, str]]] = None):
        self._records: Dict[str, OrganizationRecord] = {}
        if seeds is not None:
            self.seed(seeds)

    def seed(self, entries: Iterable[Mapping[str, str]]) -> int:
        loaded = 0
        for entry in entries:
            url = entry.get("url") or ""
            org_id = url_to_id(url)
            if not org_id:
                logger.warning("Skipping seed without /organization/<slug> URL: %r", url)
                continue
            if org_id in self._records:
                continue
            name = entry.get("name") or name_from_id(org_id)
            self._records[org_id] = OrganizationRecord(id=org_id, name=name, url=url)
            loaded += 1
        logger.info("Initialized %d organizations (%d tracked)", loaded, len(self._records))
        return loaded

    def reseed(self, entries: Iterable[Mapping[str, str]], replace: bool = False) -> int:
        """Load seeds again; ``replace`` drops every tracked record first. Returns the number added."""
        if replace:
            self._records.clear()
        return self.seed(entries)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, org_id: object) -> bool:
        return org_id in self._records

    def __iter__(self) -> Iterator[OrganizationRecord]:
        return iter(list(self._records.values()))

    def ids(self) -> List[str]:
        return list(self._records)

    def all(self) -> List[OrganizationRecord]:
        return list(self._records.values())

    def get(self, org_id: str) -> OrganizationRecord:
        try:
            return self._records[org_id]
        except KeyError:
            raise OrganizationNotFound(org_id) from None

    def put(self, record: OrganizationRecord) -> OrganizationRecord:
        """Replace the stored record for an already tracked id."""
        if record.id not in self._records:
            raise OrganizationNotFound(record.id)
        self._records[record.id] = record
        return record

    def add(self, name: Optional[str], url: str) -> OrganizationRecord:
        org_id = url_to_id(url)
        if not org_id:
            raise ValueError(f"Not an organization URL: {url}")
        if org_id in self._records:
            return self._records[org_id]
        record = OrganizationRecord(id=org_id, name=name or name_from_id(org_id), url=url)
        self._records[org_id] = record
        return record

    def remove(self, org_id: str) -> OrganizationRecord:
        try:
            return self._records.pop(org_id)
        except KeyError:
            raise OrganizationNotFound(org_id) from None

    def snapshot(self) -> Dict[str, dict]:
        return {org_id: record.to_dict() for org_id, record in self._records.items()}
