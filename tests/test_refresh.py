import pytest

from monitor.refresh import RefreshOrchestrator
from monitor.scrapers.fetcher import FetchError
from monitor.store import OrganizationNotFound

from conftest import SEEDS, FakeFetcher

URL_1 = SEEDS[0]["url"]
URL_2 = SEEDS[1]["url"]

PAGE = "<body><p>$1,500 raised</p><p>12 donors</p><p>Goal: $10,000</p></body>"


def _orchestrator(store, pages, slept=None):
    fetcher = FakeFetcher(pages)
    sleep = slept.append if slept is not None else (lambda s: None)
    return RefreshOrchestrator(store, fetcher, delay_s=0.6, sleep=sleep), fetcher


def test_refresh_one_updates_store(store):
    orch, fetcher = _orchestrator(store, {URL_1: PAGE})
    outcome = orch.refresh_one("test-org-1")
    assert outcome.ok
    assert outcome.status_code == 200
    record = store.get("test-org-1")
    assert (record.total, record.donors, record.goal) == (1500.0, 12, 10000.0)
    assert record.error is None
    assert record.last_updated
    assert fetcher.calls == [URL_1]


def test_refresh_one_unknown_id(store):
    orch, _ = _orchestrator(store, {})
    with pytest.raises(OrganizationNotFound):
        orch.refresh_one("missing")


def test_fetch_failure_becomes_error_record(store):
    store.put(store.get("test-org-1").with_values(total=300, donors=4))
    orch, _ = _orchestrator(store, {URL_1: FetchError("503 Server Error", status=503)})
    outcome = orch.refresh_one("test-org-1")
    assert not outcome.ok
    assert outcome.status_code == 502
    record = store.get("test-org-1")
    assert record.error == "503 Server Error"
    assert record.last_updated
    assert (record.total, record.donors) == (300, 4)


def test_scraper_unavailable_answers_503(store):
    orch = RefreshOrchestrator(store, None, delay_s=0)
    outcome = orch.refresh_one("test-org-2")
    assert outcome.status_code == 503
    assert store.get("test-org-2").error == "scraper unavailable"


def test_bulk_refresh_reports_every_id_and_paces_between(store):
    slept = []
    orch, fetcher = _orchestrator(store, {URL_1: FetchError("boom"), URL_2: PAGE}, slept)
    result = orch.refresh_all()
    assert result.results == {"test-org-1": "error", "test-org-2": "success"}
    assert result.summary == {"total": 2, "success": 1, "errors": 1}
    assert fetcher.calls == [URL_1, URL_2]
    assert slept == [0.6]
    assert result.data["test-org-2"]["total"] == 1500.0
    assert result.data["test-org-1"]["error"] == "boom"


def test_bulk_refresh_survives_unexpected_extractor_failure(store):
    def broken(html):
        raise RuntimeError("bad parser")

    orch = RefreshOrchestrator(store, FakeFetcher({}), extractor=broken, delay_s=0)
    body = orch.refresh_all().to_dict()
    assert body["message"] == "Bulk refresh completed"
    assert body["results"] == {"test-org-1": "error", "test-org-2": "error"}
    assert body["data"]["test-org-2"]["error"] == "RuntimeError: bad parser"


def test_second_refresh_rejects_suspicious_jump(store):
    orch, fetcher = _orchestrator(store, {URL_1: PAGE})
    orch.refresh_one("test-org-1")
    fetcher.pages[URL_1] = "<body><p>$900,000 raised</p></body>"
    orch.refresh_one("test-org-1")
    assert store.get("test-org-1").total == 1500.0


def test_refresh_one_absorbs_unexpected_extractor_failure(store):
    def broken(html):
        raise OverflowError("int too large to convert to float")

    store.put(store.get("test-org-1").with_values(total=300, donors=4))
    orch = RefreshOrchestrator(store, FakeFetcher({URL_1: PAGE}), extractor=broken, delay_s=0)
    outcome = orch.refresh_one("test-org-1")
    assert not outcome.ok
    assert outcome.status_code == 502
    record = store.get("test-org-1")
    assert record.error == "OverflowError: int too large to convert to float"
    assert record.last_updated
    assert (record.total, record.donors) == (300, 4)


class RemovingFetcher(FakeFetcher):
    """Drops an organization from the store the first time ``trigger_url`` is fetched."""

    def __init__(self, store, trigger_url, doomed_id, pages=None):
        super().__init__(pages)
        self.store = store
        self.trigger_url = trigger_url
        self.doomed_id = doomed_id

    def fetch(self, url, max_attempts=None):
        if url == self.trigger_url and self.doomed_id in self.store:
            self.store.remove(self.doomed_id)
        return super().fetch(url, max_attempts)


def test_bulk_refresh_survives_org_removed_mid_run(store):
    fetcher = RemovingFetcher(store, URL_1, "test-org-2", {URL_1: PAGE, URL_2: PAGE})
    orch = RefreshOrchestrator(store, fetcher, delay_s=0)
    result = orch.refresh_all()
    assert result.results == {"test-org-1": "success", "test-org-2": "error"}
    assert result.summary == {"total": 2, "success": 1, "errors": 1}
    assert list(result.data) == ["test-org-1"]
    assert fetcher.calls == [URL_1]


def test_org_removed_during_its_own_refresh_is_not_recreated(store):
    fetcher = RemovingFetcher(store, URL_1, "test-org-1", {URL_1: PAGE})
    orch = RefreshOrchestrator(store, fetcher, delay_s=0)
    outcome = orch.refresh_one("test-org-1")
    assert not outcome.ok
    assert outcome.status_code == 502
    assert "test-org-1" not in store
