import os
import sys

import pytest
import requests

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from monitor.store import OrganizationStore  # noqa: E402

SEEDS = [
    {"name": "Test Organization 1", "url": "https://www.northtexasgivingday.org/organization/test-org-1"},
    {"name": "Test Organization 2", "url": "https://www.northtexasgivingday.org/organization/test-org-2"},
]


def make_response(status: int = 200, text: str = "", url: str = "https://example.test/") -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp._content = text.encode("utf-8")
    resp.encoding = "utf-8"
    resp.url = url
    return resp


class FakeFetcher:
    """Serves canned pages by URL; a FetchError value is raised instead of returned."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.calls = []

    def fetch(self, url, max_attempts=None):
        self.calls.append(url)
        page = self.pages.get(url, "")
        if isinstance(page, Exception):
            raise page
        return make_response(200, page, url)


@pytest.fixture()
def store():
    return OrganizationStore(SEEDS)


@pytest.fixture()
def no_sleep():
    slept = []
    return slept, slept.append
