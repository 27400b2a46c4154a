"""
Scrapers package.

Scrapers are designed to be:
- side-effect free on the page side (fetch is a plain GET, extract is pure)
- fail-soft (one organization failing should not kill a bulk refresh)
"""
from .extractor import extract
from .fetcher import FetchError, Fetcher

__all__ = ["extract", "FetchError", "Fetcher"]
