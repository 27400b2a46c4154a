"""
Giving Day monitor.

Scrapes fundraising totals, donor counts and goals from North Texas Giving
Day organization pages, keeps the latest reading per organization in memory
and serves it over a small JSON/CSV API.
"""

__version__ = "2.0.0"
