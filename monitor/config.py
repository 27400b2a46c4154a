"""
Runtime configuration.

Every knob is read from the environment (a ``.env`` file is loaded by the
process entry points). Numeric values that fail to parse fall back to their
defaults with a warning instead of stopping the server.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .logging_setup import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

ORG_HOST = "www.northtexasgivingday.org"

# name -> fundraising page, in display order
DEFAULT_ORGANIZATIONS: List[Dict[str, str]] = [
    {"name": "Brother Bill's Helping Hand", "url": f"https://{ORG_HOST}/organization/bbhh"},
    {"name": "Casa del Lago", "url": f"https://{ORG_HOST}/organization/casa-del-lago"},
    {"name": "Dallas LIFE", "url": f"https://{ORG_HOST}/organization/dallas-life-homeless-shelter"},
    {"name": "The Kessler School", "url": f"https://{ORG_HOST}/organization/the-kessler-school"},
    {
        "name": "CityBridge Health Foundation",
        "url": f"https://{ORG_HOST}/organization/Citybridge-Health-Foundation",
    },
    {"name": "Dallas Area Rape Crisis Center (DARCC)", "url": f"https://{ORG_HOST}/organization/darcc"},
    {"name": "International Student Foundation (ISF)", "url": f"https://{ORG_HOST}/organization/ISF"},
    {"name": "Girlstart", "url": f"https://{ORG_HOST}/organization/Girlstart"},
]

_TRUTHY = {"1", "true", "yes", "on"}


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", key, raw, default)
        return default


def _env_flag(key: str, default: bool = False) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def _env_list(key: str) -> List[str]:
    raw = os.getenv(key, "")
    return [s.strip() for s in raw.split(",") if s.strip()]


def load_organizations(path: Optional[str] = None) -> List[Dict[str, str]]:
    """Return the seed list: the JSON file at ``path`` if given, else the built-in list.

    The file must hold an array of ``{"name": ..., "url": ...}`` objects.
    """
    if not path:
        return [dict(org) for org in DEFAULT_ORGANIZATIONS]
    if not Path(path).is_file():
        logger.warning("No seed file found at %s, using the built-in organizations", path)
        return [dict(org) for org in DEFAULT_ORGANIZATIONS]

    seeds = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(seeds, list):
        raise ValueError(f"Seed file must be an array: {path}")
    return [s for s in seeds if isinstance(s, dict)]


@dataclass
class Settings:
    request_timeout_ms: int = 12000
    max_retries: int = 2
    batch_delay_ms: int = 600
    user_agent: str = "NTXGD-Monitor/2.0"
    allowed_origins: List[str] = field(default_factory=list)
    organizations_file: Optional[str] = None
    allow_org_mutation: bool = False
    scraper_enabled: bool = True
    reseed_token: Optional[str] = None
    org_host: str = ORG_HOST
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3001

    @property
    def request_timeout_s(self) -> float:
        return self.request_timeout_ms / 1000.0

    @property
    def batch_delay_s(self) -> float:
        return max(0, self.batch_delay_ms) / 1000.0

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            request_timeout_ms=_env_int("REQUEST_TIMEOUT_MS", defaults.request_timeout_ms),
            max_retries=_env_int("MAX_RETRIES", defaults.max_retries),
            batch_delay_ms=_env_int("BATCH_DELAY_MS", defaults.batch_delay_ms),
            user_agent=os.getenv("USER_AGENT", defaults.user_agent),
            allowed_origins=_env_list("ALLOWED_ORIGINS"),
            organizations_file=os.getenv("ORGANIZATIONS_FILE") or None,
            allow_org_mutation=_env_flag("ALLOW_ORG_MUTATION"),
            scraper_enabled=_env_flag("SCRAPER_ENABLED", defaults.scraper_enabled),
            reseed_token=os.getenv("RESEED_TOKEN") or None,
            org_host=os.getenv("ORG_HOST", defaults.org_host),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
            host=os.getenv("HOST", defaults.host),
            port=_env_int("PORT", defaults.port),
        )
