"""
Heuristic extraction of fundraising figures from an organization page.

Each pass is a pure function over the parsed page returning ``None`` when it
finds nothing usable. Fields are resolved independently: the first pass that
yields a positive number for a field wins, in this order:

1. structured data (JSON-LD blocks)
2. proximity text ("raised" near a dollar figure, largest figure wins)
3. labeled patterns on the visible text ("123 donors", "goal: $5,000")
4. percentage derivation ("40% complete" with exactly one of total/goal known)
5. median of every dollar figure on the page (total only)
"""
from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Iterable, List, Optional, Sequence

from bs4 import BeautifulSoup
from bs4.element import NavigableString

from ..logging_setup import LOGGER_NAME
from ..scraper_observability import utc_now_iso
from ..types import ScrapeResult

logger = logging.getLogger(LOGGER_NAME)

TOTAL_KEYS = ("amount", "totalRaised")
DONOR_KEYS = ("donorCount", "supporters")
GOAL_KEYS = ("goal", "target")

NON_VISIBLE_TAGS = {"script", "style", "noscript", "template", "head", "title"}

# How far up from a "raised" text node to look for the figure it labels
PROXIMITY_DEPTH = 2

DOLLAR_RE = re.compile(r"\$\s*(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?")
RAISED_WORD_RE = re.compile(r"\braised\b", re.I)
RAISED_LABEL_RE = re.compile(
    r"\$?\s*(\d[\d,]*(?:\.\d{2})?)\s*(?:total\s*|amount\s*)?raised", re.I
)
DONORS_RE = re.compile(
    r"(\d{1,3}(?:,\d{3})+|\d+)\s+(?:donor|supporter|giver)s?\b", re.I
)
GOAL_RE = re.compile(r"\bgoal\b[:\s]*\$?\s*(\d[\d,]*(?:\.\d{2})?)", re.I)
PERCENT_RE = re.compile(
    r"(\d{1,3}(?:\.\d+)?)\s*%\s*(?:complete|raised|funded|of\s+goal)", re.I
)

_NON_NUMERIC_RE = re.compile(r"[^0-9.]")
_WS_RE = re.compile(r"\s+")


def to_number(raw: Any) -> Optional[float]:
    """Parse ``raw`` after stripping everything but digits and the decimal point.

    Returns None when nothing finite remains ("$1,234.50" -> 1234.5, "n/a" -> None).
    """
    if raw is None or isinstance(raw, bool):
        return None
    try:
        if isinstance(raw, (int, float)):
            value = float(raw)
        else:
            cleaned = _NON_NUMERIC_RE.sub("", str(raw))
            if not cleaned:
                return None
            value = float(cleaned)
    except (OverflowError, ValueError):
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


def _positive(value: Optional[float]) -> Optional[float]:
    return value if value is not None and value > 0 else None


def dollar_figures(text: str) -> List[float]:
    values = (to_number(m) for m in DOLLAR_RE.findall(text))
    return [v for v in values if v is not None]


def _is_visible(node: NavigableString) -> bool:
    # comments, doctypes and script/style strings are NavigableString subclasses
    if type(node) is not NavigableString:
        return False
    parent = node.parent
    while parent is not None:
        if parent.name in NON_VISIBLE_TAGS:
            return False
        parent = parent.parent
    return True


def visible_text(soup: BeautifulSoup) -> str:
    parts = (s for s in soup.find_all(string=True) if _is_visible(s))
    return _WS_RE.sub(" ", " ".join(parts)).strip()


# -- pass 1: structured data ---------------------------------------------------


def json_ld_blocks(soup: BeautifulSoup) -> List[Any]:
    blocks: List[Any] = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.string if script.string is not None else script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            blocks.append(json.loads(raw))
        except (ValueError, RecursionError):
            # JSONDecodeError, oversized ints and pathological nesting
            logger.debug("Skipping malformed JSON-LD block")
    return blocks


def _find_key(node: Any, keys: Sequence[str]) -> Optional[float]:
    # depth-first, parents before children, without recursion
    stack: List[Any] = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, dict):
            for key in keys:
                if key in current and not isinstance(current[key], (dict, list)):
                    value = _positive(to_number(current[key]))
                    if value is not None:
                        return value
            children: Iterable[Any] = current.values()
        elif isinstance(current, list):
            children = current
        else:
            continue
        stack.extend(reversed(list(children)))
    return None


def structured_value(blocks: Sequence[Any], keys: Sequence[str]) -> Optional[float]:
    for block in blocks:
        value = _find_key(block, keys)
        if value is not None:
            return value
    return None


# -- pass 2: proximity text ----------------------------------------------------


def raised_candidates(soup: BeautifulSoup) -> List[str]:
    """Texts of the elements nearest each visible "raised" that also hold a dollar figure."""
    candidates: List[str] = []
    for node in soup.find_all(string=RAISED_WORD_RE):
        if not _is_visible(node):
            continue
        element = node.parent
        for _ in range(PROXIMITY_DEPTH + 1):
            if element is None:
                break
            text = element.get_text(" ", strip=True)
            if DOLLAR_RE.search(text):
                candidates.append(text)
                break
            element = element.parent
    return candidates


def proximity_total(soup: BeautifulSoup) -> Optional[float]:
    figures = [v for text in raised_candidates(soup) for v in dollar_figures(text)]
    return _positive(max(figures)) if figures else None


# -- pass 3: labeled patterns --------------------------------------------------


def _first_match(pattern: re.Pattern, text: str) -> Optional[float]:
    match = pattern.search(text)
    return _positive(to_number(match.group(1))) if match else None


def labeled_total(text: str) -> Optional[float]:
    return _first_match(RAISED_LABEL_RE, text)


def labeled_donors(text: str) -> Optional[float]:
    return _first_match(DONORS_RE, text)


def labeled_goal(text: str) -> Optional[float]:
    return _first_match(GOAL_RE, text)


# -- pass 4: percentage derivation ---------------------------------------------


def percent_complete(text: str) -> Optional[float]:
    match = PERCENT_RE.search(text)
    if not match:
        return None
    pct = to_number(match.group(1))
    if pct is None or not 0 < pct <= 100:
        return None
    return pct


def derive_from_percent(
    total: Optional[float], goal: Optional[float], pct: Optional[float]
) -> tuple[Optional[float], Optional[float]]:
    """Fill in whichever of total/goal is missing. Needs exactly one of them."""
    if pct is None or (total is None) == (goal is None):
        return total, goal
    if total is None:
        return _positive(to_number(round(goal * pct / 100.0, 2))), goal
    return total, _positive(to_number(round(total * 100.0 / pct, 2)))


# -- pass 5: median fallback ---------------------------------------------------


def median_dollar(text: str) -> Optional[float]:
    figures = sorted(dollar_figures(text))
    if not figures:
        return None
    return _positive(figures[len(figures) // 2])


def _first(*values: Optional[float]) -> Optional[float]:
    for value in values:
        if value is not None:
            return value
    return None


def extract(html: Optional[str]) -> ScrapeResult:
    """Best-effort reading of total raised, donor count and goal from ``html``."""
    soup = BeautifulSoup(html or "", "html.parser")

    blocks = json_ld_blocks(soup)
    text = visible_text(soup)

    total = _first(structured_value(blocks, TOTAL_KEYS), proximity_total(soup), labeled_total(text))
    donors = _first(structured_value(blocks, DONOR_KEYS), labeled_donors(text))
    goal = _first(structured_value(blocks, GOAL_KEYS), labeled_goal(text))

    total, goal = derive_from_percent(total, goal, percent_complete(text))

    if total is None:
        total = median_dollar(text)

    return ScrapeResult(
        total=total or 0,
        donors=int(donors or 0),
        goal=goal or 0,
        last_updated=utc_now_iso(),
        error=None,
    )
