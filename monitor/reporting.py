import csv
import io
from typing import Any, Dict, Iterable, List

from .scraper_observability import utc_now_iso
from .types import OrganizationRecord

CSV_COLUMNS = ["id", "name", "url", "donors", "total", "goal", "lastUpdated", "error"]


def average_gift(total_raised: float, total_donors: int) -> float:
    """Raised per donor, rounded to cents; 0 when nobody has given yet."""
    if total_donors > 0:
        return round(total_raised / total_donors, 2)
    return 0


def summarize(records: Iterable[OrganizationRecord]) -> Dict[str, Any]:
    """Totals across every tracked organization."""
    orgs: List[OrganizationRecord] = list(records)
    total_raised = sum(o.total or 0 for o in orgs)
    total_donors = sum(o.donors or 0 for o in orgs)
    total_goal = sum(o.goal or 0 for o in orgs)
    return {
        "organizationCount": len(orgs),
        "totalRaised": total_raised,
        "totalDonors": total_donors,
        "totalGoal": total_goal,
        "averageGift": average_gift(total_raised, total_donors),
        "lastUpdated": utc_now_iso(),
    }


def export_csv(records: Iterable[OrganizationRecord]) -> str:
    """One row per organization; every cell including the header is quoted, quotes are doubled."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for o in records:
        writer.writerow(
            [
                o.id,
                o.name,
                o.url,
                o.donors or 0,
                o.total or 0,
                o.goal or 0,
                o.last_updated or "",
                o.error or "",
            ]
        )
    return buf.getvalue()
