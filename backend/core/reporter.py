"""
reporter.py - Dashboard KPIs.

Computes:
- Record totals and distinct category counts
- Per-category distribution (count desc, ties in first-seen order)
- Current-period average and year-over-year growth for one school
- School totals and recent activity for the main panel
"""

import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from core.normalizer import normalize_text
from core.records import records_to_frame

SCOPES = {
    "all": "assessment_name",
    "single-entity": "subject",
}


def _safe_float(val) -> Optional[float]:
    """Convert to float or return None."""
    try:
        v = float(val)
        return None if np.isnan(v) or np.isinf(v) else round(v, 2)
    except (TypeError, ValueError):
        return None


def _period_mean(df: pd.DataFrame, year: int) -> float:
    values = df.loc[df["year"] == year, "value"]
    if values.empty:
        return 0.0
    return float(values.mean())


def _category_counts(df: pd.DataFrame, field: str) -> List[Dict[str, Any]]:
    if df.empty:
        return []
    keys = df[field].map(normalize_text)
    labels = df[field].groupby(keys, sort=False).first()
    counts = keys.groupby(keys, sort=False).size()
    # sorted() is stable: equal counts keep first-seen order.
    ordered = sorted(counts.items(), key=lambda kv: -kv[1])
    return [
        {"category": str(labels[k]).strip(), "count": int(c)}
        for k, c in ordered
    ]


def summarize(
    records: List[Dict[str, Any]],
    reference_year: Optional[int] = None,
    scope: str = "all",
) -> Dict[str, Any]:
    """
    Compute the KPI snapshot for a record set.

    Growth is reported as 0 when the previous period's mean is 0 or has no
    records. That is a product policy, not a mathematical result.
    """
    if scope not in SCOPES:
        raise ValueError(f"Unsupported scope: {scope!r}. Expected one of {sorted(SCOPES)}.")

    df = records_to_frame(records)
    if reference_year is None:
        reference_year = datetime.now().year

    per_category = _category_counts(df, SCOPES[scope])
    snapshot: Dict[str, Any] = {
        "scope": scope,
        "reference_year": int(reference_year),
        "total_records": len(df),
        "distinct_categories": len(per_category),
        "per_category_counts": per_category,
        "average_current_period": None,
        "average_previous_period": None,
        "growth_percent": None,
    }

    if scope == "single-entity":
        current = _period_mean(df, reference_year)
        previous = _period_mean(df, reference_year - 1)
        growth = (current - previous) / previous * 100 if previous else 0.0
        snapshot["average_current_period"] = _safe_float(current) or 0.0
        snapshot["average_previous_period"] = _safe_float(previous) or 0.0
        snapshot["growth_percent"] = _safe_float(growth) or 0.0

    return snapshot


# ── School overview ─────────────────────────────────────────────────

def _parse_timestamp(val: Any) -> Optional[datetime]:
    if val is None or val == "":
        return None
    ts = pd.to_datetime(val, errors="coerce", utc=True)
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


def _round_half_up(val: float) -> int:
    return int(math.floor(val + 0.5))


def format_elapsed(timestamp: Any, now: Optional[datetime] = None) -> str:
    """Relative label such as 'just now', '5 min ago', '3 h ago', '2 d ago'."""
    past = _parse_timestamp(timestamp)
    if past is None:
        return ""
    now = _parse_timestamp(now) if now is not None else datetime.now(timezone.utc)

    diff_sec = _round_half_up((now - past).total_seconds())
    diff_min = _round_half_up(diff_sec / 60)
    diff_hr = _round_half_up(diff_min / 60)
    diff_day = _round_half_up(diff_hr / 24)

    if diff_min < 1:
        return "just now"
    if diff_min < 60:
        return f"{diff_min} min ago"
    if diff_hr < 24:
        return f"{diff_hr} h ago"
    return f"{diff_day} d ago"


def summarize_schools(
    schools: List[Dict[str, Any]],
    now: Optional[datetime] = None,
    limit: int = 5,
) -> Dict[str, Any]:
    """School count plus the most recently created schools, newest first."""
    schools = list(schools or [])
    dated = [
        (s, _parse_timestamp(s.get("created_at")))
        for s in schools
    ]
    dated = [(s, ts) for s, ts in dated if ts is not None]
    dated.sort(key=lambda item: item[1], reverse=True)

    return {
        "total_schools": len(schools),
        "recent_activity": [
            {
                "school_id": s.get("id"),
                "name": s.get("name") or s.get("nome_escola") or "",
                "inep_code": s.get("inep_code") or s.get("codigo_inep"),
                "created_at": ts.isoformat(),
                "elapsed": format_elapsed(ts, now),
            }
            for s, ts in dated[:limit]
        ],
    }
