"""
series.py - Group raw results into plot-ready, scaled series.

One group per canonical (assessment, grade, subject) key, in first-seen
order. Points inside a group are stably sorted by year, so identical input
always yields identical output.
"""

import logging
from typing import Any, Dict, List, Optional

from core.normalizer import build_key, display_title
from core.records import records_to_frame
from core.scaling import ScaleFamily, resolve_scale, scale_value

logger = logging.getLogger(__name__)


def build_series(
    records: List[Dict[str, Any]],
    strict_keys: bool = False,
    families: Optional[List[ScaleFamily]] = None,
) -> List[Dict[str, Any]]:
    """Partition records by canonical key and scale each partition."""
    df = records_to_frame(records)
    if df.empty:
        return []

    df["group_key"] = [
        build_key(a, g, s, strict=strict_keys)
        for a, g, s in zip(df["assessment_name"], df["grade_label"], df["subject"])
    ]

    groups: List[Dict[str, Any]] = []
    for key, part in df.groupby("group_key", sort=False):
        part = part.sort_values("year", kind="stable")
        first = df.loc[part.index.min()]
        title = display_title(first["assessment_name"], first["grade_label"], first["subject"])

        scale = resolve_scale(
            title,
            part["value"].tolist(),
            assessment_name=first["assessment_name"],
            grade_label=first["grade_label"],
            families=families,
        )
        max_scale = scale["max_scale"]
        divisor = scale["divisor"]

        points = [
            {
                "id": _plain(row_id),
                "year": int(year),
                "raw_value": float(value),
                "scaled_value": scale_value(value, divisor, max_scale),
                "max_scale": max_scale,
            }
            for row_id, year, value in zip(part["id"], part["year"], part["value"])
        ]

        groups.append({
            "key": key,
            "display_title": title,
            "assessment_name": first["assessment_name"],
            "grade_label": first["grade_label"],
            "subject": first["subject"],
            "family": scale["family"],
            "max_scale": max_scale,
            "divisor": divisor,
            "overflow": scale["overflow"],
            "points": points,
        })

    logger.debug("Built %d result groups from %d records", len(groups), len(df))
    return groups


def _plain(val: Any) -> Any:
    """Coerce numpy scalars to Python types; keep None/str ids as they are."""
    if val is None:
        return None
    if hasattr(val, "item"):
        return val.item()
    return val
