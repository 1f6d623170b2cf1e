"""
scaling.py - Axis scale detection for result groups.

Stored values have no declared unit. Composite indices (IDEB, IDEPE) live on
a 0-10 axis but are often typed as 58 or 580 instead of 5.8, so a
power-of-ten divisor is searched. Raw proficiency scores get their axis
maximum from the grade label.

Families are tried in order; the first whose ``matches`` returns True
resolves the group. RawScoreFamily matches everything and goes last.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_MAX_SCALE = 10
INDEX_MAX_SCALE = 10
DIVISOR_LIMIT = 1e9
DEFAULT_INDEX_MARKERS = ("IDEB", "IDEPE")


def _to_float(val: Any) -> float:
    try:
        v = float(val)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if np.isnan(v) or np.isinf(v) else v


class ScaleFamily:
    """Classification strategy for one family of assessments."""

    name = "base"

    def matches(self, label_hint: str, assessment_name: Optional[str] = None) -> bool:
        raise NotImplementedError

    def resolve(self, raw_values: Sequence[float], grade_label: Optional[str] = None) -> Tuple[int, int, bool]:
        """Return (max_scale, divisor, overflow)."""
        raise NotImplementedError


class IndexFamily(ScaleFamily):
    name = "index"

    def __init__(self, markers: Iterable[str] = DEFAULT_INDEX_MARKERS):
        self.markers = [m.strip().upper() for m in markers if m and m.strip()]

    def matches(self, label_hint: str, assessment_name: Optional[str] = None) -> bool:
        haystacks = [str(label_hint or "").upper(), str(assessment_name or "").upper()]
        return any(marker in h for marker in self.markers for h in haystacks)

    def resolve(self, raw_values: Sequence[float], grade_label: Optional[str] = None) -> Tuple[int, int, bool]:
        peak = max(abs(_to_float(v)) for v in raw_values)
        divisor = 1
        overflow = False
        while peak / divisor > INDEX_MAX_SCALE:
            if divisor > DIVISOR_LIMIT:
                overflow = True
                break
            divisor *= 10
        return INDEX_MAX_SCALE, divisor, overflow


class RawScoreFamily(ScaleFamily):
    name = "raw_score"

    def matches(self, label_hint: str, assessment_name: Optional[str] = None) -> bool:
        return True

    def resolve(self, raw_values: Sequence[float], grade_label: Optional[str] = None) -> Tuple[int, int, bool]:
        grade = str(grade_label or "")
        if "2" in grade:
            return 1000, 1, False
        if "5" in grade or "9" in grade:
            return 500, 1, False
        return DEFAULT_MAX_SCALE, 1, False


def default_families(markers: Iterable[str] = DEFAULT_INDEX_MARKERS) -> List[ScaleFamily]:
    return [IndexFamily(markers), RawScoreFamily()]


def resolve_scale(
    label_hint: str,
    raw_values: Sequence[Any],
    assessment_name: Optional[str] = None,
    grade_label: Optional[str] = None,
    families: Optional[List[ScaleFamily]] = None,
) -> Dict[str, Any]:
    """
    Decide the nominal axis maximum and divisor for one group.

    Empty groups get the no-op default (10, divisor 1).
    """
    families = families if families is not None else default_families()
    family = next(
        (f for f in families if f.matches(label_hint, assessment_name)),
        RawScoreFamily(),
    )

    if len(raw_values) == 0:
        return {"max_scale": DEFAULT_MAX_SCALE, "divisor": 1, "family": family.name, "overflow": False}

    max_scale, divisor, overflow = family.resolve(raw_values, grade_label)
    if overflow:
        logger.warning(
            "Divisor search for '%s' stopped at %s; values clamped to %s",
            label_hint, divisor, max_scale,
        )
    return {"max_scale": max_scale, "divisor": divisor, "family": family.name, "overflow": overflow}


def scale_value(raw: Any, divisor: float, max_scale: float) -> float:
    """raw / divisor clamped to [0, max_scale]."""
    v = _to_float(raw) / divisor if divisor else 0.0
    return max(0.0, min(float(max_scale), v))
