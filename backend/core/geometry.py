"""
geometry.py - Resolution-independent chart geometry.

Maps scaled series onto a [0, 100] x [0, 100] percentage plane:
- Bar centres and heights
- Trend-line vertices (y inverted, 0 at the bottom of the axis)
- Horizontal gridlines
Any UI layer can draw these without knowing the data's units.
"""

from typing import Any, Dict, List, Optional

from core.series import build_series
from core.scaling import ScaleFamily


def _pct(val: float) -> float:
    return round(float(val), 2)


def _height(scaled: float, max_scale: float) -> float:
    return max(0.0, min(100.0, scaled / max_scale * 100))


def _format_label(val: float) -> str:
    return f"{val:.2f}".rstrip("0").rstrip(".")


def map_chart_geometry(
    points: List[Dict[str, Any]],
    max_scale: float,
    grid_steps: int = 5,
) -> Dict[str, Any]:
    """
    Convert one group's scaled points into bars, a trend line and gridlines.
    Raises ValueError for an empty group or a non-positive axis maximum.
    """
    if not points:
        raise ValueError("Cannot map chart geometry for an empty group.")
    if max_scale <= 0:
        raise ValueError(f"Axis maximum must be positive, got {max_scale}.")
    if grid_steps < 1:
        raise ValueError(f"grid_steps must be at least 1, got {grid_steps}.")

    n = len(points)
    bars = []
    line = []
    for i, p in enumerate(points):
        scaled = float(p.get("scaled_value", 0.0))
        x = (i + 0.5) / n * 100
        height = _height(scaled, max_scale)
        bars.append({
            "x": _pct(x),
            "height": _pct(height),
            "year": p.get("year"),
            "label": _format_label(scaled),
        })
        line.append({"x": _pct(x), "y": _pct(100 - height)})

    # A trend line needs two vertices.
    if n < 2:
        line = []

    step = max_scale / grid_steps
    grid_y = []
    for i in range(grid_steps + 1):
        value = max_scale - i * step
        grid_y.append({"value": round(value, 4), "y": _pct(100 - _height(value, max_scale))})

    return {"bars": bars, "line": line, "grid_y": grid_y}


def build_chart_payload(
    records: List[Dict[str, Any]],
    grid_steps: int = 5,
    strict_keys: bool = False,
    families: Optional[List[ScaleFamily]] = None,
) -> Dict[str, Any]:
    """
    Full chart path: group, scale and map every group.

    Empty input yields status 'no_data' so the caller can show an explicit
    empty state instead of an empty chart.
    """
    groups = build_series(records, strict_keys=strict_keys, families=families)
    if not groups:
        return {"status": "no_data", "groups": [], "warnings": []}

    charts = []
    warnings = []
    for group in groups:
        if group["overflow"]:
            warnings.append({
                "type": "divisor_overflow",
                "key": group["key"],
                "message": (
                    f"Values for '{group['display_title']}' are too large to rescale; "
                    "they were clamped to the axis maximum."
                ),
            })
        charts.append({
            **group,
            "geometry": map_chart_geometry(group["points"], group["max_scale"], grid_steps=grid_steps),
        })

    return {"status": "ok", "groups": charts, "warnings": warnings}
