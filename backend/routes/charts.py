"""
Chart routes - grouped, scaled series with chart geometry.
"""

import os
from fastapi import APIRouter, HTTPException

from core.geometry import build_chart_payload
from core.records import validate_records
from core.scaling import DEFAULT_INDEX_MARKERS, default_families

router = APIRouter()

GRID_STEPS = int(os.getenv("GRID_STEPS", "5"))
raw_markers = os.getenv("INDEX_MARKERS", ",".join(DEFAULT_INDEX_MARKERS))
INDEX_MARKERS = [m.strip() for m in raw_markers.split(",") if m.strip()]


def _records_from_payload(payload: dict) -> list:
    """Extract the record list from a request payload."""
    data = payload.get("data")
    if data is None:
        raise HTTPException(400, "No data provided.")
    if not isinstance(data, list):
        raise HTTPException(400, "'data' must be a list of result records.")
    return data


def _as_flag(val) -> bool:
    """Booleans pass through; strings are true only for 1/true/yes/on."""
    if isinstance(val, bool):
        return val
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


@router.post("/series")
async def series(payload: dict):
    """Result groups with scaled points, bars, trend line and gridlines."""
    records = _records_from_payload(payload)
    return build_chart_payload(
        records,
        grid_steps=GRID_STEPS,
        strict_keys=_as_flag(payload.get("strict_keys", False)),
        families=default_families(INDEX_MARKERS),
    )


@router.post("/validate")
async def validate(payload: dict):
    """Data-quality issues that will be defaulted when charting."""
    records = _records_from_payload(payload)
    return {"issues": validate_records(records)}
