"""
Dashboard routes - KPI snapshots and school overview.
"""

from fastapi import APIRouter, HTTPException

from core.reporter import summarize, summarize_schools

router = APIRouter()


def _list_from_payload(payload: dict, field: str) -> list:
    """Extract a required list field from a request payload."""
    data = payload.get(field)
    if data is None:
        raise HTTPException(400, f"No {field} provided.")
    if not isinstance(data, list):
        raise HTTPException(400, f"'{field}' must be a list.")
    return data


@router.post("/summary")
async def summary(payload: dict):
    """
    KPI snapshot for a record set.
    Expects: { "data": [...], "reference_year": 2023, "scope": "all" | "single-entity" }
    """
    data = _list_from_payload(payload, "data")

    reference_year = payload.get("reference_year")
    try:
        reference_year = int(reference_year) if reference_year is not None else None
        return summarize(data, reference_year=reference_year, scope=payload.get("scope", "all"))
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.post("/schools")
async def schools(payload: dict):
    """School totals and the most recently added schools."""
    schools_data = payload.get("schools") or []
    if not isinstance(schools_data, list):
        raise HTTPException(400, "'schools' must be a list.")
    try:
        limit = int(payload.get("limit", 5))
    except (TypeError, ValueError):
        raise HTTPException(400, "'limit' must be an integer.")
    return summarize_schools(schools_data, limit=limit)
