"""
refresh.py - Re-fetch and recompute after writes.

The record store is an external collaborator. Every successful write is
followed by a full re-fetch and a wholesale recompute of the chart payload
and KPIs. Each refresh is stamped with a generation number; a result that
finishes after a newer one has been applied is discarded.
"""

import itertools
import logging
import threading
from typing import Any, Dict, List, Optional, Protocol

from core.geometry import build_chart_payload
from core.reporter import summarize

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("assessment_name", "year", "grade_label", "value", "subject")


class ResultStore(Protocol):
    """Read/write surface of the managed record store."""

    def list_results(self, school_id: Any) -> List[Dict[str, Any]]: ...

    def create_result(self, fields: Dict[str, Any]) -> Any: ...

    def delete_result(self, result_id: Any) -> Any: ...

    def list_schools(self) -> List[Dict[str, Any]]: ...


class SchoolResultsView:
    """
    Chart and KPI state for one school.

    ``can_edit`` is decided by the caller's identity layer; this class never
    sees who the user is.
    """

    def __init__(
        self,
        store: ResultStore,
        school_id: Any,
        can_edit: bool = False,
        reference_year: Optional[int] = None,
        grid_steps: int = 5,
    ):
        self.store = store
        self.school_id = school_id
        self.can_edit = bool(can_edit)
        self.reference_year = reference_year
        self.grid_steps = grid_steps
        self.state: Dict[str, Any] = {"generation": 0, "chart": None, "kpis": None}
        self._generations = itertools.count(1)
        self._apply_lock = threading.Lock()

    def compute(self, records: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Pure recompute from one snapshot."""
        snapshot = list(records or [])
        return {
            "chart": build_chart_payload(snapshot, grid_steps=self.grid_steps),
            "kpis": summarize(snapshot, reference_year=self.reference_year, scope="single-entity"),
        }

    def refresh(self) -> Dict[str, Any]:
        generation = next(self._generations)
        records = self.store.list_results(self.school_id)
        computed = self.compute(records)

        # check-and-apply is atomic across threads
        with self._apply_lock:
            if generation < self.state["generation"]:
                logger.debug(
                    "Discarding stale refresh %d for school %s (current %d)",
                    generation, self.school_id, self.state["generation"],
                )
                return self.state

            self.state = {"generation": generation, **computed}
            return self.state

    def _require_edit(self, action: str) -> None:
        if not self.can_edit:
            raise PermissionError(f"Editing is not allowed: cannot {action}.")

    def add_result(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Create a result for this school, then refresh."""
        self._require_edit("add results")
        missing = [
            f for f in REQUIRED_FIELDS
            if fields.get(f) is None or str(fields.get(f)).strip() == ""
        ]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")

        payload = {
            "school_id": self.school_id,
            "assessment_name": str(fields["assessment_name"]).strip(),
            "grade_label": str(fields["grade_label"]).strip(),
            "subject": str(fields["subject"]).strip(),
            "year": int(fields["year"]),
            "value": float(fields["value"]),
        }
        self.store.create_result(payload)
        return self.refresh()

    def remove_result(self, result_id: Any) -> Dict[str, Any]:
        """Delete a result, then refresh."""
        self._require_edit("delete results")
        self.store.delete_result(result_id)
        return self.refresh()
