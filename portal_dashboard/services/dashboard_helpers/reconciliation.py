# /portal_dashboard/services/dashboard_helpers/reconciliation.py

"""
Chooses, per domain, between a dedicated fetch result and the equivalent
field embedded in the dashboard snapshot.

Precedence: a `Fulfilled` dedicated result always wins, even when it is an
empty list; otherwise the snapshot field is used when it has the expected
shape; otherwise the domain's empty default. The rule is written out per
domain because each snapshot field name differs from its endpoint.
"""

from typing import Any, Dict, List, Optional, Tuple

from .source_fetch import Fulfilled, SourceOutcome


# --- Shared Helpers ---

def _as_list(value: Any) -> List:
    return list(value) if isinstance(value, list) else []


def _snapshot_list(snapshot: Dict[str, Any], field: str) -> List:
    if not isinstance(snapshot, dict):
        return []
    return _as_list(snapshot.get(field))


def _prefer_list(outcome: Optional[SourceOutcome], snapshot: Dict[str, Any], field: Optional[str]) -> List:
    if isinstance(outcome, Fulfilled):
        return _as_list(outcome.value)
    if field is None:
        return []
    return _snapshot_list(snapshot, field)


# --- Student Domains ---

def reconcile_attendance(outcome: Optional[SourceOutcome], snapshot: Dict[str, Any]) -> List:
    return _prefer_list(outcome, snapshot, "attendanceSummary")


def reconcile_marks(outcome: Optional[SourceOutcome], snapshot: Dict[str, Any]) -> List:
    return _prefer_list(outcome, snapshot, "recentMarks")


def reconcile_notices(outcome: Optional[SourceOutcome], snapshot: Dict[str, Any]) -> List:
    """Raw notice records; reshaping into messages happens in the metrics step."""
    return _prefer_list(outcome, snapshot, "notices")


def reconcile_timetable(outcome: Optional[SourceOutcome], snapshot: Dict[str, Any]) -> List:
    return _prefer_list(outcome, snapshot, "timetablePreview")


def reconcile_exam_schedule(outcome: Optional[SourceOutcome], snapshot: Dict[str, Any]) -> List:
    return _prefer_list(outcome, snapshot, "examSchedule")


def reconcile_fees(outcome: Optional[SourceOutcome]) -> Tuple[Optional[Dict[str, Any]], List]:
    """
    Fees have no snapshot fallback; only the scalar `kpis.feeDue` survives a
    failed fetch, and that is handled by `metrics.fee_due`.

    Returns (summary or None, per-term records).
    """
    if not isinstance(outcome, Fulfilled) or not isinstance(outcome.value, dict):
        return None, []
    payload = outcome.value
    summary = payload.get("summary")
    return (summary if isinstance(summary, dict) else None), _as_list(payload.get("records"))


# --- Teacher Domains ---

def reconcile_courses(outcome: Optional[SourceOutcome], snapshot: Dict[str, Any]) -> List:
    return _prefer_list(outcome, snapshot, "courses")


def reconcile_assignments(outcome: Optional[SourceOutcome], snapshot: Dict[str, Any]) -> List:
    return _prefer_list(outcome, snapshot, "recentAssignments")


def reconcile_roster(outcome: Optional[SourceOutcome]) -> List:
    """Per-course rosters are computed only; a failed roster is an empty roster."""
    return _prefer_list(outcome, {}, None)
