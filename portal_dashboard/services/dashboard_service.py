# /portal_dashboard/services/dashboard_service.py

"""
Builds the per-role dashboard bundle.

This is the "thick" service layer behind the dashboard router. One call to
`DashboardBundleBuilder.build(role)` runs a full aggregation cycle:

1. Fetch the role's dashboard snapshot. This must succeed; a failure raises
   `SnapshotUnavailableError` and no bundle is produced.
2. Fetch the secondary sources concurrently, each one allowed to fail.
3. Reconcile every secondary domain against the snapshot's fallback fields.
4. Derive the presentation metrics and freeze everything into one bundle.

`DashboardController` keeps the most recent bundle and exposes `refresh()`
for re-running the cycle after a data mutation.
"""

# --- Core Imports ---
import logging
from typing import Any, Dict, Optional, Union

# --- Application-specific Imports ---
# The frozen bundle models are the contract the router serializes.
from ..models.dashboard_model import (
    AdminDashboardBundle,
    DashboardBundle,
    Role,
    StudentDashboardBundle,
    TeacherDashboardBundle,
)
from .dashboard_helpers import metrics, reconciliation
from .dashboard_helpers.source_fetch import fetch_all_settled, fetch_each_settled, fetch_primary
from .portal_api import PortalAPIClient
from .request_state import RequestState

logger = logging.getLogger(__name__)


def _mapping(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def _dict_items(value: Any) -> tuple:
    return tuple(item for item in value if isinstance(item, dict)) if isinstance(value, list) else ()


def _optional_mapping(value: Any) -> Optional[Dict[str, Any]]:
    return dict(value) if isinstance(value, dict) else None


def parse_role(role: Union[str, Role]) -> Role:
    try:
        return Role(role)
    except ValueError:
        raise ValueError(f"Unknown dashboard role '{role}'.")


class DashboardBundleBuilder:
    def __init__(self, client: PortalAPIClient):
        self.client = client

    async def build(self, role: Union[str, Role]) -> DashboardBundle:
        role = parse_role(role)
        if role == Role.STUDENT:
            return await self._build_student()
        if role == Role.TEACHER:
            return await self._build_teacher()
        return await self._build_admin()

    # --- Student ---

    async def _build_student(self) -> StudentDashboardBundle:
        # 1. FETCH THE SNAPSHOT: mandatory; a failure aborts the whole cycle.
        snapshot = await fetch_primary(Role.STUDENT.value, self.client.get_student_dashboard)

        # 2. FAN OUT: every secondary source settles on its own; none can fail the bundle.
        outcomes = await fetch_all_settled([
            ("attendance", self.client.get_student_attendance),
            ("marks", self.client.get_student_marks),
            ("notices", self.client.get_student_notices),
            ("timetable", self.client.get_student_timetable),
            ("examSchedule", self.client.get_student_exam_schedule),
            ("fees", self.client.get_student_fees),
        ])

        # 3. RECONCILE: a fulfilled, non-empty source wins; otherwise the snapshot's field.
        attendance_raw = reconciliation.reconcile_attendance(outcomes.get("attendance"), snapshot)
        marks_raw = reconciliation.reconcile_marks(outcomes.get("marks"), snapshot)
        notices_raw = reconciliation.reconcile_notices(outcomes.get("notices"), snapshot)
        timetable_raw = reconciliation.reconcile_timetable(outcomes.get("timetable"), snapshot)
        exams_raw = reconciliation.reconcile_exam_schedule(outcomes.get("examSchedule"), snapshot)
        summary_raw, fee_records = reconciliation.reconcile_fees(outcomes.get("fees"))

        # 4. DERIVE METRICS: explicit KPIs take precedence over computed values.
        kpis = _mapping(snapshot.get("kpis"))

        marks = metrics.normalize_marks(marks_raw)
        breakdown = metrics.normalize_gpa_entries(snapshot.get("cgpaBreakdown"))
        if not breakdown:
            breakdown = metrics.gpa_breakdown(marks)
        distribution = metrics.gpa_chart(breakdown)

        rollup = metrics.attendance_rollup(attendance_raw)
        due = metrics.fee_due(summary_raw, kpis)
        messages = metrics.normalize_notices(snapshot.get("messages"), notices_raw)

        # 5. CONSTRUCT & FREEZE: the bundle is immutable once built.
        return StudentDashboardBundle(
            user=_optional_mapping(snapshot.get("user")),
            profile=_optional_mapping(snapshot.get("profile")),
            kpis={**kpis, "feeDue": due},
            attendanceSummary=rollup,
            overallAttendance=metrics.overall_attendance(kpis, rollup),
            recentMarks=marks,
            cgpaBreakdown=breakdown,
            cgpaDistribution=distribution,
            gpa=metrics.overall_gpa(kpis, distribution),
            notices=_dict_items(notices_raw),
            noticeBoard=metrics.notice_board(messages),
            timetableRows=metrics.sort_timetable(timetable_raw),
            examSchedule=metrics.sort_exams(exams_raw),
            feeSummary=metrics.fee_summary(summary_raw),
            feeRecords=_dict_items(fee_records),
            dueFees=due,
            courses=_dict_items(snapshot.get("courses")),
        )

    # --- Teacher ---

    async def _build_teacher(self) -> TeacherDashboardBundle:
        # 1. FETCH THE SNAPSHOT: mandatory; a failure aborts the whole cycle.
        snapshot = await fetch_primary(Role.TEACHER.value, self.client.get_teacher_dashboard)

        # 2. FAN OUT: every secondary source settles on its own; none can fail the bundle.
        outcomes = await fetch_all_settled([
            ("courses", self.client.get_teacher_courses),
            ("assignments", self.client.get_teacher_assignments),
        ])

        # 3. RECONCILE: courses and assignments fall back to the snapshot's lists.
        courses = [c for c in reconciliation.reconcile_courses(outcomes.get("courses"), snapshot) if isinstance(c, dict)]
        assignments = [a for a in reconciliation.reconcile_assignments(outcomes.get("assignments"), snapshot) if isinstance(a, dict)]

        # 4. SECOND FAN-OUT: rosters depend on the reconciled course list,
        #    so they wait for it; a failed roster only zeroes that course.
        rosters = await fetch_each_settled([self._roster_fetcher(course) for course in courses])

        # 5. DERIVE METRICS: rosters only fill KPIs the snapshot left out.
        kpis = _mapping(snapshot.get("kpis"))
        user = _optional_mapping(snapshot.get("user"))
        enrolled = metrics.enrolled_students(kpis, rosters)
        distribution = metrics.assignment_distribution(assignments)
        announcements = metrics.teacher_announcements(
            snapshot.get("recentAnnouncements"), (user or {}).get("name"),
        )

        # 6. CONSTRUCT & FREEZE: the bundle is immutable once built.
        return TeacherDashboardBundle(
            user=user,
            profile=_optional_mapping(snapshot.get("profile")),
            kpis=metrics.teacher_kpis(kpis, len(courses), len(assignments), enrolled),
            courses=tuple(courses),
            assignments=tuple(assignments),
            noticeBoard=metrics.notice_board(announcements),
            recentMarks=metrics.normalize_marks(snapshot.get("recentMarks")),
            courseStudentCounts=metrics.course_loads(courses, rosters),
            timetableRows=metrics.timetable_from_courses(courses),
            assignmentDistribution=distribution,
            assignmentChart=metrics.assignment_chart(distribution),
        )

    def _roster_fetcher(self, course: Dict[str, Any]):
        course_id = course.get("_id") or course.get("id")

        async def fetch():
            if not course_id:
                raise ValueError("Course has no identifier; roster cannot be fetched.")
            return await self.client.get_course_students(str(course_id))

        return fetch

    # --- Admin ---

    async def _build_admin(self) -> AdminDashboardBundle:
        # 1. FETCH THE SNAPSHOT: the admin bundle has no secondary sources.
        snapshot = await fetch_primary(Role.ADMIN.value, self.client.get_admin_dashboard)

        # 2. NORMALIZE TOTALS: counts arrive as numbers or numeric strings.
        totals = {
            key: int(metrics.to_number(value, 0))
            for key, value in _mapping(snapshot.get("totals")).items()
        }

        # 3. CONSTRUCT & FREEZE: recent sessions and the monthly trend pass through as-is.
        return AdminDashboardBundle(
            user=_optional_mapping(snapshot.get("user")),
            profile=_optional_mapping(snapshot.get("profile")),
            kpis=_mapping(snapshot.get("kpis")),
            totals=totals,
            recentSessions=_dict_items(snapshot.get("recentSessions")),
            monthlyTrend=_dict_items(snapshot.get("monthlyTrend")),
        )


class DashboardController:
    """
    Holds the latest bundle for one role. A failed refresh leaves the previous
    bundle in place and re-raises so the caller can offer a retry.
    """

    def __init__(self, builder: DashboardBundleBuilder, role: Union[str, Role], notify=None):
        self.role = parse_role(role)
        self.state: RequestState[DashboardBundle] = RequestState(
            builder.build, error_message="Unable to load the dashboard.", notify=notify,
        )

    @property
    def bundle(self) -> Optional[DashboardBundle]:
        return self.state.data

    async def refresh(self) -> DashboardBundle:
        return await self.state.execute(self.role)


async def get_dashboard_bundle(client: PortalAPIClient, role: Union[str, Role]) -> DashboardBundle:
    """Entry point used by the router: one aggregation cycle for `role`."""
    return await DashboardBundleBuilder(client).build(role)
