# /portal_dashboard/services/dashboard_helpers/metrics.py

"""
Pure derivation functions for the dashboard bundle.

Everything here is deterministic and does no I/O. Each function is total:
malformed or missing input (absent numeric fields, a dict where a list was
expected, stray non-dict items) yields the domain's safe default rather than
an exception, so a derivation can never fail a dashboard render.
"""

import math
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from ...models.dashboard_model import (
    AssignmentPoint,
    AttendanceRecord,
    CourseLoadEntry,
    FeeSummary,
    GpaEntry,
    MarkRecord,
    NoticeBoard,
    NoticeMessage,
    TimetableRow,
)
from .reconciliation import reconcile_roster
from .source_fetch import SourceOutcome

DAY_ORDER = {
    "Monday": 1,
    "Tuesday": 2,
    "Wednesday": 3,
    "Thursday": 4,
    "Friday": 5,
    "Saturday": 6,
}
UNKNOWN_DAY_RANK = len(DAY_ORDER) + 1

NOTICE_PREVIEW_SIZE = 3


# --- NUMERIC UTILITIES ---

def is_number(value: Any) -> bool:
    """True for finite int/float values (bools are not numbers here)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def to_number(value: Any, fallback: Optional[float] = 0.0) -> Optional[float]:
    if is_number(value):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            parsed = float(value)
        except ValueError:
            return fallback
        return parsed if math.isfinite(parsed) else fallback
    return fallback


def round2(value: float) -> float:
    """Rounds half-up on the exact binary value, like JavaScript's toFixed(2)."""
    return float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def clamp_percentage(value: float) -> float:
    return min(max(value, 0.0), 100.0)


def _count(value: Any) -> int:
    return max(int(to_number(value, 0)), 0)


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if is_number(value):
        return str(value)
    return None


def _dicts(items: Any) -> List[Dict[str, Any]]:
    if not isinstance(items, (list, tuple)):
        return []
    return [item for item in items if isinstance(item, dict)]


def _record_id(record: Dict[str, Any]) -> Optional[str]:
    return _text(record.get("_id")) or _text(record.get("id"))


def _mean(values: Sequence[float]) -> float:
    return round2(sum(values) / len(values)) if values else 0.0


# --- GRADE POINTS & GPA ---

def grade_point(obtained: Any, max_marks: Any) -> int:
    """Bands a score into a 5-10 grade point; each band includes its lower bound."""
    maximum = to_number(max_marks, 0)
    percentage = (to_number(obtained, 0) / maximum) * 100 if maximum > 0 else 0
    if percentage >= 90:
        return 10
    if percentage >= 80:
        return 9
    if percentage >= 70:
        return 8
    if percentage >= 60:
        return 7
    if percentage >= 50:
        return 6
    return 5


def normalize_marks(records: Any) -> Tuple[MarkRecord, ...]:
    marks = []
    for item in _dicts(records):
        course = item.get("course")
        course_info = course if isinstance(course, dict) else {}
        max_marks = to_number(item.get("maxMarks"), None)
        grade = item.get("gradePoint")
        marks.append(MarkRecord(
            courseId=_record_id(course_info) or _text(course) or _text(item.get("courseId")),
            courseCode=_text(course_info.get("code")) or _text(item.get("courseCode")),
            courseTitle=_text(course_info.get("title")) or _text(item.get("courseTitle")),
            examType=_text(item.get("examType")),
            obtainedMarks=max(to_number(item.get("obtainedMarks"), 0), 0),
            maxMarks=max_marks if max_marks is not None and max_marks > 0 else None,
            examDate=_text(item.get("examDate")),
            gradePoint=float(grade) if is_number(grade) else None,
        ))
    return tuple(marks)


def subject_of(mark: MarkRecord) -> str:
    return mark.courseCode or mark.courseTitle or "Subject"


def points_of(mark: MarkRecord) -> float:
    if mark.gradePoint is not None:
        return mark.gradePoint
    return float(grade_point(mark.obtainedMarks, mark.maxMarks or 0))


def gpa_breakdown(marks: Sequence[MarkRecord]) -> Tuple[GpaEntry, ...]:
    """
    Averages grade points per subject (GradePointBucket = one groupby row
    holding the running sum and count), rounds to two places and ranks
    subjects from strongest to weakest.
    """
    if not marks:
        return ()

    df = pd.DataFrame({
        "subject": [subject_of(m) for m in marks],
        "points": [points_of(m) for m in marks],
    })
    buckets = df.groupby("subject", sort=False)["points"].agg(["sum", "count"])

    entries = [
        GpaEntry(subject=str(subject), points=round2(float(row["sum"]) / int(row["count"])))
        for subject, row in buckets.iterrows()
    ]
    return tuple(sorted(entries, key=lambda e: e.points, reverse=True))


def normalize_gpa_entries(entries: Any) -> Tuple[GpaEntry, ...]:
    """Shapes a pre-computed `cgpaBreakdown` from the snapshot."""
    return tuple(
        GpaEntry(subject=_text(e.get("subject")) or "Subject", points=to_number(e.get("points"), 0))
        for e in _dicts(entries)
    )


def gpa_chart(entries: Sequence[GpaEntry]) -> Tuple[GpaEntry, ...]:
    return tuple(e for e in entries if e.points > 0)


def overall_gpa(kpis: Dict[str, Any], chart_entries: Sequence[GpaEntry]) -> float:
    explicit = (kpis or {}).get("cgpa")
    if is_number(explicit):
        return float(explicit)
    return _mean([e.points for e in chart_entries])


# --- ATTENDANCE ---

def attendance_rollup(records: Any) -> Tuple[AttendanceRecord, ...]:
    rollup = []
    for item in _dicts(records):
        present, absent, late = _count(item.get("present")), _count(item.get("absent")), _count(item.get("late"))
        percentage = to_number(item.get("percentage"), None)
        if percentage is None:
            attended = present + absent + late
            percentage = (present / attended) * 100 if attended else 0.0

        rollup.append(AttendanceRecord(
            courseId=_text(item.get("courseId")),
            courseCode=_text(item.get("courseCode")) or "SUB",
            courseName=_text(item.get("courseName")) or "Subject",
            percentage=round2(clamp_percentage(percentage)),
            present=present,
            absent=absent,
            late=late,
            totalClasses=max(_count(item.get("totalClasses")), present + absent + late),
        ))
    return tuple(sorted(rollup, key=lambda r: r.percentage, reverse=True))


def overall_attendance(kpis: Dict[str, Any], rollup: Sequence[AttendanceRecord]) -> float:
    explicit = (kpis or {}).get("attendancePercentage")
    if is_number(explicit):
        return clamp_percentage(float(explicit))
    return _mean([r.percentage for r in rollup])


# --- FEES ---

def fee_summary(summary: Optional[Dict[str, Any]]) -> Optional[FeeSummary]:
    if not isinstance(summary, dict):
        return None
    return FeeSummary(
        totalFee=max(to_number(summary.get("totalFee"), 0), 0),
        totalPaid=max(to_number(summary.get("totalPaid"), 0), 0),
        totalDue=max(to_number(summary.get("totalDue"), 0), 0),
    )


def fee_due(summary: Optional[Dict[str, Any]], kpis: Dict[str, Any]) -> float:
    """Fee summary `totalDue`, then `kpis.feeDue`, then 0."""
    if isinstance(summary, dict):
        due = to_number(summary.get("totalDue"), None)
        if due is not None:
            return max(due, 0)
    explicit = (kpis or {}).get("feeDue")
    if is_number(explicit):
        return max(float(explicit), 0)
    return 0.0


# --- NOTICES ---

def _message_from(record: Dict[str, Any], sender: str) -> Dict[str, Any]:
    # Reshaped items keep the portal's `_id` key so they read like feed items.
    return NoticeMessage(
        id=_record_id(record),
        title=_text(record.get("title")),
        message=_text(record.get("message")),
        sender=sender,
        createdAt=_text(record.get("createdAt")),
    ).model_dump(by_alias=True)


def normalize_notices(messages: Any, notices: Any, default_sender: str = "Admin") -> Tuple[Dict[str, Any], ...]:
    """
    A non-empty dedicated `messages` feed is used verbatim: every field the
    portal sent, `sender` included, reaches the board untouched. Only when
    there is no such feed are the raw notices reshaped, with the poster's
    name as sender.
    """
    if isinstance(messages, list) and messages:
        return tuple(dict(m) for m in _dicts(messages))

    normalized = []
    for notice in _dicts(notices):
        poster = notice.get("postedBy")
        poster_name = _text(poster.get("name")) if isinstance(poster, dict) else None
        normalized.append(_message_from(notice, poster_name or default_sender))
    return tuple(normalized)


def teacher_announcements(announcements: Any, teacher_name: Any) -> Tuple[Dict[str, Any], ...]:
    sender = _text(teacher_name) or "Faculty"
    return tuple(_message_from(item, sender) for item in _dicts(announcements))


def notice_board(messages: Sequence[Dict[str, Any]]) -> NoticeBoard:
    return NoticeBoard(
        featured=messages[0] if messages else None,
        preview=tuple(messages[1:1 + NOTICE_PREVIEW_SIZE]),
        all=tuple(messages),
    )


# --- TIMETABLE & EXAMS ---

def _timetable_key(row: TimetableRow):
    return DAY_ORDER.get(row.day or "", UNKNOWN_DAY_RANK), row.startTime or ""


def sort_timetable(rows: Any) -> Tuple[TimetableRow, ...]:
    """
    Orders by weekday, then by start time. Start times are compared as
    strings, which is only correct for zero-padded 24-hour values.
    """
    parsed = [
        TimetableRow(
            courseId=_text(r.get("courseId")),
            courseCode=_text(r.get("courseCode")) or "-",
            courseTitle=_text(r.get("courseTitle")) or "-",
            day=_text(r.get("day")),
            startTime=_text(r.get("startTime")),
            endTime=_text(r.get("endTime")),
            room=_text(r.get("room")),
            teacherName=_text(r.get("teacherName")),
        )
        for r in _dicts(rows)
    ]
    return tuple(sorted(parsed, key=_timetable_key))


def timetable_from_courses(courses: Any) -> Tuple[TimetableRow, ...]:
    rows = []
    for course in _dicts(courses):
        for slot in _dicts(course.get("schedule")):
            rows.append({
                "courseId": _record_id(course),
                "courseCode": course.get("code"),
                "courseTitle": course.get("title"),
                "day": slot.get("day"),
                "startTime": slot.get("startTime"),
                "endTime": slot.get("endTime"),
                "room": slot.get("room"),
            })
    return sort_timetable(rows)


def _parse_date(value: Any) -> Optional[float]:
    text = _text(value)
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def sort_exams(entries: Any) -> Tuple[Dict[str, Any], ...]:
    """Soonest exam first; entries with a missing or unparseable date go last."""
    def key(entry):
        stamp = _parse_date(entry.get("examDate"))
        return (1, 0.0) if stamp is None else (0, stamp)

    return tuple(sorted(_dicts(entries), key=key))


# --- TEACHER COURSE LOAD & ASSIGNMENTS ---

def course_loads(courses: Sequence[Dict[str, Any]], rosters: Sequence[Optional[SourceOutcome]]) -> Tuple[CourseLoadEntry, ...]:
    """One entry per course; a failed roster fetch counts as zero students."""
    loads = []
    for index, course in enumerate(_dicts(courses)):
        outcome = rosters[index] if index < len(rosters) else None
        loads.append(CourseLoadEntry(
            courseId=_record_id(course),
            code=_text(course.get("code")) or "-",
            title=_text(course.get("title")) or "Untitled Course",
            studentCount=len(reconcile_roster(outcome)),
        ))
    return tuple(sorted(loads, key=lambda entry: entry.studentCount, reverse=True))


def _student_key(entry: Any, position: Tuple[int, int]) -> Any:
    if isinstance(entry, dict):
        student = entry.get("student")
        if isinstance(student, dict) and _record_id(student):
            return _record_id(student)
        if _text(student):
            return _text(student)
        if _record_id(entry):
            return _record_id(entry)
    # No usable identifier: the row counts as its own student.
    return position


def enrolled_students(kpis: Dict[str, Any], rosters: Sequence[Optional[SourceOutcome]]) -> int:
    """
    The explicit `enrolledStudents` KPI when supplied; otherwise the number
    of distinct students across every fetched roster, so a student enrolled
    in two courses counts once.
    """
    explicit = (kpis or {}).get("enrolledStudents")
    if is_number(explicit):
        return _count(explicit)

    seen = set()
    for course_index, outcome in enumerate(rosters):
        for row_index, entry in enumerate(reconcile_roster(outcome)):
            seen.add(_student_key(entry, (course_index, row_index)))
    return len(seen)


def assignment_distribution(assignments: Any) -> Tuple[AssignmentPoint, ...]:
    points = []
    for item in _dicts(assignments):
        course = item.get("course")
        course_code = _text(course.get("code")) if isinstance(course, dict) else None
        title = _text(item.get("title"))
        points.append(AssignmentPoint(
            key=_record_id(item),
            subject=course_code or title or "Assignment",
            title=title or "Untitled Assignment",
            points=to_number(item.get("submissionsCount"), 0),
            dueDate=_text(item.get("dueDate")),
        ))
    return tuple(sorted(points, key=lambda p: p.points, reverse=True))


def assignment_chart(distribution: Iterable[AssignmentPoint]) -> Tuple[AssignmentPoint, ...]:
    """Proportional views only show assignments that have submissions."""
    return tuple(p for p in distribution if p.points > 0)


def teacher_kpis(
    kpis: Dict[str, Any],
    course_count: int,
    assignment_count: int,
    enrolled: int,
) -> Dict[str, Any]:
    merged = dict(kpis or {})
    if not is_number(merged.get("assignedCourses")):
        merged["assignedCourses"] = course_count
    if not is_number(merged.get("assignmentsPublished")):
        merged["assignmentsPublished"] = assignment_count
    merged["enrolledStudents"] = enrolled
    return merged
