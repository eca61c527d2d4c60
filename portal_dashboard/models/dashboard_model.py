# /portal_dashboard/models/dashboard_model.py

# --- Core Imports ---
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


# --- Normalized Record Models ---
# Every record is frozen: a bundle is assembled once per aggregation cycle and
# is only ever read afterwards.

class AttendanceRecord(BaseModel):
    """Per-course attendance rollup. `percentage` is always within [0, 100]."""
    model_config = ConfigDict(frozen=True)

    courseId: Optional[str] = None
    courseCode: str = "SUB"
    courseName: str = "Subject"
    percentage: float = Field(default=0, ge=0, le=100)
    present: int = Field(default=0, ge=0)
    absent: int = Field(default=0, ge=0)
    late: int = Field(default=0, ge=0)
    totalClasses: int = Field(default=0, ge=0)


class MarkRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    courseId: Optional[str] = None
    courseCode: Optional[str] = None
    courseTitle: Optional[str] = None
    examType: Optional[str] = None
    obtainedMarks: float = Field(default=0, ge=0)
    maxMarks: Optional[float] = Field(default=None, gt=0)
    examDate: Optional[str] = None
    gradePoint: Optional[float] = None


class GpaEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    subject: str
    points: float


class FeeSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    totalFee: float = Field(default=0, ge=0)
    totalPaid: float = Field(default=0, ge=0)
    totalDue: float = Field(default=0, ge=0)


class NoticeMessage(BaseModel):
    """Shape given to notices and announcements that are reshaped for the board."""
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = Field(default=None, serialization_alias="_id")
    title: Optional[str] = None
    message: Optional[str] = None
    sender: str = "Admin"
    createdAt: Optional[str] = None


class NoticeBoard(BaseModel):
    """
    Featured notice, the next three as a preview, and the full list.

    Items are plain mappings: a dedicated `messages` feed is carried through
    exactly as the portal sent it, while reshaped notices follow `NoticeMessage`.
    """
    model_config = ConfigDict(frozen=True)

    featured: Optional[Dict[str, Any]] = None
    preview: Tuple[Dict[str, Any], ...] = ()
    all: Tuple[Dict[str, Any], ...] = ()


class TimetableRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    courseId: Optional[str] = None
    courseCode: str = "-"
    courseTitle: str = "-"
    day: Optional[str] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    room: Optional[str] = None
    teacherName: Optional[str] = None


class CourseLoadEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    courseId: Optional[str] = None
    code: str = "-"
    title: str = "Untitled Course"
    studentCount: int = Field(default=0, ge=0)


class AssignmentPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: Optional[str] = None
    subject: str = "Assignment"
    title: str = "Untitled Assignment"
    points: float = 0
    dueDate: Optional[str] = None


# --- Bundle Models ---
# These are the only objects the presentation layer reads.

class DashboardBundleBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: Optional[Dict[str, Any]] = None
    profile: Optional[Dict[str, Any]] = None
    kpis: Dict[str, Any] = Field(default_factory=dict)


class StudentDashboardBundle(DashboardBundleBase):
    role: Literal["student"] = "student"

    attendanceSummary: Tuple[AttendanceRecord, ...] = ()
    overallAttendance: float = 0
    recentMarks: Tuple[MarkRecord, ...] = ()
    cgpaBreakdown: Tuple[GpaEntry, ...] = ()
    cgpaDistribution: Tuple[GpaEntry, ...] = ()
    gpa: float = 0
    notices: Tuple[Dict[str, Any], ...] = ()
    noticeBoard: NoticeBoard = Field(default_factory=NoticeBoard)
    timetableRows: Tuple[TimetableRow, ...] = ()
    examSchedule: Tuple[Dict[str, Any], ...] = ()
    feeSummary: Optional[FeeSummary] = None
    feeRecords: Tuple[Dict[str, Any], ...] = ()
    dueFees: float = 0
    courses: Tuple[Dict[str, Any], ...] = ()


class TeacherDashboardBundle(DashboardBundleBase):
    role: Literal["teacher"] = "teacher"

    courses: Tuple[Dict[str, Any], ...] = ()
    assignments: Tuple[Dict[str, Any], ...] = ()
    noticeBoard: NoticeBoard = Field(default_factory=NoticeBoard)
    recentMarks: Tuple[MarkRecord, ...] = ()
    courseStudentCounts: Tuple[CourseLoadEntry, ...] = ()
    timetableRows: Tuple[TimetableRow, ...] = ()
    assignmentDistribution: Tuple[AssignmentPoint, ...] = ()
    assignmentChart: Tuple[AssignmentPoint, ...] = ()


class AdminDashboardBundle(DashboardBundleBase):
    role: Literal["admin"] = "admin"

    totals: Dict[str, int] = Field(default_factory=dict)
    recentSessions: Tuple[Dict[str, Any], ...] = ()
    monthlyTrend: Tuple[Dict[str, Any], ...] = ()


DashboardBundle = Annotated[
    Union[StudentDashboardBundle, TeacherDashboardBundle, AdminDashboardBundle],
    Field(discriminator="role"),
]
