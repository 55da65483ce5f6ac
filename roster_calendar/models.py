"""Data models for the roster calendar timeline engine."""

from datetime import date, datetime, time
from enum import Enum, IntEnum
from typing import Annotated, Any, Literal, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Recurrence


class RecurrenceFrequency(str, Enum):
    """Supported FREQ values of the rule grammar."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class Weekday(IntEnum):
    """Day of week, Sunday first (matches WeeklySchedule.day_of_week)."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def of(cls, day: date) -> "Weekday":
        """Return the weekday of a calendar date."""
        # date.weekday() is Monday=0; shift to Sunday=0
        return cls((day.weekday() + 1) % 7)


class RecurrenceRule(BaseModel):
    """Parsed recurrence rule."""

    frequency: RecurrenceFrequency
    interval: int = Field(default=1, ge=1, description="Step between periods")
    by_day: Optional[frozenset[Weekday]] = Field(
        default=None, description="Weekdays for WEEKLY rules; None when BYDAY is absent"
    )

    model_config = ConfigDict(frozen=True)


class InstanceKey(NamedTuple):
    """Identity of one concrete occurrence of a recurring definition."""

    definition_id: str
    occurrence_date: date


# Tasks


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class AssignmentTargetType(str, Enum):
    """Who an assignment or viewer entry points at."""

    ALL = "all"
    ALL_ADMINS = "all_admins"
    USER = "user"
    GROUP = "group"


class AssignmentTarget(BaseModel):
    """Assignment or viewer entry of a task."""

    target_type: AssignmentTargetType
    user_id: Optional[str] = None
    group_id: Optional[str] = None
    display_name: Optional[str] = Field(
        default=None, description="User full name or group name, for assignee labels"
    )

    @property
    def label(self) -> str:
        """Human-readable assignee label."""
        if self.target_type == AssignmentTargetType.ALL:
            return "All Employees"
        if self.target_type == AssignmentTargetType.ALL_ADMINS:
            return "All Admins"
        if self.target_type == AssignmentTargetType.USER and self.display_name:
            return self.display_name
        if self.target_type == AssignmentTargetType.GROUP and self.display_name:
            return f"{self.display_name} (Group)"
        return ""


class TaskCategory(BaseModel):
    name: str
    color: Optional[str] = None


class TaskDefinition(BaseModel):
    """A task, either one-off or the definition of a recurring series."""

    id: str = Field(..., description="Task ID")
    title: str = Field(..., description="Task title")
    description: Optional[str] = None

    due_date: date = Field(..., description="Due date; anchor date for recurring tasks")
    due_time: Optional[time] = None
    is_all_day: bool = False

    # Activities have a start/end instead of a single due time
    is_activity: bool = False
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    is_recurring: bool = False
    recurrence_rule: Optional[str] = Field(default=None, description="FREQ=...;INTERVAL=...;BYDAY=...")

    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    category: Optional[TaskCategory] = None

    assignments: list[AssignmentTarget] = Field(default_factory=list)
    viewers: list[AssignmentTarget] = Field(default_factory=list)

    @property
    def is_recurring_series(self) -> bool:
        """True when occurrences must come from rule expansion."""
        return self.is_recurring and bool(self.recurrence_rule)


class SkippedInstance(BaseModel):
    task_id: str
    skipped_date: date

    @property
    def key(self) -> InstanceKey:
        return InstanceKey(self.task_id, self.skipped_date)


class CompletionRecord(BaseModel):
    task_id: str
    completion_date: date

    @property
    def key(self) -> InstanceKey:
        return InstanceKey(self.task_id, self.completion_date)


class TimeOverride(BaseModel):
    """Per-instance time override of a recurring task."""

    task_id: str
    instance_date: date
    override_time: Optional[time] = None
    override_start_time: Optional[time] = None
    override_end_time: Optional[time] = None

    @property
    def key(self) -> InstanceKey:
        return InstanceKey(self.task_id, self.instance_date)


# Schedules and leave


class WeeklySchedule(BaseModel):
    """Recurring weekly work slot of an employee."""

    id: str
    user_id: str
    user_name: Optional[str] = None
    avatar_url: Optional[str] = None
    day_of_week: int = Field(..., ge=0, le=6, description="0=Sunday .. 6=Saturday")
    start_time: time
    end_time: time
    is_active: bool = True


class ScheduleOverride(BaseModel):
    schedule_id: str
    override_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_cancelled: bool = False
    notes: Optional[str] = None

    @property
    def key(self) -> InstanceKey:
        return InstanceKey(self.schedule_id, self.override_date)


class OneOffSchedule(BaseModel):
    """Single-day schedule entry, not subject to weekly expansion."""

    id: str
    user_id: str
    user_name: Optional[str] = None
    avatar_url: Optional[str] = None
    schedule_date: date
    start_time: time
    end_time: time


class LeaveStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class LeaveType(str, Enum):
    VACATION = "vacation"
    SICK = "sick"
    HOLIDAY = "holiday"


class LeaveRequest(BaseModel):
    """Leave request covering a contiguous range or an explicit set of dates."""

    id: str
    user_id: str
    user_name: Optional[str] = None
    status: LeaveStatus = LeaveStatus.PENDING
    leave_type: LeaveType = LeaveType.VACATION
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    selected_dates: Optional[list[date]] = None
    reason: Optional[str] = None
    total_days: Optional[float] = None

    @field_validator("leave_type", mode="before")
    @classmethod
    def _normalize_legacy_type(cls, value: Any) -> Any:
        # "pto" was renamed to "vacation"
        if isinstance(value, str) and value.lower() == "pto":
            return LeaveType.VACATION
        return value

    @model_validator(mode="after")
    def _check_dates(self) -> "LeaveRequest":
        if not self.selected_dates and (self.start_date is None or self.end_date is None):
            raise ValueError("leave request needs start_date/end_date or selected_dates")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("leave request end_date is before start_date")
        return self

    @property
    def is_approved(self) -> bool:
        return self.status == LeaveStatus.APPROVED

    @property
    def is_holiday(self) -> bool:
        return self.leave_type == LeaveType.HOLIDAY or (self.reason or "").startswith("Holiday:")

    @property
    def holiday_name(self) -> Optional[str]:
        if not self.is_holiday or not self.reason:
            return None
        return self.reason.replace("Holiday: ", "", 1)

    @property
    def uses_selected_dates(self) -> bool:
        return bool(self.selected_dates)


# Logs and important dates


class LogCategory(str, Enum):
    SLEEP = "sleep"
    FOOD = "food"
    POOP = "poop"
    SHOWER = "shower"


class ChildLog(BaseModel):
    """Periodic personal log entry."""

    id: str
    child: str
    category: LogCategory
    log_date: date
    log_time: time
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    description: Optional[str] = None
    logged_by: Optional[str] = None


class ImportantDate(BaseModel):
    """Yearly recurring date from an employee profile (birthday, anniversary)."""

    user_id: str
    user_name: str
    label: str
    date: date


# Viewer and request


class ViewerRole(str, Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"


class Viewer(BaseModel):
    """Identity against which visibility is evaluated."""

    user_id: str
    role: ViewerRole = ViewerRole.EMPLOYEE
    group_ids: Optional[frozenset[str]] = Field(
        default=None, description="None when group memberships could not be resolved"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ViewerRole.ADMIN


class CalendarFilters(BaseModel):
    """Per-source toggles supplied by the caller."""

    show_tasks: bool = True
    show_leave: bool = True
    show_sleep: bool = True
    show_food: bool = True
    show_poop: bool = True
    show_shower: bool = True
    show_important_dates: bool = True
    show_schedules: bool = True

    def log_categories(self) -> set[LogCategory]:
        """Return the log categories enabled by these filters."""
        toggles = {
            LogCategory.SLEEP: self.show_sleep,
            LogCategory.FOOD: self.show_food,
            LogCategory.POOP: self.show_poop,
            LogCategory.SHOWER: self.show_shower,
        }
        return {category for category, enabled in toggles.items() if enabled}


class AggregationRequest(BaseModel):
    """Inclusive date window plus filters and optional viewer."""

    window_start: Optional[date] = None
    window_end: Optional[date] = None
    filters: CalendarFilters = Field(default_factory=CalendarFilters)
    viewer: Optional[Viewer] = None

    @property
    def is_inverted(self) -> bool:
        return (
            self.window_start is not None
            and self.window_end is not None
            and self.window_end < self.window_start
        )


# Output events


class EventSourceType(str, Enum):
    TASK = "task"
    LEAVE = "leave"
    LOG = "log"
    IMPORTANT_DATE = "important_date"
    SCHEDULE = "schedule"


class TaskPayload(BaseModel):
    kind: Literal["task"] = "task"
    task_id: str
    status: TaskStatus
    priority: TaskPriority
    category: Optional[str] = None
    is_recurring: bool = False
    is_activity: bool = False
    is_view_only: bool = False
    assignees: list[str] = Field(default_factory=list)
    instance_date: Optional[date] = None
    has_time_override: bool = False
    original_due_time: Optional[time] = None
    original_start_time: Optional[time] = None
    original_end_time: Optional[time] = None


class LeavePayload(BaseModel):
    kind: Literal["leave"] = "leave"
    leave_id: str
    leave_type: LeaveType
    user_id: str
    user_name: Optional[str] = None
    total_days: Optional[float] = None
    is_holiday: bool = False
    holiday_name: Optional[str] = None


class LogPayload(BaseModel):
    kind: Literal["log"] = "log"
    log_id: str
    log_category: LogCategory
    child: str
    description: Optional[str] = None
    logged_by: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None


class ImportantDatePayload(BaseModel):
    kind: Literal["important_date"] = "important_date"
    label: str
    employee_id: str
    employee_name: str
    original_date: date


class SchedulePayload(BaseModel):
    kind: Literal["schedule"] = "schedule"
    schedule_id: str
    schedule_date: date
    user_id: str
    user_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_one_off: bool = False
    day_of_week: Optional[int] = None
    original_start_time: Optional[time] = None
    original_end_time: Optional[time] = None
    has_override: bool = False
    override_notes: Optional[str] = None


EventPayload = Annotated[
    Union[TaskPayload, LeavePayload, LogPayload, ImportantDatePayload, SchedulePayload],
    Field(discriminator="kind"),
]

_PAYLOAD_KINDS: dict[EventSourceType, str] = {
    EventSourceType.TASK: "task",
    EventSourceType.LEAVE: "leave",
    EventSourceType.LOG: "log",
    EventSourceType.IMPORTANT_DATE: "important_date",
    EventSourceType.SCHEDULE: "schedule",
}


def _to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _display_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, date):
        return value.isoformat()
    return value


class CalendarEvent(BaseModel):
    """One concrete timeline entry produced by the engine."""

    id: str = Field(..., description="Globally unique, namespaced by source")
    source_type: EventSourceType
    title: str
    start: datetime
    end: datetime
    all_day: bool = False
    color: str
    resource_id: Optional[str] = Field(default=None, description="ID of the originating record")
    payload: EventPayload

    @model_validator(mode="after")
    def _check_invariants(self) -> "CalendarEvent":
        if self.end < self.start:
            raise ValueError(f"event {self.id} ends before it starts")
        if _PAYLOAD_KINDS[self.source_type] != self.payload.kind:
            raise ValueError(
                f"event {self.id} has {self.payload.kind} payload for source {self.source_type.value}"
            )
        return self

    def to_display_dict(self) -> dict[str, Any]:
        """Flatten to the generic UI shape with camelCase extended props."""
        fmt = "%Y-%m-%d" if self.all_day else "%Y-%m-%dT%H:%M:%S"
        extended = {
            _to_camel(key): _display_value(value)
            for key, value in self.payload.model_dump(exclude={"kind"}).items()
        }
        if isinstance(self.payload, TaskPayload):
            extended["assignees"] = list(self.payload.assignees)
        return {
            "id": self.id,
            "type": self.source_type.value,
            "title": self.title,
            "start": self.start.strftime(fmt),
            "end": self.end.strftime(fmt),
            "allDay": self.all_day,
            "color": self.color,
            "resourceId": self.resource_id,
            "extendedProps": extended,
        }


class CalendarSnapshot(BaseModel):
    """All records the data-access layer loaded for one aggregation call."""

    tasks: list[TaskDefinition] = Field(default_factory=list)
    skipped_instances: list[SkippedInstance] = Field(default_factory=list)
    completions: list[CompletionRecord] = Field(default_factory=list)
    time_overrides: list[TimeOverride] = Field(default_factory=list)
    leave_requests: list[LeaveRequest] = Field(default_factory=list)
    child_logs: list[ChildLog] = Field(default_factory=list)
    important_dates: list[ImportantDate] = Field(default_factory=list)
    weekly_schedules: list[WeeklySchedule] = Field(default_factory=list)
    schedule_overrides: list[ScheduleOverride] = Field(default_factory=list)
    one_off_schedules: list[OneOffSchedule] = Field(default_factory=list)
