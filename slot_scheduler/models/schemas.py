from datetime import time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

_FULL_NAMES = {
    "Mon": "Monday",
    "Tue": "Tuesday",
    "Wed": "Wednesday",
    "Thu": "Thursday",
    "Fri": "Friday",
    "Sat": "Saturday",
    "Sun": "Sunday",
}


class Weekday(str, Enum):
    MON = "Mon"
    TUE = "Tue"
    WED = "Wed"
    THU = "Thu"
    FRI = "Fri"
    SAT = "Sat"
    SUN = "Sun"

    @property
    def index(self) -> int:
        """Python weekday number (Mon=0 ... Sun=6)."""
        return list(Weekday).index(self)

    @property
    def full_name(self) -> str:
        return _FULL_NAMES[self.value]

    @classmethod
    def from_index(cls, index: int) -> "Weekday":
        return list(cls)[index % 7]

    @classmethod
    def _missing_(cls, value):
        # Accepts "Monday", "mon" and the two-letter keys ("MO") used by day pickers
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if key in (member.value.lower(), member.full_name.lower(), member.value[:2].lower()):
                    return member
        return None


class _WallClockRange(BaseModel):
    """Start/end wall-clock times confined to a single day."""
    model_config = ConfigDict(frozen=True)

    start: time
    end: time

    @field_validator("start", "end")
    @classmethod
    def _minute_resolution(cls, value: time) -> time:
        if value.tzinfo is not None:
            raise ValueError("times are wall-clock values and must not carry a timezone")
        if value.second or value.microsecond:
            raise ValueError("times must have minute resolution")
        return value

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end <= self.start:
            raise ValueError("end must be after start (ranges may not span midnight)")
        return self

    @property
    def start_minutes(self) -> int:
        return self.start.hour * 60 + self.start.minute

    @property
    def end_minutes(self) -> int:
        return self.end.hour * 60 + self.end.minute

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes


class TimeRange(_WallClockRange):
    @property
    def label(self) -> str:
        return f"{self.start:%H:%M} - {self.end:%H:%M}"

    @classmethod
    def parse(cls, label: str) -> "TimeRange":
        """Parses the catalog label format, e.g. "09:00 - 10:00"."""
        start, sep, end = label.partition("-")
        if not sep:
            raise ValueError(f"Not a time range: {label!r}")
        return cls(start=time.fromisoformat(start.strip()), end=time.fromisoformat(end.strip()))


class WeeklySlot(_WallClockRange):
    """
    A recurring (weekday, time range) pair in the reference timezone.

    Immutable and hashable; two slots are equal when day, start and end match.
    """
    day: Weekday

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    @property
    def label(self) -> str:
        return f"{self.day.value} {self.time_range.label}"

    @property
    def sort_key(self):
        return (self.day.index, self.start, self.end)

    @classmethod
    def of(cls, day: Weekday, time_range: TimeRange) -> "WeeklySlot":
        return cls(day=day, start=time_range.start, end=time_range.end)

    @classmethod
    def parse(cls, label: str) -> "WeeklySlot":
        """Parses "Monday 09:00 - 10:00" or "Mon 09:00 - 10:00"."""
        day, _, rest = label.strip().partition(" ")
        return cls.of(Weekday(day), TimeRange.parse(rest))


class LocalSlot(BaseModel):
    """A slot rendered in a display timezone. May cross midnight locally."""
    day: Weekday
    start: time
    end: time
    end_day: Weekday
    timezone: str

    @property
    def label(self) -> str:
        if self.end_day != self.day:
            return f"{self.day.value} {self.start:%H:%M} - {self.end_day.value} {self.end:%H:%M}"
        return f"{self.day.value} {self.start:%H:%M} - {self.end:%H:%M}"


class ErrorCode(str, Enum):
    INVALID_SLOT = "INVALID_SLOT"
    TEACHER_CONFLICT = "TEACHER_CONFLICT"
    PARTICIPANT_CONFLICT = "PARTICIPANT_CONFLICT"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    INCOMPLETE_SCHEDULE = "INCOMPLETE_SCHEDULE"
    UNKNOWN_TIMEZONE = "UNKNOWN_TIMEZONE"
    PREFERENCE_OVERLAP = "PREFERENCE_OVERLAP"


class ScheduleError(BaseModel):
    code: ErrorCode
    message: str
    participant_id: Optional[str] = None
    existing_slot: Optional[WeeklySlot] = None
    batch_id: Optional[str] = None


class ProjectedSlot(BaseModel):
    canonical: WeeklySlot
    local: LocalSlot
    reference_label: str
    local_label: str
    projected: bool = True
    error: Optional[ScheduleError] = None


class ClassMode(str, Enum):
    ONLINE = "Online"
    OFFLINE = "Offline"


class ScheduleAssignment(BaseModel):
    slot: WeeklySlot
    participant_ids: List[str] = []


class Batch(BaseModel):
    id: str
    name: str = ""
    description: str = ""
    course_id: str
    teacher_id: Optional[str] = None
    mode: ClassMode = ClassMode.ONLINE
    location_id: Optional[str] = None
    schedule: List[ScheduleAssignment] = []
    version: int = 0
    is_active: bool = True

    @model_validator(mode="after")
    def _one_assignment_per_day(self):
        days = [a.slot.day for a in self.schedule]
        if len(days) != len(set(days)):
            raise ValueError("a batch may hold at most one assignment per weekday")
        return self

    @property
    def slots(self) -> List[WeeklySlot]:
        return [a.slot for a in self.schedule]

    @property
    def participant_ids(self) -> List[str]:
        """Batch roster: union of assignment participants, in first-seen order."""
        seen = {}
        for assignment in self.schedule:
            for pid in assignment.participant_ids:
                seen.setdefault(pid, None)
        return list(seen)

    def assignment_for(self, day: Weekday) -> Optional[ScheduleAssignment]:
        return next((a for a in self.schedule if a.slot.day == day), None)

    def involves(self, participant_id: str) -> bool:
        return participant_id == self.teacher_id or participant_id in self.participant_ids


class AssemblerState(str, Enum):
    EMPTY = "Empty"
    DAYS_CHOSEN_1 = "DaysChosen1"
    DAYS_CHOSEN_2 = "DaysChosen2"
    SLOTS_ASSIGNED = "SlotsAssigned"
    PARTICIPANTS_ASSIGNED = "ParticipantsAssigned"
    COMMITTED = "Committed"


class BatchDraft(BaseModel):
    """
    A batch being edited.

    ``selected_days`` may run ahead of the schedule (a day chosen before its
    slot); ``roster`` is applied to every assignment of the batch.
    """
    batch: Batch
    selected_days: List[Weekday] = []
    roster: List[str] = []
    committed: bool = False

    @property
    def state(self) -> AssemblerState:
        if self.committed:
            return AssemblerState.COMMITTED
        if not self.selected_days:
            return AssemblerState.EMPTY
        scheduled = {a.slot.day for a in self.batch.schedule}
        if any(day not in scheduled for day in self.selected_days):
            if len(self.selected_days) == 1:
                return AssemblerState.DAYS_CHOSEN_1
            return AssemblerState.DAYS_CHOSEN_2
        if self.roster:
            return AssemblerState.PARTICIPANTS_ASSIGNED
        return AssemblerState.SLOTS_ASSIGNED


class Occupancy(BaseModel):
    slot: WeeklySlot
    batch_id: str
    batch_name: str = ""
    course_id: str = ""
    role: str = "student"  # "student" or "teacher"


class CheckResult(BaseModel):
    ok: bool
    conflict: Optional[Occupancy] = None
    error: Optional[ScheduleError] = None


class ParticipantStatus(BaseModel):
    participant_id: str
    has_conflict: bool
    conflicts: List[ScheduleError] = []


class AssemblyResult(BaseModel):
    ok: bool
    draft: BatchDraft
    error: Optional[ScheduleError] = None
    warnings: List[ScheduleError] = []

    @property
    def state(self) -> AssemblerState:
        return self.draft.state


class CourseTimingPreference(BaseModel):
    id: Optional[int] = None
    participant_id: str
    course_id: str
    slot: WeeklySlot
    timezone: str
    display: Optional[ProjectedSlot] = None
