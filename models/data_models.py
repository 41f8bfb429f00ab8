"""
Data models for the timetable scheduling system
"""
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple


DEFAULT_DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
DEFAULT_TIME_SLOTS = [
    "09:00-10:00", "10:00-11:00", "11:00-12:00", "12:00-13:00",
    "13:00-14:00", "14:00-15:00", "15:00-16:00", "16:00-17:00",
]
DEFAULT_LUNCH_SLOT = "13:00-14:00"


class CourseType(str, Enum):
    THEORY = "Theory"
    PRACTICAL = "Practical"


class RoomType(str, Enum):
    LECTURE_HALL = "Lecture Hall"
    LAB = "Lab"

    @classmethod
    def from_label(cls, label: str) -> "RoomType":
        """Accept 'Lecture Hall', 'LectureHall' and 'Lab' in any case"""
        key = label.replace(" ", "").replace("_", "").lower()
        for member in cls:
            if member.value.replace(" ", "").lower() == key:
                return member
        raise ValueError(f"Unknown room type: {label!r}")


# Practical courses go to labs, theory courses to lecture halls
REQUIRED_ROOM_TYPE = {
    CourseType.THEORY: RoomType.LECTURE_HALL,
    CourseType.PRACTICAL: RoomType.LAB,
}


class ScheduleStatus(str, Enum):
    COMPLETE = "Complete"
    PARTIAL = "PartialResult"


class SearchOutcome(str, Enum):
    INITIALIZING = "Initializing"
    SEARCHING = "Searching"
    COMPLETE = "Complete"
    PARTIAL_TIMEOUT = "PartialTimeout"
    INFEASIBLE = "Infeasible"


class UnplacedReason(str, Enum):
    NO_ELIGIBLE_FACULTY = "no eligible faculty"
    NO_ELIGIBLE_ROOM = "no eligible room"
    NO_FACULTY_SLOT = "no eligible faculty slot"
    NO_ROOM_SLOT = "no eligible room slot"
    NO_CONFLICT_FREE_SLOT = "no conflict-free placement"
    BUDGET_EXHAUSTED = "search budget exhausted"


@dataclass(frozen=True)
class Course:
    code: str
    name: str
    credits: int
    type: CourseType
    subject: str

    @property
    def required_room_type(self) -> RoomType:
        return REQUIRED_ROOM_TYPE[self.type]


@dataclass(frozen=True)
class Faculty:
    id: str
    name: str
    expertise: FrozenSet[str]
    unavailable: FrozenSet[Tuple[str, str]] = frozenset()

    def can_teach(self, course: Course) -> bool:
        return course.subject in self.expertise

    def is_available(self, day: str, time_slot: str) -> bool:
        return (day, time_slot) not in self.unavailable


@dataclass(frozen=True)
class Room:
    id: str
    name: str
    type: RoomType
    capacity: int = 0


@dataclass(frozen=True)
class Program:
    id: str
    name: str
    courses: Tuple[str, ...]


@dataclass(frozen=True)
class SchedulingInput:
    courses: Tuple[Course, ...]
    faculty: Tuple[Faculty, ...]
    rooms: Tuple[Room, ...]
    programs: Tuple[Program, ...]

    @classmethod
    def of(cls, courses, faculty, rooms, programs) -> "SchedulingInput":
        return cls(tuple(courses), tuple(faculty), tuple(rooms), tuple(programs))


@dataclass(frozen=True, order=True)
class Slot:
    day_index: int
    time_index: int
    day: str = field(compare=False)
    time_slot: str = field(compare=False)
    is_lunch: bool = field(default=False, compare=False)

    @property
    def key(self) -> Tuple[int, int]:
        return (self.day_index, self.time_index)


@dataclass(frozen=True)
class GridConfig:
    days: Tuple[str, ...]
    time_slots: Tuple[str, ...]
    lunch_slot: Optional[str] = None

    @classmethod
    def default(cls) -> "GridConfig":
        return cls(tuple(DEFAULT_DAYS), tuple(DEFAULT_TIME_SLOTS), DEFAULT_LUNCH_SLOT)

    @property
    def lunch_index(self) -> Optional[int]:
        if self.lunch_slot is None:
            return None
        return self.time_slots.index(self.lunch_slot)

    def slots(self) -> List[Slot]:
        """Every assignable slot, in (day, time) order, lunch excluded"""
        return [
            Slot(di, ti, day, ts)
            for di, day in enumerate(self.days)
            for ti, ts in enumerate(self.time_slots)
            if ts != self.lunch_slot
        ]

    def slot(self, day: str, time_slot: str) -> Slot:
        return Slot(
            self.days.index(day),
            self.time_slots.index(time_slot),
            day,
            time_slot,
            is_lunch=time_slot == self.lunch_slot,
        )


@dataclass(frozen=True)
class Session:
    index: int
    program_id: str
    course: Course
    occurrence: int

    @property
    def key(self) -> Tuple[str, str, int]:
        return (self.program_id, self.course.code, self.occurrence)

    def __str__(self) -> str:
        return f"{self.program_id}/{self.course.code}#{self.occurrence}"


@dataclass(frozen=True)
class AssignmentValue:
    slot: Slot
    room_id: str
    faculty_id: str


@dataclass
class SoftScoreWeights:
    target_daily_density: int = 2
    density: float = 3.0
    gap: float = 1.0
    same_course_day: float = 2.0


@dataclass
class SearchOptions:
    """
    Budgets and tie-break settings of one generation request.

    `seed` only perturbs restarts 1..N-1; restart 0 always searches in
    plain (day, time, room, faculty) order. With `restarts=1` the seed
    therefore has no effect on the schedule.
    """
    restarts: int = 4
    time_budget_seconds: float = 10.0
    node_budget: int = 20000
    seed: int = 0
    max_workers: Optional[int] = None
    wall_clock_timeout: Optional[float] = None
    weights: SoftScoreWeights = field(default_factory=SoftScoreWeights)
    cancel_event: Optional[threading.Event] = None


@dataclass
class CSPResult:
    restart: int
    outcome: SearchOutcome
    assignments: Dict[int, AssignmentValue]
    unplaced: List[int]
    soft_cost: float
    nodes: int
    exhausted: bool
    solve_seconds: float

    @property
    def success(self) -> bool:
        return self.outcome == SearchOutcome.COMPLETE

    def rank(self) -> Tuple[int, float, int]:
        return (len(self.unplaced), self.soft_cost, self.restart)


@dataclass(frozen=True)
class ScheduledEntry:
    day: str
    time_slot: str
    course_code: str
    faculty_name: str
    room_name: str
    program: str


@dataclass(frozen=True)
class UnplacedSession:
    program: str
    course_code: str
    occurrence: int
    reason: UnplacedReason


@dataclass
class ScheduleResult:
    status: ScheduleStatus
    entries: List[ScheduledEntry]
    unplaced: List[UnplacedSession]
    soft_score: float
    restarts: int
    nodes_explored: int
    seed: int

    @property
    def is_complete(self) -> bool:
        return self.status == ScheduleStatus.COMPLETE
