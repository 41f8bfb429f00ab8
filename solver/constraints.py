"""
Hard constraint predicates and soft scoring over a partial assignment
"""
from collections import defaultdict
from typing import Dict, Iterable, Optional, Set, Tuple

from models.data_models import (
    AssignmentValue, Faculty, Room, Session, Slot, SoftScoreWeights
)


class OccupancyState:
    """
    Busy sets keyed by slot, plus the per-program day layout the soft
    score needs. One instance per search worker; never shared.
    """

    def __init__(self, lunch_index: Optional[int] = None):
        self.lunch_index = lunch_index
        self.faculty_busy: Dict[Tuple[int, int], Set[str]] = defaultdict(set)
        self.room_busy: Dict[Tuple[int, int], Set[str]] = defaultdict(set)
        self.program_busy: Dict[Tuple[int, int], Set[str]] = defaultdict(set)
        self.program_day: Dict[Tuple[str, int], Set[int]] = defaultdict(set)
        self.course_day: Dict[Tuple[str, str, int], int] = defaultdict(int)
        self.assignments: Dict[int, AssignmentValue] = {}

    def place(self, session: Session, value: AssignmentValue):
        key = value.slot.key
        self.faculty_busy[key].add(value.faculty_id)
        self.room_busy[key].add(value.room_id)
        self.program_busy[key].add(session.program_id)
        self.program_day[(session.program_id, value.slot.day_index)].add(value.slot.time_index)
        self.course_day[(session.program_id, session.course.code, value.slot.day_index)] += 1
        self.assignments[session.index] = value

    def remove(self, session: Session):
        value = self.assignments.pop(session.index)
        key = value.slot.key
        self.faculty_busy[key].discard(value.faculty_id)
        self.room_busy[key].discard(value.room_id)
        self.program_busy[key].discard(session.program_id)
        self.program_day[(session.program_id, value.slot.day_index)].discard(value.slot.time_index)
        self.course_day[(session.program_id, session.course.code, value.slot.day_index)] -= 1

    def is_free(self, session: Session, value: AssignmentValue) -> bool:
        """Only the double-booking rules"""
        key = value.slot.key
        return (value.faculty_id not in self.faculty_busy.get(key, ())
                and value.room_id not in self.room_busy.get(key, ())
                and session.program_id not in self.program_busy.get(key, ()))


def can_place(session: Session, slot: Slot, room: Room, faculty: Faculty,
              state: OccupancyState) -> bool:
    if slot.is_lunch:
        return False
    if not faculty.can_teach(session.course):
        return False
    if room.type != session.course.required_room_type:
        return False
    if not faculty.is_available(slot.day, slot.time_slot):
        return False
    return state.is_free(session, AssignmentValue(slot, room.id, faculty.id))


def count_gaps(times: Iterable[int], lunch_index: Optional[int] = None) -> int:
    """Empty time indices between the first and last occupied one, lunch excluded"""
    times = set(times)
    if len(times) < 2:
        return 0
    lo, hi = min(times), max(times)
    return sum(1 for t in range(lo, hi + 1) if t not in times and t != lunch_index)


def soft_score(slot: Slot, session: Session, state: OccupancyState,
               weights: SoftScoreWeights) -> float:
    """
    Marginal cost of putting `session` at `slot` given the current state.
    Lower is better. Summing these over any placement order gives
    schedule_cost() of the final state.
    """
    day_times = state.program_day.get((session.program_id, slot.day_index), set())

    count_after = len(day_times) + 1
    cost = weights.density * max(0, count_after - weights.target_daily_density)

    gaps_before = count_gaps(day_times, state.lunch_index)
    gaps_after = count_gaps(day_times | {slot.time_index}, state.lunch_index)
    cost += weights.gap * (gaps_after - gaps_before)

    same_day = state.course_day.get((session.program_id, session.course.code, slot.day_index), 0)
    cost += weights.same_course_day * same_day
    return cost


def schedule_cost(state: OccupancyState, weights: SoftScoreWeights) -> float:
    """Aggregate soft cost of every placement in `state`"""
    cost = 0.0
    for times in state.program_day.values():
        n = len(times)
        excess = max(0, n - weights.target_daily_density)
        # sum of max(0, k - target) for k = 1..n
        cost += weights.density * excess * (excess + 1) / 2
        cost += weights.gap * count_gaps(times, state.lunch_index)

    for count in state.course_day.values():
        cost += weights.same_course_day * count * (count - 1) / 2
    return cost
