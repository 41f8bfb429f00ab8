"""
Final sweep over a chosen schedule, independent of the search that built it
"""
import logging
from collections import Counter
from typing import Dict, List

from models.data_models import AssignmentValue
from solver.eligibility import EligibilityIndex
from solver.errors import ValidatorFault

logger = logging.getLogger(__name__)


def find_violations(index: EligibilityIndex, assignments: Dict[int, AssignmentValue],
                    complete: bool) -> List[str]:
    grid = index.grid
    sessions = index.sessions
    violations: List[str] = []

    faculty_at = Counter()
    room_at = Counter()
    program_at = Counter()
    per_pair = Counter()

    for i, value in sorted(assignments.items()):
        if not 0 <= i < len(sessions):
            violations.append(f"assignment for unknown session index {i}")
            continue
        s = sessions[i]
        slot = value.slot
        where = f"{s} at {slot.day} {slot.time_slot}"

        if slot.day not in grid.days or slot.time_slot not in grid.time_slots:
            violations.append(f"{where}: slot is outside the weekly grid")
        if slot.time_slot == grid.lunch_slot:
            violations.append(f"{where}: scheduled in the lunch break")

        fac = index.faculty_index.get(value.faculty_id)
        if fac is None:
            violations.append(f"{where}: unknown faculty {value.faculty_id}")
        else:
            if s.course.subject not in fac.expertise:
                violations.append(f"{where}: {fac.name} lacks expertise in {s.course.subject}")
            if (slot.day, slot.time_slot) in fac.unavailable:
                violations.append(f"{where}: {fac.name} is unavailable")

        room = index.room_index.get(value.room_id)
        if room is None:
            violations.append(f"{where}: unknown room {value.room_id}")
        elif room.type != s.course.required_room_type:
            violations.append(
                f"{where}: {s.course.type.value} course in {room.type.value} room {room.name}"
            )

        key = (slot.day, slot.time_slot)
        faculty_at[key + (value.faculty_id,)] += 1
        room_at[key + (value.room_id,)] += 1
        program_at[key + (s.program_id,)] += 1
        per_pair[(s.program_id, s.course.code)] += 1

    for label, counter in (("faculty", faculty_at), ("room", room_at), ("program", program_at)):
        for (day, ts, who), n in sorted(counter.items()):
            if n > 1:
                violations.append(f"{label} {who} double-booked {n}x at {day} {ts}")

    expected = Counter((s.program_id, s.course.code) for s in sessions)
    credits_of = {(s.program_id, s.course.code): s.course.credits for s in sessions}
    for (program_id, code), n in sorted(expected.items()):
        credits = credits_of[(program_id, code)]
        if n != credits:
            violations.append(f"{program_id}/{code}: {n} sessions expanded for {credits} credits")
        placed = per_pair.get((program_id, code), 0)
        if placed > credits or (complete and placed != credits):
            violations.append(f"{program_id}/{code}: {placed} sessions scheduled for {credits} credits")

    return violations


def validate_schedule(index: EligibilityIndex, assignments: Dict[int, AssignmentValue],
                      complete: bool):
    """Raise ValidatorFault if the schedule breaks any hard constraint"""
    violations = find_violations(index, assignments, complete)
    if violations:
        for v in violations:
            logger.error("Validator: %s", v)
        raise ValidatorFault(violations)
