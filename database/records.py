"""
Conversion of raw records (JSON documents, database rows) into entities.

Free-text fields coming from data entry are normalized here: comma
separated expertise and course lists become tuples, and unavailability
strings such as "Monday_10:00-11:00, Tuesday_14:00-15:00" become a set of
(day, time slot) pairs. Anything malformed raises ValidationError.
"""
import json
import logging
from pathlib import Path
from typing import FrozenSet, Iterable, Optional, Tuple, Union

from models.data_models import (
    Course, CourseType, Faculty, GridConfig, Program, Room, RoomType,
    SchedulingInput
)
from solver.errors import ValidationError

logger = logging.getLogger(__name__)


def parse_list(value: Union[str, Iterable[str], None]) -> Tuple[str, ...]:
    """Split a comma separated string (or clean a list) into stripped tokens"""
    if value is None:
        return ()
    tokens = value.split(",") if isinstance(value, str) else value
    return tuple(t.strip() for t in tokens if t and t.strip())


def _match(value: str, allowed: Iterable[str]) -> Optional[str]:
    for candidate in allowed:
        if candidate.lower() == value.lower():
            return candidate
    return None


def parse_unavailable_slots(value, grid: Optional[GridConfig] = None) -> FrozenSet[Tuple[str, str]]:
    """
    Parse "Day_Slot" tokens into (day, slot) pairs.

    Blank tokens (e.g. a trailing comma) are skipped. A token without an
    underscore, with an empty day or slot, or naming a day or slot that is
    not in `grid` raises ValidationError. Days match the grid ignoring case
    and come back in the grid's spelling.
    """
    if value is None:
        return frozenset()
    tokens = value.split(",") if isinstance(value, str) else list(value)

    pairs = set()
    for raw in tokens:
        if isinstance(raw, (list, tuple)):
            if len(raw) != 2:
                raise ValidationError(f"Malformed unavailable slot {raw!r}: expected (day, slot)")
            day, slot = str(raw[0]).strip(), str(raw[1]).strip()
        else:
            token = raw.strip()
            if not token:
                continue
            if "_" not in token:
                raise ValidationError(f"Malformed unavailable slot {token!r}: expected Day_Slot")
            day, slot = (part.strip() for part in token.split("_", 1))

        if not day or not slot:
            raise ValidationError(f"Malformed unavailable slot {raw!r}: empty day or slot")

        if grid is not None:
            canonical_day = _match(day, grid.days)
            if canonical_day is None:
                raise ValidationError(f"Unavailable slot {raw!r} names unknown day {day!r}")
            if slot not in grid.time_slots:
                raise ValidationError(f"Unavailable slot {raw!r} names unknown time slot {slot!r}")
            day = canonical_day
        pairs.add((day, slot))
    return frozenset(pairs)


def _require(record: dict, key: str, kind: str):
    if record.get(key) in (None, ""):
        raise ValidationError(f"{kind} record is missing {key!r}: {record!r}")
    return record[key]


def _to_int(value, what: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{what} must be an integer, got {value!r}") from None


def course_from_record(record: dict) -> Course:
    code = str(_require(record, "code", "Course")).strip()
    type_label = str(_require(record, "type", "Course")).strip()
    course_type = _match(type_label, [t.value for t in CourseType])
    if course_type is None:
        raise ValidationError(f"Course {code} has unknown type {type_label!r}")
    return Course(
        code=code,
        name=str(record.get("name") or code),
        credits=_to_int(_require(record, "credits", "Course"), f"Credits of course {code}"),
        type=CourseType(course_type),
        subject=str(_require(record, "subject", "Course")).strip(),
    )


def faculty_from_record(record: dict, grid: Optional[GridConfig] = None) -> Faculty:
    name = str(_require(record, "name", "Faculty"))
    return Faculty(
        id=str(record.get("id") or name),
        name=name,
        expertise=frozenset(parse_list(record.get("expertise"))),
        unavailable=parse_unavailable_slots(record.get("unavailableSlots"), grid),
    )


def room_from_record(record: dict) -> Room:
    name = str(_require(record, "name", "Room"))
    try:
        room_type = RoomType.from_label(str(_require(record, "type", "Room")))
    except ValueError as e:
        raise ValidationError(f"Room {name}: {e}") from None
    return Room(
        id=str(record.get("id") or name),
        name=name,
        type=room_type,
        capacity=_to_int(record.get("capacity") or 0, f"Capacity of room {name}"),
    )


def program_from_record(record: dict) -> Program:
    name = str(_require(record, "name", "Program"))
    return Program(
        id=str(record.get("id") or name),
        name=name,
        courses=parse_list(record.get("courses")),
    )


def grid_from_record(record: Optional[dict]) -> GridConfig:
    if not record:
        return GridConfig.default()
    return GridConfig(
        days=parse_list(record.get("days")),
        time_slots=parse_list(record.get("timeSlots")),
        lunch_slot=record.get("lunchSlot"),
    )


def load_request(data: dict) -> Tuple[SchedulingInput, GridConfig]:
    """Build entities and grid from a document shaped like the JSON export"""
    grid = grid_from_record(data.get("grid"))
    entities = SchedulingInput.of(
        [course_from_record(r) for r in data.get("courses", [])],
        [faculty_from_record(r, grid) for r in data.get("faculty", [])],
        [room_from_record(r) for r in data.get("rooms", [])],
        [program_from_record(r) for r in data.get("programs", [])],
    )
    logger.info(
        "Loaded %d courses, %d faculty, %d rooms, %d programs",
        len(entities.courses), len(entities.faculty), len(entities.rooms), len(entities.programs)
    )
    return entities, grid


def load_request_json(path: Union[str, Path]) -> Tuple[SchedulingInput, GridConfig]:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"{path} is not valid JSON: {e}") from e
    return load_request(data)

