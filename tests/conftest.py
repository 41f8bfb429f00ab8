import pytest

from models.data_models import (
    Course, CourseType, Faculty, GridConfig, Program, Room, RoomType,
    SchedulingInput, SearchOptions
)

WEEK = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")


def make_grid(days=WEEK, n_slots=6, lunch_position=4) -> GridConfig:
    """Hourly slots starting at 09:00; `lunch_position` is 1-based"""
    labels = tuple(f"{9 + i:02d}:00-{10 + i:02d}:00" for i in range(n_slots))
    lunch = labels[lunch_position - 1] if lunch_position else None
    return GridConfig(tuple(days), labels, lunch)


def theory(code, credits, subject="Computer Science"):
    return Course(code, f"{code} course", credits, CourseType.THEORY, subject)


def practical(code, credits, subject="Computer Science"):
    return Course(code, f"{code} lab", credits, CourseType.PRACTICAL, subject)


def faculty(fid, *expertise, unavailable=()):
    return Faculty(fid, f"Dr. {fid}", frozenset(expertise), frozenset(unavailable))


def hall(rid):
    return Room(rid, f"Hall {rid}", RoomType.LECTURE_HALL, 60)


def lab(rid):
    return Room(rid, f"Lab {rid}", RoomType.LAB, 30)


def program(pid, *codes):
    return Program(pid, f"Program {pid}", tuple(codes))


def assert_hard_constraints(result, entities: SchedulingInput, grid: GridConfig):
    """Check the published invariants on the entries of a result"""
    faculty_by_name = {f.name: f for f in entities.faculty}
    room_by_name = {r.name: r for r in entities.rooms}
    course_by_code = {c.code: c for c in entities.courses}

    seen_program, seen_faculty, seen_room = set(), set(), set()
    for e in result.entries:
        assert e.time_slot != grid.lunch_slot
        for seen, who in ((seen_program, e.program), (seen_faculty, e.faculty_name),
                          (seen_room, e.room_name)):
            key = (e.day, e.time_slot, who)
            assert key not in seen, f"double booking {key}"
            seen.add(key)

        course = course_by_code[e.course_code]
        fac = faculty_by_name[e.faculty_name]
        assert course.subject in fac.expertise
        assert (e.day, e.time_slot) not in fac.unavailable
        assert room_by_name[e.room_name].type == course.required_room_type


@pytest.fixture
def grid():
    return make_grid()


@pytest.fixture
def sample_entities():
    """The demo data set of the data-entry screen"""
    courses = [
        Course("CS101", "Intro to Programming", 3, CourseType.THEORY, "Computer Science"),
        Course("CS101L", "Intro to Programming Lab", 1, CourseType.PRACTICAL, "Computer Science"),
        Course("PH102", "Classical Mechanics", 3, CourseType.THEORY, "Physics"),
        Course("MA101", "Calculus I", 4, CourseType.THEORY, "Mathematics"),
    ]
    staff = [
        Faculty("F1", "Dr. Alan Turing", frozenset({"Computer Science", "Mathematics"}),
                frozenset({("Friday", "15:00-16:00"), ("Friday", "16:00-17:00")})),
        Faculty("F2", "Dr. Marie Curie", frozenset({"Physics", "Chemistry"})),
        Faculty("F3", "Dr. Ada Lovelace", frozenset({"Computer Science"}),
                frozenset({("Monday", "09:00-10:00")})),
    ]
    rooms = [
        Room("R1", "LH-1", RoomType.LECTURE_HALL, 60),
        Room("R2", "LH-2", RoomType.LECTURE_HALL, 60),
        Room("R3", "CS-Lab", RoomType.LAB, 30),
    ]
    programs = [
        Program("P1", "FYUP-CS", ("CS101", "CS101L", "PH102", "MA101")),
        Program("P2", "FYUP-Physics", ("PH102", "MA101")),
    ]
    return SchedulingInput.of(courses, staff, rooms, programs)


@pytest.fixture
def fast_options():
    return SearchOptions(restarts=2, time_budget_seconds=20.0, node_budget=5000, seed=3)
