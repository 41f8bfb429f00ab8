import json
import threading
from collections import Counter

import pytest

import solver.scheduler as scheduler
from models.data_models import (
    AssignmentValue, CSPResult, GridConfig, ScheduleStatus, SchedulingInput,
    SearchOptions, SearchOutcome, UnplacedReason
)
from solver.errors import (
    GenerationCancelled, InfeasibleEligibilityError, ReferentialIntegrityError,
    ValidationError, ValidatorFault
)
from solver.formatting import result_to_dict
from solver.scheduler import generate

from conftest import (
    assert_hard_constraints, faculty, hall, make_grid, practical, program, theory
)


def test_scenario_a_single_course(grid):
    entities = SchedulingInput.of(
        [theory("CS101", 3)], [faculty("F1", "Computer Science")],
        [hall("H1"), hall("H2")], [program("P1", "CS101")],
    )

    result = generate(entities, grid, SearchOptions(restarts=1))

    assert result.status == ScheduleStatus.COMPLETE
    assert len(result.entries) == 3
    assert all(e.time_slot != grid.time_slots[3] for e in result.entries)
    assert {e.room_name for e in result.entries} <= {"Hall H1", "Hall H2"}
    assert {e.faculty_name for e in result.entries} == {"Dr. F1"}
    assert_hard_constraints(result, entities, grid)


def test_scenario_b_faculty_away_on_monday(grid):
    monday = [("Monday", ts) for ts in grid.time_slots]
    entities = SchedulingInput.of(
        [theory("CS101", 4)],
        [faculty("F1", "Computer Science", unavailable=monday)],
        [hall("H1")], [program("P1", "CS101")],
    )

    result = generate(entities, grid, SearchOptions(restarts=2))

    assert result.is_complete
    assert len(result.entries) == 4
    assert all(e.day != "Monday" for e in result.entries)


def test_scenario_b_not_enough_days_left():
    grid = make_grid(days=("Monday", "Tuesday"), n_slots=3, lunch_position=2)
    monday = [("Monday", ts) for ts in grid.time_slots]
    entities = SchedulingInput.of(
        [theory("CS101", 3)],
        [faculty("F1", "Computer Science", unavailable=monday)],
        [hall("H1")], [program("P1", "CS101")],
    )

    result = generate(entities, grid, SearchOptions(restarts=2))

    assert result.status == ScheduleStatus.PARTIAL
    assert len(result.entries) == 2
    assert all(e.day == "Tuesday" for e in result.entries)
    assert len(result.unplaced) == 1
    assert result.unplaced[0].reason == UnplacedReason.NO_FACULTY_SLOT
    assert result.unplaced[0].reason.value == "no eligible faculty slot"


def test_scenario_c_fails_before_search(grid, monkeypatch):
    def no_search(*args, **kwargs):
        raise AssertionError("search must not start")

    monkeypatch.setattr(scheduler, "run_restarts", no_search)
    entities = SchedulingInput.of(
        [practical("CS101L", 1)], [faculty("F1", "Computer Science")],
        [hall("H1")], [program("P1", "CS101L")],
    )

    with pytest.raises(InfeasibleEligibilityError) as exc:
        generate(entities, grid)

    assert exc.value.offending == [(("P1", "CS101L", 1), "no eligible room")]
    assert exc.value.outcome == SearchOutcome.INFEASIBLE


def test_scenario_d_shared_faculty_single_free_slot():
    grid = make_grid(days=("Monday",), n_slots=3, lunch_position=2)
    staff = [faculty("F1", "Computer Science", unavailable=[("Monday", grid.time_slots[2])])]
    entities = SchedulingInput.of(
        [theory("CS101", 1)], staff, [hall("H1"), hall("H2")],
        [program("P1", "CS101"), program("P2", "CS101")],
    )

    result = generate(entities, grid, SearchOptions(restarts=3))

    assert result.status == ScheduleStatus.PARTIAL
    assert len(result.entries) == 1
    assert result.entries[0].time_slot == grid.time_slots[0]
    assert len(result.unplaced) == 1
    assert {result.entries[0].program, result.unplaced[0].program} == {"Program P1", "Program P2"}


def test_sample_data_is_complete_and_respects_every_rule(sample_entities, fast_options):
    grid = GridConfig.default()

    result = generate(sample_entities, grid, fast_options)

    assert result.is_complete
    assert result.unplaced == []
    assert_hard_constraints(result, sample_entities, grid)

    credits = {c.code: c.credits for c in sample_entities.courses}
    per_pair = Counter((e.program, e.course_code) for e in result.entries)
    for p in sample_entities.programs:
        for code in p.courses:
            assert per_pair[(p.name, code)] == credits[code]


def test_entries_are_ordered_by_day_then_time(sample_entities, fast_options):
    grid = GridConfig.default()

    result = generate(sample_entities, grid, fast_options)

    keys = [(grid.days.index(e.day), grid.time_slots.index(e.time_slot)) for e in result.entries]
    assert keys == sorted(keys)


def test_identical_seed_gives_identical_output(sample_entities):
    grid = GridConfig.default()
    options = SearchOptions(restarts=3, node_budget=3000, time_budget_seconds=30.0, seed=42)

    def dump(result):
        return json.dumps(result_to_dict(result, grid), sort_keys=True)

    assert dump(generate(sample_entities, grid, options)) == dump(generate(sample_entities, grid, options))


def test_seed_has_no_effect_with_a_single_restart(sample_entities):
    grid = GridConfig.default()

    one = generate(sample_entities, grid, SearchOptions(restarts=1, seed=1))
    other = generate(sample_entities, grid, SearchOptions(restarts=1, seed=99))

    assert one.entries == other.entries
    assert one.soft_score == other.soft_score


def test_request_with_more_than_a_thousand_sessions_completes():
    # 510 programs of 2 sessions each; every program's faculty member is free in
    # exactly two slots of its own, so the search places all 1020 sessions
    # one level deeper each time without backtracking
    days = tuple(f"Day{d:02d}" for d in range(80))
    grid = make_grid(days=days, n_slots=13, lunch_position=None)
    slots = [(day, ts) for day in grid.days for ts in grid.time_slots]

    courses, staff, programs = [], [], []
    for p in range(510):
        subject = f"Subject {p}"
        own = set(slots[2 * p:2 * p + 2])
        courses.append(theory(f"C{p}", 2, subject=subject))
        staff.append(faculty(f"F{p:03d}", subject, unavailable=[s for s in slots if s not in own]))
        programs.append(program(f"P{p:03d}", f"C{p}"))
    entities = SchedulingInput.of(courses, staff, [hall("H1")], programs)

    result = generate(entities, grid, SearchOptions(
        restarts=1, node_budget=10 ** 6, time_budget_seconds=300.0
    ))

    assert result.is_complete
    assert len(result.entries) == 1020
    assert result.nodes_explored == 1020
    assert_hard_constraints(result, entities, grid)


def test_best_candidate_has_fewest_unplaced_then_lowest_cost(monkeypatch, grid):
    entities = SchedulingInput.of(
        [theory("A", 1)], [faculty("F1", "Computer Science")], [hall("H1")], [program("P1", "A")],
    )
    slot = grid.slot("Monday", grid.time_slots[0])
    other = grid.slot("Tuesday", grid.time_slots[0])

    def fake_restarts(index, options):
        def candidate(restart, assignments, cost):
            return CSPResult(restart, SearchOutcome.COMPLETE if assignments else SearchOutcome.PARTIAL_TIMEOUT,
                             assignments, [] if assignments else [0], cost, 1, False, 0.0)
        return [
            candidate(0, {}, 0.0),
            candidate(1, {0: AssignmentValue(slot, "H1", "F1")}, 5.0),
            candidate(2, {0: AssignmentValue(other, "H1", "F1")}, 1.0),
            candidate(3, {0: AssignmentValue(slot, "H1", "F1")}, 1.0),
        ]

    monkeypatch.setattr(scheduler, "run_restarts", fake_restarts)

    result = generate(entities, grid)

    assert result.entries[0].day == "Tuesday"
    assert result.soft_score == 1.0
    assert result.restarts == 4
    assert result.nodes_explored == 4


def test_validator_fault_aborts_the_request(monkeypatch, grid):
    entities = SchedulingInput.of(
        [theory("A", 2)], [faculty("F1", "Computer Science")], [hall("H1")], [program("P1", "A")],
    )
    slot = grid.slot("Monday", grid.time_slots[0])

    def broken_restarts(index, options):
        same = AssignmentValue(slot, "H1", "F1")
        return [CSPResult(0, SearchOutcome.COMPLETE, {0: same, 1: same}, [], 0.0, 2, False, 0.0)]

    monkeypatch.setattr(scheduler, "run_restarts", broken_restarts)

    with pytest.raises(ValidatorFault) as exc:
        generate(entities, grid)
    assert any("double-booked" in v for v in exc.value.violations)


def test_caller_cancel_event_aborts(sample_entities):
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(GenerationCancelled):
        generate(sample_entities, GridConfig.default(), SearchOptions(restarts=2, cancel_event=cancel))


def test_wall_clock_timeout_still_returns_a_valid_schedule(sample_entities):
    grid = GridConfig.default()
    options = SearchOptions(restarts=2, wall_clock_timeout=0.0)

    result = generate(sample_entities, grid, options)

    assert len(result.entries) + len(result.unplaced) == 18
    assert_hard_constraints(result, sample_entities, grid)


def test_unknown_course_reference_is_rejected(grid):
    entities = SchedulingInput.of(
        [theory("A", 1)], [faculty("F1", "Computer Science")], [hall("H1")], [program("P1", "A", "Z")],
    )

    with pytest.raises(ReferentialIntegrityError):
        generate(entities, grid)


@pytest.mark.parametrize("entities, grid, options, message", [
    (SchedulingInput.of([theory("A", 1), theory("A", 2)], [], [], []),
     make_grid(), SearchOptions(), "duplicate course code 'A'"),
    (SchedulingInput.of([theory("A", 0)], [], [], []),
     make_grid(), SearchOptions(), "invalid credits 0"),
    (SchedulingInput.of([], [faculty("F1", "CS", unavailable=[("Sunday", "09:00-10:00")])], [], []),
     make_grid(), SearchOptions(), "unknown slot Sunday_09:00-10:00"),
    (SchedulingInput.of([], [], [], []),
     GridConfig(("Monday",), ("09:00-10:00",), "12:00-13:00"), SearchOptions(),
     "lunch slot '12:00-13:00' is not one of the grid time slots"),
    (SchedulingInput.of([], [], [], []),
     GridConfig(("Monday", "Monday"), ("09:00-10:00",), None), SearchOptions(), "duplicate day 'Monday'"),
    (SchedulingInput.of([], [], [], []),
     make_grid(), SearchOptions(restarts=0), "restarts must be at least 1"),
])
def test_malformed_requests_are_rejected(entities, grid, options, message):
    with pytest.raises(ValidationError) as exc:
        generate(entities, grid, options)
    assert message in str(exc.value)


def test_empty_request_gives_empty_complete_schedule(grid):
    result = generate(SchedulingInput.of([], [], [], []), grid, SearchOptions(restarts=1))

    assert result.is_complete
    assert result.entries == []


def test_entities_are_not_mutated(sample_entities, fast_options):
    before = repr(sample_entities)

    generate(sample_entities, GridConfig.default(), fast_options)

    assert repr(sample_entities) == before
