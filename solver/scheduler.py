"""
Entry point of the engine: validates a request, fans the search out over
parallel restarts and returns the best validated schedule.
"""
import logging
import threading
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, List, Optional

from models.data_models import (
    CSPResult, GridConfig, ScheduledEntry, ScheduleResult, ScheduleStatus,
    SchedulingInput, SearchOptions, UnplacedSession
)
from solver.csp_solver import CSPSolver, unplaced_reasons
from solver.eligibility import EligibilityIndex, build_eligibility
from solver.errors import GenerationCancelled, ValidationError
from solver.session_expander import expand_sessions
from solver.validator import validate_schedule

logger = logging.getLogger(__name__)


def _duplicates(values) -> List[str]:
    return sorted(v for v, n in Counter(values).items() if n > 1)


def validate_request(entities: SchedulingInput, grid: GridConfig, options: SearchOptions):
    """Reject malformed input before any work is done"""
    errors = []

    if not grid.days:
        errors.append("grid has no days")
    if not grid.time_slots:
        errors.append("grid has no time slots")
    for label, values in (("day", grid.days), ("time slot", grid.time_slots)):
        for dup in _duplicates(values):
            errors.append(f"duplicate {label} {dup!r} in grid")
    if grid.lunch_slot is not None and grid.lunch_slot not in grid.time_slots:
        errors.append(f"lunch slot {grid.lunch_slot!r} is not one of the grid time slots")
    if grid.days and grid.time_slots and not grid.slots():
        errors.append("grid has no assignable slot outside the lunch break")

    for label, values in (
        ("course code", [c.code for c in entities.courses]),
        ("faculty id", [f.id for f in entities.faculty]),
        ("room id", [r.id for r in entities.rooms]),
        ("program id", [p.id for p in entities.programs]),
    ):
        for dup in _duplicates(values):
            errors.append(f"duplicate {label} {dup!r}")

    for c in entities.courses:
        if not isinstance(c.credits, int) or c.credits < 1:
            errors.append(f"course {c.code} has invalid credits {c.credits!r}")

    known_days, known_slots = set(grid.days), set(grid.time_slots)
    for f in entities.faculty:
        for day, ts in sorted(f.unavailable):
            if day not in known_days or ts not in known_slots:
                errors.append(f"faculty {f.id} unavailable at unknown slot {day}_{ts}")

    if options.restarts < 1:
        errors.append("restarts must be at least 1")
    if options.node_budget < 0:
        errors.append("node budget must not be negative")
    if options.time_budget_seconds <= 0:
        errors.append("time budget must be positive")

    if errors:
        raise ValidationError("Invalid scheduling request:\n  " + "\n  ".join(errors))


def _run_restart(index: EligibilityIndex, options: SearchOptions, restart: int,
                 should_stop: Callable[[], bool]) -> CSPResult:
    solver = CSPSolver(
        index,
        options.weights,
        restart=restart,
        seed=options.seed,
        node_budget=options.node_budget,
        time_budget_seconds=options.time_budget_seconds,
        should_stop=should_stop,
    )
    return solver.solve()


def run_restarts(index: EligibilityIndex, options: SearchOptions) -> List[CSPResult]:
    """
    Run `options.restarts` independent searches on a thread pool and
    return their results in restart order.

    The coordinator waits for all workers or for the wall-clock timeout,
    whichever comes first. On timeout it sets the shared cancel event and
    waits again; workers poll it between nodes, so the second wait is short.
    """
    cancel = threading.Event()
    external = options.cancel_event

    def should_stop() -> bool:
        return cancel.is_set() or (external is not None and external.is_set())

    workers = options.max_workers or options.restarts
    rounds = -(-options.restarts // workers)
    timeout = options.wall_clock_timeout
    if timeout is None:
        timeout = options.time_budget_seconds * rounds + 1.0

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="csp-restart") as executor:
        futures = [
            executor.submit(_run_restart, index, options, r, should_stop)
            for r in range(options.restarts)
        ]
        _, pending = wait(futures, timeout=timeout)
        if pending:
            logger.warning(
                "Wall-clock timeout of %.1fs reached with %d restart(s) running, cancelling",
                timeout, len(pending)
            )
            cancel.set()
            wait(futures)

    if external is not None and external.is_set():
        raise GenerationCancelled("Generation cancelled by caller")

    return [f.result() for f in futures]


def _build_result(index: EligibilityIndex, entities: SchedulingInput, best: CSPResult,
                  candidates: List[CSPResult], options: SearchOptions) -> ScheduleResult:
    program_order = {p.id: n for n, p in enumerate(entities.programs)}
    program_names = {p.id: p.name for p in entities.programs}

    def order(i: int):
        s = index.sessions[i]
        return (program_order[s.program_id], s.course.code, s.occurrence)

    placed = sorted(
        best.assignments.items(),
        key=lambda item: (item[1].slot.day_index, item[1].slot.time_index) + order(item[0])
    )
    entries = []
    for i, value in placed:
        s = index.sessions[i]
        entries.append(ScheduledEntry(
            day=value.slot.day,
            time_slot=value.slot.time_slot,
            course_code=s.course.code,
            faculty_name=index.faculty_index[value.faculty_id].name,
            room_name=index.room_index[value.room_id].name,
            program=program_names[s.program_id],
        ))

    reasons = unplaced_reasons(index, best)
    unplaced = [
        UnplacedSession(
            program=program_names[index.sessions[i].program_id],
            course_code=index.sessions[i].course.code,
            occurrence=index.sessions[i].occurrence,
            reason=reasons[i],
        )
        for i in sorted(best.unplaced, key=order)
    ]

    return ScheduleResult(
        status=ScheduleStatus.COMPLETE if not unplaced else ScheduleStatus.PARTIAL,
        entries=entries,
        unplaced=unplaced,
        soft_score=best.soft_cost,
        restarts=len(candidates),
        nodes_explored=sum(c.nodes for c in candidates),
        seed=options.seed,
    )


def generate(entities: SchedulingInput, grid_config: GridConfig,
             options: Optional[SearchOptions] = None) -> ScheduleResult:
    """
    Build a weekly timetable for `entities` on `grid_config`.

    Raises ValidationError, ReferentialIntegrityError or
    InfeasibleEligibilityError before searching, ValidatorFault if the
    chosen schedule breaks a hard constraint, and GenerationCancelled when
    `options.cancel_event` is set. An incomplete schedule is not an error:
    it comes back with status PARTIAL and the unplaced sessions listed.

    The result depends only on the inputs and the seed (given the node
    budget binds before the time budget); timing goes to the log.
    """
    options = options or SearchOptions()
    start_time = time.monotonic()

    validate_request(entities, grid_config, options)
    sessions = expand_sessions(entities.courses, entities.programs)
    index = build_eligibility(sessions, entities.faculty, entities.rooms, grid_config)

    logger.info(
        "Scheduling %d sessions for %d programs: %d restart(s), seed %d",
        len(sessions), len(entities.programs), options.restarts, options.seed
    )

    candidates = run_restarts(index, options)
    best = min(candidates, key=CSPResult.rank)

    validate_schedule(index, best.assignments, complete=not best.unplaced)

    result = _build_result(index, entities, best, candidates, options)
    elapsed = time.monotonic() - start_time
    if result.is_complete:
        logger.info(
            "Complete schedule from restart %d: %d entries, soft score %.1f, %.2fs",
            best.restart, len(result.entries), result.soft_score, elapsed
        )
    else:
        logger.warning(
            "Partial schedule from restart %d: %d placed, %d unplaced, %.2fs",
            best.restart, len(result.entries), len(result.unplaced), elapsed
        )
    return result
