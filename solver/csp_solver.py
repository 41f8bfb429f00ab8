"""
CSP Solver for timetable generation: one restart of the backtracking search
"""
import logging
import random
import time
from typing import Callable, Dict, List, Optional, Set, Tuple

from models.data_models import (
    AssignmentValue, CSPResult, SearchOutcome, Session, SoftScoreWeights,
    UnplacedReason
)
from solver.constraints import OccupancyState, can_place, schedule_cost, soft_score
from solver.eligibility import EligibilityIndex

logger = logging.getLogger(__name__)

SlotKey = Tuple[int, int]


class _SearchStopped(Exception):
    """Node budget, time budget or cancellation reached"""


class _Frame:
    """One level of the explicit search stack: a session and its ordered values"""
    __slots__ = ("chosen", "session", "candidates", "pos", "placed", "changed")

    def __init__(self, chosen: int, session: Session, candidates: List[AssignmentValue]):
        self.chosen = chosen
        self.session = session
        self.candidates = candidates
        self.pos = 0
        self.placed: Optional[AssignmentValue] = None
        # (session index, bucket before pruning) for the placed slot
        self.changed: List[Tuple[int, List[AssignmentValue]]] = []


class CSPSolver:
    def __init__(self, index: EligibilityIndex, weights: SoftScoreWeights,
                 restart: int = 0, seed: int = 0, node_budget: int = 20000,
                 time_budget_seconds: float = 10.0,
                 should_stop: Optional[Callable[[], bool]] = None):
        self.index = index
        self.sessions: List[Session] = index.sessions
        self.weights = weights
        self.restart = restart
        self.seed = seed
        self.node_budget = node_budget
        self.time_budget_seconds = time_budget_seconds
        self.should_stop = should_stop or (lambda: False)

        self.outcome = SearchOutcome.INITIALIZING
        self.nodes = 0
        self._deadline = 0.0
        self._best: Dict[int, AssignmentValue] = {}

        self._slot_rank: Dict[SlotKey, int] = {}
        self._room_rank: Dict[str, int] = {}
        self._faculty_rank: Dict[str, int] = {}
        self._build_tie_break()

    def _build_tie_break(self):
        """
        Restart 0 keeps the plain (day, time, room, faculty) order. Every
        other restart ranks slots, rooms and faculty by a seeded shuffle
        that is consulted before that order.
        """
        slots = [s.key for s in self.index.grid.slots()]
        rooms = sorted(self.index.room_index)
        faculty = sorted(self.index.faculty_index)
        if self.restart == 0:
            self._slot_rank = {k: 0 for k in slots}
            self._room_rank = {r: 0 for r in rooms}
            self._faculty_rank = {f: 0 for f in faculty}
            return

        rng = random.Random(f"{self.seed}-{self.restart}")
        for items, target in ((slots, self._slot_rank), (rooms, self._room_rank),
                              (faculty, self._faculty_rank)):
            shuffled = list(items)
            rng.shuffle(shuffled)
            target.update({item: rank for rank, item in enumerate(shuffled)})

    def _value_key(self, session: Session, value: AssignmentValue, state: OccupancyState):
        slot = value.slot
        return (
            soft_score(slot, session, state, self.weights),
            self._slot_rank[slot.key],
            self._room_rank[value.room_id],
            self._faculty_rank[value.faculty_id],
            slot.day_index,
            slot.time_index,
            value.room_id,
            value.faculty_id,
        )

    def _check_budget(self):
        if self.nodes >= self.node_budget:
            raise _SearchStopped("node budget")
        if time.monotonic() >= self._deadline:
            raise _SearchStopped("time budget")
        if self.should_stop():
            raise _SearchStopped("cancelled")

    def _place(self, session: Session, value: AssignmentValue, state: OccupancyState) -> bool:
        room = self.index.room_index[value.room_id]
        fac = self.index.faculty_index[value.faculty_id]
        if not can_place(session, value.slot, room, fac, state):
            return False
        state.place(session, value)
        return True

    def backtrack_search(self) -> CSPResult:
        """Perform backtracking search with MRV and forward checking"""
        start_time = time.monotonic()
        self._deadline = start_time + self.time_budget_seconds
        self.outcome = SearchOutcome.SEARCHING
        state = OccupancyState(self.index.grid.lunch_index)

        # Domains bucketed by slot so a placement only prunes one bucket
        doms: List[Dict[SlotKey, List[AssignmentValue]]] = []
        sizes: List[int] = []
        for domain in self.index.domains:
            buckets: Dict[SlotKey, List[AssignmentValue]] = {}
            for value in domain:
                buckets.setdefault(value.slot.key, []).append(value)
            doms.append(buckets)
            sizes.append(len(domain))

        # Sessions with no static placement at all never enter the search
        unassigned: Set[int] = {i for i, n in enumerate(sizes) if n > 0}
        never = sorted(set(range(len(self.sessions))) - unassigned)
        if never:
            logger.debug("Restart %d: %d session(s) have no static placement",
                         self.restart, len(never))

        def open_frame() -> _Frame:
            # MRV: choose variable with minimum remaining values
            chosen = min(unassigned, key=lambda i: (sizes[i], i))
            session = self.sessions[chosen]
            candidates = [v for bucket in doms[chosen].values() for v in bucket]
            candidates.sort(key=lambda v: self._value_key(session, v, state))
            unassigned.discard(chosen)
            return _Frame(chosen, session, candidates)

        def forward_check(frame: _Frame) -> bool:
            """Prune the placed slot from every unassigned domain; False on a wipe-out"""
            val = frame.placed
            key = val.slot.key
            for j in unassigned:
                bucket = doms[j].get(key)
                if not bucket:
                    continue
                same_program = self.sessions[j].program_id == frame.session.program_id
                kept = [] if same_program else [
                    c for c in bucket
                    if c.faculty_id != val.faculty_id and c.room_id != val.room_id
                ]
                if len(kept) != len(bucket):
                    frame.changed.append((j, bucket))
                    doms[j][key] = kept
                    sizes[j] -= len(bucket) - len(kept)
                    if sizes[j] == 0:
                        return False
            return True

        def undo(frame: _Frame):
            key = frame.placed.slot.key
            for j, old_bucket in frame.changed:
                sizes[j] += len(old_bucket) - len(doms[j][key])
                doms[j][key] = old_bucket
            frame.changed = []
            frame.placed = None
            state.remove(frame.session)

        def search() -> bool:
            if not unassigned:
                return True

            stack = [open_frame()]
            while stack:
                frame = stack[-1]
                # Back here after a wipe-out or an exhausted child
                if frame.placed is not None:
                    undo(frame)
                if frame.pos == len(frame.candidates):
                    stack.pop()
                    unassigned.add(frame.chosen)
                    continue

                val = frame.candidates[frame.pos]
                frame.pos += 1
                self._check_budget()
                self.nodes += 1
                if not self._place(frame.session, val, state):
                    continue
                frame.placed = val

                if len(state.assignments) > len(self._best):
                    self._best = dict(state.assignments)

                if not forward_check(frame):
                    continue
                if not unassigned:
                    return True
                stack.append(open_frame())
            return False

        exhausted = False
        try:
            found = search()
            exhausted = not found
        except _SearchStopped as stop:
            found = False
            logger.debug("Restart %d stopped after %d nodes: %s", self.restart, self.nodes, stop)

        if found:
            assignments = dict(state.assignments)
        else:
            assignments = self._extend_greedily(self._best)

        final = OccupancyState(self.index.grid.lunch_index)
        for i, value in assignments.items():
            final.place(self.sessions[i], value)

        unplaced = [i for i in range(len(self.sessions)) if i not in assignments]
        self.outcome = SearchOutcome.COMPLETE if not unplaced else SearchOutcome.PARTIAL_TIMEOUT
        elapsed = time.monotonic() - start_time

        logger.debug(
            "Restart %d finished: %s, %d/%d placed, %d nodes, %.2fs",
            self.restart, self.outcome.value, len(assignments), len(self.sessions),
            self.nodes, elapsed
        )
        return CSPResult(
            restart=self.restart,
            outcome=self.outcome,
            assignments=assignments,
            unplaced=unplaced,
            soft_cost=schedule_cost(final, self.weights),
            nodes=self.nodes,
            exhausted=exhausted,
            solve_seconds=elapsed,
        )

    def _extend_greedily(self, partial: Dict[int, AssignmentValue]) -> Dict[int, AssignmentValue]:
        """
        Place whatever still fits into the best partial assignment, in
        session order, taking the best-ranked legal value each time.
        Stops early once cancellation is requested.
        """
        state = OccupancyState(self.index.grid.lunch_index)
        for i, value in partial.items():
            state.place(self.sessions[i], value)

        for i, session in enumerate(self.sessions):
            if i in state.assignments:
                continue
            if self.should_stop():
                logger.debug("Restart %d: greedy pass cancelled at session %d", self.restart, i)
                break
            legal = [v for v in self.index.domains[i] if state.is_free(session, v)]
            if not legal:
                continue
            best = min(legal, key=lambda v: self._value_key(session, v, state))
            self._place(session, best, state)

        added = len(state.assignments) - len(partial)
        if added:
            logger.debug("Restart %d: greedy pass placed %d more session(s)", self.restart, added)
        return dict(state.assignments)

    def solve(self) -> CSPResult:
        """Solve the CSP"""
        return self.backtrack_search()


def unplaced_reasons(index: EligibilityIndex, result: CSPResult) -> Dict[int, UnplacedReason]:
    """Explain, against the final assignment, why each unplaced session stayed out"""
    state = OccupancyState(index.grid.lunch_index)
    for i, value in result.assignments.items():
        state.place(index.sessions[i], value)

    slots = index.grid.slots()
    reasons: Dict[int, UnplacedReason] = {}
    for i in result.unplaced:
        program_id = index.sessions[i].program_id
        faculty_slots = [
            slot for slot in slots
            if program_id not in state.program_busy.get(slot.key, ())
            and any(f.is_available(slot.day, slot.time_slot)
                   and f.id not in state.faculty_busy.get(slot.key, ())
                   for f in index.faculty_for[i])
        ]
        room_slots = [
            slot for slot in faculty_slots
            if any(r.id not in state.room_busy.get(slot.key, ()) for r in index.rooms_for[i])
        ]
        if not faculty_slots:
            reasons[i] = UnplacedReason.NO_FACULTY_SLOT
        elif not room_slots:
            reasons[i] = UnplacedReason.NO_ROOM_SLOT
        elif result.exhausted:
            reasons[i] = UnplacedReason.NO_CONFLICT_FREE_SLOT
        else:
            reasons[i] = UnplacedReason.BUDGET_EXHAUSTED
    return reasons
