"""
Eligibility index: which faculty and rooms may host each session
"""
import logging
from typing import Dict, List, Sequence

from models.data_models import (
    AssignmentValue, Faculty, GridConfig, Room, Session, UnplacedReason
)
from solver.errors import InfeasibleEligibilityError

logger = logging.getLogger(__name__)


class EligibilityIndex:
    def __init__(self, sessions: Sequence[Session], faculty: Sequence[Faculty],
                 rooms: Sequence[Room], grid: GridConfig):
        self.sessions = list(sessions)
        self.grid = grid
        self.faculty_index: Dict[str, Faculty] = {f.id: f for f in faculty}
        self.room_index: Dict[str, Room] = {r.id: r for r in rooms}

        self.faculty_for: List[List[Faculty]] = []
        self.rooms_for: List[List[Room]] = []
        self.domains: List[List[AssignmentValue]] = []

        self._faculty_sorted = sorted(faculty, key=lambda f: f.id)
        self._rooms_sorted = sorted(rooms, key=lambda r: r.id)

    def build(self) -> "EligibilityIndex":
        """
        Compute candidate sets and static domains for every session.

        Raises InfeasibleEligibilityError, listing every offending
        session, before any domain is enumerated.
        """
        offending = []
        for s in self.sessions:
            qualified = [f for f in self._faculty_sorted if f.can_teach(s.course)]
            required = s.course.required_room_type
            suitable = [r for r in self._rooms_sorted if r.type == required]

            if not qualified:
                offending.append((s.key, UnplacedReason.NO_ELIGIBLE_FACULTY.value))
            if not suitable:
                offending.append((s.key, UnplacedReason.NO_ELIGIBLE_ROOM.value))

            self.faculty_for.append(qualified)
            self.rooms_for.append(suitable)

        if offending:
            logger.error("Eligibility check failed for %d session(s)", len(offending))
            raise InfeasibleEligibilityError(offending)

        slots = self.grid.slots()
        for i in range(len(self.sessions)):
            domain = []
            for slot in slots:
                for room in self.rooms_for[i]:
                    for fac in self.faculty_for[i]:
                        if fac.is_available(slot.day, slot.time_slot):
                            domain.append(AssignmentValue(slot, room.id, fac.id))
            self.domains.append(domain)

        logger.debug(
            "Eligibility index built: %d sessions, %d candidate placements",
            len(self.sessions), sum(len(d) for d in self.domains)
        )
        return self

    def faculty_ids_for(self, session_index: int) -> List[str]:
        return [f.id for f in self.faculty_for[session_index]]

    def room_ids_for(self, session_index: int) -> List[str]:
        return [r.id for r in self.rooms_for[session_index]]


def build_eligibility(sessions: Sequence[Session], faculty: Sequence[Faculty],
                      rooms: Sequence[Room], grid: GridConfig) -> EligibilityIndex:
    return EligibilityIndex(sessions, faculty, rooms, grid).build()
