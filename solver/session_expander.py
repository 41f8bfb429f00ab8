"""
Expansion of (program, course) pairs into one-hour sessions
"""
import logging
from typing import Dict, List, Sequence

from models.data_models import Course, Program, Session
from solver.errors import ReferentialIntegrityError

logger = logging.getLogger(__name__)


def expand_sessions(courses: Sequence[Course], programs: Sequence[Program]) -> List[Session]:
    """
    Build one Session per (program, course, occurrence 1..credits).

    Order is program order, then the program's course order, then
    occurrence, so the index of a session is stable for a given input.
    Every unknown course code across all programs is reported at once.
    """
    course_index: Dict[str, Course] = {c.code: c for c in courses}

    missing = [
        (p.id, code) for p in programs for code in p.courses
        if code not in course_index
    ]
    if missing:
        raise ReferentialIntegrityError(missing)

    sessions: List[Session] = []
    for program in programs:
        seen = set()
        for code in program.courses:
            if code in seen:
                continue
            seen.add(code)
            course = course_index[code]
            for occurrence in range(1, course.credits + 1):
                sessions.append(Session(len(sessions), program.id, course, occurrence))

    logger.debug("Expanded %d programs into %d sessions", len(programs), len(sessions))
    return sessions
