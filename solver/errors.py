"""
Errors raised by the scheduling engine
"""
from typing import List, Tuple

from models.data_models import SearchOutcome


class SchedulingError(Exception):
    """Base class for every error the engine raises"""


class ValidationError(SchedulingError):
    """Malformed input records or grid definition"""


class ReferentialIntegrityError(SchedulingError):
    def __init__(self, missing: List[Tuple[str, str]]):
        self.missing = missing
        details = ", ".join(f"{program} -> {code}" for program, code in missing)
        super().__init__(f"Programs reference unknown course codes: {details}")


class InfeasibleEligibilityError(SchedulingError):
    """
    Raised before search when at least one session has no candidate
    faculty or no candidate room. `offending` holds (session key, reason)
    pairs, one per reason per session.
    """

    outcome = SearchOutcome.INFEASIBLE

    def __init__(self, offending: List[Tuple[Tuple[str, str, int], str]]):
        self.offending = offending
        lines = [f"{p}/{c}#{o}: {reason}" for (p, c, o), reason in offending]
        super().__init__(
            f"{len(offending)} session(s) cannot be hosted:\n  " + "\n  ".join(lines)
        )


class ValidatorFault(SchedulingError):
    """The final schedule broke a hard constraint. Always an engine defect."""

    def __init__(self, violations: List[str]):
        self.violations = violations
        super().__init__(
            f"Schedule failed validation with {len(violations)} violation(s):\n  "
            + "\n  ".join(violations)
        )


class GenerationCancelled(SchedulingError):
    """The caller aborted the request through its cancel event"""
