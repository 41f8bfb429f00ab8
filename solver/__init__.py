"""Scheduling engine package"""
from .errors import (
    SchedulingError, ValidationError, ReferentialIntegrityError,
    InfeasibleEligibilityError, ValidatorFault, GenerationCancelled
)
from .scheduler import generate

__all__ = [
    'generate',
    'SchedulingError', 'ValidationError', 'ReferentialIntegrityError',
    'InfeasibleEligibilityError', 'ValidatorFault', 'GenerationCancelled'
]
