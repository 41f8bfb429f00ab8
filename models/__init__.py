"""Data models package"""
from .data_models import (
    DEFAULT_DAYS, DEFAULT_TIME_SLOTS, DEFAULT_LUNCH_SLOT,
    CourseType, RoomType, ScheduleStatus, SearchOutcome, UnplacedReason,
    Course, Faculty, Room, Program, SchedulingInput, Slot, GridConfig,
    Session, AssignmentValue, SoftScoreWeights, SearchOptions, CSPResult,
    ScheduledEntry, UnplacedSession, ScheduleResult
)

__all__ = [
    'DEFAULT_DAYS', 'DEFAULT_TIME_SLOTS', 'DEFAULT_LUNCH_SLOT',
    'CourseType', 'RoomType', 'ScheduleStatus', 'SearchOutcome', 'UnplacedReason',
    'Course', 'Faculty', 'Room', 'Program', 'SchedulingInput', 'Slot', 'GridConfig',
    'Session', 'AssignmentValue', 'SoftScoreWeights', 'SearchOptions', 'CSPResult',
    'ScheduledEntry', 'UnplacedSession', 'ScheduleResult'
]
