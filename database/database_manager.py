"""
Database manager for reading scheduling entities from SQLite
"""
import logging
import sqlite3
from typing import List, Optional, Tuple

from models.data_models import Course, Faculty, GridConfig, Program, Room, SchedulingInput
from database.records import (
    course_from_record, faculty_from_record, program_from_record, room_from_record
)

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS Courses (
    Code TEXT PRIMARY KEY,
    Name TEXT,
    Credits INTEGER NOT NULL,
    Type TEXT NOT NULL,
    Subject TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS Faculty (
    FacultyID TEXT PRIMARY KEY,
    Name TEXT NOT NULL,
    Expertise TEXT,
    UnavailableSlots TEXT
);
CREATE TABLE IF NOT EXISTS Rooms (
    RoomID TEXT PRIMARY KEY,
    RoomName TEXT NOT NULL,
    RoomType TEXT NOT NULL,
    Capacity INTEGER
);
CREATE TABLE IF NOT EXISTS Programs (
    ProgramID TEXT PRIMARY KEY,
    Name TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS ProgramCourses (
    ProgramID TEXT NOT NULL,
    CourseCode TEXT NOT NULL,
    Position INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS Days (
    Position INTEGER PRIMARY KEY,
    Name TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS TimeSlots (
    Position INTEGER PRIMARY KEY,
    Label TEXT NOT NULL,
    IsLunch INTEGER NOT NULL DEFAULT 0
);
"""


class DatabaseManager:
    def __init__(self, db_file: str):
        self.db_file = db_file
        self.connection: Optional[sqlite3.Connection] = sqlite3.connect(db_file)

    def __del__(self):
        self.close()

    def close(self):
        if getattr(self, "connection", None):
            self.connection.close()
            self.connection = None

    def initialize_schema(self):
        self.connection.executescript(SCHEMA_SQL)
        self.connection.commit()

    def _fetch(self, sql: str, what: str, params: Tuple = ()) -> List[tuple]:
        try:
            cursor = self.connection.cursor()
            cursor.execute(sql, params)
            return cursor.fetchall()
        except sqlite3.Error as e:
            logger.error("Error while fetching %s from %s: %s", what, self.db_file, e)
            raise

    def get_courses(self) -> List[Course]:
        sql = "SELECT Code, Name, Credits, Type, Subject FROM Courses ORDER BY rowid;"
        return [
            course_from_record({
                "code": row[0], "name": row[1], "credits": row[2],
                "type": row[3], "subject": row[4],
            })
            for row in self._fetch(sql, "courses")
        ]

    def get_faculty(self, grid: Optional[GridConfig] = None) -> List[Faculty]:
        sql = "SELECT FacultyID, Name, Expertise, UnavailableSlots FROM Faculty ORDER BY rowid;"
        return [
            faculty_from_record({
                "id": row[0], "name": row[1], "expertise": row[2] or "",
                "unavailableSlots": row[3] or "",
            }, grid)
            for row in self._fetch(sql, "faculty")
        ]

    def get_rooms(self) -> List[Room]:
        sql = "SELECT RoomID, RoomName, RoomType, Capacity FROM Rooms ORDER BY rowid;"
        return [
            room_from_record({"id": row[0], "name": row[1], "type": row[2], "capacity": row[3]})
            for row in self._fetch(sql, "rooms")
        ]

    def get_programs(self) -> List[Program]:
        programs = self._fetch("SELECT ProgramID, Name FROM Programs ORDER BY rowid;", "programs")
        links = self._fetch(
            "SELECT ProgramID, CourseCode FROM ProgramCourses ORDER BY ProgramID, Position;",
            "program courses"
        )
        courses_of = {}
        for program_id, code in links:
            courses_of.setdefault(program_id, []).append(code)

        return [
            program_from_record({"id": row[0], "name": row[1], "courses": courses_of.get(row[0], [])})
            for row in programs
        ]

    def get_grid(self) -> GridConfig:
        """Weekly grid from Days/TimeSlots, or the default grid when both are empty"""
        days = [row[0] for row in self._fetch("SELECT Name FROM Days ORDER BY Position;", "days")]
        slots = self._fetch("SELECT Label, IsLunch FROM TimeSlots ORDER BY Position;", "time slots")
        if not days and not slots:
            return GridConfig.default()

        lunch = [label for label, is_lunch in slots if is_lunch]
        return GridConfig(
            days=tuple(days),
            time_slots=tuple(label for label, _ in slots),
            lunch_slot=lunch[0] if lunch else None,
        )

    def load_request(self) -> Tuple[SchedulingInput, GridConfig]:
        grid = self.get_grid()
        entities = SchedulingInput.of(
            self.get_courses(), self.get_faculty(grid), self.get_rooms(), self.get_programs()
        )
        logger.info(
            "Loaded %s: %d courses, %d faculty, %d rooms, %d programs",
            self.db_file, len(entities.courses), len(entities.faculty),
            len(entities.rooms), len(entities.programs)
        )
        return entities, grid
