"""
Shaping of schedule results for export, display and console output
"""
from typing import Dict, List, Optional, Tuple

from models.data_models import GridConfig, ScheduledEntry, ScheduleResult

FILTER_FIELDS = {
    "program": "program",
    "faculty": "faculty_name",
    "room": "room_name",
}


def entry_to_dict(entry: ScheduledEntry) -> dict:
    return {
        "day": entry.day,
        "timeSlot": entry.time_slot,
        "courseCode": entry.course_code,
        "facultyName": entry.faculty_name,
        "roomName": entry.room_name,
        "program": entry.program,
    }


def result_to_dict(result: ScheduleResult, grid: GridConfig) -> dict:
    """Generate JSON data from result"""
    return {
        "success": result.is_complete,
        "status": result.status.value,
        "stats": {
            "totalEntries": len(result.entries),
            "unplacedCount": len(result.unplaced),
            "softScore": result.soft_score,
            "restarts": result.restarts,
            "nodesExplored": result.nodes_explored,
            "seed": result.seed,
        },
        "grid": {
            "days": list(grid.days),
            "timeSlots": list(grid.time_slots),
            "lunchSlot": grid.lunch_slot,
        },
        "timetable": [entry_to_dict(e) for e in result.entries],
        "unplaced": [
            {
                "program": u.program,
                "courseCode": u.course_code,
                "occurrence": u.occurrence,
                "reason": u.reason.value,
            }
            for u in result.unplaced
        ],
    }


def entries_from_dict(data: dict) -> Tuple[GridConfig, List[ScheduledEntry]]:
    """Read back the grid and entries of an exported timetable"""
    g = data["grid"]
    grid = GridConfig(tuple(g["days"]), tuple(g["timeSlots"]), g.get("lunchSlot"))
    entries = [
        ScheduledEntry(
            day=e["day"],
            time_slot=e["timeSlot"],
            course_code=e["courseCode"],
            faculty_name=e["facultyName"],
            room_name=e["roomName"],
            program=e["program"],
        )
        for e in data.get("timetable", [])
    ]
    return grid, entries


def filter_values(entries: List[ScheduledEntry], filter_type: str) -> List[str]:
    attr = FILTER_FIELDS[filter_type]
    return sorted({getattr(e, attr) for e in entries})


def build_grid(entries: List[ScheduledEntry], grid: GridConfig,
               filter_type: Optional[str] = None,
               filter_value: Optional[str] = None) -> List[dict]:
    """
    One row per time slot with one cell (a list of entries) per day.
    The lunch row carries no cells.
    """
    if filter_type and filter_value:
        attr = FILTER_FIELDS[filter_type]
        entries = [e for e in entries if getattr(e, attr) == filter_value]

    cells: Dict[Tuple[str, str], List[ScheduledEntry]] = {}
    for e in entries:
        cells.setdefault((e.day, e.time_slot), []).append(e)

    rows = []
    for ts in grid.time_slots:
        if ts == grid.lunch_slot:
            rows.append({"time_slot": ts, "lunch": True, "cells": []})
            continue
        rows.append({
            "time_slot": ts,
            "lunch": False,
            "cells": [cells.get((day, ts), []) for day in grid.days],
        })
    return rows


def format_cell(entries: List[ScheduledEntry]) -> str:
    """Format cell content for multiple sessions"""
    return "\n\n".join(
        f"{e.course_code} ({e.program})\n{e.faculty_name}\n@{e.room_name}" for e in entries
    )


def print_result(result: ScheduleResult):
    """Print the result"""
    for e in result.entries:
        print(f"{e.day:<10} {e.time_slot:<12} {e.course_code:<8} | {e.program} | "
              f"{e.faculty_name} @ {e.room_name}")

    if result.unplaced:
        print(f"\n{len(result.unplaced)} session(s) could not be placed:")
        for u in result.unplaced:
            print(f"  {u.program} {u.course_code} #{u.occurrence}: {u.reason.value}")

    print(f"\n{result.status.value} | soft score {result.soft_score:.1f} | "
          f"{result.nodes_explored} nodes over {result.restarts} restart(s)")
    print("=========================================")
