"""
Main entry point for the Timetable Scheduler application.

Without arguments the desktop window opens. With --db or --json the
timetable is generated headless and printed (or written with --out).
"""
import argparse
import json
import logging
import sys

from database.database_manager import DatabaseManager
from database.records import load_request_json
from models.data_models import SearchOptions
from solver.errors import SchedulingError
from solver.formatting import print_result, result_to_dict
from solver.scheduler import generate


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Generate a weekly course timetable")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--db", help="SQLite database with the scheduling entities")
    source.add_argument("--json", help="JSON request with courses, faculty, rooms, programs and grid")
    parser.add_argument("--out", help="write the result as JSON to this file")
    parser.add_argument("--restarts", type=int, default=SearchOptions.restarts)
    parser.add_argument("--time-budget", type=float, default=SearchOptions.time_budget_seconds)
    parser.add_argument("--node-budget", type=int, default=SearchOptions.node_budget)
    parser.add_argument("--seed", type=int, default=SearchOptions.seed,
                        help="tie-break seed for restarts after the first")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


def run_headless(args) -> int:
    if args.db:
        db_manager = DatabaseManager(args.db)
        try:
            entities, grid = db_manager.load_request()
        finally:
            db_manager.close()
    else:
        entities, grid = load_request_json(args.json)

    options = SearchOptions(
        restarts=args.restarts,
        time_budget_seconds=args.time_budget,
        node_budget=args.node_budget,
        seed=args.seed,
    )
    result = generate(entities, grid, options)

    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            json.dump(result_to_dict(result, grid), f, indent=2)
        print(f"Timetable written to {args.out}")
    else:
        print_result(result)
    return 0 if result.is_complete else 2


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
    )

    if args.db or args.json:
        try:
            sys.exit(run_headless(args))
        except SchedulingError as e:
            logging.getLogger(__name__).error("%s", e)
            sys.exit(1)

    from PyQt6.QtWidgets import QApplication
    from gui.main_window import MainWindow

    app = QApplication(sys.argv)
    app.setApplicationName("Timetable Scheduler")

    window = MainWindow()
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
