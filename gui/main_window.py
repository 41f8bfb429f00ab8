"""
Generator window: load entities, run the scheduler off the UI thread,
export the result and hand it to the viewer tab.
"""
import json
import logging
import threading
import time
from pathlib import Path
from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QFormLayout, QGroupBox,
    QPushButton, QPlainTextEdit, QLabel, QFileDialog, QMessageBox,
    QProgressBar, QTabWidget, QSpinBox, QDoubleSpinBox
)
from PyQt6.QtCore import Qt, QThread, pyqtSignal
from database.database_manager import DatabaseManager
from database.records import load_request_json
from models.data_models import SearchOptions
from solver.errors import SchedulingError
from solver.formatting import result_to_dict
from solver.scheduler import generate
from gui.timetable_viewer import TimetableViewer

logger = logging.getLogger(__name__)

RULE = "-" * 60


def load_entities(file_path: str):
    """Entities and grid from a .json request or a SQLite file"""
    if file_path.lower().endswith(".json"):
        return load_request_json(file_path)
    db_manager = DatabaseManager(file_path)
    try:
        return db_manager.load_request()
    finally:
        db_manager.close()


class SolverThread(QThread):
    """Runs generate() and reports back through signals"""
    done = pyqtSignal(object, float)
    failed = pyqtSignal(str)

    def __init__(self, entities, grid, options: SearchOptions):
        super().__init__()
        self.entities = entities
        self.grid = grid
        self.options = options

    def run(self):
        start = time.monotonic()
        try:
            result = generate(self.entities, self.grid, self.options)
        except SchedulingError as e:
            logger.error("Generation failed: %s", e)
            self.failed.emit(str(e))
            return
        self.done.emit(result, time.monotonic() - start)


class SolverTab(QWidget):
    result_ready = pyqtSignal(dict)

    def __init__(self):
        super().__init__()
        self.entities = None
        self.grid = None
        self.result = None
        self.worker = None
        self.cancel_event = None

        self.init_ui()

    def _button(self, text: str, handler, row: QHBoxLayout, enabled: bool = True) -> QPushButton:
        btn = QPushButton(text)
        btn.clicked.connect(handler)
        btn.setEnabled(enabled)
        row.addWidget(btn)
        return btn

    def init_ui(self):
        layout = QVBoxLayout(self)

        heading = QLabel("Course Timetable Generator")
        heading.setStyleSheet("font-size: 18px; font-weight: bold; padding: 10px;")
        heading.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(heading)

        box = QGroupBox("Search")
        form = QFormLayout(box)
        self.restarts_spin = QSpinBox()
        self.restarts_spin.setRange(1, 64)
        self.restarts_spin.setValue(SearchOptions.restarts)
        form.addRow("Restarts:", self.restarts_spin)

        self.budget_spin = QDoubleSpinBox()
        self.budget_spin.setRange(0.5, 600.0)
        self.budget_spin.setSuffix(" s")
        self.budget_spin.setValue(SearchOptions.time_budget_seconds)
        form.addRow("Time budget per restart:", self.budget_spin)

        self.nodes_spin = QSpinBox()
        self.nodes_spin.setRange(100, 10_000_000)
        self.nodes_spin.setSingleStep(1000)
        self.nodes_spin.setValue(SearchOptions.node_budget)
        form.addRow("Node budget per restart:", self.nodes_spin)

        self.seed_spin = QSpinBox()
        self.seed_spin.setRange(0, 2_000_000_000)
        form.addRow("Random seed:", self.seed_spin)
        layout.addWidget(box)

        actions = QHBoxLayout()
        self.load_btn = self._button("Load Data", self.load_data, actions)
        self.solve_btn = self._button("Generate", self.solve, actions, enabled=False)
        self.cancel_btn = self._button("Cancel", self.cancel, actions, enabled=False)
        self.export_btn = self._button("Export JSON", self.export_json, actions, enabled=False)
        layout.addLayout(actions)

        self.busy = QProgressBar()
        self.busy.setRange(0, 0)
        self.busy.hide()
        layout.addWidget(self.busy)

        self.status = QLabel("No data loaded")
        layout.addWidget(self.status)

        self.console = QPlainTextEdit()
        self.console.setReadOnly(True)
        self.console.setStyleSheet("font-family: monospace;")
        layout.addWidget(self.console)

    def say(self, message: str):
        self.console.appendPlainText(message)

    def set_running(self, running: bool):
        self.busy.setVisible(running)
        self.load_btn.setEnabled(not running)
        self.solve_btn.setEnabled(not running and self.entities is not None)
        self.cancel_btn.setEnabled(running)

    def load_data(self):
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Open Scheduling Data", "",
            "Database Files (*.db);;JSON Files (*.json);;All Files (*)"
        )
        if not file_path:
            return

        try:
            self.entities, self.grid = load_entities(file_path)
        except (SchedulingError, OSError) as e:
            QMessageBox.critical(self, "Error", f"Failed to load data:\n{e}")
            self.say(f"Could not load {file_path}: {e}")
            return

        e, g = self.entities, self.grid
        self.say(RULE)
        self.say(f"{Path(file_path).name}: {len(e.courses)} courses, {len(e.faculty)} faculty, "
                 f"{len(e.rooms)} rooms, {len(e.programs)} programs")
        self.say(f"Grid: {len(g.days)} days x {len(g.time_slots)} slots, "
                 f"lunch {g.lunch_slot or 'none'}")
        self.status.setText(f"Loaded {Path(file_path).name}")
        self.set_running(False)

    def solve(self):
        if self.entities is None:
            return

        self.cancel_event = threading.Event()
        options = SearchOptions(
            restarts=self.restarts_spin.value(),
            time_budget_seconds=self.budget_spin.value(),
            node_budget=self.nodes_spin.value(),
            seed=self.seed_spin.value(),
            cancel_event=self.cancel_event,
        )
        self.say(f"Generating: {options.restarts} restart(s), seed {options.seed}")
        self.status.setText("Generating...")
        self.set_running(True)

        self.worker = SolverThread(self.entities, self.grid, options)
        self.worker.done.connect(self.on_done)
        self.worker.failed.connect(self.on_failed)
        self.worker.start()

    def cancel(self):
        if self.cancel_event is not None:
            self.cancel_event.set()
            self.status.setText("Cancelling...")

    def on_failed(self, message: str):
        self.set_running(False)
        self.say(f"Generation failed: {message}")
        self.status.setText("Generation failed")

    def on_done(self, result, seconds: float):
        self.set_running(False)
        self.result = result
        self.export_btn.setEnabled(True)

        self.say(RULE)
        for entry in result.entries:
            self.say(f"{entry.day:<10} {entry.time_slot:<12} {entry.course_code:<8} "
                     f"{entry.program} | {entry.faculty_name} @ {entry.room_name}")
        for u in result.unplaced:
            self.say(f"UNPLACED {u.program} {u.course_code} #{u.occurrence}: {u.reason.value}")
        self.say(f"{result.status.value}, soft score {result.soft_score:.1f}, "
                 f"{result.nodes_explored} nodes, {seconds:.2f}s")

        if result.is_complete:
            self.status.setText(f"Complete schedule in {seconds:.2f}s")
        else:
            self.status.setText(f"Partial schedule: {len(result.unplaced)} session(s) unplaced")
        self.result_ready.emit(self.result_json())

    def result_json(self) -> dict:
        return result_to_dict(self.result, self.grid)

    def export_json(self):
        if self.result is None:
            return

        file_path, _ = QFileDialog.getSaveFileName(
            self, "Save Timetable", "timetable.json", "JSON Files (*.json);;All Files (*)"
        )
        if not file_path:
            return

        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(self.result_json(), f, indent=2)
        except OSError as e:
            QMessageBox.critical(self, "Error", f"Failed to export JSON:\n{e}")
            return
        self.say(f"Saved {file_path}")
        self.status.setText(f"Saved {Path(file_path).name}")


class MainWindow(QMainWindow):
    """Generator and viewer tabs; a new result is shown in the viewer at once"""

    def __init__(self):
        super().__init__()
        self.setWindowTitle("Course Timetable Generator")
        self.resize(1200, 800)

        self.tabs = QTabWidget()
        self.generator = SolverTab()
        self.viewer = TimetableViewer()
        self.tabs.addTab(self.generator, "Generator")
        self.tabs.addTab(self.viewer, "Timetable")
        self.setCentralWidget(self.tabs)

        self.generator.result_ready.connect(self.show_result)

    def show_result(self, json_data: dict):
        self.viewer.load_from_result(json_data)
        self.tabs.setCurrentWidget(self.viewer)
