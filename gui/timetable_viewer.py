"""
Weekly grid view of a generated (or exported) timetable
"""
import json
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QComboBox, QPushButton,
    QTableWidget, QTableWidgetItem, QHeaderView, QFileDialog, QMessageBox
)
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QColor, QFont
from solver.formatting import FILTER_FIELDS, build_grid, entries_from_dict, filter_values, format_cell

LUNCH_COLOR = QColor(238, 238, 238)
BUSY_COLOR = QColor(232, 245, 233)
FREE_COLOR = QColor(250, 250, 250)

TABLE_STYLE = """
    QTableWidget { gridline-color: #cfd8dc; font-size: 11px; }
    QTableWidget::item { padding: 4px; }
    QHeaderView::section {
        background-color: #37474f; color: white; padding: 6px; font-weight: bold;
    }
"""


class TimetableViewer(QWidget):
    """Days as columns, time slots as rows, filterable by program, faculty or room"""

    def __init__(self):
        super().__init__()
        self.grid = None
        self.entries = []

        layout = QVBoxLayout(self)

        controls = QHBoxLayout()
        open_btn = QPushButton("Open Timetable...")
        open_btn.clicked.connect(self.load_timetable)
        controls.addWidget(open_btn)

        controls.addWidget(QLabel("View by:"))
        self.view_by = QComboBox()
        for filter_type in FILTER_FIELDS:
            self.view_by.addItem(filter_type.capitalize(), filter_type)
        self.view_by.currentIndexChanged.connect(self.on_filter_type_changed)
        self.view_by.setEnabled(False)
        controls.addWidget(self.view_by)

        self.value = QComboBox()
        self.value.currentIndexChanged.connect(self.refresh_table)
        self.value.setEnabled(False)
        controls.addWidget(self.value)
        controls.addStretch()
        layout.addLayout(controls)

        self.table = QTableWidget()
        self.table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        self.table.setWordWrap(True)
        self.table.setStyleSheet(TABLE_STYLE)
        layout.addWidget(self.table)

        self.summary = QLabel("No timetable loaded")
        self.summary.setStyleSheet("color: #666;")
        layout.addWidget(self.summary)

    def load_timetable(self):
        """Open an exported timetable JSON file"""
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Open Timetable", "", "JSON Files (*.json);;All Files (*)"
        )
        if not file_path:
            return

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                self.load_from_result(json.load(f))
        except (OSError, ValueError, KeyError) as e:
            QMessageBox.critical(self, "Error", f"Failed to load timetable:\n{e}")

    def load_from_result(self, json_data: dict):
        self.grid, self.entries = entries_from_dict(json_data)
        self.view_by.setEnabled(True)
        self.on_filter_type_changed()

        stats = json_data.get("stats", {})
        text = f"{json_data.get('status', '')}: {len(self.entries)} sessions placed"
        if stats.get("unplacedCount"):
            text += f", {stats['unplacedCount']} unplaced"
        self.summary.setText(text)

    def on_filter_type_changed(self):
        filter_type = self.view_by.currentData()
        if filter_type is None:
            return

        self.value.blockSignals(True)
        self.value.clear()
        self.value.addItem("All", None)
        for v in filter_values(self.entries, filter_type):
            self.value.addItem(v, v)
        self.value.blockSignals(False)
        self.value.setEnabled(True)
        self.refresh_table()

    def _lunch_item(self) -> QTableWidgetItem:
        item = QTableWidgetItem("LUNCH BREAK")
        item.setTextAlignment(Qt.AlignmentFlag.AlignCenter)
        item.setBackground(LUNCH_COLOR)
        font = QFont()
        font.setBold(True)
        item.setFont(font)
        return item

    def refresh_table(self):
        if self.grid is None:
            return

        rows = build_grid(self.entries, self.grid, self.view_by.currentData(), self.value.currentData())
        days = list(self.grid.days)

        self.table.clearSpans()
        self.table.clear()
        self.table.setRowCount(len(rows))
        self.table.setColumnCount(len(days))
        self.table.setHorizontalHeaderLabels(days)
        self.table.setVerticalHeaderLabels([row["time_slot"] for row in rows])

        for r, row in enumerate(rows):
            if row["lunch"]:
                self.table.setItem(r, 0, self._lunch_item())
                if len(days) > 1:
                    self.table.setSpan(r, 0, 1, len(days))
                continue

            for c, cell in enumerate(row["cells"]):
                item = QTableWidgetItem(format_cell(cell))
                item.setBackground(BUSY_COLOR if cell else FREE_COLOR)
                item.setTextAlignment(Qt.AlignmentFlag.AlignTop | Qt.AlignmentFlag.AlignLeft)
                self.table.setItem(r, c, item)

        self.table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Stretch)
        self.table.verticalHeader().setSectionResizeMode(QHeaderView.ResizeMode.ResizeToContents)
