"""PyQt6 front end: generator controls and the timetable viewer"""
from .main_window import MainWindow
from .timetable_viewer import TimetableViewer

__all__ = ["MainWindow", "TimetableViewer"]
