"""Loading of scheduling entities from SQLite and JSON"""
from .database_manager import DatabaseManager
from .records import load_request, load_request_json, parse_unavailable_slots

__all__ = ['DatabaseManager', 'load_request', 'load_request_json', 'parse_unavailable_slots']
