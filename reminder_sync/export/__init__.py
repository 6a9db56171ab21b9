"""Storage backends for Master, Reminders and Status Log tables."""
from reminder_sync.export.sinks import ExcelStore, GoogleSheetsStore, TableStore, build_store

__all__ = ["ExcelStore", "GoogleSheetsStore", "TableStore", "build_store"]
