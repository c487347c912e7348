# ============================================================================
# File:       chainq/managers/log_manager.py
# Purpose:    LogManager: class-level API over LogHandler
# Created:    2026-10-18
# ============================================================================

from chainq.handlers.log_handler import LogHandler
from chainq.helpers.core_helper import safe_call


class LogManager:
    _log_entries = []

    @classmethod
    def initialize(cls):
        cls._log_entries = []

    @classmethod
    def create(cls, level: str, message: str):
        """
        Central log entry point. Keeps the entry in memory and delegates to LogHandler.
        Entries below LOG_LEVEL are dropped before they reach memory or disk.
        """
        level_upper = (level or "").upper()
        level_lower = level_upper.lower()

        if not LogHandler.enabled(level_upper):
            return

        cls._log_entries.append((level_upper, message))

        method = getattr(LogHandler, level_lower, None)
        if callable(method):
            safe_call(method, message)
            return

        safe_call(LogHandler._write, level_upper, message)

    @classmethod
    def read(cls, last_only: bool = False):
        if last_only and cls._log_entries:
            return cls._log_entries[-1]
        return cls._log_entries

    @classmethod
    def delete(cls, index: int = None):
        if index is None:
            cls._log_entries.clear()
        elif 0 <= index < len(cls._log_entries):
            cls._log_entries.pop(index)

    # === Shortcuts ===

    @classmethod
    def debug(cls, message: str):
        cls.create("DEBUG", message)

    @classmethod
    def info(cls, message: str):
        cls.create("INFO", message)

    @classmethod
    def warning(cls, message: str):
        cls.create("WARNING", message)

    @classmethod
    def success(cls, message: str):
        cls.create("SUCCESS", message)

    @classmethod
    def error(cls, message: str):
        cls.create("ERROR", message)

    @classmethod
    def critical(cls, message: str):
        cls.create("CRITICAL", message)
