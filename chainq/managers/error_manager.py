# ========================================================================
# File:       chainq/managers/error_manager.py
# Purpose:    Records errors and logs them (callers decide whether to re-raise)
# Created:    2026-10-18
# ========================================================================

from chainq.config.env import EnvLoader
from chainq.handlers.error_handler import ErrorHandler
from chainq.managers.log_manager import LogManager
from chainq.helpers.core_helper import safe_call


class ErrorManager:
    _errors = []
    _dev_mode = None  # None -> APP_DEBUG decides

    @classmethod
    def initialize(cls, dev_mode: bool = None):
        cls._dev_mode = dev_mode

    @classmethod
    def dev_mode(cls) -> bool:
        if cls._dev_mode is None:
            return EnvLoader.get_bool("APP_DEBUG", False)
        return cls._dev_mode

    @classmethod
    def create(cls, error: Exception):
        cls._errors.append(error)
        formatted = ErrorHandler.format_error(error)
        trace = ErrorHandler.get_traceback(error)

        ErrorHandler.display(error, dev_mode=cls.dev_mode())

        message = f"{formatted}\n{trace}" if trace else formatted
        safe_call(LogManager.create, "error", message)

    @classmethod
    def read(cls, last_only: bool = True):
        if last_only:
            return cls._errors[-1] if cls._errors else None
        return cls._errors

    @classmethod
    def delete(cls, index: int = None):
        if index is None:
            cls._errors.clear()
        elif 0 <= index < len(cls._errors):
            cls._errors.pop(index)
