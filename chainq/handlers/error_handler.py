# ========================================================================
# File:       chainq/handlers/error_handler.py
# Purpose:    Formats errors for ErrorManager
# Created:    2026-10-18
# ========================================================================

import traceback


class ErrorHandler:
    @staticmethod
    def format_error(error: Exception) -> str:
        return f"{type(error).__name__}: {str(error)}"

    @staticmethod
    def get_traceback(error: Exception) -> str:
        if error.__traceback__ is None:
            return ""
        return "".join(traceback.format_exception(type(error), error, error.__traceback__))

    @staticmethod
    def display(error: Exception, dev_mode: bool = True):
        """Print the error in dev mode, without logging it."""
        if dev_mode:
            formatted = ErrorHandler.format_error(error)
            trace = ErrorHandler.get_traceback(error)
            print(f"[ERROR]: {formatted}\n{trace}")
