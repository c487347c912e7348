# ============================================================================
# File:       chainq/handlers/log_handler.py
# Purpose:    Writing log lines per level (DEBUG, INFO, ERROR, ...)
# Created:    2026-10-18
# ============================================================================

import os
from datetime import datetime
from chainq.config.env import EnvLoader

LEVELS = {
    "DEBUG": 10,
    "INFO": 20,
    "SUCCESS": 25,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}


class LogHandler:
    # None -> resolved from LOG_FILE_PATH on every write
    log_file_path: str | None = None

    @staticmethod
    def _path() -> str:
        if LogHandler.log_file_path:
            return LogHandler.log_file_path
        return EnvLoader.get("LOG_FILE_PATH", "data/logs/chainq.log")

    @staticmethod
    def _threshold() -> int:
        name = (EnvLoader.get("LOG_LEVEL", "INFO") or "INFO").strip().upper()
        return LEVELS.get(name, LEVELS["INFO"])

    @staticmethod
    def enabled(level: str) -> bool:
        return LEVELS.get(level.upper(), LEVELS["INFO"]) >= LogHandler._threshold()

    @staticmethod
    def _ensure_log_dir(path: str):
        try:
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        except OSError as e:
            print(f"Cannot create log directory: {e}")

    @staticmethod
    def _write(level, message):
        if not LogHandler.enabled(level):
            return
        path = LogHandler._path()
        try:
            LogHandler._ensure_log_dir(path)
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            log_entry = f"[{level.upper()}] {timestamp} - {message}\n"
            with open(path, "a", encoding="utf-8") as f:
                f.write(log_entry)
        except OSError as e:
            print(f"Logging failed: {e}")

    @staticmethod
    def debug(message):
        LogHandler._write("DEBUG", message)

    @staticmethod
    def info(message):
        LogHandler._write("INFO", message)

    @staticmethod
    def warning(message):
        LogHandler._write("WARNING", message)

    @staticmethod
    def success(message):
        LogHandler._write("SUCCESS", message)

    @staticmethod
    def error(message):
        LogHandler._write("ERROR", message)

    @staticmethod
    def critical(message):
        LogHandler._write("CRITICAL", message)
