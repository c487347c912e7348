# ========================================================================
# File:       chainq/config/env.py
# Purpose:    Loading the .env file and typed access to variables
# Created:    2026-10-18
# ========================================================================

import os
from pathlib import Path
from dotenv import load_dotenv


class EnvLoader:
    """
    Simple loader that:
    - finds .env in the project root (or next to this file as a fallback),
    - loads it only once (idempotent),
    - relies on os.environ for overrides (e.g. in tests).
    """
    _loaded = False
    _loaded_path: Path | None = None

    @staticmethod
    def _find_env_path() -> Path | None:
        here = Path(__file__).resolve()
        candidates = [
            Path.cwd() / ".env",
            here.parents[2] / ".env" if len(here.parents) >= 3 else None,  # <repo>/.env
            here.parents[1] / ".env" if len(here.parents) >= 2 else None,
            here.parent / ".env",
        ]
        for p in candidates:
            if p and p.exists():
                return p
        return None

    @classmethod
    def load(cls, force: bool = False) -> None:
        if cls._loaded and not force:
            return
        env_path = cls._find_env_path()
        if env_path:
            # .env -> os.environ, already set variables win
            load_dotenv(dotenv_path=env_path, override=False)
            cls._loaded_path = env_path
        else:
            cls._loaded_path = None
        cls._loaded = True

    @classmethod
    def get(cls, key: str, default=None):
        if not cls._loaded:
            cls.load()
        return os.getenv(key, default)

    @classmethod
    def get_bool(cls, key: str, default: bool = False) -> bool:
        val = cls.get(key, None)
        if val is None:
            return default
        return str(val).strip().lower() in ("1", "true", "yes", "y", "on")

    @classmethod
    def get_int(cls, key: str, default: int = 0) -> int:
        val = cls.get(key, None)
        if val is None or not str(val).strip():
            return default
        try:
            return int(str(val).strip())
        except ValueError:
            return default

    @classmethod
    def database_config(cls) -> dict:
        """
        Connection parameters for the database layer.
        Returns {} when DB_DRIVER is not set so the caller can refuse to connect.
        """
        driver_key = (cls.get("DB_DRIVER", "") or "").strip().lower()
        if not driver_key:
            return {}

        params: dict = {}
        if driver_key == "sqlite":
            params["path"] = (cls.get("SQLITE_PATH", "data/db/app.db") or "data/db/app.db").strip()
            params["auto_schema"] = cls.get_bool("SQLITE_AUTO_SCHEMA", False)
        return {"driver": driver_key, "params": params}

    @classmethod
    def debug_info(cls) -> dict:
        """Where .env was loaded from and whether loading already happened."""
        return {
            "loaded": cls._loaded,
            "env_path": str(cls._loaded_path) if cls._loaded_path else None,
        }
