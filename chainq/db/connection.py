# =============================================================================
# File:        chainq/db/connection.py
# Purpose:     Lazy driver activation from configuration + ChainQuery factory
# Created:     2026-10-18
# =============================================================================
from __future__ import annotations

from typing import Any, Dict, Optional

from chainq.config.env import EnvLoader
from chainq.db.base_driver import BaseDBDriver
from chainq.db.chain_query import ChainQuery
from chainq.db.query import ConfigurationError, DriverCapabilities
from chainq.db.sqlite_driver import SQLiteDriver
from chainq.managers.error_manager import ErrorManager
from chainq.managers.log_manager import LogManager

DRIVERS = {
    "sqlite": SQLiteDriver,
}


_SECRET_PARAMS = ("password", "passwd", "secret", "token", "key")


def _log(level: str, msg: str):
    getattr(LogManager, level)(f"[DBConnection] {msg}")


def _public_params(params: Dict[str, Any]) -> Dict[str, Any]:
    """Params safe to log; credential-like values are masked."""
    return {
        k: ("***" if any(s in str(k).lower() for s in _SECRET_PARAMS) else v)
        for k, v in params.items()
    }


class DBConnection:
    """
    Holds one database configuration and the driver built from it.
    The driver is created on first access; a bad configuration fails there,
    is recorded through ErrorManager and re-raised.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, *, source: str = "explicit"):
        if config is None:
            config = EnvLoader.database_config()
            source = "env"
        self._config: Dict[str, Any] = dict(config or {})
        self._source = source
        self._driver: Optional[BaseDBDriver] = None

    @classmethod
    def from_env(cls) -> "DBConnection":
        return cls(None)

    @property
    def driver(self) -> BaseDBDriver:
        if self._driver is None:
            try:
                self._driver = self._activate()
            except Exception as e:
                ErrorManager.create(e)
                raise
        return self._driver

    def _activate(self) -> BaseDBDriver:
        if not self._config:
            raise ConfigurationError("Database configuration not found; set DB_DRIVER (and its parameters) in .env.")

        driver_key = (self._config.get("driver") or "").strip().lower()
        driver_cls = DRIVERS.get(driver_key)
        if driver_cls is None:
            raise ConfigurationError(f"Unknown database driver: {driver_key or '<empty>'}")

        params = dict(self._config.get("params") or {})
        driver = driver_cls(**params)
        _log("info", f"activate -> driver={driver_key} source={self._source} params={_public_params(params)}")
        return driver

    def query(self) -> ChainQuery:
        """Fresh builder bound to the shared driver."""
        return ChainQuery(self.driver)

    # ---------- State ----------
    def is_connected(self) -> bool:
        return self._driver is not None

    def active_config(self) -> Dict[str, Any]:
        return {
            "driver": self._config.get("driver"),
            "params": dict(self._config.get("params") or {}),
            "source": self._source,
        }

    def get_driver_name(self) -> Optional[str]:
        return self._driver.__class__.__name__ if self._driver else None

    def capabilities(self) -> DriverCapabilities:
        return self.driver.capabilities()

    def shutdown(self) -> None:
        try:
            if self._driver is not None:
                self._driver.close()
                _log("info", f"shutdown -> driver={self._config.get('driver')}")
        finally:
            self._driver = None
