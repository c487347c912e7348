# =============================================================================
# File:        chainq/db/base_driver.py
# Purpose:     Single interface every DB driver implements
# Created:     2026-10-18
# =============================================================================
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

from chainq.db.query import DriverCapabilities


class BaseDBDriver(ABC):
    """
    All drivers expose the same API. `conditions` is the request map built by
    ChainQuery: {"WHERE": [ConditionGroup, ...], "ORDER": {col: dir}, "LIMIT": (offset, count)},
    each key present only when set.
    """

    # --- Meta/capabilities ---
    @abstractmethod
    def capabilities(self) -> DriverCapabilities:
        """Return DriverCapabilities (operators, order_by, limit_offset, transactions)."""

    # --- Lifecycle ---
    def close(self) -> None:
        return None

    # --- Transactions ---
    @abstractmethod
    def transaction(self):
        """
        Return a context manager wrapping a transaction.
        Drivers without transactions may return a no-op context manager.
        """
        raise NotImplementedError

    # --- Statements ---
    @abstractmethod
    def select(self, table: str, columns: Union[str, List[str]], conditions: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Rows of `table` matching conditions, projected to `columns` ("*" = all)."""

    @abstractmethod
    def insert(self, table: str, data: Union[Dict[str, Any], List[Dict[str, Any]]]) -> int:
        """Insert one mapping or a list of mappings. Returns the inserted row count."""

    @abstractmethod
    def update(self, table: str, data: Dict[str, Any], conditions: Optional[Dict[str, Any]] = None) -> int:
        """Update matching rows. Returns the affected row count."""

    @abstractmethod
    def delete(self, table: str, conditions: Optional[Dict[str, Any]] = None) -> int:
        """Delete matching rows. Returns the affected row count."""

    @abstractmethod
    def count(self, table: str, conditions: Optional[Dict[str, Any]] = None) -> int:
        """COUNT(*) of matching rows."""

    @abstractmethod
    def get_last_id(self, table: str) -> Optional[int]:
        """Last inserted id for `table` in this driver's lifetime, else None."""
