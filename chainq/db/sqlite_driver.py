# =============================================================================
# File:        chainq/db/sqlite_driver.py
# Purpose:     SQLite driver behind ChainQuery:
#              - PRAGMA tuning (WAL, synchronous, busy_timeout, cache)
#              - Savepoint (nested) transactions
#              - WHERE groups / ORDER / LIMIT rendered to parameterised SQL
#              - Safe identifiers, optional dynamic schema on insert
# Created:     2026-10-18
# =============================================================================
from __future__ import annotations

import os
import re
import sqlite3
import threading
from collections.abc import Mapping
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple, Union

from chainq.config.env import EnvLoader
from chainq.db.base_driver import BaseDBDriver
from chainq.db.query import (
    CapabilityNotSupported,
    Condition,
    ConditionGroup,
    DriverCapabilities,
    LOGIC_AND,
    LOGIC_OR,
    Operator,
    column_of,
)
from chainq.helpers.core_helper import is_value_list, normalize_keyword

_SAFE_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")
_RAW_OPERATORS = frozenset({"=", "!=", "<>", "<", "<=", ">", ">="})
_JOURNAL_MODES = ("delete", "truncate", "persist", "memory", "wal", "off")
_TEMP_STORES = ("default", "file", "memory")


def _safe_ident(name: str) -> str:
    if not _SAFE_IDENT.match(name or ""):
        raise ValueError(f"Invalid identifier: {name}")
    return name


def _quote(name: str) -> str:
    """users.id -> "users"."id" """
    return ".".join(f'"{part}"' for part in _safe_ident(name).split("."))


def _coerce_condition(value: Any) -> Condition:
    """Plain-dict WHERE values: Condition, (op, value) pair or scalar equality."""
    if isinstance(value, Condition):
        return value
    if isinstance(value, (list, tuple)) and len(value) == 2 and isinstance(value[0], str):
        return Condition.build(value[0], value[1])
    return Condition(Operator.EQUALS, value)


def _as_groups(where: Any) -> List[ConditionGroup]:
    if not where:
        return []
    if isinstance(where, ConditionGroup):
        return [where]
    if isinstance(where, Mapping):
        group = ConditionGroup(LOGIC_AND)
        for key, val in where.items():
            group.add(column_of(key), _coerce_condition(val))
        return [group]
    groups: List[ConditionGroup] = []
    for item in where:
        groups.extend(_as_groups(item))
    return groups


class SQLiteDriver(BaseDBDriver):
    """
    __init__(**params):
      - path:        .db file or ":memory:" (default data/db/app.db)
      - auto_schema: create missing tables/columns on insert (default False)
    """
    _LOCK = threading.RLock()

    def __init__(self, **params):
        db_path = params.get("path") or os.path.join("data", "db", "app.db")
        self.auto_schema = bool(params.get("auto_schema", False))

        if db_path == ":memory:":
            self.db_file = db_path
        else:
            self.db_file = os.path.abspath(db_path)
            if os.path.isdir(self.db_file):
                raise RuntimeError(
                    f"SQLite path '{self.db_file}' is a directory; expected a path to a .db file."
                )
            dirpath = os.path.dirname(self.db_file) or "."
            os.makedirs(dirpath, exist_ok=True)

        # isolation_level=None -> manual BEGIN/COMMIT
        self.conn = sqlite3.connect(self.db_file, isolation_level=None, timeout=5.0, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row

        self._apply_pragmas()

        self._last_ids: Dict[str, int] = {}
        self._tx_depth = 0

    # --- PRAGMA settings (tunable through .env) ---
    def _apply_pragmas(self) -> None:
        """
        Optional .env variables:
          - SQLITE_JOURNAL_MODE=wal|delete|truncate|persist|off|memory
          - SQLITE_WAL=true|false  (when JOURNAL_MODE is not set)
          - SQLITE_SYNCHRONOUS=OFF|NORMAL|FULL|EXTRA
          - SQLITE_TEMP_STORE=default|file|memory
          - SQLITE_CACHE_SIZE=20000   (KB)
          - SQLITE_BUSY_TIMEOUT_MS=4000
        """
        cur = self.conn.cursor()
        try:
            cur.execute("PRAGMA foreign_keys = ON;")

            jm = (EnvLoader.get("SQLITE_JOURNAL_MODE", "") or "").strip().lower()
            if jm in _JOURNAL_MODES:
                cur.execute(f"PRAGMA journal_mode = {jm};")
            elif EnvLoader.get_bool("SQLITE_WAL", True) and self.db_file != ":memory:":
                cur.execute("PRAGMA journal_mode = wal;")

            sync = (EnvLoader.get("SQLITE_SYNCHRONOUS", "NORMAL") or "NORMAL").upper()
            if sync not in ("OFF", "NORMAL", "FULL", "EXTRA"):
                sync = "NORMAL"
            cur.execute(f"PRAGMA synchronous = {sync};")

            cache_kb = EnvLoader.get_int("SQLITE_CACHE_SIZE", 0)
            if cache_kb > 0:
                cur.execute(f"PRAGMA cache_size = {-cache_kb};")

            temp_store = (EnvLoader.get("SQLITE_TEMP_STORE", "") or "").strip().lower()
            if temp_store in _TEMP_STORES:
                cur.execute(f"PRAGMA temp_store = {temp_store};")

            bt = EnvLoader.get_int("SQLITE_BUSY_TIMEOUT_MS", 4000)
            cur.execute(f"PRAGMA busy_timeout = {bt};")
        finally:
            cur.close()

    # --- lifecycle ---
    def close(self) -> None:
        self.conn.close()

    # --- capabilities ---
    def capabilities(self) -> DriverCapabilities:
        return DriverCapabilities(
            operators=_RAW_OPERATORS | frozenset(op.value for op in Operator if op is not Operator.RAW),
            order_by=True,
            limit_offset=True,
            transactions=True,
        )

    # --- transactions (with savepoints) ---
    @contextmanager
    def transaction(self):
        with self._LOCK:
            depth = self._tx_depth
            savepoint = f"sp_{depth + 1}"
            self.conn.execute("BEGIN;" if depth == 0 else f"SAVEPOINT {savepoint};")
            self._tx_depth += 1
            try:
                yield self
            except Exception:
                self._tx_depth = depth
                if depth == 0:
                    self.conn.execute("ROLLBACK;")
                else:
                    self.conn.execute(f"ROLLBACK TO SAVEPOINT {savepoint};")
                    self.conn.execute(f"RELEASE SAVEPOINT {savepoint};")
                raise
            else:
                self._tx_depth = depth
                self.conn.execute("COMMIT;" if depth == 0 else f"RELEASE SAVEPOINT {savepoint};")

    # --- schema helpers ---
    def _ensure_table(self, table: str, sample: Optional[Dict[str, Any]] = None) -> None:
        """
        Only with auto_schema:
          - id INTEGER PRIMARY KEY AUTOINCREMENT
          - dynamic columns derived from sample keys (TEXT/INTEGER/REAL)
        """
        if not self.auto_schema:
            return
        t = _quote(table)
        cur = self.conn.cursor()
        try:
            cur.execute(f"CREATE TABLE IF NOT EXISTS {t} (id INTEGER PRIMARY KEY AUTOINCREMENT);")
            if sample:
                cur.execute(f"PRAGMA table_info({t});")
                existing_cols = {row["name"] for row in cur.fetchall()}
                for k, v in sample.items():
                    if k in existing_cols:
                        continue
                    sqltype = "TEXT"
                    if isinstance(v, (bool, int)):
                        sqltype = "INTEGER"
                    elif isinstance(v, float):
                        sqltype = "REAL"
                    cur.execute(f"ALTER TABLE {t} ADD COLUMN {_quote(k)} {sqltype};")
                    existing_cols.add(k)
        finally:
            cur.close()

    # --- SQL rendering ---
    def _compile_condition(self, column: str, cond: Condition) -> Tuple[str, List[Any]]:
        op = cond.operator

        if op is Operator.ON or op is Operator.NOT_ON:
            if not isinstance(cond.value, Mapping) or not cond.value:
                raise CapabilityNotSupported(f"{op.value} on '{column}' needs a non-empty column mapping")
            pairs = " AND ".join(f"{_quote(left)} = {_quote(right)}" for left, right in cond.value.items())
            return (f"NOT ({pairs})" if op is Operator.NOT_ON else f"({pairs})"), []

        col = _quote(column)

        if op is Operator.EQUALS:
            if cond.value is None:
                return f"{col} IS NULL", []
            return f"{col} = ?", [cond.value]

        if op is Operator.IN or op is Operator.NOT_IN:
            values = list(cond.value) if is_value_list(cond.value) else [cond.value]
            if not values:
                return ("1=0" if op is Operator.IN else "1=1"), []
            placeholders = ", ".join(["?"] * len(values))
            return f"{col} {op.value} ({placeholders})", values

        if op is Operator.LIKE or op is Operator.NOT_LIKE:
            return f"{col} {op.value} ?", [cond.value]

        raw = normalize_keyword(cond.raw)
        if raw not in _RAW_OPERATORS:
            raise CapabilityNotSupported(f"Operator '{cond.raw}' is not supported by SQLiteDriver")
        return f"{col} {raw} ?", [cond.value]

    def _compile_where(self, where: Any) -> Tuple[str, List[Any]]:
        """
        Groups nest left to right, each joined to everything before it by its own logic:
          [AND a, OR b, AND c] -> ((a) OR (b)) AND (c)
        """
        acc = ""
        params: List[Any] = []
        for group in _as_groups(where):
            if not group:
                continue
            logic = normalize_keyword(group.logic) or LOGIC_AND
            if logic not in (LOGIC_AND, LOGIC_OR):
                raise CapabilityNotSupported(f"Unknown logical operator: {group.logic}")
            clauses: List[str] = []
            for column, cond in group.conditions:
                sql, p = self._compile_condition(column_of(column), _coerce_condition(cond))
                clauses.append(sql)
                params.extend(p)
            fragment = "(" + f" {logic} ".join(clauses) + ")"
            acc = f"({acc}) {logic} {fragment}" if acc else fragment
        return acc, params

    def _compile_order(self, order: Optional[Dict[str, str]]) -> str:
        if not order:
            return ""
        items = []
        for column, direction in order.items():
            d = normalize_keyword(direction or "ASC")
            if d not in ("ASC", "DESC"):
                raise CapabilityNotSupported(f"Unknown sort direction: {direction}")
            items.append(f"{_quote(column)} {d}")
        return "ORDER BY " + ", ".join(items)

    def _compile_columns(self, columns: Union[str, List[str], None]) -> str:
        if columns is None or columns == "*":
            return "*"
        if isinstance(columns, str):
            return _quote(columns)
        return ", ".join(_quote(c) for c in columns) or "*"

    def _tail(self, conditions: Optional[Dict[str, Any]]) -> Tuple[str, List[Any]]:
        conditions = conditions or {}
        sql: List[str] = []
        where_sql, params = self._compile_where(conditions.get("WHERE"))
        if where_sql:
            sql.append("WHERE " + where_sql)
        order_sql = self._compile_order(conditions.get("ORDER"))
        if order_sql:
            sql.append(order_sql)
        limit = conditions.get("LIMIT")
        if limit is not None:
            offset, count = limit
            sql.append("LIMIT ? OFFSET ?")
            params = params + [int(count), int(offset)]
        return (" " + " ".join(sql)) if sql else "", params

    @staticmethod
    def _to_dict(row: sqlite3.Row) -> Dict[str, Any]:
        return {k: row[k] for k in row.keys()}

    # --- statements ---
    def select(self, table: str, columns: Union[str, List[str]] = "*", conditions: Optional[Dict[str, Any]] = None):
        tail, params = self._tail(conditions)
        sql = f"SELECT {self._compile_columns(columns)} FROM {_quote(table)}{tail};"
        cur = self.conn.cursor()
        try:
            cur.execute(sql, params)
            return [self._to_dict(r) for r in cur.fetchall()]
        finally:
            cur.close()

    def _insert_rows(self, table: str, rows: List[Dict[str, Any]]) -> int:
        cols: List[str] = []
        for r in rows:
            for k in r.keys():
                if k not in cols:
                    cols.append(k)
        self._ensure_table(table, sample={k: next((r[k] for r in rows if r.get(k) is not None), None) for k in cols})

        cols_q = ", ".join(_quote(c) for c in cols)
        params_q = ", ".join(["?"] * len(cols))
        values = [[r.get(c) for c in cols] for r in rows]

        cur = self.conn.cursor()
        try:
            sql = f"INSERT INTO {_quote(table)} ({cols_q}) VALUES ({params_q});"
            if len(values) == 1:
                cur.execute(sql, values[0])
            else:
                cur.executemany(sql, values)
            last = self.conn.execute("SELECT last_insert_rowid();").fetchone()[0]
            if last:
                self._last_ids[table] = int(last)
            return len(values)
        finally:
            cur.close()

    def insert(self, table: str, data: Union[Dict[str, Any], List[Dict[str, Any]]]) -> int:
        if isinstance(data, Mapping):
            return self._insert_rows(table, [dict(data)])
        rows = [dict(r) for r in data or []]
        if not rows:
            return 0
        with self.transaction():
            return self._insert_rows(table, rows)

    def update(self, table: str, data: Dict[str, Any], conditions: Optional[Dict[str, Any]] = None) -> int:
        if not data:
            return 0
        sets = ", ".join(f"{_quote(k)} = ?" for k in data.keys())
        where_sql, where_params = self._compile_where((conditions or {}).get("WHERE"))
        sql = f"UPDATE {_quote(table)} SET {sets}"
        if where_sql:
            sql += " WHERE " + where_sql
        cur = self.conn.cursor()
        try:
            cur.execute(sql + ";", list(data.values()) + where_params)
            return cur.rowcount or 0
        finally:
            cur.close()

    def delete(self, table: str, conditions: Optional[Dict[str, Any]] = None) -> int:
        where_sql, params = self._compile_where((conditions or {}).get("WHERE"))
        sql = f"DELETE FROM {_quote(table)}"
        if where_sql:
            sql += " WHERE " + where_sql
        cur = self.conn.cursor()
        try:
            cur.execute(sql + ";", params)
            return cur.rowcount or 0
        finally:
            cur.close()

    def count(self, table: str, conditions: Optional[Dict[str, Any]] = None) -> int:
        where_sql, params = self._compile_where((conditions or {}).get("WHERE"))
        sql = f"SELECT COUNT(*) FROM {_quote(table)}"
        if where_sql:
            sql += " WHERE " + where_sql
        cur = self.conn.cursor()
        try:
            cur.execute(sql + ";", params)
            row = cur.fetchone()
            return int(row[0]) if row else 0
        finally:
            cur.close()

    def get_last_id(self, table: str) -> Optional[int]:
        return self._last_ids.get(_safe_ident(table))
