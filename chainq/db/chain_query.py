# =============================================================================
# File:        chainq/db/chain_query.py
# Purpose:     Fluent ChainQuery builder: accumulates SELECT/FROM/WHERE/ORDER/LIMIT
#              and forwards the request map to the injected driver
# Created:     2026-10-18
# =============================================================================

from __future__ import annotations
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Union

from chainq.db.base_driver import BaseDBDriver
from chainq.db.query import (
    BatchRecords,
    Condition,
    ConditionGroup,
    InvalidArgumentError,
    LOGIC_AND,
    LOGIC_OR,
    Operator,
    QueryState,
    as_records,
    column_of,
    describe_where,
)
from chainq.helpers.core_helper import is_mapping, is_value_list
from chainq.managers.log_manager import LogManager

_MISSING = object()

_WILDCARDS = {
    "left": "%{}",
    "right": "{}%",
    "both": "%{}%",
}


def _log(level: str, msg: str):
    getattr(LogManager, level)(f"[ChainQuery] {msg}")


def _reject(message: str):
    _log("warning", message)
    raise InvalidArgumentError(message)


class ChainQuery:
    """
    One builder per scope (request, job, test). Every chain method returns self.

        rows = (ChainQuery(driver)
                .select(["id", "name"])
                .from_("users")
                .where("age", ">", 18)
                .or_where("role", ["admin", "owner"])
                .order_by("id", "DESC")
                .limit(10, 5)
                .get())

    State is kept after get/insert/update/delete; call clear() to start over.
    """

    def __init__(self, driver: BaseDBDriver):
        self._db = driver
        self._q = QueryState()

    @property
    def driver(self) -> BaseDBDriver:
        return self._db

    @property
    def state(self) -> QueryState:
        return self._q

    # ------------------------------------------------------------------ #
    # SELECT / FROM
    # ------------------------------------------------------------------ #

    def select(self, columns: Union[str, List[str]] = "*") -> "ChainQuery":
        self._q.select = list(columns) if isinstance(columns, (list, tuple)) else columns
        return self

    def from_(self, table: str) -> "ChainQuery":
        self._q.table = table
        return self

    table = from_

    # ------------------------------------------------------------------ #
    # WHERE
    # ------------------------------------------------------------------ #

    def where(self, column: Union[str, Mapping], operator: Any = _MISSING, value: Any = _MISSING) -> "ChainQuery":
        return self._where(column, operator, value, LOGIC_AND)

    def or_where(self, column: Union[str, Mapping], operator: Any = _MISSING, value: Any = _MISSING) -> "ChainQuery":
        return self._where(column, operator, value, LOGIC_OR)

    def _where(self, column, operator, value, logic: str) -> "ChainQuery":
        if is_mapping(column):
            if operator is not _MISSING or value is not _MISSING:
                _reject("A condition mapping takes no separate operator or value.")
            return self._where_conditions(column, logic)

        if not isinstance(column, str) or not column:
            _reject(f"Column must be a non-empty string, got {column!r}.")

        # where("a") -> a IS NULL, where("a", 1) -> a = 1
        if operator is _MISSING:
            operator, value = "=", None
        elif value is _MISSING:
            operator, value = "=", operator

        op = operator if isinstance(operator, Operator) else Operator.parse(operator)
        if op.is_special:
            return self._special_condition(column, op, value, logic)

        if is_value_list(value):
            return self._special_condition(column, Operator.IN, value, logic)

        self._q.add_condition(column, Condition.build(operator, value), logic)
        return self

    def _where_conditions(self, conditions: Mapping, logic: str) -> "ChainQuery":
        """
        {"a": 1, "b": (">", 2), "c": [1, 2]} -> equality, (operator, value) pair, IN.
        A repeated column takes a numbered key: {"age": (">", 26), "age #2": ("<", 35)}.
        """
        for column, condition in conditions.items():
            if isinstance(condition, Condition):
                self._q.add_condition(column_of(column), condition, logic)
            elif isinstance(condition, tuple):
                if len(condition) != 2:
                    _reject(f"Condition for '{column}' must be an (operator, value) pair.")
                self._where(column_of(column), condition[0], condition[1], logic)
            else:
                self._where(column_of(column), "=", condition, logic)
        return self

    def _special_condition(self, column: str, op: Operator, value: Any, logic: str) -> "ChainQuery":
        if op in (Operator.ON, Operator.NOT_ON):
            if not is_mapping(value):
                _reject(f"Value for {op.value} must be a mapping, got {type(value).__name__}.")
            self._q.add_condition(column, Condition(op, dict(value)), logic)
        else:
            if not is_value_list(value):
                _reject(f"Value for {op.value} must be a list of values, got {type(value).__name__}.")
            self._q.add_condition(column, Condition(op, list(value)), logic)
        return self

    # ------------------------------------------------------------------ #
    # LIKE helpers
    # ------------------------------------------------------------------ #

    def like(self, column: str, value: str, position: Optional[str] = "both") -> "ChainQuery":
        return self._like(column, value, position, LOGIC_AND)

    def not_like(self, column: str, value: str, position: Optional[str] = "both") -> "ChainQuery":
        return self._like(column, value, position, LOGIC_AND, negate=True)

    def or_like(self, column: str, value: str, position: Optional[str] = "both") -> "ChainQuery":
        return self._like(column, value, position, LOGIC_OR)

    def or_not_like(self, column: str, value: str, position: Optional[str] = "both") -> "ChainQuery":
        return self._like(column, value, position, LOGIC_OR, negate=True)

    def _like(self, column: str, value: str, position: Optional[str], logic: str, negate: bool = False) -> "ChainQuery":
        pattern = _WILDCARDS.get((position or "both").lower())
        if pattern is None:
            _reject(f"Unknown wildcard position '{position}' (use left, right or both).")
        op = Operator.NOT_LIKE if negate else Operator.LIKE
        self._q.add_condition(column, Condition(op, pattern.format(value)), logic)
        return self

    # ------------------------------------------------------------------ #
    # ORDER / LIMIT
    # ------------------------------------------------------------------ #

    def order_by(self, column: str, direction: str = "ASC") -> "ChainQuery":
        self._q.order = {column: direction}
        return self

    def limit(self, count: int, offset: int = 0) -> "ChainQuery":
        self._q.limit = (int(offset), int(count))
        return self

    # ------------------------------------------------------------------ #
    # Terminal: reads
    # ------------------------------------------------------------------ #

    def to_request(self) -> Dict[str, Any]:
        request: Dict[str, Any] = {}
        if self._q.where:
            request["WHERE"] = list(self._q.where)
        if self._q.order:
            request["ORDER"] = dict(self._q.order)
        if self._q.limit is not None:
            request["LIMIT"] = self._q.limit
        return request

    def get(self):
        request = self.to_request()
        columns = self._q.select if self._q.select is not None else "*"
        _log("debug", f"select table={self._q.table} columns={columns} request={self._describe(request)}")
        return self._db.select(self._q.table, columns, request)

    def first(self):
        request = self.to_request()
        offset = self._q.limit[0] if self._q.limit else 0
        request["LIMIT"] = (offset, 1)
        columns = self._q.select if self._q.select is not None else "*"
        _log("debug", f"first table={self._q.table} request={self._describe(request)}")
        rows = self._db.select(self._q.table, columns, request)
        return rows[0] if rows else None

    def count(self) -> int:
        request = {"WHERE": list(self._q.where)} if self._q.where else {}
        _log("debug", f"count table={self._q.table} request={self._describe(request)}")
        return self._db.count(self._q.table, request)

    def clear(self) -> "ChainQuery":
        self._q.reset()
        return self

    # ------------------------------------------------------------------ #
    # Terminal: writes
    # ------------------------------------------------------------------ #

    def insert(self, table: str, data):
        try:
            records = as_records(data)
        except InvalidArgumentError as e:
            _log("warning", str(e))
            raise

        if isinstance(records, BatchRecords):
            _log("debug", f"insert table={table} batch={len(records.records)}")
            return self._db.insert(table, records.records)

        _log("debug", f"insert table={table} fields={list(records.fields)}")
        return self._db.insert(table, records.fields)

    def delete(self, table: str) -> int:
        if not self._q.has_where():
            _reject("DELETE requires a WHERE clause to prevent accidental data loss.")
        request = {"WHERE": list(self._q.where)}
        _log("debug", f"delete table={table} request={self._describe(request)}")
        return self._db.delete(table, request)

    def update(self, table: str, data, primary_key: Optional[str] = None) -> int:
        try:
            records = as_records(data)
        except InvalidArgumentError as e:
            _log("warning", str(e))
            raise

        has_where = self._q.has_where()
        if not has_where and primary_key is None:
            _reject("UPDATE requires either a WHERE clause or a primary key field name.")

        if isinstance(records, BatchRecords):
            return self._update_batch(table, records.records, primary_key)

        fields = records.fields
        if has_where:
            request = {"WHERE": list(self._q.where)}
        else:
            if primary_key not in fields:
                _reject(f"Record for update must contain the primary key field '{primary_key}'.")
            fields = dict(fields)
            request = {"WHERE": [ConditionGroup(LOGIC_AND).add(primary_key, Condition(Operator.EQUALS, fields.pop(primary_key)))]}
        _log("debug", f"update table={table} fields={list(fields)} request={self._describe(request)}")
        return self._db.update(table, fields, request)

    def _update_batch(self, table: str, records: List[Dict[str, Any]], primary_key: Optional[str]) -> int:
        if primary_key is None:
            _reject("Batch UPDATE requires a primary key field name.")
        for i, record in enumerate(records):
            if primary_key not in record:
                _reject(f"Each record for batch update must contain the primary key field '{primary_key}' (record #{i}).")

        _log("debug", f"update table={table} batch={len(records)} primary_key={primary_key}")
        affected = 0
        with self._db.transaction():
            for record in records:
                fields = dict(record)
                pk_value = fields.pop(primary_key)
                request = {"WHERE": [ConditionGroup(LOGIC_AND).add(primary_key, Condition(Operator.EQUALS, pk_value))]}
                affected += int(self._db.update(table, fields, request) or 0)
        return affected

    # ------------------------------------------------------------------ #

    @staticmethod
    def _describe(request: Dict[str, Any]) -> Dict[str, Any]:
        out = dict(request)
        if "WHERE" in out:
            out["WHERE"] = describe_where(out["WHERE"])
        return out
