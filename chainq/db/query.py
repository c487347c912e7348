# =============================================================================
# File:        chainq/db/query.py
# Purpose:     Query state, conditions, record variants + exceptions + capabilities
# Created:     2026-10-18
# =============================================================================

from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union, FrozenSet

from chainq.helpers.core_helper import normalize_keyword


# ---------- Exceptions ----------
class DBError(Exception):
    """Base error of the DB layer."""
    pass


class ConfigurationError(DBError):
    """Database configuration is missing, empty or names an unknown driver."""
    pass


class InvalidArgumentError(DBError, ValueError):
    """The caller passed data the builder refuses to forward."""
    pass


class CapabilityNotSupported(DBError):
    """The driver cannot render the request (operator, sort direction...)."""
    pass


# ---------- Capabilities ----------
@dataclass(frozen=True)
class DriverCapabilities:
    operators: FrozenSet[str] = frozenset()
    order_by: bool = False
    limit_offset: bool = False
    transactions: bool = False


# ---------- Operators / conditions ----------
LOGIC_AND = "AND"
LOGIC_OR = "OR"
KEY_TAG = " #"


class Operator(Enum):
    EQUALS = "="
    IN = "IN"
    NOT_IN = "NOT IN"
    ON = "ON"
    NOT_ON = "NOT ON"
    LIKE = "LIKE"
    NOT_LIKE = "NOT LIKE"
    RAW = "RAW"

    @classmethod
    def parse(cls, text: Any) -> "Operator":
        key = normalize_keyword(text)
        if key in ("", "=", "=="):
            return cls.EQUALS
        for op in cls:
            if op is not cls.RAW and op.value == key:
                return op
        return cls.RAW

    @property
    def is_special(self) -> bool:
        return self in (Operator.IN, Operator.NOT_IN, Operator.ON, Operator.NOT_ON)


@dataclass(frozen=True)
class Condition:
    operator: Operator
    value: Any = None
    raw: Optional[str] = None  # operator text for Operator.RAW, e.g. ">="

    @classmethod
    def build(cls, operator: Any, value: Any) -> "Condition":
        op = operator if isinstance(operator, Operator) else Operator.parse(operator)
        raw = normalize_keyword(operator) if op is Operator.RAW else None
        return cls(op, value, raw)

    @property
    def text(self) -> str:
        return self.raw if self.operator is Operator.RAW else self.operator.value

    def as_pair(self):
        """Wire form: bare scalar for equality, otherwise [operator, value]."""
        if self.operator is Operator.EQUALS:
            return self.value
        return [self.text, self.value]


@dataclass
class ConditionGroup:
    logic: str = LOGIC_AND
    conditions: List[Tuple[str, Condition]] = field(default_factory=list)

    def add(self, column: str, condition: Condition) -> "ConditionGroup":
        self.conditions.append((column, condition))
        return self

    def find(self, column: str) -> List[Condition]:
        return [cond for col, cond in self.conditions if col == column]

    def as_dict(self) -> Dict[str, Any]:
        """Repeated columns get a numbered key: {"age": [">", 26], "age #2": ["<", 35]}"""
        out: Dict[str, Any] = {}
        seen: Dict[str, int] = {}
        for col, cond in self.conditions:
            seen[col] = seen.get(col, 0) + 1
            key = col if seen[col] == 1 else f"{col}{KEY_TAG}{seen[col]}"
            out[key] = cond.as_pair()
        return out

    def __bool__(self) -> bool:
        return bool(self.conditions)


def column_of(key: str) -> str:
    """'age #2' -> 'age'"""
    if not isinstance(key, str):
        return key
    return key.split(KEY_TAG, 1)[0].strip()


def describe_where(groups: List[ConditionGroup]) -> List[Dict[str, Any]]:
    """[ConditionGroup("OR", [(col, cond), ...])] -> [{"OR": {"a": 1, "b": [">", 2]}}]"""
    return [{g.logic: g.as_dict()} for g in groups]


# ---------- QueryState ----------
@dataclass
class QueryState:
    select: Union[str, List[str], None] = None  # None = "*"
    table: Optional[str] = None
    where: List[ConditionGroup] = field(default_factory=list)
    order: Dict[str, str] = field(default_factory=dict)
    limit: Optional[Tuple[int, int]] = None  # (offset, count)

    def add_condition(self, column: str, condition: Condition, logic: str = LOGIC_AND) -> "QueryState":
        """
        Same logic as the last group -> merge into it.
        Different logic -> open a new group that carries the new logic.
        """
        logic = normalize_keyword(logic) or LOGIC_AND
        if self.where and self.where[-1].logic == logic:
            self.where[-1].add(column, condition)
        else:
            self.where.append(ConditionGroup(logic).add(column, condition))
        return self

    def has_where(self) -> bool:
        return any(self.where)

    def where_dicts(self) -> List[Dict[str, Any]]:
        return describe_where(self.where)

    def reset(self) -> "QueryState":
        self.select = None
        self.table = None
        self.where = []
        self.order = {}
        self.limit = None
        return self


# ---------- Record variants ----------
@dataclass
class SingleRecord:
    fields: Dict[str, Any]


@dataclass
class BatchRecords:
    records: List[Dict[str, Any]]


def as_records(data: Any) -> Union[SingleRecord, BatchRecords]:
    """
    Mapping -> SingleRecord, list/tuple of mappings -> BatchRecords.
    The variant is chosen by type, never by looking at the keys.
    """
    if isinstance(data, SingleRecord):
        data = data.fields
    elif isinstance(data, BatchRecords):
        data = data.records

    if isinstance(data, Mapping):
        if not data:
            raise InvalidArgumentError("Data cannot be empty.")
        return SingleRecord(dict(data))

    if isinstance(data, (list, tuple)):
        if not data:
            raise InvalidArgumentError("Data cannot be empty.")
        records = []
        for i, record in enumerate(data):
            if not isinstance(record, Mapping):
                raise InvalidArgumentError(
                    f"Each record must be a mapping (record #{i} is {type(record).__name__})."
                )
            records.append(dict(record))
        return BatchRecords(records)

    if not data:
        raise InvalidArgumentError("Data cannot be empty.")
    raise InvalidArgumentError(f"Unsupported data type: {type(data).__name__}")
