import sys
from contextlib import contextmanager
from pathlib import Path
import pytest

# Make the project importable when tests run from any working directory
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from chainq.db.base_driver import BaseDBDriver
from chainq.db.query import DriverCapabilities
from chainq.db.sqlite_driver import SQLiteDriver
from chainq.handlers.log_handler import LogHandler
from chainq.managers.error_manager import ErrorManager
from chainq.managers.log_manager import LogManager


@pytest.fixture(autouse=True)
def isolated_logs(tmp_path, monkeypatch):
    """Every test logs into its own file, DEBUG and up, without dev-mode printing."""
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    LogHandler.log_file_path = str(tmp_path / "logs" / "test.log")
    LogManager.initialize()
    ErrorManager.initialize(dev_mode=False)
    ErrorManager.delete()
    yield LogHandler.log_file_path
    LogHandler.log_file_path = None


class RecordingDriver(BaseDBDriver):
    """Remembers every call; results are configurable per method."""

    def __init__(self, rows=None, affected=1):
        self.calls = []
        self.rows = rows if rows is not None else [{"id": 1}]
        self.affected = affected
        self.transactions = []

    def capabilities(self):
        return DriverCapabilities(transactions=True)

    @contextmanager
    def transaction(self):
        self.transactions.append("begin")
        try:
            yield self
        except Exception:
            self.transactions.append("rollback")
            raise
        self.transactions.append("commit")

    def select(self, table, columns, conditions=None):
        self.calls.append(("select", table, columns, conditions))
        return self.rows

    def insert(self, table, data):
        self.calls.append(("insert", table, data))
        return len(data) if isinstance(data, list) else 1

    def update(self, table, data, conditions=None):
        self.calls.append(("update", table, data, conditions))
        return self.affected

    def delete(self, table, conditions=None):
        self.calls.append(("delete", table, conditions))
        return self.affected

    def count(self, table, conditions=None):
        self.calls.append(("count", table, conditions))
        return len(self.rows)

    def get_last_id(self, table):
        return None


@pytest.fixture
def recorder():
    return RecordingDriver()


USERS = [
    {"name": "Ana", "email": "ana@example.com", "age": 30, "role": "admin"},
    {"name": "Boris", "email": "boris@example.com", "age": 25, "role": "user"},
    {"name": "Ceca", "email": "ceca@example.com", "age": 27, "role": "user"},
    {"name": "Dejan", "email": None, "age": 41, "role": "owner"},
]


@pytest.fixture
def sqlite_driver():
    """In-memory SQLite with a seeded `users` table."""
    driver = SQLiteDriver(path=":memory:")
    driver.conn.execute(
        'CREATE TABLE "users" ('
        "id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, email TEXT, age INTEGER, role TEXT);"
    )
    driver.insert("users", [dict(u) for u in USERS])
    yield driver
    driver.close()
