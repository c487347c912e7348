from chainq.config.env import EnvLoader
from chainq.db.chain_query import ChainQuery
from chainq.handlers.error_handler import ErrorHandler
from chainq.managers.error_manager import ErrorManager
from chainq.managers.log_manager import LogManager


def test_env_typed_getters(monkeypatch):
    monkeypatch.setenv("CHAINQ_FLAG", "Yes")
    monkeypatch.setenv("CHAINQ_NUM", " 42 ")
    monkeypatch.setenv("CHAINQ_BAD", "forty")
    assert EnvLoader.get_bool("CHAINQ_FLAG") is True
    assert EnvLoader.get_bool("CHAINQ_MISSING", True) is True
    assert EnvLoader.get_int("CHAINQ_NUM") == 42
    assert EnvLoader.get_int("CHAINQ_BAD", 7) == 7
    assert EnvLoader.debug_info()["loaded"] is True


def test_database_config_shape(monkeypatch):
    monkeypatch.setattr("chainq.config.env.EnvLoader._loaded", True)
    monkeypatch.setenv("DB_DRIVER", " SQLite ")
    monkeypatch.setenv("SQLITE_PATH", "data/db/test.db")
    monkeypatch.delenv("SQLITE_AUTO_SCHEMA", raising=False)
    assert EnvLoader.database_config() == {
        "driver": "sqlite",
        "params": {"path": "data/db/test.db", "auto_schema": False},
    }

    monkeypatch.delenv("DB_DRIVER")
    assert EnvLoader.database_config() == {}


def test_log_manager_writes_file_and_memory(isolated_logs):
    LogManager.info("hello")
    LogManager.create("custom", "odd level")
    assert LogManager.read()[-2:] == [("INFO", "hello"), ("CUSTOM", "odd level")]

    with open(isolated_logs, encoding="utf-8") as f:
        content = f.read()
    assert "[INFO]" in content and "- hello" in content
    assert "[CUSTOM]" in content


def test_log_level_threshold(monkeypatch, isolated_logs):
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    LogManager.debug("quiet")
    LogManager.info("quiet too")
    LogManager.error("loud")
    assert LogManager.read() == [("ERROR", "loud")]
    with open(isolated_logs, encoding="utf-8") as f:
        assert "quiet" not in f.read()


def test_builder_logs_terminal_operations(recorder):
    ChainQuery(recorder).from_("users").where("id", 1).get()
    level, message = LogManager.read(last_only=True)
    assert level == "DEBUG"
    assert message.startswith("[ChainQuery] select table=users")
    assert "{'AND': {'id': 1}}" in message


def test_error_manager_records_and_logs():
    try:
        raise KeyError("missing")
    except KeyError as e:
        ErrorManager.create(e)

    assert isinstance(ErrorManager.read(), KeyError)
    level, message = LogManager.read(last_only=True)
    assert level == "ERROR"
    assert message.startswith("KeyError: 'missing'")
    assert "Traceback" in message

    ErrorManager.delete()
    assert ErrorManager.read() is None
    assert ErrorManager.read(last_only=False) == []


def test_error_handler_without_traceback():
    err = ValueError("x")
    assert ErrorHandler.format_error(err) == "ValueError: x"
    assert ErrorHandler.get_traceback(err) == ""
