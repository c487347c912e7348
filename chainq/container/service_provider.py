# =============================================================================
# File:       chainq/container/service_provider.py
# Purpose:    Registers the DB connection and ChainQuery in a Container
# Created:    2026-10-18
# =============================================================================

from typing import Any, Dict, Optional

from chainq.container.container import Container
from chainq.db.chain_query import ChainQuery
from chainq.db.connection import DBConnection
from chainq.managers.log_manager import LogManager

CONNECTION = "db.connection"
BUILDER = "chainq"


class DBServiceProvider:
    """
    - "db.connection" / DBConnection: one shared connection, created on first make()
    - "chainq" / ChainQuery: a new builder on every make(), bound to that connection

    Builders are not shared, so query state never leaks between callers.
    """

    def __init__(self, app: Container, config: Optional[Dict[str, Any]] = None):
        self.app = app
        self.config = config

    def register(self) -> None:
        config = self.config
        self.app.singleton(CONNECTION, lambda app: DBConnection(config) if config is not None else DBConnection.from_env())
        self.app.alias(CONNECTION, DBConnection)

        self.app.bind(BUILDER, lambda app: app.make(CONNECTION).query())
        self.app.alias(BUILDER, ChainQuery)

    def boot(self) -> None:
        LogManager.info("[DBServiceProvider] booted")
