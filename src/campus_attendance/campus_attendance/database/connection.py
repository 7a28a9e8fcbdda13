from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Mapping

import mysql.connector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str = "campus_attendance"

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "DBConfig":
        """Build from a settings DB_CONFIG dict."""
        return cls(
            host=str(raw.get("host", "localhost")),
            port=int(raw.get("port", 3306)),
            user=str(raw.get("user", "root")),
            password=str(raw.get("password", "")),
            database=str(raw.get("database", "campus_attendance")),
        )

    def describe(self) -> str:
        return f"{self.user}@{self.host}:{self.port}/{self.database}"


class DatabaseConnection:
    """Connection factory shared by every MySQL repository.

    Each repository call opens a short-lived connection; one factory exists per DBConfig.
    """

    _instances: ClassVar[dict[DBConfig, "DatabaseConnection"]] = {}

    def __init__(self, config: DBConfig):
        self._config = config

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if config not in cls._instances:
            cls._instances[config] = DatabaseConnection(config)
        return cls._instances[config]

    @property
    def config(self) -> DBConfig:
        return self._config

    def connect(self, *, with_database: bool = True):
        kwargs = dict(
            host=self._config.host,
            port=self._config.port,
            user=self._config.user,
            password=self._config.password,
        )
        if with_database:
            kwargs["database"] = self._config.database
        try:
            return mysql.connector.connect(**kwargs)
        except mysql.connector.Error:
            logger.error("Cannot connect to MySQL at %s", self._config.describe())
            raise
