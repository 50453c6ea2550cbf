"""
SQL record sinks for clearscout.

Records are buffered and appended with pandas; the engine and the database
dialect are supplied by subclasses (see postgres.py).
"""

import os
from abc import abstractmethod
from dataclasses import dataclass
from typing import Optional

import pandas as pd
from dotenv import load_dotenv
from sqlalchemy import create_engine

from clearscout.contexts.collection.schema import CanonicalSchema
from clearscout.contexts.storage.sink import RecordSink

load_dotenv()

# POSTGRES_<KEY> variables DatabaseConfig.from_env cannot do without
REQUIRED_ENV_KEYS = ("host", "port", "user", "password")


@dataclass
class DatabaseConfig:
    """Where records go: server credentials, database name and target table."""

    host: str
    port: int
    user: str
    password: str
    name: str
    table: str = "listings"

    @classmethod
    def from_env(cls, name: Optional[str] = None, table: str = "listings") -> "DatabaseConfig":
        """
        Read POSTGRES_HOST/PORT/USER/PASSWORD (and POSTGRES_DB unless name is given).

        Raises:
            EnvironmentError: If any required variable is unset
        """
        settings = {key: os.getenv(f"POSTGRES_{key.upper()}") for key in REQUIRED_ENV_KEYS}
        missing = [f"POSTGRES_{key.upper()}" for key, value in settings.items() if value is None]
        if missing:
            raise EnvironmentError(
                f"Missing database setting(s) {', '.join(missing)}; set them in the environment or .env"
            )

        settings["port"] = int(settings["port"])
        return cls(name=name or os.getenv("POSTGRES_DB", "clearscout"), table=table, **settings)

    @property
    def connection_string(self) -> str:
        """SQLAlchemy URL for the psycopg2 driver."""
        return f"postgresql+psycopg2://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"


class DatabaseSink(RecordSink):
    """
    Abstract base class for SQL sinks.

    Buffers records and appends them with pandas ``DataFrame.to_sql``, renaming
    fields to the canonical schema's column names.
    """

    def __init__(self, config: DatabaseConfig, schema: CanonicalSchema = None, flush_every: int = 25):
        """
        Args:
            config: Database config
            schema: Canonical schema for column names (default: config/data_schema.yaml)
            flush_every: Number of buffered records that triggers a write
        """
        self.config = config
        self.schema = schema or CanonicalSchema()
        self.flush_every = flush_every
        self.buffer = []
        self._engine = None

    @property
    def engine(self):
        if self._engine is None:
            self._engine = create_engine(self.config.connection_string)
        return self._engine

    def write(self, record) -> None:
        self.buffer.append(self.schema.to_row(record))
        if len(self.buffer) >= self.flush_every:
            self.flush()

    def flush(self) -> None:
        """Append buffered records to the table."""
        if not self.buffer:
            return
        df = pd.DataFrame(self.buffer, columns=list(self.schema.column_names().values()))
        df.to_sql(self.config.table, self.engine, if_exists="append", index=False)
        self.buffer = []

    def close(self) -> None:
        self.flush()
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    @staticmethod
    @abstractmethod
    def _db_exists(config: DatabaseConfig) -> bool:
        pass

    @staticmethod
    @abstractmethod
    def _create_db(config: DatabaseConfig) -> None:
        pass

    @classmethod
    def from_config(cls, config: DatabaseConfig, ensure_exists: bool = False, **kwargs):
        if ensure_exists and not cls._db_exists(config):
            cls._create_db(config)
        return cls(config, **kwargs)
