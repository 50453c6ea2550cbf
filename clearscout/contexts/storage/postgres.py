"""PostgreSQL backend: database bootstrap through psycopg2 plus the concrete sink."""

import psycopg2
from psycopg2 import sql

from clearscout.contexts.storage.database import DatabaseConfig, DatabaseSink


def _maintenance_connection(config: DatabaseConfig):
    # The target database may not exist yet, so talk to the default one.
    return psycopg2.connect(
        dbname="postgres",
        user=config.user,
        password=config.password,
        host=config.host,
        port=config.port,
    )


def db_exists(config: DatabaseConfig) -> bool:
    """True if the database named by config.name is present on the server."""
    conn = _maintenance_connection(config)
    try:
        with conn.cursor() as cursor:
            cursor.execute("SELECT 1 FROM pg_database WHERE datname = %s;", (config.name,))
            return cursor.fetchone() is not None
    finally:
        conn.close()


def create_db(config: DatabaseConfig) -> None:
    conn = _maintenance_connection(config)
    # CREATE DATABASE cannot run inside a transaction block
    conn.autocommit = True
    try:
        with conn.cursor() as cursor:
            cursor.execute(sql.SQL("CREATE DATABASE {};").format(sql.Identifier(config.name)))
    finally:
        conn.close()


class PostgreSQLSink(DatabaseSink):
    """Appends job records to a PostgreSQL table, creating the database on request."""

    @staticmethod
    def _db_exists(config: DatabaseConfig) -> bool:
        return db_exists(config)

    @staticmethod
    def _create_db(config: DatabaseConfig) -> None:
        create_db(config)
