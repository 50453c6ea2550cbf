"""Tests for record sinks and the canonical schema."""

import json
from pathlib import Path

import pandas as pd
import pytest

from clearscout.contexts.collection.schema import CanonicalSchema, JobRecord, SourceStrategy
from clearscout.contexts.storage import DatabaseConfig, DatabaseSink, JsonLinesSink, get_record_sink

SCHEMA_PATH = Path(__file__).parent.parent / "config" / "data_schema.yaml"


def test_json_lines_sink_appends_one_object_per_record(tmp_path):
    path = tmp_path / "out" / "records.jsonl"

    with JsonLinesSink(path) as sink:
        sink.write(JobRecord(id="1", url="https://example.test/job/1", title="Analyst"))
        sink.write(JobRecord(id="2", title="Engineer", source_strategy=SourceStrategy.SITEMAP))

    lines = path.read_text(encoding="utf-8").splitlines()
    assert sink.count == 2
    assert [json.loads(line)["title"] for line in lines] == ["Analyst", "Engineer"]
    assert json.loads(lines[1])["source_strategy"] == "sitemap"


def test_get_record_sink_jsonl(tmp_path):
    sink = get_record_sink("jsonl", output_path=tmp_path / "records.jsonl")
    assert isinstance(sink, JsonLinesSink)


def test_get_record_sink_unknown_backend():
    with pytest.raises(ValueError, match="Unsupported sink backend"):
        get_record_sink("mongodb")


def test_canonical_schema_covers_every_record_field():
    schema = CanonicalSchema(SCHEMA_PATH)
    assert set(schema.field_names) == set(JobRecord().to_dict())
    assert schema.column_names()["id"] == "job_id"
    assert schema.field_info("url")["type"] == "TEXT"
    with pytest.raises(KeyError):
        schema.field_info("salary_currency")


def test_canonical_schema_row_uses_column_names():
    row = CanonicalSchema(SCHEMA_PATH).to_row(JobRecord(id="7", title="Analyst"))
    assert row["job_id"] == "7"
    assert row["title"] == "Analyst"
    assert row["source_strategy"] == "api"


def test_database_config_requires_environment(monkeypatch):
    for key in ("POSTGRES_PORT", "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_HOST"):
        monkeypatch.delenv(key, raising=False)
    with pytest.raises(EnvironmentError, match="POSTGRES_HOST"):
        DatabaseConfig.from_env()


def test_database_config_from_environment(monkeypatch):
    monkeypatch.setenv("POSTGRES_PORT", "5433")
    monkeypatch.setenv("POSTGRES_USER", "scout")
    monkeypatch.setenv("POSTGRES_PASSWORD", "secret")
    monkeypatch.setenv("POSTGRES_HOST", "db")

    config = DatabaseConfig.from_env(name="jobs")

    assert config.port == 5433
    assert config.connection_string == "postgresql+psycopg2://scout:secret@db:5433/jobs"


class InMemoryDatabaseSink(DatabaseSink):
    @staticmethod
    def _db_exists(config):
        return True

    @staticmethod
    def _create_db(config):
        raise AssertionError("database already exists")


def test_database_sink_buffers_and_renames_columns(monkeypatch):
    written = []

    def fake_to_sql(df, name, con, if_exists, index):
        written.append((name, list(df.columns), len(df), if_exists))

    monkeypatch.setattr(pd.DataFrame, "to_sql", fake_to_sql)
    config = DatabaseConfig(host="db", port=5432, user="u", password="p", name="jobs")
    sink = InMemoryDatabaseSink.from_config(config, ensure_exists=True, schema=CanonicalSchema(SCHEMA_PATH), flush_every=2)
    sink._engine = object()

    sink.write(JobRecord(id="1", title="Analyst"))
    assert written == []
    sink.write(JobRecord(id="2", title="Engineer"))
    sink.write(JobRecord(id="3", title="Architect"))
    sink.flush()

    assert [(name, rows, mode) for name, _, rows, mode in written] == [("listings", 2, "append"), ("listings", 1, "append")]
    assert "job_id" in written[0][1]
    assert "id" not in written[0][1]
