import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from clearscout.contexts.storage.database import DatabaseConfig
from clearscout.contexts.storage.postgres import PostgreSQLSink
from clearscout.contexts.storage.sink import OUTPUT_PATH, JsonLinesSink, RecordSink

# Load environment variables from .env file
load_dotenv()
SINK_BACKEND = os.getenv("SINK_BACKEND", "jsonl")

ALLOWED_BACKENDS = ["jsonl", "postgres"]


def get_record_sink(
    backend: Optional[str] = None,
    output_path: Path = OUTPUT_PATH,
    db_config: Optional[DatabaseConfig] = None,
) -> RecordSink:
    """
    Factory function to create the RecordSink for a backend.

    Args:
        backend: "jsonl" or "postgres" (default: SINK_BACKEND env var, else "jsonl")
        output_path: JSON Lines file for the jsonl backend
        db_config: Connection details for the postgres backend (default: from environment)

    Returns:
        RecordSink implementation for the backend

    Raises:
        ValueError: If the backend is unsupported
    """
    backend = (backend or SINK_BACKEND).lower()

    if backend == "jsonl":
        return JsonLinesSink(output_path)
    elif backend == "postgres":
        return PostgreSQLSink.from_config(db_config or DatabaseConfig.from_env(), ensure_exists=True)
    else:
        raise ValueError(
            f"Unsupported sink backend: '{backend}'. "
            f"Supported backends: {', '.join(ALLOWED_BACKENDS)}"
        )
