"""
Append-only record sinks.

A sink receives finished JobRecords one at a time. Ordering across concurrent
batches is not guaranteed, so sinks must not rely on it.
"""

import json
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()
OUTPUT_PATH = Path(os.getenv("OUTPUT_PATH", "outs/records.jsonl"))


class RecordSink(ABC):
    """Abstract base class for record persistence."""

    @abstractmethod
    def write(self, record) -> None:
        """Persist one JobRecord."""
        pass

    def close(self) -> None:
        """Flush and release resources. Safe to call more than once."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class JsonLinesSink(RecordSink):
    """Append each record to a JSON Lines file, one object per line."""

    def __init__(self, path: Path = OUTPUT_PATH):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.count = 0
        self._lock = threading.Lock()

    def write(self, record) -> None:
        line = json.dumps(record.to_dict(), ensure_ascii=False)
        with self._lock:
            # Keep one JSON object per line so downstream tools can stream the file.
            with open(self.path, "a", encoding="utf-8") as handle:
                handle.write(line + "\n")
            self.count += 1
