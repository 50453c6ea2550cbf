"""
Data storage domain.

Handles persistence of collected records to JSON Lines files or PostgreSQL.

Public API exports only the interfaces needed by other contexts.
Credentials and implementation details remain private.
"""

from clearscout.contexts.storage.database import (
    DatabaseConfig,
    DatabaseSink,
)
from clearscout.contexts.storage.getter import (
    get_record_sink,
)
from clearscout.contexts.storage.sink import (
    JsonLinesSink,
    RecordSink,
)

__all__ = [
    # Factory function (primary interface)
    "get_record_sink",
    # Generic interfaces
    "RecordSink",
    "DatabaseSink",
    "DatabaseConfig",
    "JsonLinesSink",
]
