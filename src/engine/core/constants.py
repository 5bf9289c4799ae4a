from __future__ import annotations

BATCH_SIZE = 1000

DEFAULT_OUTPUT_NAME = "etl_output"

FILE_FORMATS: set[str] = {"csv", "json", "xml"}

# connection-string scheme -> canonical protocol
DB_PROTOCOL_ALIASES: dict[str, str] = {
    "postgres": "postgres",
    "postgresql": "postgres",
    "mongodb": "mongodb",
    "mongodb+srv": "mongodb",
    "elasticsearch": "elasticsearch",
    "es": "elasticsearch",
}

DB_PROTOCOLS: set[str] = set(DB_PROTOCOL_ALIASES.values())
