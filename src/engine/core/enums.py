from __future__ import annotations

from enum import Enum


class PipelineStatus(str, Enum):
    EMPTY = "EMPTY"
    CONFIGURED = "CONFIGURED"
    COMPOSED = "COMPOSED"
    RUNNING = "RUNNING"
    IDLE = "IDLE"
    TERMINATED = "TERMINATED"


class RunStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class DescriptorKind(str, Enum):
    FILE = "file"
    DATABASE = "database"
