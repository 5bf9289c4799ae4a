from __future__ import annotations

from .constants import BATCH_SIZE, DEFAULT_OUTPUT_NAME
from .enums import DescriptorKind, PipelineStatus, RunStatus
from .exceptions import (
    ConfigurationError,
    ExecutionError,
    PipelineError,
    PipelineNotFoundError,
    StateError,
)

__all__ = [
    "BATCH_SIZE",
    "DEFAULT_OUTPUT_NAME",
    "DescriptorKind",
    "PipelineStatus",
    "RunStatus",
    "PipelineError",
    "ConfigurationError",
    "StateError",
    "ExecutionError",
    "PipelineNotFoundError",
]
