from __future__ import annotations


class PipelineError(Exception):
    """Base error of the ETL engine."""


class ConfigurationError(PipelineError):
    """Invalid or mismatched source, sink, transform, schedule or chain arguments."""


class StateError(PipelineError):
    """Operation invoked in the wrong lifecycle state."""


class ExecutionError(PipelineError):
    """A reader, transform or writer failed while a run was in flight."""

    def __init__(self, message: str, *, batch_no: int | None = None) -> None:
        super().__init__(message)
        self.batch_no = batch_no


class PipelineNotFoundError(PipelineError):
    """No pipeline registered under the requested name."""
