import re

from src.engine.core.exceptions import ConfigurationError

_FIELD_RE = re.compile(r"^[0-9*/,\-]+$")

ALLOWED_FIELD_COUNTS = (5, 6)


def validate_cron(expr: str) -> str:
    """Check cron expression shape: 5 or 6 fields of digits and `* / - ,`.

    Timing semantics are left to the scheduler.
    """
    if not isinstance(expr, str):
        raise ConfigurationError(f"Cron expression must be a string, got {type(expr).__name__}")

    fields = expr.split()
    if len(fields) not in ALLOWED_FIELD_COUNTS:
        raise ConfigurationError(
            f"Invalid cron expression {expr!r}: expected 5 or 6 fields, got {len(fields)}"
        )

    for f in fields:
        if not _FIELD_RE.fullmatch(f):
            raise ConfigurationError(f"Invalid cron expression {expr!r}: bad field {f!r}")

    return " ".join(fields)
