from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID


def jsonify(v: Any) -> Any:
    if v is None:
        return None
    if isinstance(v, UUID):
        return str(v)
    if isinstance(v, Decimal):
        return float(v)
    if isinstance(v, (datetime, date)):
        return v.isoformat()
    # bson.ObjectId and friends
    if type(v).__name__ == "ObjectId":
        return str(v)
    return v


def normalize_row(row: Mapping[str, Any]) -> dict[str, Any]:
    d = dict(row)  # RowMapping / motor document -> dict
    return {k: jsonify(val) for k, val in d.items()}


def to_text(v: Any) -> str:
    """Значение для CSV/XML ячейки: None -> пустая строка."""
    v = jsonify(v)
    if v is None:
        return ""
    if isinstance(v, bool):
        return "true" if v else "false"
    return str(v)
