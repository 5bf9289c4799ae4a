from __future__ import annotations

import re
from typing import Any, Mapping

_NON_DIGITS = re.compile(r"[^0-9]")


def combine_names(r: Mapping[str, Any]) -> dict[str, Any]:
    """first_name + last_name -> full_name, phone -> digits only."""
    return {
        "id": int(r["id"]),
        "full_name": f"{r.get('first_name') or ''} {r.get('last_name') or ''}".strip(),
        "email_address": r.get("email_address"),
        "phone": _NON_DIGITS.sub("", str(r.get("phone") or "")),
        "city": r.get("city"),
        "country": r.get("country"),
    }


def lowercase_email(r: Mapping[str, Any]) -> dict[str, Any]:
    d = dict(r)
    if d.get("email_address"):
        d["email_address"] = str(d["email_address"]).strip().lower()
    return d
