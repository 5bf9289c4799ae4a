from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit


def asyncpg_url(connection_string: str) -> str:
    """postgres://... | postgresql://... | postgresql+psycopg://... -> postgresql+asyncpg://..."""
    parts = urlsplit(connection_string.strip())
    return urlunsplit(("postgresql+asyncpg",) + tuple(parts[1:]))


def elasticsearch_url(connection_string: str) -> str:
    """elasticsearch://host:9200 -> http://host:9200, elasticsearch+https://... -> https://..."""
    parts = urlsplit(connection_string.strip())
    scheme = "https" if parts.scheme.lower().endswith("+https") else "http"
    return urlunsplit((scheme, parts.netloc, "", "", ""))
