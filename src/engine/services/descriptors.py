from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath
from urllib.parse import urlsplit

from src.engine.core.constants import DB_PROTOCOL_ALIASES, FILE_FORMATS
from src.engine.core.enums import DescriptorKind
from src.engine.core.exceptions import ConfigurationError


@dataclass(frozen=True, slots=True)
class Descriptor:
    """Format (file) or protocol (database) a reader/writer is able to handle."""

    kind: DescriptorKind
    format: str

    @classmethod
    def file(cls, fmt: str) -> Descriptor:
        return cls(kind=DescriptorKind.FILE, format=fmt.lower())

    @classmethod
    def database(cls, protocol: str) -> Descriptor:
        return cls(kind=DescriptorKind.DATABASE, format=protocol.lower())

    @property
    def is_file(self) -> bool:
        return self.kind is DescriptorKind.FILE

    @property
    def is_database(self) -> bool:
        return self.kind is DescriptorKind.DATABASE


def file_extension(name: str) -> str:
    return PurePath(name).suffix.lstrip(".").lower()


def connection_protocol(token: str) -> str | None:
    """Canonical protocol of a connection string, or None if it has no known scheme."""
    scheme = urlsplit(token).scheme.lower()
    if not scheme:
        return None
    if scheme in DB_PROTOCOL_ALIASES:
        return DB_PROTOCOL_ALIASES[scheme]
    # dialect+driver, e.g. postgresql+asyncpg
    return DB_PROTOCOL_ALIASES.get(scheme.split("+", 1)[0])


def resolve(token: str) -> Descriptor:
    """Map a file path or a connection string to its descriptor.

    Connection-string schemes win over extensions, so
    ``postgres://host/db.csv`` is still a database.
    """
    if not isinstance(token, str) or not token.strip():
        raise ConfigurationError(f"Expected a file path or connection string, got {token!r}")

    t = token.strip()

    protocol = connection_protocol(t)
    if protocol is not None:
        return Descriptor.database(protocol)

    ext = file_extension(t)
    if ext in FILE_FORMATS:
        return Descriptor.file(ext)

    raise ConfigurationError(
        f"Cannot resolve {t!r}: expected one of extensions {sorted(FILE_FORMATS)} "
        f"or schemes {sorted(DB_PROTOCOL_ALIASES)}"
    )


def ensure_matches(expected: Descriptor, token: str, *, what: str) -> Descriptor:
    resolved = resolve(token)
    if resolved != expected:
        raise ConfigurationError(
            f"{what} {token!r} resolves to {resolved.kind.value}:{resolved.format}, "
            f"but the {what} driver handles {expected.kind.value}:{expected.format}"
        )
    return resolved
