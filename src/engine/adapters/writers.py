from __future__ import annotations

import asyncio
import json
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Sequence

import polars as pl
from elasticsearch import AsyncElasticsearch
from motor.motor_asyncio import AsyncIOMotorClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.config import Settings, get_settings
from src.engine.services.db_urls import asyncpg_url, elasticsearch_url
from src.engine.services.descriptors import Descriptor
from src.engine.services.serialization import jsonify, normalize_row, to_text
from src.engine.services.sql_ident import validate_sql_ident

logger = logging.getLogger("etl_engine")

Record = Mapping[str, Any]


# ----------------------------
# Files
# ----------------------------

def _target_file(path: str, file_name: str) -> Path:
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory / file_name


class _EnvelopeFileWriter:
    """Файл вида HEAD + items + TAIL. counter == 0 -> перезапись, > 0 -> вставка перед TAIL.

    Документ остаётся валидным после каждого батча.
    """

    HEAD = b""
    TAIL = b""
    SEPARATOR = b""

    def _render(self, batch: Sequence[Record]) -> bytes:
        raise NotImplementedError

    def _write_sync(self, batch: Sequence[Record], target: Path, write_counter: int) -> None:
        if write_counter == 0 or not target.exists():
            with open(target, "wb") as f:
                f.write(self.HEAD + self._render(batch) + self.TAIL)
            return

        if not batch:
            return

        envelope = len(self.HEAD) + len(self.TAIL)
        with open(target, "r+b") as f:
            size = f.seek(0, 2)
            if size < envelope:
                raise ValueError(f"{target} is not a document written by {type(self).__name__}")
            if size == envelope:
                f.seek(len(self.HEAD))
                f.write(self._render(batch) + self.TAIL)
            else:
                f.seek(size - len(self.TAIL))
                f.write(self.SEPARATOR + self._render(batch) + self.TAIL)
            f.truncate()

    async def write(
        self,
        batch: Sequence[Record],
        path: str,
        file_name: str,
        write_counter: int,
    ) -> int:
        target = _target_file(path, file_name)
        await asyncio.to_thread(self._write_sync, batch, target, write_counter)
        return len(batch)

    async def close(self) -> None:
        return None


class JsonWriter(_EnvelopeFileWriter):
    descriptor = Descriptor.file("json")

    HEAD = b"[\n"
    TAIL = b"\n]\n"
    SEPARATOR = b",\n"

    def _render(self, batch: Sequence[Record]) -> bytes:
        lines = [json.dumps(normalize_row(r), ensure_ascii=False, default=str) for r in batch]
        return ",\n".join(lines).encode("utf-8")


_XML_BAD_CHARS = re.compile(r"[^A-Za-z0-9_.\-]")


def xml_tag(name: Any) -> str:
    tag = _XML_BAD_CHARS.sub("_", str(name)) or "_"
    if not (tag[0].isalpha() or tag[0] == "_") or tag.lower().startswith("xml"):
        tag = f"_{tag}"
    return tag


class XmlWriter(_EnvelopeFileWriter):
    descriptor = Descriptor.file("xml")

    HEAD = b'<?xml version="1.0" encoding="utf-8"?>\n<records>\n'
    TAIL = b"</records>\n"

    def _render(self, batch: Sequence[Record]) -> bytes:
        out: list[str] = []
        for r in batch:
            elem = ET.Element("record")
            for k, v in r.items():
                ET.SubElement(elem, xml_tag(k)).text = to_text(v)
            out.append("  " + ET.tostring(elem, encoding="unicode") + "\n")
        return "".join(out).encode("utf-8")


class CsvWriter:
    """Header is written on counter 0; appends reuse the header already in the file.

    A later batch carrying a column the header does not have fails the write.
    """

    descriptor = Descriptor.file("csv")

    @staticmethod
    def _fieldnames(batch: Sequence[Record]) -> list[str]:
        names: dict[str, None] = {}
        for r in batch:
            for k in r:
                names.setdefault(str(k), None)
        return list(names)

    def _write_sync(self, batch: Sequence[Record], target: Path, write_counter: int) -> None:
        appending = write_counter > 0 and target.exists() and target.stat().st_size > 0

        if appending:
            fieldnames = pl.read_csv(target, n_rows=1, infer_schema_length=0).columns
            unknown = [c for c in self._fieldnames(batch) if c not in fieldnames]
            if unknown:
                raise ValueError(
                    f"{target.name}: columns {unknown} are not in the CSV header {fieldnames}"
                )
        else:
            fieldnames = self._fieldnames(batch)

        rows = []
        for r in batch:
            d = {str(k): v for k, v in r.items()}
            rows.append({c: None if d.get(c) is None else to_text(d[c]) for c in fieldnames})
        df = pl.DataFrame(rows, schema={c: pl.String for c in fieldnames})

        with open(target, "ab" if appending else "wb") as f:
            df.write_csv(f, include_header=not appending)

    async def write(
        self,
        batch: Sequence[Record],
        path: str,
        file_name: str,
        write_counter: int,
    ) -> int:
        target = _target_file(path, file_name)
        await asyncio.to_thread(self._write_sync, batch, target, write_counter)
        return len(batch)

    async def close(self) -> None:
        return None


# ----------------------------
# Postgres
# ----------------------------

class PostgresWriter:
    """Bulk INSERT в таблицу; колонки берутся из ключей записей батча."""

    descriptor = Descriptor.database("postgres")

    def __init__(self) -> None:
        self._engines: dict[str, AsyncEngine] = {}

    def _engine(self, connection_string: str) -> AsyncEngine:
        engine = self._engines.get(connection_string)
        if engine is None:
            engine = create_async_engine(asyncpg_url(connection_string), pool_pre_ping=True)
            self._engines[connection_string] = engine
        return engine

    @staticmethod
    def build_insert(table: str, columns: Sequence[str]) -> str:
        table = validate_sql_ident(table, what="target table")
        cols = [validate_sql_ident(c, what="column") for c in columns]
        placeholders = ", ".join(f":c{i}" for i in range(len(cols)))
        return f"INSERT INTO {table} ({', '.join(cols)}) VALUES ({placeholders})"

    async def write(self, batch: Sequence[Record], connection_string: str, collection: str) -> int:
        if not batch:
            return 0

        columns: dict[str, None] = {}
        for r in batch:
            for k in r:
                columns.setdefault(str(k), None)
        cols = list(columns)

        insert_sql = text(self.build_insert(collection, cols))
        payload = [{f"c{i}": r.get(c) for i, c in enumerate(cols)} for r in batch]

        async with self._engine(connection_string).begin() as conn:
            await conn.execute(insert_sql, payload)
        return len(payload)

    async def close(self) -> None:
        engines, self._engines = self._engines, {}
        for engine in engines.values():
            await engine.dispose()


# ----------------------------
# MongoDB
# ----------------------------

class MongoWriter:
    descriptor = Descriptor.database("mongodb")

    def __init__(self, default_database: str = "etl") -> None:
        self._default_database = default_database
        self._clients: dict[str, AsyncIOMotorClient] = {}

    def _client(self, connection_string: str) -> AsyncIOMotorClient:
        client = self._clients.get(connection_string)
        if client is None:
            client = AsyncIOMotorClient(connection_string)
            self._clients[connection_string] = client
        return client

    async def write(self, batch: Sequence[Record], connection_string: str, collection: str) -> int:
        if not batch:
            return 0

        db = self._client(connection_string).get_default_database(default=self._default_database)
        # insert_many mutates documents (adds _id)
        docs = [dict(r) for r in batch]
        result = await db[collection].insert_many(docs, ordered=True)
        return len(result.inserted_ids)

    async def close(self) -> None:
        clients, self._clients = self._clients, {}
        for client in clients.values():
            client.close()


# ----------------------------
# Elasticsearch
# ----------------------------

@dataclass(frozen=True, slots=True)
class ESConfig:
    user: str | None
    password: str | None
    timeout: int = 10


def load_es_config(settings: Settings | None = None) -> ESConfig:
    s = settings or get_settings()
    return ESConfig(
        user=s.elasticsearch_user or None,
        password=s.elasticsearch_password or None,
        timeout=s.elasticsearch_timeout,
    )


class ElasticsearchWriter:
    """Index rows into Elasticsearch with the bulk API; `collection` is the index name.

    A row's `id` field, if present, becomes the document _id.
    """

    descriptor = Descriptor.database("elasticsearch")

    id_field = "id"

    def __init__(self, cfg: ESConfig | None = None) -> None:
        self._cfg = cfg or load_es_config()
        self._clients: dict[str, AsyncElasticsearch] = {}
        self._known_indices: set[tuple[str, str]] = set()

    def _client(self, connection_string: str) -> AsyncElasticsearch:
        client = self._clients.get(connection_string)
        if client is None:
            auth = None
            if self._cfg.user:
                auth = (self._cfg.user, self._cfg.password or "")
            client = AsyncElasticsearch(
                hosts=[elasticsearch_url(connection_string)],
                basic_auth=auth,
                request_timeout=self._cfg.timeout,
            )
            self._clients[connection_string] = client
        return client

    async def _ensure_index(self, client: AsyncElasticsearch, connection_string: str, index: str) -> None:
        key = (connection_string, index)
        if key in self._known_indices:
            return
        if not await client.indices.exists(index=index):
            await client.indices.create(index=index, mappings={"dynamic": True})
        self._known_indices.add(key)

    async def write(self, batch: Sequence[Record], connection_string: str, collection: str) -> int:
        if not batch:
            return 0

        index = collection.strip().lower()
        client = self._client(connection_string)
        await self._ensure_index(client, connection_string, index)

        ops: list[dict] = []
        for raw in batch:
            r = normalize_row(raw)
            action: dict[str, Any] = {"_index": index}
            if r.get(self.id_field) is not None:
                action["_id"] = str(jsonify(r[self.id_field]))
            ops.append({"index": action})
            ops.append(r)

        resp = await client.bulk(operations=ops, refresh=False)

        if resp.get("errors"):
            items = resp.get("items") or []
            first_err = None
            for it in items:
                v = it.get("index") or it.get("create") or it.get("update")
                if v and v.get("error"):
                    first_err = v
                    break
            raise RuntimeError(f"Elasticsearch bulk errors=True. first_error={first_err!r}")

        return len(batch)

    async def close(self) -> None:
        clients, self._clients = self._clients, {}
        self._known_indices.clear()
        for client in clients.values():
            await client.close()
