from __future__ import annotations

import asyncio
import itertools
import json
import logging
import xml.etree.ElementTree as ET
from typing import Any, AsyncIterator, Iterator

import polars as pl
from motor.motor_asyncio import AsyncIOMotorClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from src.engine.core.constants import BATCH_SIZE
from src.engine.services.db_urls import asyncpg_url
from src.engine.services.descriptors import Descriptor
from src.engine.services.serialization import normalize_row
from src.engine.services.sql_ident import validate_sql_ident

logger = logging.getLogger("etl_engine")

Record = dict[str, Any]

DEFAULT_XML_RECORD_TAG = "record"
DEFAULT_MONGO_DATABASE = "etl"


# ----------------------------
# Files
# ----------------------------

async def _iterate_in_thread(rows: Iterator[Record], chunk_size: int = BATCH_SIZE) -> AsyncIterator[Record]:
    """Drive a blocking row iterator from a worker thread, one chunk at a time."""

    def take() -> list[Record]:
        return list(itertools.islice(rows, chunk_size))

    try:
        while True:
            chunk = await asyncio.to_thread(take)
            if not chunk:
                return
            for row in chunk:
                yield row
    finally:
        close = getattr(rows, "close", None)
        if close is not None:
            close()


class CsvReader:
    """All columns are read as strings; empty cells become None."""

    descriptor = Descriptor.file("csv")

    @staticmethod
    def _load(location: str) -> pl.DataFrame:
        # infer_schema_length=0 -> every column is pl.String
        return pl.read_csv(location, infer_schema_length=0, encoding="utf8", raise_if_empty=False)

    async def read(self, location: str, sub_resource: str | None = None) -> AsyncIterator[Record]:
        df = await asyncio.to_thread(self._load, location)
        logger.info("CSV loaded %s: %d rows, %d columns", location, df.height, df.width)

        async for row in _iterate_in_thread(df.iter_rows(named=True)):
            yield row


class JsonReader:
    """JSON array of objects, or an object whose `sub_resource` key holds that array."""

    descriptor = Descriptor.file("json")

    @staticmethod
    def _load(location: str) -> Any:
        with open(location, encoding="utf-8") as f:
            return json.load(f)

    async def read(self, location: str, sub_resource: str | None = None) -> AsyncIterator[Record]:
        data = await asyncio.to_thread(self._load, location)

        if sub_resource is not None:
            if not isinstance(data, dict) or sub_resource not in data:
                raise ValueError(f"{location}: key {sub_resource!r} not found")
            data = data[sub_resource]
        elif isinstance(data, dict):
            data = [data]

        if not isinstance(data, list):
            raise ValueError(f"{location}: expected a JSON array of objects")

        for item in data:
            if not isinstance(item, dict):
                raise ValueError(f"{location}: expected objects, got {type(item).__name__}")
            yield item


class XmlReader:
    """Every <record> element (or `sub_resource` tag) becomes one record: child tag -> text."""

    descriptor = Descriptor.file("xml")

    @staticmethod
    def _rows(location: str, tag: str) -> Iterator[Record]:
        for _, elem in ET.iterparse(location, events=("end",)):
            if elem.tag != tag:
                continue
            row: Record = dict(elem.attrib)
            for child in elem:
                row[child.tag] = child.text
            elem.clear()
            yield row

    async def read(self, location: str, sub_resource: str | None = None) -> AsyncIterator[Record]:
        tag = sub_resource or DEFAULT_XML_RECORD_TAG
        async for row in _iterate_in_thread(self._rows(location, tag)):
            yield row


# ----------------------------
# Databases
# ----------------------------

class PostgresReader:
    descriptor = Descriptor.database("postgres")

    async def read(self, location: str, sub_resource: str | None = None) -> AsyncIterator[Record]:
        table = validate_sql_ident(sub_resource or "", what="source table")
        logger.info("Postgres source table=%s", table)
        engine = create_async_engine(asyncpg_url(location), pool_pre_ping=True)
        try:
            async with engine.connect() as conn:
                result = await conn.stream(text(f"SELECT * FROM {table}"))
                async for row in result.mappings():
                    yield normalize_row(row)
        finally:
            await engine.dispose()


class MongoReader:
    descriptor = Descriptor.database("mongodb")

    async def read(self, location: str, sub_resource: str | None = None) -> AsyncIterator[Record]:
        if not sub_resource:
            raise ValueError("Mongo source requires a collection name")

        client: AsyncIOMotorClient = AsyncIOMotorClient(location)
        try:
            db = client.get_default_database(default=DEFAULT_MONGO_DATABASE)
            logger.info("Mongo source db=%s collection=%s", db.name, sub_resource)
            async for doc in db[sub_resource].find({}):
                yield normalize_row(doc)
        finally:
            client.close()
