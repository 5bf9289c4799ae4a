from __future__ import annotations

from typing import Any, Callable

from src.engine.adapters.readers import CsvReader, JsonReader, MongoReader, PostgresReader, XmlReader
from src.engine.adapters.writers import (
    CsvWriter,
    ElasticsearchWriter,
    JsonWriter,
    MongoWriter,
    PostgresWriter,
    XmlWriter,
)
from src.engine.core.exceptions import ConfigurationError
from src.engine.ports.reader import Reader
from src.engine.services.descriptors import Descriptor

READERS: dict[Descriptor, Callable[[], Reader]] = {
    CsvReader.descriptor: CsvReader,
    JsonReader.descriptor: JsonReader,
    XmlReader.descriptor: XmlReader,
    PostgresReader.descriptor: PostgresReader,
    MongoReader.descriptor: MongoReader,
}

WRITERS: dict[Descriptor, Callable[[], Any]] = {
    CsvWriter.descriptor: CsvWriter,
    JsonWriter.descriptor: JsonWriter,
    XmlWriter.descriptor: XmlWriter,
    PostgresWriter.descriptor: PostgresWriter,
    MongoWriter.descriptor: MongoWriter,
    ElasticsearchWriter.descriptor: ElasticsearchWriter,
}


def reader_for(descriptor: Descriptor) -> Reader:
    factory = READERS.get(descriptor)
    if factory is None:
        raise ConfigurationError(f"No reader for {descriptor.kind.value}:{descriptor.format}")
    return factory()


def writer_for(descriptor: Descriptor) -> Any:
    factory = WRITERS.get(descriptor)
    if factory is None:
        raise ConfigurationError(f"No writer for {descriptor.kind.value}:{descriptor.format}")
    return factory()
