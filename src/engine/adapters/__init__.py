from .readers import CsvReader, JsonReader, MongoReader, PostgresReader, XmlReader
from .writers import CsvWriter, ElasticsearchWriter, JsonWriter, MongoWriter, PostgresWriter, XmlWriter

__all__ = [
    "CsvReader",
    "JsonReader",
    "XmlReader",
    "PostgresReader",
    "MongoReader",
    "CsvWriter",
    "JsonWriter",
    "XmlWriter",
    "PostgresWriter",
    "MongoWriter",
    "ElasticsearchWriter",
]
