import pytest

from src.engine.core.enums import DescriptorKind
from src.engine.core.exceptions import ConfigurationError
from src.engine.services.descriptors import Descriptor, connection_protocol, ensure_matches, resolve


@pytest.mark.parametrize(
    "token, expected",
    [
        ("users.csv", Descriptor.file("csv")),
        ("/data/Users.JSON", Descriptor.file("json")),
        ("out/feed.xml", Descriptor.file("xml")),
        ("postgres://u:p@localhost:5432/app", Descriptor.database("postgres")),
        ("postgresql+asyncpg://u:p@localhost/app", Descriptor.database("postgres")),
        ("mongodb://localhost:27017/etl", Descriptor.database("mongodb")),
        ("mongodb+srv://cluster.example.net/etl", Descriptor.database("mongodb")),
        ("elasticsearch://localhost:9200", Descriptor.database("elasticsearch")),
    ],
)
def test_resolve(token, expected):
    assert resolve(token) == expected


def test_scheme_wins_over_extension():
    d = resolve("postgres://host/db.csv")
    assert d.kind is DescriptorKind.DATABASE
    assert d.format == "postgres"


@pytest.mark.parametrize("token", ["users.txt", "users", "ftp://host/file.bin", "", "   ", None])
def test_unresolvable(token):
    with pytest.raises(ConfigurationError):
        resolve(token)


def test_connection_protocol_of_plain_path_is_none():
    assert connection_protocol("/tmp/out") is None
    assert connection_protocol("out/") is None


def test_ensure_matches_rejects_other_format():
    with pytest.raises(ConfigurationError) as e:
        ensure_matches(Descriptor.file("csv"), "users.json", what="source")
    assert "users.json" in str(e.value)
