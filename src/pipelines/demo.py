from __future__ import annotations

from pathlib import Path

from src.config import get_settings
from src.engine.adapters.readers import CsvReader
from src.engine.adapters.writers import JsonWriter, XmlWriter
from src.engine.orchestration.pipeline import Pipeline
from src.pipelines.transforms import combine_names, lowercase_email

DATA_DIR = Path(__file__).resolve().parents[2] / "data"


def build_pipelines() -> list[Pipeline]:
    """Demo: users.csv -> users.json, then users.csv -> users.xml as a chained successor."""
    out_dir = str(get_settings().output_dir)
    source = str(DATA_DIR / "users.csv")

    users_xml = (
        Pipeline("users-xml")
        .set_source(CsvReader(), source)
        .add_transforms(combine_names)
        .set_sink(XmlWriter(), "users.xml", out_dir)
        .compose()
    )

    users_json = (
        Pipeline("users-json")
        .set_source(CsvReader(), source)
        .add_transforms(combine_names, lowercase_email)
        .set_sink(JsonWriter(), "users.json", out_dir)
        .chain(users_xml, start_now=True)
        .compose()
    )

    return [users_json, users_xml]
