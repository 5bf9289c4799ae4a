from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_env: str = "local"
    log_level: str = "INFO"

    # file sinks
    output_dir: Path = Field(default_factory=Path.cwd)
    output_name: str = "etl_output"

    # runner
    pipelines_module: str = "src.pipelines.demo"

    # scheduler
    scheduler_timezone: str = "UTC"
    scheduler_max_instances: int = 3
    scheduler_misfire_grace_time: int = 60

    # email
    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = False
    smtp_sender: str = "etl@localhost"

    # sms (Twilio-compatible REST endpoint)
    sms_api_url: str = "https://api.twilio.com/2010-04-01"
    sms_account_sid: str | None = None
    sms_auth_token: str | None = None
    sms_from_number: str | None = None

    # elasticsearch sink
    elasticsearch_user: str | None = None
    elasticsearch_password: str | None = None
    elasticsearch_timeout: int = 10

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
