import logging
import logging.config
import os
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

CONFIG_FILE_ENV = "WSI_CONFIG_FILE"
LOG_FILE_ENV = "WSI_LOG_FILE"


class YamlFileSource(PydanticBaseSettingsSource):
    """Top-level sections of the YAML file named by ``WSI_CONFIG_FILE``.

    A missing variable or file contributes nothing; a file that is not a
    mapping is a configuration mistake and raises.
    """

    def __init__(self, settings_cls: type[BaseSettings]) -> None:
        super().__init__(settings_cls)
        self._data = _read_yaml(os.environ.get(CONFIG_FILE_ENV))

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return {k: v for k, v in self._data.items() if k in self.settings_cls.model_fields}


def _read_yaml(config_file: str | None) -> dict[str, Any]:
    if not config_file:
        return {}
    path = Path(config_file).expanduser()
    if not path.is_file():
        return {}
    data = yaml.safe_load(path.read_text()) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


class DatabaseConfig(BaseModel):
    """Database configuration (nested in Config, uses env_nested_delimiter)."""

    url: str = "sqlite+aiosqlite:///~/.local/share/wsi/wsi.db"
    echo: bool = False
    auto_migrate: bool = True  # Apply pending migrations on startup
    pool_size: int = Field(default=5, ge=1)  # Ignored for SQLite
    max_overflow: int = Field(default=10, ge=0)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def file(self) -> str | None:
        # Kept out of the model so a YAML file cannot redirect logs
        return os.environ.get(LOG_FILE_ENV)


class TenantConfig(BaseModel):
    timezone: str = "UTC"  # IANA name; quota periods are local calendar days

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {value}") from e
        return value


class PipelineConfig(BaseModel):
    """Pipeline defaults. ``enabled`` and ``requests_per_day`` can be overridden
    at runtime through the persisted settings row."""

    enabled: bool = False
    requests_per_day: int = Field(default=200, ge=0)  # Global cap across all accounts
    crawl_batch_size: int = Field(default=100, gt=0)
    submit_batch_size: int = Field(default=100, gt=0)
    inspect_batch_size: int = Field(default=100, gt=0)
    max_attempts: int = Field(default=5, ge=1)  # Retry ceiling


class CrawlerConfig(BaseModel):
    timeout_seconds: float = 10.0
    max_attempts: int = Field(default=3, ge=1)  # Immediate attempts per URL per crawl
    user_agent: str = "wsi-crawler/0.1"
    respect_robots_txt: bool = True


class InspectionConfig(BaseModel):
    settle_delay_seconds: int = Field(default=300, ge=0)
    backoff_base_seconds: int = Field(default=60, gt=0)
    backoff_cap_seconds: int = Field(default=86400, gt=0)


class IndexingApiConfig(BaseModel):
    base_url: str = "https://indexing.googleapis.com"
    timeout_seconds: float = 30.0
    scope: str = "https://www.googleapis.com/auth/indexing"


class SchedulerConfig(BaseModel):
    """Cadence of the hosted loop. ``cron`` takes precedence over the interval."""

    interval_seconds: int = Field(default=900, gt=0)
    cron: str | None = None
    queue_size: int = Field(default=8, gt=0)  # Pending manual run requests


class Config(BaseSettings):
    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    tenant: TenantConfig = TenantConfig()
    pipeline: PipelineConfig = PipelineConfig()
    crawler: CrawlerConfig = CrawlerConfig()
    inspection: InspectionConfig = InspectionConfig()
    indexing_api: IndexingApiConfig = IndexingApiConfig()
    scheduler: SchedulerConfig = SchedulerConfig()

    model_config = {
        "env_prefix": "WSI_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",  # Allows WSI_DATABASE__URL override
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Explicit values, then environment, then .env, then the YAML file."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlFileSource(settings_cls),
            file_secret_settings,
        )


# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "aiosqlite", "apscheduler", "alembic")


def configure_logging(config: LoggingConfig) -> None:
    """Route all logging to one handler: ``WSI_LOG_FILE`` if set, else stderr.

    Call once at startup, before the container is built.
    """
    if config.file:
        log_path = Path(config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: dict[str, Any] = {"class": "logging.FileHandler", "filename": str(log_path)}
    else:
        handler = {"class": "logging.StreamHandler", "stream": "ext://sys.stderr"}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": config.format, "datefmt": config.date_format},
            },
            "handlers": {"default": {**handler, "formatter": "default"}},
            "root": {"level": config.level, "handlers": ["default"]},
            "loggers": {name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
        }
    )
    logging.getLogger(__name__).debug(
        f"Logging configured: level={config.level}, file={config.file or 'stderr'}"
    )
