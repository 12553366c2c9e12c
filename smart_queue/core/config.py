from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any, Callable, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from smart_queue.tickets.errors import QueueConfigurationError

PositiveInt = Annotated[int, Field(strict=True, gt=0)]


class QueueSettings(BaseSettings):
    """Queue defaults read from ``SMART_QUEUE_*`` environment variables."""

    limit: int | None = Field(default=None, gt=0)
    lifetime: int | None = Field(default=None, gt=0)
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="%(asctime)s %(levelname)s %(name)s %(message)s")
    logger_name: str = Field(default="smart_queue")

    # Observability configuration
    otel_enabled: bool = Field(default=False)
    otel_service_name: str = Field(default="smart-queue")
    otel_exporter_otlp_endpoint: str | None = Field(default=None)
    otel_exporter_otlp_headers: str | None = Field(default=None)

    model_config = SettingsConfigDict(env_prefix="SMART_QUEUE_", env_file=".env", case_sensitive=False)


class QueueOptions(BaseModel):
    """Validated construction options for a ticket queue."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    limit: PositiveInt | None = None
    lifetime: PositiveInt | None = None
    handler: Callable[..., Any] | None = None

    @classmethod
    def parse(cls, options: Mapping[str, Any]) -> "QueueOptions":
        """Validate raw options, raising :class:`QueueConfigurationError` on bad input."""

        if not isinstance(options, Mapping):
            raise QueueConfigurationError(f"Queue options must be a mapping, got {type(options).__name__}")
        try:
            return cls.model_validate(dict(options))
        except ValidationError as exc:
            raise QueueConfigurationError(str(exc)) from exc

    @classmethod
    def from_settings(cls, settings: QueueSettings, **overrides: Any) -> "QueueOptions":
        options: dict[str, Any] = {"limit": settings.limit, "lifetime": settings.lifetime}
        options.update(overrides)
        return cls.parse(options)


@lru_cache
def get_settings() -> QueueSettings:
    """Return a cached instance of the queue settings."""

    return QueueSettings()
