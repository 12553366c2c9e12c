"""Logging and tracing set-up driven by :class:`QueueSettings`."""

from __future__ import annotations

import logging
from logging.config import dictConfig

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from smart_queue.core.config import QueueSettings

_TRACER_INITIALISED = False


def configure_logging(settings: QueueSettings) -> logging.Logger:
    """Give the package logger its own stderr handler.

    Only ``settings.logger_name`` is touched; the root logger and loggers of
    the host application keep their configuration.
    """

    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"queue": {"format": settings.log_format}},
            "handlers": {
                "queue": {
                    "class": "logging.StreamHandler",
                    "formatter": "queue",
                    "stream": "ext://sys.stderr",
                }
            },
            "loggers": {
                settings.logger_name: {
                    "handlers": ["queue"],
                    "level": level,
                    "propagate": False,
                }
            },
        }
    )
    return logging.getLogger(settings.logger_name)


def exporter_options(settings: QueueSettings) -> dict[str, object]:
    """Keyword arguments for the OTLP exporter, from ``otel_exporter_otlp_*`` settings."""

    options: dict[str, object] = {}
    if settings.otel_exporter_otlp_endpoint:
        options["endpoint"] = settings.otel_exporter_otlp_endpoint

    headers: dict[str, str] = {}
    for item in (settings.otel_exporter_otlp_headers or "").split(","):
        key, sep, value = item.partition("=")
        if sep and key.strip():
            headers[key.strip()] = value.strip()
    if headers:
        options["headers"] = headers
    return options


def init_tracer(settings: QueueSettings) -> TracerProvider | None:
    """Install a global tracer provider exporting queue spans over OTLP.

    Returns ``None`` when tracing is disabled or a provider was already
    installed by an earlier call.
    """

    global _TRACER_INITIALISED

    if _TRACER_INITIALISED or not settings.otel_enabled:
        return None

    provider = TracerProvider(resource=Resource(attributes={"service.name": settings.otel_service_name}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(**exporter_options(settings))))
    trace.set_tracer_provider(provider)
    _TRACER_INITIALISED = True
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    """Flush and shut down a provider returned by :func:`init_tracer`."""

    global _TRACER_INITIALISED

    if provider is None:
        return
    provider.shutdown()
    _TRACER_INITIALISED = False
