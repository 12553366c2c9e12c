import logging

import pytest

from smart_queue import TicketQueue
from smart_queue.core import logging as queue_logging
from smart_queue.core.config import QueueSettings

pytestmark = pytest.mark.usefixtures("restore_logger")


def test_configure_logging_applies_level_and_format():
    settings = QueueSettings(log_level="debug", log_format="%(levelname)s %(message)s")

    logger = queue_logging.configure_logging(settings)

    assert logger.name == "smart_queue"
    assert logger.level == logging.DEBUG
    assert logger.handlers[0].formatter._fmt == "%(levelname)s %(message)s"


def test_queue_errors_are_logged_as_warnings(caplog):
    queue = TicketQueue(limit=1)
    queue.issue_ticket()

    with caplog.at_level(logging.WARNING, logger="smart_queue"):
        queue.issue_ticket()

    assert any("reached its limit" in record.getMessage() for record in caplog.records)


def test_exporter_options_skip_malformed_headers():
    settings = QueueSettings(otel_exporter_otlp_headers="a=1, b = two,broken,=orphan,")

    assert queue_logging.exporter_options(settings) == {"headers": {"a": "1", "b": "two"}}
    assert queue_logging.exporter_options(QueueSettings(otel_exporter_otlp_headers=None)) == {}


def test_init_tracer_disabled_returns_none():
    assert queue_logging.init_tracer(QueueSettings(otel_enabled=False)) is None


def test_init_tracer_configures_exporter(monkeypatch):
    created = {}

    class StubExporter:
        def __init__(self, **kwargs):
            created.update(kwargs)

        def export(self, spans):  # pragma: no cover - never flushed in this test
            return None

        def shutdown(self):
            created["shutdown"] = True

    installed = []
    monkeypatch.setattr(queue_logging, "OTLPSpanExporter", StubExporter)
    monkeypatch.setattr(queue_logging.trace, "set_tracer_provider", installed.append)
    monkeypatch.setattr(queue_logging, "_TRACER_INITIALISED", False)

    settings = QueueSettings(
        otel_enabled=True,
        otel_exporter_otlp_endpoint="http://collector:4318/v1/traces",
        otel_exporter_otlp_headers="x-api-key=secret",
    )
    provider = queue_logging.init_tracer(settings)

    assert provider is not None
    assert installed == [provider]
    assert created == {"endpoint": "http://collector:4318/v1/traces", "headers": {"x-api-key": "secret"}}
    assert queue_logging.init_tracer(settings) is None

    queue_logging.shutdown_tracer(provider)
    assert created["shutdown"] is True
    assert queue_logging._TRACER_INITIALISED is False

