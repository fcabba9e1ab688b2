"""
statusnet logging and tracing

Every service process calls ``configure_logging`` once at startup; level
comes from STATUSNET_LOG_LEVEL.

Tracing (OpenTelemetry, optional ``otel`` extra) is off unless
STATUSNET_OTEL_ENABLED is set:
- STATUSNET_OTEL_ENABLED=true
- STATUSNET_OTEL_SERVICE_NAME=statusnet-<service>
- STATUSNET_OTEL_EXPORTER=console|otlp
- STATUSNET_OTEL_OTLP_ENDPOINT=https://... (only if exporter=otlp)

Health probes are excluded from request spans.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from .config import get_log_level

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_tracing_service: Optional[str] = None


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def tracing_enabled() -> bool:
    return _bool_env("STATUSNET_OTEL_ENABLED", False)


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(level=level or get_log_level(), format=LOG_FORMAT)


def _span_exporter(kind: str):
    from opentelemetry.sdk.trace.export import ConsoleSpanExporter

    if kind != "otlp":
        return ConsoleSpanExporter()
    try:
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    except ImportError:
        logger.warning("OTLP exporter not installed; tracing to console")
        return ConsoleSpanExporter()
    endpoint = os.environ.get("STATUSNET_OTEL_OTLP_ENDPOINT")
    return OTLPSpanExporter(endpoint=endpoint) if endpoint else OTLPSpanExporter()


def configure_observability(service: str) -> bool:
    """Install a tracer provider for ``service``. Returns True if tracing is on.

    Safe to call from every ``create_app``; only the first call in a process
    installs the provider.
    """
    global _tracing_service

    if not tracing_enabled():
        return False
    if _tracing_service is not None:
        return True

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError:
        logger.warning("STATUSNET_OTEL_ENABLED set but opentelemetry-sdk is not installed")
        return False

    service_name = os.environ.get("STATUSNET_OTEL_SERVICE_NAME", f"statusnet-{service}")
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    exporter = os.environ.get("STATUSNET_OTEL_EXPORTER", "console").lower()
    provider.add_span_processor(BatchSpanProcessor(_span_exporter(exporter)))
    trace.set_tracer_provider(provider)

    _tracing_service = service_name
    logger.info("Tracing enabled for %s (%s exporter)", service_name, exporter)
    return True


def instrument_app(app) -> bool:
    """Attach request spans and trace ids in log records to a FastAPI app."""
    if _tracing_service is None:
        return False
    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.instrumentation.logging import LoggingInstrumentor
    except ImportError:
        logger.warning("opentelemetry-instrumentation-fastapi is not installed")
        return False

    LoggingInstrumentor().instrument(set_logging_format=True)
    FastAPIInstrumentor.instrument_app(app, excluded_urls="health")
    return True
