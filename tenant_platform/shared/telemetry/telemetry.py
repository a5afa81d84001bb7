"""OpenTelemetry tracing for the tenant platform"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from sqlalchemy.ext.asyncio import AsyncEngine

from tenant_platform.infrastructure.config.settings import Settings

logger = logging.getLogger(__name__)


class Telemetry:
    """
    Process-wide tracer provider built from settings.

    ``start`` installs the provider and exporter; ``instrument`` hooks the
    HTTP layer, the database engine, Redis and log records into it. A failure
    in any step is logged and tracing stays partially or fully off; requests
    are never affected.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.provider: TracerProvider | None = None

    def _exporter(self) -> SpanExporter | None:
        kind = self.settings.telemetry_exporter
        endpoint = self.settings.telemetry_otlp_endpoint
        if kind == "none":
            return None
        if kind == "otlp" and endpoint:
            logger.info("Exporting spans over OTLP to %s", endpoint)
            return OTLPSpanExporter(endpoint=endpoint, insecure=endpoint.startswith("http://"))
        if kind != "console":
            logger.warning("Unknown telemetry exporter '%s', falling back to console", kind)
        return ConsoleSpanExporter()

    def start(self) -> bool:
        """Install the tracer provider; False when tracing could not be started"""
        resource = Resource(
            attributes={
                SERVICE_NAME: self.settings.app_name,
                SERVICE_VERSION: self.settings.app_version,
                "deployment.environment": self.settings.telemetry_environment,
            }
        )
        try:
            provider = TracerProvider(
                resource=resource, sampler=TraceIdRatioBased(self.settings.telemetry_sample_rate)
            )
            exporter = self._exporter()
            if exporter is not None:
                provider.add_span_processor(BatchSpanProcessor(exporter))
            trace.set_tracer_provider(provider)
        except Exception:
            logger.exception("Tracing could not be started")
            return False

        self.provider = provider
        logger.info(
            "Tracing started for %s %s (exporter=%s, sample_rate=%s)",
            self.settings.app_name,
            self.settings.app_version,
            self.settings.telemetry_exporter,
            self.settings.telemetry_sample_rate,
        )
        return True

    def instrument(self, app: FastAPI, engine: AsyncEngine) -> None:
        """Attach the available instrumentations to the running provider"""
        if self.provider is None:
            return
        provider = self.provider

        steps: list[tuple[str, Callable[[], None]]] = [
            (
                "fastapi",
                lambda: FastAPIInstrumentor.instrument_app(
                    app, tracer_provider=provider, excluded_urls="/health"
                ),
            ),
            (
                "sqlalchemy",
                lambda: SQLAlchemyInstrumentor().instrument(
                    engine=engine.sync_engine, tracer_provider=provider, enable_commenter=True
                ),
            ),
            (
                "logging",
                lambda: LoggingInstrumentor().instrument(
                    tracer_provider=provider, set_logging_format=True
                ),
            ),
        ]
        if self.settings.redis_enabled:
            steps.append(("redis", lambda: RedisInstrumentor().instrument(tracer_provider=provider)))

        for name, step in steps:
            try:
                step()
                logger.debug("Instrumented %s", name)
            except Exception as e:
                logger.error("Failed to instrument %s: %s", name, e)

    def shutdown(self) -> None:
        """Flush pending spans"""
        if self.provider is None:
            return
        try:
            self.provider.shutdown()
            logger.info("Tracing stopped")
        except Exception as e:
            logger.warning("Error while stopping tracing: %s", e)
        finally:
            self.provider = None


# Set on startup when tracing is enabled
_telemetry: Telemetry | None = None


def get_telemetry() -> Telemetry | None:
    return _telemetry


def set_telemetry(telemetry: Telemetry | None) -> None:
    global _telemetry
    _telemetry = telemetry
