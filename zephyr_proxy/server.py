import logging
from contextlib import asynccontextmanager
from typing import Optional, Sequence

import httpx
import uvicorn
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)

from zephyr_proxy.proxy import ProxyHandler, build_router
from zephyr_proxy.settings import ProxySettings
from zephyr_proxy.vars import OTLP_ENDPOINT, OTLP_HEADERS, SERVICE_NAME

logger = logging.getLogger("uvicorn.error")


class FilteringSpanExporter(SpanExporter):
    """
    Wrapper exporter that filters out ASGI body spans.
    Every relayed chunk produces one, which buries the proxy_request span.
    """

    def __init__(self, exporter: SpanExporter):
        self.exporter = exporter

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        filtered_spans = [
            span
            for span in spans
            if not (
                span.attributes
                and span.attributes.get("asgi.event.type")
                in ("http.response.body", "http.request")
            )
        ]
        if filtered_spans:
            return self.exporter.export(filtered_spans)
        return SpanExportResult.SUCCESS

    def shutdown(self):
        return self.exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000):
        return self.exporter.force_flush(timeout_millis)


class ProxyServer(uvicorn.Server):
    """uvicorn server that announces the port it actually listens on."""

    async def startup(self, sockets=None) -> None:
        await super().startup(sockets=sockets)
        if self.started:
            logger.info(f"Server started on port {self.bound_port()}...")

    def bound_port(self) -> int:
        for server in getattr(self, "servers", []):
            for sock in server.sockets or ():
                return sock.getsockname()[1]
        return self.config.port


def configure_tracing(
    service_name: str = SERVICE_NAME,
    endpoint: Optional[str] = OTLP_ENDPOINT,
    headers: str = OTLP_HEADERS,
) -> TracerProvider:
    """Install the process tracer provider; export over OTLP when an endpoint is set."""
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    if endpoint:
        otlp_exporter = OTLPSpanExporter(endpoint=endpoint, headers=headers or None)
        provider.add_span_processor(
            BatchSpanProcessor(FilteringSpanExporter(otlp_exporter))
        )
    trace.set_tracer_provider(provider)
    return provider


def create_app(
    settings: ProxySettings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the proxy application.

    Only the proxied prefixes are routed; the interactive docs and the
    OpenAPI document are disabled so nothing else answers on the port.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Forwarding to {settings.jira_url}, allowed origin {settings.allowed_origin}")
        yield
        logger.info("Server shutting down...")

    app = FastAPI(
        title=SERVICE_NAME,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        redirect_slashes=False,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.include_router(build_router(ProxyHandler(settings, transport=transport)))

    FastAPIInstrumentor.instrument_app(app)
    return app
