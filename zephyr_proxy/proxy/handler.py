import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx
from fastapi import Request
from fastapi.responses import Response, StreamingResponse
from opentelemetry import trace
from starlette.types import Receive, Scope, Send

from zephyr_proxy.proxy.headers import (
    apply_cors_headers,
    basic_auth_header,
    copy_response_headers,
    prepare_request_headers,
    request_has_body,
)
from zephyr_proxy.settings import ProxySettings
from zephyr_proxy.utils import redact_headers
from zephyr_proxy.utils.exception_logging import (
    format_exception_message,
    log_exception_with_details,
)
from zephyr_proxy.utils.traced_requests import traced_request

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class ForwardResult:
    """Outcome of forwarding one request: a response to relay, or the error."""

    response: Optional[Response] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def _close(
    upstream: Optional[httpx.Response], client: Optional[httpx.AsyncClient]
) -> None:
    try:
        if upstream is not None:
            await upstream.aclose()
    finally:
        if client is not None:
            await client.aclose()


class RelayResponse(StreamingResponse):
    """
    StreamingResponse that closes its body iterator once sending stops.

    Starlette cancels the sending task when the caller disconnects and leaves
    the iterator suspended; closing it here runs the relay's cleanup at once.
    """

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.body_iterator.aclose()


class ProxyHandler:
    """
    Forwards a request to the JIRA server and relays the answer.

    One instance serves every registered route. The handler only reads its
    settings, so concurrent requests share it without locking.
    """

    def __init__(
        self,
        settings: ProxySettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.transport = transport
        self.authorization = basic_auth_header(
            settings.jira_username, settings.jira_password.get_secret_value()
        )

    async def handle(self, request: Request) -> Response:
        if request.method.upper() == "OPTIONS":
            return self.preflight()

        result = await self.forward(request)
        if result.ok:
            return result.response
        return self.failure()

    def preflight(self) -> Response:
        """Answer a CORS preflight without contacting the upstream."""
        response = Response(status_code=204)
        apply_cors_headers(response.headers, self.settings.allowed_origin)
        return response

    def failure(self) -> Response:
        response = Response(status_code=500)
        apply_cors_headers(response.headers, self.settings.allowed_origin)
        return response

    def target_url(self, request: Request) -> str:
        """Base URL plus the inbound path and query, exactly as received."""
        raw_path = request.scope.get("raw_path") or request.url.path.encode("utf-8")
        path = raw_path.split(b"?", 1)[0].decode("latin-1")
        query = request.scope.get("query_string", b"").decode("latin-1")
        if query:
            path = f"{path}?{query}"
        return self.settings.jira_url + path

    def _client(self) -> httpx.AsyncClient:
        kwargs = {
            "timeout": httpx.Timeout(self.settings.upstream_timeout),
            "follow_redirects": self.settings.follow_redirects,
        }
        if self.transport is not None:
            kwargs["transport"] = self.transport
        return httpx.AsyncClient(**kwargs)

    async def forward(self, request: Request) -> ForwardResult:
        """
        Send the request upstream and build the streaming response.

        On success the upstream response and client are handed to the relay
        generator, which closes them when the body is exhausted or the caller
        goes away. On every other exit they are closed here.
        """
        method = request.method
        target_url = self.target_url(request)
        password = self.settings.jira_password.get_secret_value()

        client: Optional[httpx.AsyncClient] = None
        upstream: Optional[httpx.Response] = None
        handed_off = False

        with traced_request(
            tracer,
            "proxy_request",
            f"Proxying {method} {request.url.path} -> {target_url}",
            secret=password,
            extra_attrs={"proxy.target_url": target_url, "proxy.method": method},
        ) as span:
            try:
                headers = prepare_request_headers(request.headers.raw, self.authorization)
                logger.debug(f"Upstream headers: {redact_headers(headers)}")

                content = request.stream() if request_has_body(request.headers.raw) else None

                client = self._client()
                upstream_request = client.build_request(
                    method, target_url, headers=headers, content=content
                )
                upstream = await client.send(upstream_request, stream=True)
                span.set_attribute("proxy.status_code", upstream.status_code)

                # 4xx/5xx diagnostics arrive on the same stream as success bodies
                response = RelayResponse(
                    self._relay(upstream, client, target_url),
                    status_code=upstream.status_code,
                )
                copy_response_headers(upstream.headers, response.headers)
                apply_cors_headers(response.headers, self.settings.allowed_origin)

                handed_off = True
                return ForwardResult(response=response)

            except Exception as e:
                span.set_attribute("proxy.error", format_exception_message(e))
                log_exception_with_details(
                    logger, f"[Proxy] {method} {target_url} failed.", e
                )
                return ForwardResult(error=e)

            finally:
                if not handed_off:
                    await _close(upstream, client)

    async def _relay(
        self,
        upstream: httpx.Response,
        client: httpx.AsyncClient,
        target_url: str,
    ) -> AsyncIterator[bytes]:
        """Stream the raw upstream body as it arrives, in bounded chunks."""
        size = self.settings.chunk_size
        try:
            # no re-chunking buffer: a short read goes out immediately
            async for data in upstream.aiter_raw():
                for start in range(0, len(data), size):
                    yield data[start : start + size]
        except Exception as e:
            # headers are already out; abort the connection rather than end cleanly
            log_exception_with_details(
                logger, f"[Proxy] Relaying {target_url} aborted.", e
            )
            raise
        finally:
            await _close(upstream, client)
