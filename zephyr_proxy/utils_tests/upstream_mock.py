import asyncio
from typing import Iterable, List, Optional, Sequence, Tuple

import httpx


class ChunkedBody(httpx.AsyncByteStream):
    """Upstream body delivered chunk by chunk, optionally failing at the end."""

    def __init__(self, chunks: Iterable[bytes], error: Optional[Exception] = None):
        self.chunks = list(chunks)
        self.error = error
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self) -> None:
        self.closed = True


class DrippingBody(ChunkedBody):
    """Upstream body that sends its first chunk, then waits for `release`."""

    def __init__(self, chunks: Iterable[bytes]):
        super().__init__(chunks)
        self.release = asyncio.Event()

    async def __aiter__(self):
        for index, chunk in enumerate(self.chunks):
            if index:
                await self.release.wait()
            yield chunk


class RecordingUpstream:
    """
    Stand-in for the JIRA server as an httpx transport.
    Records every request it receives together with its body.
    """

    def __init__(
        self,
        status_code: int = 200,
        headers: Optional[Sequence[Tuple[str, str]]] = None,
        content: bytes = b"",
        stream: Optional[httpx.AsyncByteStream] = None,
        error: Optional[Exception] = None,
    ):
        self.status_code = status_code
        self.headers = list(headers or [])
        self.content = content
        self.stream = stream
        self.error = error
        self.requests: List[httpx.Request] = []
        self.bodies: List[bytes] = []
        self.transport = httpx.MockTransport(self._handle)

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.bodies.append(await request.aread())
        if self.error is not None:
            raise self.error
        # content= would be read eagerly and leave nothing for aiter_raw
        stream = self.stream if self.stream is not None else ChunkedBody([self.content])
        return httpx.Response(self.status_code, headers=self.headers, stream=stream)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    @property
    def last_body(self) -> bytes:
        return self.bodies[-1]
