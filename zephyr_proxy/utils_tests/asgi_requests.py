from typing import Iterable, List, Tuple

from starlette.requests import Request


def make_request(
    method: str = "GET",
    path: str = "/rest/atm/1.0/testrun/search",
    query: bytes = b"",
    headers: Iterable[Tuple[str, str]] = (),
    body_chunks: Iterable[bytes] = (),
) -> Request:
    """Build a real Starlette request from an ASGI scope and a body."""
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode("latin-1"),
        "query_string": query,
        "root_path": "",
        "headers": [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in headers
        ],
        "client": ("127.0.0.1", 51000),
        "server": ("testserver", 8383),
    }
    messages: List[dict] = []
    chunks = list(body_chunks)
    for i, chunk in enumerate(chunks):
        messages.append(
            {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
        )
    if not messages:
        messages.append({"type": "http.request", "body": b"", "more_body": False})

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return Request(scope, receive)
