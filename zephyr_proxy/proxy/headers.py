import base64
from typing import Dict, Iterable, List, Set, Tuple

import httpx
from starlette.datastructures import MutableHeaders

# Hop-by-hop headers that should NOT be forwarded (RFC 7230 section 6.1)
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

# Owned by the upstream client: httpx derives Host from the target URL and the
# proxy always authenticates with its own credentials.
CLIENT_OWNED_HEADERS = HOP_BY_HOP_HEADERS | {"host", "authorization"}

# The relayed response is always sent chunked.
RESPONSE_SKIPPED_HEADERS = HOP_BY_HOP_HEADERS | {"content-length"}

CORS_ALLOW_METHODS = "GET, POST, OPTIONS"
CORS_ALLOW_HEADERS = "Authorization, Content-Type, Cookie"


def cors_headers(origin: str) -> Dict[str, str]:
    """The four CORS headers sent on preflight answers and relayed responses."""
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
        "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
        "Access-Control-Allow-Credentials": "true",
    }


def apply_cors_headers(headers: MutableHeaders, origin: str) -> None:
    """Set the CORS headers, replacing any same-named entries already present."""
    for name, value in cors_headers(origin).items():
        headers[name] = value


def basic_auth_header(username: str, password: str) -> str:
    credentials = f"{username}:{password}".encode("utf-8")
    return "Basic " + base64.b64encode(credentials).decode("ascii")


def _decode(raw_headers: Iterable[Tuple[bytes, bytes]]) -> List[Tuple[str, str]]:
    return [(k.decode("latin-1"), v.decode("latin-1")) for k, v in raw_headers]


def _connection_tokens(headers: List[Tuple[str, str]]) -> Set[str]:
    """Header names listed in Connection, which are hop-by-hop as well."""
    tokens = set()
    for name, value in headers:
        if name.lower() == "connection":
            tokens.update(t.strip().lower() for t in value.split(",") if t.strip())
    return tokens


def prepare_request_headers(
    raw_headers: Iterable[Tuple[bytes, bytes]], authorization: str
) -> List[Tuple[str, str]]:
    """
    Build the upstream header list from the inbound raw headers.

    Every inbound entry is kept as its own pair, in order, so repeated
    headers such as two ``Cookie`` lines stay separate. The configured
    ``Authorization`` comes first and replaces whatever the caller sent.
    """
    inbound = _decode(raw_headers)
    skipped = CLIENT_OWNED_HEADERS | _connection_tokens(inbound)

    headers = [("Authorization", authorization)]
    for name, value in inbound:
        if name.lower() not in skipped:
            headers.append((name, value))
    return headers


def request_has_body(raw_headers: Iterable[Tuple[bytes, bytes]]) -> bool:
    """True when the inbound request declares a body of non-zero or unknown length."""
    for name, value in _decode(raw_headers):
        name = name.lower()
        if name == "transfer-encoding":
            return True
        if name == "content-length":
            try:
                return int(value.strip()) > 0
            except ValueError:
                return False
    return False


def copy_response_headers(upstream: httpx.Headers, target: MutableHeaders) -> None:
    """
    Copy upstream response headers onto the outbound response, one entry per
    value. Entries without a name and hop-by-hop headers are skipped.
    """
    skipped = RESPONSE_SKIPPED_HEADERS | _connection_tokens(upstream.multi_items())
    for name, value in upstream.multi_items():
        if not name or name.lower() in skipped:
            continue
        target.append(name, value)
