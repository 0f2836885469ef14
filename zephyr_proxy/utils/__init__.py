from typing import Iterable, List, Optional, Tuple

SENSITIVE_HEADERS = {"authorization", "cookie", "proxy-authorization"}


def mask_secret(text: str, secret: Optional[str]) -> str:
    return text.replace(secret, f"{secret[:2]}****") if secret else text


def redact_headers(headers: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """Header pairs safe for debug logs: credential values are replaced."""
    return [
        (name, "****" if name.lower() in SENSITIVE_HEADERS else value)
        for name, value in headers
    ]
