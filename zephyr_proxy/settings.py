"""
Process-wide proxy configuration.

Values come from the environment (see ``zephyr_proxy.vars``) and may be
overridden with the dotted property names the connector has always accepted,
e.g. ``server.port=9000`` or ``jira.url=http://jira.internal:8080``.
The resulting ``ProxySettings`` is frozen and handed to the proxy handler
explicitly; nothing below the application factory reads the environment.
"""

from typing import Dict, Mapping, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from zephyr_proxy import vars as env

LOG_LEVELS = ("critical", "error", "warning", "info", "debug", "trace")

# Dotted property name -> ProxySettings field
PROPERTY_NAMES: Dict[str, str] = {
    "server.host": "host",
    "server.port": "port",
    "jira.url": "jira_url",
    "allowed.origin": "allowed_origin",
    "jira.username": "jira_username",
    "jira.password": "jira_password",
    "proxy.timeout": "proxy_timeout",
    "proxy.follow_redirects": "follow_redirects",
    "proxy.chunk_size": "chunk_size",
    "log.level": "log_level",
}


class ProxySettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = Field(8383, ge=0, le=65535)
    jira_url: str = "http://localhost:8182"
    allowed_origin: str = "http://localhost:8484"
    jira_username: str = "admin"
    jira_password: SecretStr = SecretStr("0000abc!")
    proxy_timeout: float = Field(300.0, ge=0)
    follow_redirects: bool = True
    chunk_size: int = Field(8192, gt=0)
    log_level: str = "info"

    @field_validator("jira_url")
    @classmethod
    def _absolute_http_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"jira.url must be an absolute http(s) URL, got {value!r}")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        value = value.lower()
        if value not in LOG_LEVELS:
            raise ValueError(f"log.level must be one of {', '.join(LOG_LEVELS)}")
        return value

    @property
    def upstream_timeout(self) -> Optional[float]:
        """Timeout in seconds for the upstream client, ``None`` when disabled."""
        return self.proxy_timeout or None


def _environment_values() -> Dict[str, str]:
    return {
        "host": env.SERVER_HOST,
        "port": env.SERVER_PORT,
        "jira_url": env.JIRA_URL,
        "allowed_origin": env.ALLOWED_ORIGIN,
        "jira_username": env.JIRA_USERNAME,
        "jira_password": env.JIRA_PASSWORD,
        "proxy_timeout": env.PROXY_TIMEOUT,
        "follow_redirects": env.PROXY_FOLLOW_REDIRECTS,
        "chunk_size": env.PROXY_CHUNK_SIZE,
        "log_level": env.LOG_LEVEL,
    }


def load_settings(overrides: Optional[Mapping[str, str]] = None) -> ProxySettings:
    """
    Build the settings from the environment plus dotted-name overrides.

    Raises:
        ValueError: for an unknown property name, or (as
            ``pydantic.ValidationError``) for an invalid value.
    """
    values = _environment_values()
    for key, value in (overrides or {}).items():
        field = PROPERTY_NAMES.get(key)
        if field is None:
            raise ValueError(f"Unknown setting: {key}")
        values[field] = value
    return ProxySettings(**values)
