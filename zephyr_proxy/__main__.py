"""
Run the proxy.

Usage:
    python -m zephyr_proxy
    python -m zephyr_proxy -D server.port=8383 -D jira.url=http://jira:8080 \\
        -D allowed.origin=http://localhost:8484 -D jira.username=admin -D jira.password=secret

Settings not given with -D come from the environment (SERVER_PORT, JIRA_URL,
ALLOWED_ORIGIN, JIRA_USERNAME, JIRA_PASSWORD, ...).
"""

import argparse
import logging
import sys
from typing import Dict, List, Optional

import uvicorn

from zephyr_proxy.server import ProxyServer, configure_tracing, create_app
from zephyr_proxy.settings import PROPERTY_NAMES, load_settings

logger = logging.getLogger("uvicorn.error")


def parse_define(value: str) -> tuple:
    key, sep, val = value.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"expected key=value, got {value!r}")
    return key.strip(), val


def parse_args(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        prog="zephyr-proxy",
        description="Reverse proxy for the JIRA Zephyr Scale test plan and test run APIs",
    )
    parser.add_argument(
        "-D",
        dest="defines",
        action="append",
        type=parse_define,
        default=[],
        metavar="KEY=VALUE",
        help=f"Override a setting ({', '.join(PROPERTY_NAMES)})",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    overrides: Dict[str, str] = dict(args.defines)

    try:
        settings = load_settings(overrides)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    configure_tracing()
    app = create_app(settings)
    config = uvicorn.Config(
        app, host=settings.host, port=settings.port, log_level=settings.log_level
    )
    ProxyServer(config).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
