# Make `import zephyr_proxy` resolve to this checkout when running pytest
# from the repository root without installing the package.
import os
import sys

SERVICE_ROOT = os.path.dirname(__file__)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from zephyr_proxy.server import create_app  # noqa: E402
from zephyr_proxy.settings import ProxySettings  # noqa: E402
from zephyr_proxy.utils_tests.upstream_mock import RecordingUpstream  # noqa: E402


@pytest.fixture
def proxy_settings():
    return ProxySettings(
        jira_url="http://jira.test:8080",
        allowed_origin="http://localhost:8484",
        jira_username="tester",
        jira_password="s3cret!",
    )


@pytest.fixture
def upstream():
    """Upstream answering 200 with an empty body; tests reconfigure it as needed."""
    return RecordingUpstream()


@pytest.fixture
def proxy_client(proxy_settings, upstream):
    app = create_app(proxy_settings, transport=upstream.transport)
    with TestClient(app) as client:
        yield client
