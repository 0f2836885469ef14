import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "zephyr-proxy")

SERVER_HOST = os.environ.get("SERVER_HOST", "0.0.0.0")
SERVER_PORT = os.environ.get("SERVER_PORT", "8383")

JIRA_URL = os.environ.get("JIRA_URL", "http://localhost:8182")
ALLOWED_ORIGIN = os.environ.get("ALLOWED_ORIGIN", "http://localhost:8484")
JIRA_USERNAME = os.environ.get("JIRA_USERNAME", "admin")
JIRA_PASSWORD = os.environ.get("JIRA_PASSWORD", "0000abc!")

PROXY_TIMEOUT = os.environ.get("PROXY_TIMEOUT", "300")  # seconds, 0 disables
PROXY_FOLLOW_REDIRECTS = os.environ.get("PROXY_FOLLOW_REDIRECTS", "true")
PROXY_CHUNK_SIZE = os.environ.get("PROXY_CHUNK_SIZE", "8192")

LOG_LEVEL = os.getenv("LOG_LEVEL", "info").lower()

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")
