"""
Shared constants used across all engine modules.

Centralises endpoints, default headers, and tunables so they live in
exactly one place.
"""

# ---------------------------------------------------------------------------
# HTTP headers
# ---------------------------------------------------------------------------

USER_AGENT = "cfspeedtest/0.1 (+https://speed.cloudflare.com)"

COMMON_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "*/*",
    "Accept-Encoding": "identity",
}

# ---------------------------------------------------------------------------
# speed.cloudflare.com endpoints
# ---------------------------------------------------------------------------

BASE_URL = "https://speed.cloudflare.com"
DOWNLOAD_PATH = "/__down"
UPLOAD_PATH = "/__up"
TRACE_PATH = "/cdn-cgi/trace"

# ---------------------------------------------------------------------------
# Repetitions
# ---------------------------------------------------------------------------

DEFAULT_REPETITIONS = 10
MIN_REPETITIONS = 1
MAX_REPETITIONS = 999
MIN_PERCENTILE_REPETITIONS = 4   # below this p10/p90 collapse onto min/max

DEFAULT_LATENCY_REPETITIONS = 25
MIN_LATENCY_REPETITIONS = 1

DEFAULT_MAX_PAYLOAD = "25m"

# ---------------------------------------------------------------------------
# Escalation
# ---------------------------------------------------------------------------

TIME_THRESHOLD = 5.0             # seconds, mean per-request duration of a tier

# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

CHUNK_SIZE = 256 * 1024
CONNECT_TIMEOUT = 10.0
READ_TIMEOUT = 30.0

MAX_RETRIES = 3
RETRYABLE_STATUSES = frozenset({408, 425, 429, 500, 502, 503, 504})
RETRY_BASE_BACKOFF = 0.25        # seconds
RETRY_MAX_BACKOFF = 3.0          # seconds
