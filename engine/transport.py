"""
HTTP transport against speed.cloudflare.com.

Each call is one timed request.  All HTTP work goes through a single
``aiohttp.ClientSession`` managed via async-context-manager protocol
(``async with CloudflareTransport() as transport: ...``).

Endpoints::

    GET  /__down?bytes=N     download N bytes
    POST /__up               upload the request body
    GET  /__down?bytes=0     latency probe (Server-Timing: cfRequestDuration;dur=X)
    GET  /cdn-cgi/trace      key=value metadata (ip, loc, colo, ...)
"""
from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

import aiohttp

from .constants import (
    BASE_URL,
    CHUNK_SIZE,
    COMMON_HEADERS,
    CONNECT_TIMEOUT,
    DOWNLOAD_PATH,
    MAX_RETRIES,
    READ_TIMEOUT,
    RETRY_BASE_BACKOFF,
    RETRY_MAX_BACKOFF,
    RETRYABLE_STATUSES,
    TRACE_PATH,
    UPLOAD_PATH,
)
from .errors import TransportFailure

logger = logging.getLogger(__name__)

_SERVER_TIMING_RE = re.compile(r"cfRequestDuration;dur=([\d.]+)")


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------

class Transport(Protocol):
    """What the measurement core needs from the network.  Durations in seconds."""

    retries: int  # retried requests since creation

    async def measure_download(self, byte_count: int) -> float: ...

    async def measure_upload(self, byte_count: int) -> float: ...

    async def measure_latency(self) -> float: ...


@dataclass
class Metadata:
    """Connection details reported by the trace endpoint."""

    country: str = "N/A"
    ip: str = "N/A"
    colo: str = "N/A"

    def to_dict(self) -> Dict[str, Any]:
        return {"country": self.country, "ip": self.ip, "colo": self.colo}


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def parse_server_timing(header: Optional[str]) -> Optional[float]:
    """Extract ``cfRequestDuration`` (ms) from a Server-Timing header."""
    if not header:
        return None
    m = _SERVER_TIMING_RE.search(header)
    return float(m.group(1)) if m else None


def parse_trace_response(body: str) -> Dict[str, str]:
    """Split ``key=value`` lines; malformed lines are skipped."""
    data: Dict[str, str] = {}
    for line in body.splitlines():
        key, sep, value = line.partition("=")
        if not sep:
            if line.strip():
                logger.debug("Skipping malformed trace line: %s", line)
            continue
        data[key.strip()] = value.strip()
    return data


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(int(value.strip()))
    except ValueError:
        return None


def compute_retry_delay(attempt: int, retry_after: Optional[float] = None) -> float:
    """
    Seconds to wait before retry number *attempt* (1-based).

    ``Retry-After`` wins when present; otherwise exponential backoff from
    ``RETRY_BASE_BACKOFF`` capped at ``RETRY_MAX_BACKOFF`` with a 20% jitter
    that alternates sign between attempts.
    """
    if retry_after is not None:
        return retry_after

    exponent = min(max(attempt - 1, 0), 4)
    delay_ms = min(int(RETRY_BASE_BACKOFF * 1000) << exponent, int(RETRY_MAX_BACKOFF * 1000))
    jitter = delay_ms // 5
    if attempt % 2 == 0:
        delay_ms = min(delay_ms + jitter, int(RETRY_MAX_BACKOFF * 1000))
    else:
        delay_ms = delay_ms - jitter
    return delay_ms / 1000


class _RetryableFailure(TransportFailure):
    def __init__(self, reason: str, status: Optional[int] = None, retry_after: Optional[float] = None) -> None:
        super().__init__(reason, status)
        self.retry_after = retry_after


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class CloudflareTransport:
    """Async context-manager performing single timed requests."""

    def __init__(
        self,
        base_url: str = BASE_URL,
        max_retries: int = MAX_RETRIES,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self._sleep = sleep
        self._session: Optional[aiohttp.ClientSession] = None
        self._warned_negative_latency = False
        self.retries = 0

    # -- Context manager ----------------------------------------------------

    async def __aenter__(self) -> CloudflareTransport:
        timeout = aiohttp.ClientTimeout(total=None, connect=CONNECT_TIMEOUT, sock_read=READ_TIMEOUT)
        self._session = aiohttp.ClientSession(headers=COMMON_HEADERS, timeout=timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._session:
            await self._session.close()
            self._session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError(
                "CloudflareTransport must be used as an async context manager "
                "(async with CloudflareTransport() as transport: ...)"
            )
        return self._session

    # -- Public methods -----------------------------------------------------

    async def measure_download(self, byte_count: int) -> float:
        url = f"{self.base_url}{DOWNLOAD_PATH}"
        elapsed, _ = await self._with_retries(
            f"download {byte_count} bytes",
            lambda: self._timed_request("GET", url, params={"bytes": str(byte_count)}),
        )
        return elapsed

    async def measure_upload(self, byte_count: int) -> float:
        url = f"{self.base_url}{UPLOAD_PATH}"
        payload = b"\x01" * byte_count
        elapsed, _ = await self._with_retries(
            f"upload {byte_count} bytes",
            lambda: self._timed_request(
                "POST", url, data=payload,
                headers={"Content-Type": "application/octet-stream"},
            ),
        )
        return elapsed

    async def measure_latency(self) -> float:
        """Round-trip time minus the server's own processing time."""
        url = f"{self.base_url}{DOWNLOAD_PATH}"
        elapsed, headers = await self._with_retries(
            "latency probe",
            lambda: self._timed_request("GET", url, params={"bytes": "0"}),
        )
        server_ms = parse_server_timing(headers.get("Server-Timing")) or 0.0
        latency = elapsed - server_ms / 1000
        logger.debug(
            "latency: total=%.3fms server=%.3fms net=%.3fms",
            elapsed * 1000, server_ms, latency * 1000,
        )
        if latency < 0:
            if not self._warned_negative_latency:
                self._warned_negative_latency = True
                logger.warning(
                    "negative latency after server timing subtraction; clamping to 0 "
                    "(total=%.3fms server=%.3fms)", elapsed * 1000, server_ms,
                )
            return 0.0
        return latency

    async def fetch_metadata(self) -> Metadata:
        session = self._ensure_session()
        try:
            async with session.get(f"{self.base_url}{TRACE_PATH}") as resp:
                resp.raise_for_status()
                body = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportFailure(f"Failed to fetch metadata: {exc}") from exc

        trace = parse_trace_response(body)
        return Metadata(
            country=trace.get("loc", "N/A"),
            ip=trace.get("ip", "N/A"),
            colo=trace.get("colo", "N/A"),
        )

    # -- Internals ----------------------------------------------------------

    async def _timed_request(self, method: str, url: str, **kwargs: Any):
        """Send one request, drain the body, return ``(elapsed, headers)``."""
        session = self._ensure_session()
        start = time.perf_counter()
        try:
            async with session.request(method, url, **kwargs) as resp:
                while await resp.content.read(CHUNK_SIZE):
                    pass
                elapsed = time.perf_counter() - start
                if resp.status >= 400:
                    retry_after = parse_retry_after(resp.headers.get("Retry-After"))
                    if resp.status in RETRYABLE_STATUSES:
                        raise _RetryableFailure("retryable HTTP status", resp.status, retry_after)
                    raise TransportFailure("non-retryable HTTP status", resp.status)
                return elapsed, resp.headers
        except asyncio.TimeoutError as exc:
            raise _RetryableFailure(f"request timed out after {time.perf_counter() - start:.1f}s") from exc
        except aiohttp.ClientError as exc:
            raise TransportFailure(str(exc) or type(exc).__name__) from exc

    async def _with_retries(self, label: str, request: Callable[[], Awaitable[Any]]):
        attempt = 0
        while True:
            attempt += 1
            try:
                return await request()
            except _RetryableFailure as exc:
                if attempt > self.max_retries:
                    raise TransportFailure(exc.reason, exc.status) from exc
                delay = compute_retry_delay(attempt, exc.retry_after)
                logger.warning(
                    "%s failed (%s). retrying in %dms (%d/%d)",
                    label, exc, delay * 1000, attempt, self.max_retries,
                )
                self.retries += 1
                await self._sleep(delay)
