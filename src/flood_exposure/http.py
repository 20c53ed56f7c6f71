# -*- coding: utf-8 -*-

"""
HTTP access for the remote data sources.

A transport is anything with an async ``request(method, url, params=None,
data=None)`` returning an HttpResponse. AiohttpTransport is the real one;
tests pass a fake. Endpoint fallback and retries are described by a
RetryPolicy and carried out by fetch_with_fallback().
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple

import aiohttp

from .errors import MalformedResponse, NetworkError, RateLimited, ServiceTimeout

logger = logging.getLogger(__name__)

USER_AGENT = "flood-exposure/0.1 (flood exposure analysis)"


@dataclass(frozen=True)
class HttpResponse:
    status: int
    body: bytes
    url: str = ""

    @property
    def ok(self):
        return 200 <= self.status < 300

    def json(self):
        try:
            return json.loads(self.body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise MalformedResponse(f"Invalid JSON from {self.url or 'service'}: {e}") from e


@dataclass(frozen=True)
class RetryPolicy:
    """
    Sequential endpoint fallback.

    Endpoints are tried in order. Each gets up to ``max_attempts`` requests.
    A status in ``advance_on`` abandons the endpoint at once; a status in
    ``cooldown_on`` waits ``rate_limit_cooldown_s`` and retries the same
    endpoint; a transport error waits ``backoff_s`` before the next attempt
    (but not after the last one); any other failing status is retried
    immediately.
    """

    endpoints: Tuple[str, ...]
    max_attempts: int = 2
    backoff_s: float = 2.0
    rate_limit_cooldown_s: float = 5.0
    advance_on: FrozenSet[int] = field(default_factory=lambda: frozenset({503, 504}))
    cooldown_on: FrozenSet[int] = field(default_factory=lambda: frozenset({429}))

    def __post_init__(self):
        if not self.endpoints:
            raise ValueError("RetryPolicy needs at least one endpoint")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


class AiohttpTransport:
    """Transport backed by a lazily created aiohttp.ClientSession."""

    def __init__(self, timeout_s=120.0, session=None):
        self.timeout_s = timeout_s
        self._session = session
        self._owns_session = session is None

    async def request(self, method, url, params=None, data=None):
        if self._session is None:
            self._session = aiohttp.ClientSession(headers={"User-Agent": USER_AGENT})

        try:
            async with self._session.request(
                method,
                url,
                params=params,
                data=data,
                timeout=aiohttp.ClientTimeout(total=self.timeout_s),
            ) as response:
                body = await response.read()
                return HttpResponse(status=response.status, body=body, url=str(response.url))
        except asyncio.TimeoutError as e:
            raise ServiceTimeout(f"Request to {url} timed out", endpoint=url) from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"Request to {url} failed: {e}", endpoint=url) from e

    async def close(self):
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()


async def fetch_with_fallback(transport, policy, method="GET", params=None, data=None,
                              sleep=asyncio.sleep):
    """
    Run one request against the endpoints of a RetryPolicy.

    Parameters:
    -----------
    transport : object
        Has an async request(method, url, params=None, data=None)
    policy : RetryPolicy
        Endpoints and retry rules
    method : str
        HTTP method
    params : dict, optional
        Query parameters
    data : dict, optional
        Form body
    sleep : coroutine function
        Used for backoff waits; replaced in tests

    Returns:
    --------
    HttpResponse
        The first successful response

    Raises:
    -------
    NetworkError
        The last failure once every endpoint is exhausted
    """
    last_error: Optional[Exception] = None

    for endpoint in policy.endpoints:
        for attempt in range(policy.max_attempts):
            logger.info("Fetching from %s (attempt %d)", endpoint, attempt + 1)
            try:
                response = await transport.request(method, endpoint, params=params, data=data)
            except NetworkError as e:
                logger.warning("Error with %s: %s", endpoint, e)
                last_error = e
                if attempt < policy.max_attempts - 1:
                    await sleep(policy.backoff_s)
                continue

            if response.ok:
                return response

            if response.status in policy.cooldown_on:
                logger.warning("Rate limited by %s, waiting before retry...", endpoint)
                last_error = RateLimited(
                    f"Rate limited by {endpoint}", status=response.status, endpoint=endpoint
                )
                if attempt < policy.max_attempts - 1:
                    await sleep(policy.rate_limit_cooldown_s)
                continue

            if response.status in policy.advance_on:
                logger.warning("Server timeout (%d) from %s, trying alternative...",
                               response.status, endpoint)
                last_error = ServiceTimeout(
                    "Server timeout. The selected area might be too large. Try a smaller polygon.",
                    status=response.status,
                    endpoint=endpoint,
                )
                break

            last_error = NetworkError(
                f"Request to {endpoint} failed with status {response.status}",
                status=response.status,
                endpoint=endpoint,
            )

    if last_error is None:
        last_error = NetworkError(
            "All endpoints failed. Please try a smaller area or try again later."
        )
    raise last_error
