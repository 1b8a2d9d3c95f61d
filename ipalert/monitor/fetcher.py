"""Public address lookup with bounded retry."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

from .config import FetchConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one address lookup.

    ``address`` is the raw text returned by the echo endpoint, or None
    when the address could not be determined.
    """

    address: Optional[str] = None

    @property
    def connected(self) -> bool:
        """Whether an address was obtained."""
        return self.address is not None

    def __str__(self) -> str:
        return self.address if self.address is not None else "no connection"


NO_CONNECTION = FetchResult()


class AddressFetcher:
    """Looks up the host's public address from an IP echo endpoint.

    Transport errors and timeouts are retried up to ``max_attempts`` times
    with a fixed delay between attempts. A 4xx response ends the lookup
    immediately. Neither case raises: both come back as NO_CONNECTION.
    """

    def __init__(
        self,
        config: Optional[FetchConfig] = None,
        http_session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize fetcher.

        Args:
            config: Endpoint, retry and timeout settings.
            http_session: Optional aiohttp session (for testing).
        """
        self.config = config or FetchConfig()
        self._session = http_session
        self._owns_session = http_session is None
        self.last_attempts = 0

    async def __aenter__(self):
        self._ensure_session()
        return self

    async def __aexit__(self, *args):
        await self.close()

    @property
    def endpoint(self) -> str:
        return self.config.endpoint

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def fetch(self) -> FetchResult:
        """Get the current public address.

        Returns:
            FetchResult with the response body, or NO_CONNECTION if the
            endpoint rejected the request or every attempt failed.
        """
        max_attempts = self.config.max_attempts
        delay = self.config.retry_delay_ms / 1000.0

        self.last_attempts = 0
        for attempt in range(max_attempts):
            self.last_attempts = attempt + 1
            try:
                return await self._try_fetch()
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                logger.warning(
                    f"Address lookup attempt {attempt + 1}/{max_attempts} failed: "
                    f"{type(e).__name__}: {e}"
                )

            # No wait after the final attempt
            if attempt < max_attempts - 1:
                logger.debug(f"Retrying in {delay}s...")
                await asyncio.sleep(delay)

        logger.error(f"Address lookup failed after {max_attempts} attempts")
        return NO_CONNECTION

    async def _try_fetch(self) -> FetchResult:
        """Single lookup attempt."""
        session = self._ensure_session()
        timeout = aiohttp.ClientTimeout(total=self.config.request_timeout_ms / 1000.0)

        async with session.get(self.config.endpoint, timeout=timeout) as resp:
            if 400 <= resp.status < 500:
                # Client errors won't resolve by retrying
                logger.error(
                    f"Unsuccessful status code from {self.config.endpoint}: {resp.status}"
                )
                return NO_CONNECTION

            body = await resp.text()
            logger.debug(f"Lookup returned {resp.status}: {body[:64]}")
            return FetchResult(body)

    async def close(self) -> None:
        """Close the HTTP session if owned."""
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None
