import asyncio
import random

import httpx

from config import settings
from logging_utils import get_logger

logger = get_logger("http")

RETRY_STATUSES = {429, 500, 502, 503, 504}

RETRY_EXCEPTIONS = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.WriteError,
    httpx.RemoteProtocolError,
)


def default_timeout(read: float = None) -> httpx.Timeout:
    read = read or settings.HTTP_TIMEOUT_SEC
    return httpx.Timeout(connect=10, read=read, write=read, pool=read)


class RetryClient(httpx.AsyncClient):
    """
    Async HTTP client with retry + exponential backoff.
    Shared by Neynar, Replicate, Pinata and Engine calls.
    Transport errors and 429/5xx answers are retried; the last
    response (or exception) is handed back to the caller.
    """

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("timeout", default_timeout())
        super().__init__(*args, **kwargs)

    async def request(
        self,
        method: str,
        url,
        *args,
        retries: int = 3,
        backoff: float = 0.5,
        **kwargs,
    ) -> httpx.Response:
        attempt = 0

        while True:
            try:
                response = await super().request(method, url, *args, **kwargs)
            except RETRY_EXCEPTIONS as e:
                attempt += 1
                if attempt > retries:
                    raise
                logger.warning("%s %s failed (%s), retry %d/%d", method, url, e.__class__.__name__, attempt, retries)
            else:
                if response.status_code not in RETRY_STATUSES or attempt >= retries:
                    return response
                attempt += 1
                logger.warning("%s %s -> %d, retry %d/%d", method, url, response.status_code, attempt, retries)

            # exponential backoff + jitter
            await asyncio.sleep(backoff * (2 ** (attempt - 1)) + random.uniform(0, 0.2))

    async def get(self, url, *, retries: int = 3, backoff: float = 0.5, **kwargs):
        return await self.request("GET", url, retries=retries, backoff=backoff, **kwargs)

    async def post(self, url, *, retries: int = 3, backoff: float = 0.5, **kwargs):
        return await self.request("POST", url, retries=retries, backoff=backoff, **kwargs)
