import asyncio
from typing import Any, Dict, List, Optional

import httpx

from config import settings
from http_client import RetryClient, default_timeout
from interfaces import ImageGenerator
from logging_utils import get_logger

logger = get_logger("ai")

REPLICATE_API = "https://api.replicate.com/v1"


class AIProviderError(Exception):
    def __init__(self, message: str, *, retryable: bool = False, status_code: Optional[int] = None):
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code


def _raise_for_provider(r: httpx.Response, provider: str) -> None:
    if r.status_code >= 500:
        raise AIProviderError(f"{provider} 5xx: {r.status_code}", retryable=True, status_code=r.status_code)
    if r.status_code >= 400:
        try:
            err = r.json()
        except ValueError:
            err = r.text
        raise AIProviderError(f"{provider} 4xx: {r.status_code}: {err}", retryable=False, status_code=r.status_code)


def _output_urls(output: Any) -> List[str]:
    if isinstance(output, str):
        output = [output]
    if not isinstance(output, list):
        return []
    return [u for u in output if isinstance(u, str) and u.strip()]


class PassthroughGenerator(ImageGenerator):
    """MVP mode: the source picture is pinned as the character image."""

    async def generate(self, image_url: str) -> Optional[str]:
        return image_url


class ReplicateGenerator(ImageGenerator):
    """
    Image-to-image on Replicate: create a prediction for the profile
    picture, poll until it settles, return the first output URL.
    """

    def __init__(
        self,
        token: str,
        model: str,
        *,
        prompt: str = None,
        strength: float = None,
        poll_interval: float = 2.0,
        max_polls: int = 150,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.model = model
        self.prompt = prompt or settings.REPLICATE_PROMPT
        self.strength = settings.REPLICATE_STRENGTH if strength is None else strength
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self._transport = transport

    def _client(self) -> RetryClient:
        return RetryClient(
            headers={"Authorization": f"Token {self.token}"},
            timeout=default_timeout(settings.GENERATION_TIMEOUT_SEC),
            transport=self._transport,
        )

    async def _poll(self, client: RetryClient, prediction_id: str) -> Dict[str, Any]:
        for _ in range(self.max_polls):
            r = await client.get(f"{REPLICATE_API}/predictions/{prediction_id}")
            _raise_for_provider(r, "Replicate")
            data = r.json()
            if data.get("status") in ("succeeded", "failed", "canceled"):
                return data
            await asyncio.sleep(self.poll_interval)
        raise AIProviderError("Replicate polling timeout", retryable=True)

    async def generate(self, image_url: str) -> Optional[str]:
        body = {
            "version": self.model,
            "input": {
                "image": image_url,
                "prompt": self.prompt,
                "strength": self.strength,
            },
        }
        async with self._client() as client:
            r = await client.post(f"{REPLICATE_API}/predictions", json=body)
            _raise_for_provider(r, "Replicate")
            prediction_id = r.json().get("id")
            if not prediction_id:
                raise AIProviderError(f"Replicate create failed: {r.json()}", retryable=False)
            logger.info("[ai] prediction=%s created for %s", prediction_id, image_url)
            final = await self._poll(client, prediction_id)

        if final.get("status") != "succeeded":
            raise AIProviderError(f"Replicate {final.get('status')}: {final.get('error')}", retryable=False)
        urls = _output_urls(final.get("output"))
        if not urls:
            logger.warning("[ai] prediction=%s returned no images", prediction_id)
            return None
        return urls[0]
