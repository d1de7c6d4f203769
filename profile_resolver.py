# profile_resolver.py
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from config import settings
from http_client import RetryClient
from interfaces import ProfileResolver
from logging_utils import get_logger

logger = get_logger("profile")

PLACEHOLDER_URL = "https://picsum.photos/seed/{seed}/1024/1024"


def placeholder_image_url(fid: str) -> str:
    seed = str(fid or "default")
    return PLACEHOLDER_URL.format(seed=quote(seed, safe=""))


class PlaceholderProfileResolver(ProfileResolver):
    """Deterministic stand-in picture per FID, used when no Neynar key is set."""

    async def resolve(self, fid: str) -> Optional[str]:
        url = placeholder_image_url(fid)
        logger.info("[profile] fid=%s placeholder=%s", fid, url)
        return url


def _extract_pfp_url(payload: Dict[str, Any]) -> Optional[str]:
    users = payload.get("users") or []
    if not users or not isinstance(users[0], dict):
        return None
    user = users[0]
    url = user.get("pfp_url") or (user.get("pfp") or {}).get("url")
    return url.strip() if isinstance(url, str) and url.strip() else None


class NeynarProfileResolver(ProfileResolver):

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = (base_url or settings.NEYNAR_BASE_URL).rstrip("/")
        self._transport = transport

    async def resolve(self, fid: str) -> Optional[str]:
        headers = {"api_key": self.api_key, "accept": "application/json"}
        async with RetryClient(transport=self._transport) as client:
            r = await client.get(f"{self.base_url}/user/bulk", params={"fids": fid}, headers=headers)
        if r.status_code >= 400:
            logger.error("[profile] fid=%s neynar status=%s body=%s", fid, r.status_code, r.text[:300])
            return None
        url = _extract_pfp_url(r.json())
        logger.info("[profile] fid=%s pfp=%s", fid, url)
        return url
