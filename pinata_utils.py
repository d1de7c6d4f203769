# pinata_utils.py
from io import BytesIO
from typing import Any, Dict, Optional

import httpx
from PIL import Image, UnidentifiedImageError

from config import settings
from http_client import RetryClient
from interfaces import StoragePinner
from logging_utils import get_logger

logger = get_logger("ipfs")

IMAGE_EXTENSIONS = {"PNG": "png", "JPEG": "jpg", "GIF": "gif", "WEBP": "webp"}
MAX_IMAGE_BYTES = 20 * 1024 * 1024


def build_metadata(fid: str, image_uri: str) -> Dict[str, Any]:
    """ERC-721 metadata for one box character."""
    return {
        "name": f"Box Character #{fid}",
        "description": f"AI-generated Box Character NFT for Farcaster user FID {fid}",
        "image": image_uri,
        "attributes": [
            {"trait_type": "Creator Platform", "value": "Farcaster Frame"},
            {"trait_type": "Style", "value": "Box Character"},
            {"trait_type": "FID", "value": str(fid)},
        ],
    }


def image_extension(data: bytes) -> str:
    """
    File extension for the image bytes. Raises ValueError when the
    bytes are not an image Pillow can read.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            fmt = (img.format or "").upper()
    except UnidentifiedImageError as e:
        raise ValueError("downloaded file is not an image") from e
    return IMAGE_EXTENSIONS.get(fmt, "png")


class PinataPinner(StoragePinner):
    """
    Pins to IPFS through Pinata. Both calls log and return None on
    failure, which the job driver records as PinningFailed.
    """

    def __init__(
        self,
        api_key: str,
        secret_key: str,
        *,
        base_url: str = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.secret_key = secret_key
        self.base_url = (base_url or settings.PINATA_BASE_URL).rstrip("/")
        self._transport = transport

    def _auth_headers(self) -> Dict[str, str]:
        return {
            "pinata_api_key": self.api_key,
            "pinata_secret_api_key": self.secret_key,
        }

    async def _download(self, client: RetryClient, image_url: str) -> bytes:
        r = await client.get(image_url, follow_redirects=True)
        r.raise_for_status()
        if len(r.content) > MAX_IMAGE_BYTES:
            raise ValueError(f"image too large: {len(r.content)} bytes")
        return r.content

    async def pin_image(self, image_url: str, fid: str) -> Optional[str]:
        if not image_url:
            return None
        try:
            async with RetryClient(transport=self._transport) as client:
                data = await self._download(client, image_url)
                ext = image_extension(data)
                files = {"file": (f"box_character_fid_{fid}.{ext}", data, f"image/{'jpeg' if ext == 'jpg' else ext}")}
                r = await client.post(
                    f"{self.base_url}/pinning/pinFileToIPFS",
                    files=files,
                    headers=self._auth_headers(),
                )
                r.raise_for_status()
                ipfs_hash = r.json().get("IpfsHash")
        except (httpx.HTTPError, ValueError) as e:
            logger.error("[ipfs] fid=%s image pin failed: %s", fid, e)
            return None
        if not ipfs_hash:
            logger.error("[ipfs] fid=%s image pin returned no hash", fid)
            return None
        return f"ipfs://{ipfs_hash}"

    async def pin_metadata(self, document: Dict[str, Any]) -> Optional[str]:
        try:
            async with RetryClient(transport=self._transport) as client:
                r = await client.post(
                    f"{self.base_url}/pinning/pinJSONToIPFS",
                    json=document,
                    headers=self._auth_headers(),
                )
                r.raise_for_status()
                ipfs_hash = r.json().get("IpfsHash")
        except (httpx.HTTPError, ValueError) as e:
            logger.error("[ipfs] metadata pin failed for %s: %s", document.get("name"), e)
            return None
        if not ipfs_hash:
            logger.error("[ipfs] metadata pin returned no hash for %s", document.get("name"))
            return None
        return f"ipfs://{ipfs_hash}"
