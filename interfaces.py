"""
Contracts for the external services the box pipeline talks to.

- ProfileResolver: FID -> source image URL (profile picture or placeholder)
- ImageGenerator: source image URL -> generated box character image URL
- StoragePinner: pins the image and its metadata document to IPFS
- Minter: mints the NFT for a pinned metadata document

Implementations return None (or an empty string) when the service came back
empty and raise when the call itself failed; the job driver treats both as a
failed stage.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class ProfileResolver(ABC):

    @abstractmethod
    async def resolve(self, fid: str) -> Optional[str]:
        """
        Return the source image URL for the FID.
        """


class ImageGenerator(ABC):

    @abstractmethod
    async def generate(self, image_url: str) -> Optional[str]:
        """
        Return the URL of the generated character image.
        """


class StoragePinner(ABC):

    @abstractmethod
    async def pin_image(self, image_url: str, fid: str) -> Optional[str]:
        """
        Pin the image behind image_url, return its ipfs:// URI.
        """

    @abstractmethod
    async def pin_metadata(self, document: Dict[str, Any]) -> Optional[str]:
        """
        Pin the metadata JSON document, return its ipfs:// URI.
        """


class Minter(ABC):

    @abstractmethod
    async def mint(self, recipient: str, metadata_uri: str, display_name: str) -> str:
        """
        Mint the token to recipient and return the transaction reference.
        Raise on failure.
        """
