# tests/conftest.py
import asyncio
import os
from typing import Any, Dict, List, Optional

import pytest

os.environ.setdefault("DISABLE_DOTENV", "1")

from interfaces import ImageGenerator, Minter, ProfileResolver, StoragePinner  # noqa: E402
from jobs import JobStore  # noqa: E402


class FakeResolver(ProfileResolver):
    def __init__(self, result: Optional[str] = "img://p42", exc: Exception = None):
        self.result = result
        self.exc = exc
        self.calls: List[str] = []

    async def resolve(self, fid: str) -> Optional[str]:
        self.calls.append(fid)
        if self.exc:
            raise self.exc
        return self.result


class FakeGenerator(ImageGenerator):
    """Optionally blocks on `gate` so a test can observe the processing state."""

    def __init__(self, result: Optional[str] = "img://gen42", exc: Exception = None, gate: bool = False):
        self.result = result
        self.exc = exc
        self.calls: List[str] = []
        self.gate = asyncio.Event() if gate else None

    async def generate(self, image_url: str) -> Optional[str]:
        self.calls.append(image_url)
        if self.gate is not None:
            await self.gate.wait()
        if self.exc:
            raise self.exc
        return self.result


class FakePinner(StoragePinner):
    def __init__(self, image_uri: Optional[str] = "ipfs://Qa", metadata_uri: Optional[str] = "ipfs://Qb"):
        self.image_uri = image_uri
        self.metadata_uri = metadata_uri
        self.images: List[tuple] = []
        self.documents: List[Dict[str, Any]] = []

    async def pin_image(self, image_url: str, fid: str) -> Optional[str]:
        self.images.append((image_url, fid))
        return self.image_uri

    async def pin_metadata(self, document: Dict[str, Any]) -> Optional[str]:
        self.documents.append(document)
        return self.metadata_uri


class FakeMinter(Minter):
    def __init__(self, tx: Optional[str] = "0xDEAD", exc: Exception = None):
        self.tx = tx
        self.exc = exc
        self.calls: List[tuple] = []

    async def mint(self, recipient: str, metadata_uri: str, display_name: str) -> str:
        self.calls.append((recipient, metadata_uri, display_name))
        if self.exc:
            raise self.exc
        return self.tx


@pytest.fixture
def store():
    return JobStore()


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def pinner():
    return FakePinner()


@pytest.fixture
def minter():
    return FakeMinter()
