# mint_service.py
import secrets
from typing import Optional

import httpx

from config import settings
from http_client import RetryClient
from interfaces import Minter
from logging_utils import get_logger

logger = get_logger("mint")


class MintError(Exception):
    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MockMinter(Minter):
    """Fake transaction hash for the UI flow, used when Engine is not configured."""

    async def mint(self, recipient: str, metadata_uri: str, display_name: str) -> str:
        tx_hash = "0x" + secrets.token_hex(32)
        logger.info("[mint] mock %s -> %s metadata=%s tx=%s", display_name, recipient, metadata_uri, tx_hash)
        return tx_hash


class EngineMinter(Minter):
    """
    ERC-721 mintTo through a thirdweb Engine backend wallet.
    Engine queues the transaction; the queue id is the reference
    handed back to the frame.
    """

    def __init__(
        self,
        engine_url: str,
        access_token: str,
        backend_wallet: str,
        contract_address: str,
        *,
        chain: str = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.engine_url = engine_url.rstrip("/")
        self.access_token = access_token
        self.backend_wallet = backend_wallet
        self.contract_address = contract_address
        self.chain = chain or settings.NFT_CHAIN
        self._transport = transport

    async def mint(self, recipient: str, metadata_uri: str, display_name: str) -> str:
        url = f"{self.engine_url}/contract/{self.chain}/{self.contract_address}/erc721/mint-to"
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "x-backend-wallet-address": self.backend_wallet,
        }
        body = {"receiver": recipient, "metadata": metadata_uri}

        # no retries: a repeated POST could mint twice
        async with RetryClient(transport=self._transport) as client:
            r = await client.post(url, json=body, headers=headers, retries=0)
        if r.status_code >= 400:
            raise MintError(f"Engine {r.status_code}: {r.text[:300]}", status_code=r.status_code)

        result = (r.json() or {}).get("result") or {}
        reference = result.get("transactionHash") or result.get("queueId")
        if not reference:
            raise MintError(f"Engine returned no transaction reference: {r.text[:300]}")
        logger.info("[mint] %s -> %s metadata=%s ref=%s", display_name, recipient, metadata_uri, reference)
        return reference
