# services/minting.py
"""
Finalize step: mint the NFT for a ready job and drop the job record.

A ready record is consumed at most once. While a mint for an FID is in
flight a second finalize for the same FID is refused with NotReady; if the
mint fails the record stays ready so the frame can retry.
"""
import threading
from dataclasses import dataclass
from typing import Set

import metrics
from errors import InvalidInput, MintFailed, NotReady
from interfaces import Minter
from jobs import JobStatus, JobStore, normalize_key
from logging_utils import get_logger

logger = get_logger("minting")


@dataclass
class MintResult:
    tx_reference: str
    fid: str
    recipient: str
    metadata_uri: str


def display_name(fid: str) -> str:
    return f"Box Character #{fid}"


class CompletionConsumer:

    def __init__(self, store: JobStore, minter: Minter):
        self.store = store
        self.minter = minter
        self._minting: Set[str] = set()
        self._lock = threading.Lock()

    def _claim(self, fid: str):
        with self._lock:
            record = self.store.get(fid)
            if record is None or record.status != JobStatus.READY or fid in self._minting:
                return None
            self._minting.add(fid)
            return record

    def _release(self, fid: str) -> None:
        with self._lock:
            self._minting.discard(fid)

    async def finalize(self, key, recipient) -> MintResult:
        fid = normalize_key(key)
        to = normalize_key(recipient)
        if not fid or not to:
            raise InvalidInput("Missing parameters (fid or recipientAddress).", stage="finalize")

        record = self._claim(fid)
        if record is None:
            current = self.store.get(fid)
            logger.warning("[mint] fid=%s not ready to mint, status=%s", fid, current.status.value if current else None)
            raise NotReady("Not ready to mint: no 'ready' job for this FID.", stage="finalize")

        try:
            try:
                tx = await self.minter.mint(to, record.metadata_uri, display_name(fid))
            except Exception as e:
                metrics.mints_failed.inc()
                logger.error("[mint] fid=%s recipient=%s mint failed: %s", fid, to, e)
                raise MintFailed("Mint failed.", stage="finalize", extra={"details": str(e) or e.__class__.__name__}) from e
            if not tx:
                metrics.mints_failed.inc()
                raise MintFailed("Mint failed.", stage="finalize", extra={"details": "minting service returned no transaction reference"})

            self.store.remove(fid)
        finally:
            self._release(fid)

        metrics.mints_succeeded.inc()
        logger.info("[mint] fid=%s recipient=%s tx=%s, job removed", fid, to, tx)
        return MintResult(tx_reference=tx, fid=fid, recipient=to, metadata_uri=record.metadata_uri)
