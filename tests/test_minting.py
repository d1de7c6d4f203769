import asyncio

import pytest

from conftest import FakeMinter
from errors import InvalidInput, MintFailed, NotFound, NotReady
from jobs import JobRecord, JobStatus
from services.minting import CompletionConsumer
from services.status_reader import StatusReader


def _ready(store, fid="42"):
    rec = JobRecord.processing(fid).to_ready("ipfs://Qa", "ipfs://Qb")
    store.put(fid, rec)
    return rec


def test_status_reader(store):
    reader = StatusReader(store)
    with pytest.raises(NotFound):
        reader.status("42")
    with pytest.raises(NotFound):
        reader.status(None)

    rec = _ready(store)
    assert reader.status(42) is rec
    # reading has no side effects
    assert store.get("42") is rec


def test_finalize_ready_record(store, minter):
    _ready(store)
    consumer = CompletionConsumer(store, minter)

    result = asyncio.run(consumer.finalize("42", "0xABC"))

    assert result.tx_reference == "0xDEAD"
    assert minter.calls == [("0xABC", "ipfs://Qb", "Box Character #42")]
    assert store.get("42") is None
    with pytest.raises(NotFound):
        StatusReader(store).status("42")

    # consumed once: the next finalize has nothing to mint
    with pytest.raises(NotReady):
        asyncio.run(consumer.finalize("42", "0xABC"))
    assert len(minter.calls) == 1


@pytest.mark.parametrize(
    "record",
    [
        None,
        JobRecord.processing("42"),
        JobRecord.processing("42").to_error("GenerationFailed"),
    ],
)
def test_finalize_non_ready_never_mints(store, minter, record):
    if record is not None:
        store.put("42", record)
    consumer = CompletionConsumer(store, minter)

    with pytest.raises(NotReady):
        asyncio.run(consumer.finalize("42", "0xABC"))

    assert minter.calls == []
    assert store.get("42") is record


@pytest.mark.parametrize("fid, recipient", [("", "0xABC"), ("42", ""), (None, "0xABC"), ("42", None)])
def test_finalize_requires_fid_and_recipient(store, minter, fid, recipient):
    _ready(store)
    consumer = CompletionConsumer(store, minter)

    with pytest.raises(InvalidInput):
        asyncio.run(consumer.finalize(fid, recipient))
    assert minter.calls == []
    assert store.get("42").status == JobStatus.READY


def test_failed_mint_keeps_record_for_retry(store):
    rec = _ready(store)
    minter = FakeMinter(exc=RuntimeError("engine 500"))
    consumer = CompletionConsumer(store, minter)

    with pytest.raises(MintFailed) as exc_info:
        asyncio.run(consumer.finalize("42", "0xABC"))
    assert exc_info.value.extra["details"] == "engine 500"
    assert store.get("42") is rec

    minter.exc = None
    result = asyncio.run(consumer.finalize("42", "0xABC"))
    assert result.tx_reference == "0xDEAD"
    assert store.get("42") is None


def test_empty_tx_reference_is_a_failure(store):
    rec = _ready(store)
    consumer = CompletionConsumer(store, FakeMinter(tx=""))

    with pytest.raises(MintFailed):
        asyncio.run(consumer.finalize("42", "0xABC"))
    assert store.get("42") is rec


def test_concurrent_finalize_mints_once(store):
    _ready(store)

    class SlowMinter(FakeMinter):
        async def mint(self, recipient, metadata_uri, display_name):
            await asyncio.sleep(0.01)
            return await super().mint(recipient, metadata_uri, display_name)

    minter = SlowMinter()
    consumer = CompletionConsumer(store, minter)

    async def scenario():
        return await asyncio.gather(
            consumer.finalize("42", "0xABC"),
            consumer.finalize("42", "0xDEF"),
            return_exceptions=True,
        )

    first, second = asyncio.run(scenario())

    assert first.tx_reference == "0xDEAD"
    assert isinstance(second, NotReady)
    assert len(minter.calls) == 1
    assert store.get("42") is None
