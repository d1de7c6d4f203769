from datetime import timedelta

import pytest
from pydantic import ValidationError

from jobs import JobRecord, JobStatus, JobStore, normalize_key
from time_utils import now_utc


def test_normalize_key_accepts_ints_and_strips():
    assert normalize_key(42) == "42"
    assert normalize_key("  7 ") == "7"
    assert normalize_key(None) == ""


def test_get_put_remove(store):
    assert store.get("1") is None
    rec = JobRecord.processing("1")
    store.put("1", rec)
    assert store.get("1") is rec
    assert "1" in store and len(store) == 1

    store.remove("1")
    assert store.get("1") is None
    # removing twice is a no-op
    store.remove("1")
    assert len(store) == 0


def test_record_invariants():
    with pytest.raises(ValidationError):
        JobRecord(key="1", status=JobStatus.READY, image_uri="ipfs://a")
    with pytest.raises(ValidationError):
        JobRecord(key="1", status=JobStatus.PROCESSING, image_uri="ipfs://a", metadata_uri="ipfs://b")
    with pytest.raises(ValidationError):
        JobRecord(key="1", status=JobStatus.ERROR)
    with pytest.raises(ValidationError):
        JobRecord(key="1", status=JobStatus.PROCESSING, error_message="boom")


def test_transitions_keep_job_id():
    rec = JobRecord.processing("9")
    ready = rec.to_ready("ipfs://a", "ipfs://b")
    failed = rec.to_error("GenerationFailed")
    assert ready.job_id == failed.job_id == rec.job_id
    assert ready.error_message is None
    assert failed.image_uri is None and failed.metadata_uri is None


def test_public_payload_uses_frontend_names():
    ready = JobRecord.processing("9").to_ready("ipfs://a", "ipfs://b")
    assert ready.public() == {"status": "ready", "imageUri": "ipfs://a", "metadataUri": "ipfs://b"}
    assert JobRecord.processing("9").public() == {"status": "processing"}
    assert JobRecord.processing("9").to_error("boom").public() == {"status": "error", "errorMessage": "boom"}


def test_admit_new_and_error_records(store):
    admitted, rec = store.admit("5")
    assert admitted and rec.status == JobStatus.PROCESSING

    store.put("5", rec.to_error("PinningFailed"))
    admitted_again, fresh = store.admit("5")
    assert admitted_again
    assert fresh.status == JobStatus.PROCESSING
    assert fresh.job_id != rec.job_id


def test_admit_refuses_processing_and_ready(store):
    _, rec = store.admit("5")
    admitted, current = store.admit("5")
    assert not admitted and current is rec

    ready = rec.to_ready("ipfs://a", "ipfs://b")
    store.put("5", ready)
    admitted, current = store.admit("5")
    assert not admitted and current is ready


def test_complete_only_writes_matching_run(store):
    _, first = store.admit("5")
    assert store.complete("5", first.job_id, first.to_error("x"))

    _, second = store.admit("5")
    # a late write from the first run must not clobber the second one
    assert not store.complete("5", first.job_id, first.to_ready("ipfs://a", "ipfs://b"))
    assert store.get("5") is second

    store.remove("5")
    assert not store.complete("5", second.job_id, second.to_error("x"))
    assert store.get("5") is None


def test_sweep_removes_only_old_terminal_records(store):
    now = now_utc()
    old = now - timedelta(hours=2)

    store.put("ready", JobRecord(key="ready", status=JobStatus.READY, image_uri="a", metadata_uri="b", updated_at=old))
    store.put("error", JobRecord(key="error", status=JobStatus.ERROR, error_message="x", updated_at=old))
    store.put("busy", JobRecord(key="busy", status=JobStatus.PROCESSING, updated_at=old))
    store.put("fresh", JobRecord(key="fresh", status=JobStatus.ERROR, error_message="x", updated_at=now))

    assert store.sweep(0, now=now) == []
    removed = store.sweep(3600, now=now)

    assert sorted(removed) == ["error", "ready"]
    assert sorted(store.keys()) == ["busy", "fresh"]
