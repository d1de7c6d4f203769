# jobs.py
import threading
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from time_utils import age_seconds, now_utc


class JobStatus(str, Enum):
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


TERMINAL = (JobStatus.READY, JobStatus.ERROR)


def normalize_key(key: Any) -> str:
    if key is None:
        return ""
    return str(key).strip()


class JobRecord(BaseModel):
    """
    One generation job per FID. URIs exist only on ready records,
    the error message only on error records.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    key: str
    job_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    status: JobStatus
    image_uri: Optional[str] = None
    metadata_uri: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=now_utc)
    updated_at: datetime = Field(default_factory=now_utc)

    @model_validator(mode="after")
    def _check_fields(self) -> "JobRecord":
        if self.status == JobStatus.READY:
            if not (self.image_uri and self.metadata_uri):
                raise ValueError("ready records need both image_uri and metadata_uri")
        elif self.image_uri is not None or self.metadata_uri is not None:
            raise ValueError("only ready records carry URIs")
        if (self.status == JobStatus.ERROR) != bool(self.error_message):
            raise ValueError("error_message must be set exactly when status is error")
        return self

    @classmethod
    def processing(cls, key: str) -> "JobRecord":
        return cls(key=key, status=JobStatus.PROCESSING)

    def to_ready(self, image_uri: str, metadata_uri: str) -> "JobRecord":
        return JobRecord(
            key=self.key,
            job_id=self.job_id,
            status=JobStatus.READY,
            image_uri=image_uri,
            metadata_uri=metadata_uri,
            created_at=self.created_at,
        )

    def to_error(self, message: str) -> "JobRecord":
        return JobRecord(
            key=self.key,
            job_id=self.job_id,
            status=JobStatus.ERROR,
            error_message=message,
            created_at=self.created_at,
        )

    def public(self) -> Dict[str, Any]:
        """Status payload as the frame frontend reads it."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
            include={"status", "image_uri", "metadata_uri", "error_message"},
        )


class JobStore:
    """
    In-process FID -> JobRecord map. Nothing survives a restart.
    Every method takes the lock, so a check-and-write is atomic even when
    handlers run on worker threads.
    """

    def __init__(self) -> None:
        self._records: Dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[JobRecord]:
        with self._lock:
            return self._records.get(key)

    def put(self, key: str, record: JobRecord) -> None:
        with self._lock:
            self._records[key] = record

    def remove(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)

    def admit(self, key: str) -> Tuple[bool, JobRecord]:
        """
        Error records (and missing ones) get a fresh processing record.
        Ready and processing records are returned untouched.
        """
        with self._lock:
            current = self._records.get(key)
            if current is not None and current.status in (JobStatus.READY, JobStatus.PROCESSING):
                return False, current
            record = JobRecord.processing(key)
            self._records[key] = record
            return True, record

    def complete(self, key: str, job_id: str, record: JobRecord) -> bool:
        with self._lock:
            current = self._records.get(key)
            if current is None or current.job_id != job_id:
                return False
            self._records[key] = record
            return True

    def sweep(self, ttl_seconds: int, now: Optional[datetime] = None) -> List[str]:
        if ttl_seconds <= 0:
            return []
        now = now or now_utc()
        with self._lock:
            stale = [
                key
                for key, rec in self._records.items()
                if rec.status in TERMINAL and age_seconds(rec.updated_at, now) > ttl_seconds
            ]
            for key in stale:
                del self._records[key]
        return stale

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._records)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
