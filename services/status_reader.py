# services/status_reader.py
from errors import NotFound
from jobs import JobRecord, JobStore, normalize_key


class StatusReader:
    """Point-in-time view of the job store. Never waits on a pipeline."""

    def __init__(self, store: JobStore):
        self.store = store

    def status(self, key) -> JobRecord:
        fid = normalize_key(key)
        record = self.store.get(fid) if fid else None
        if record is None:
            raise NotFound("No active job.", stage="status")
        return record
