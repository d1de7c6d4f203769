import asyncio
import time
from dataclasses import dataclass
from typing import Dict, Optional

import metrics
from errors import GenerationFailed, InvalidInput, PinningFailed, ProfileLookupFailed, UpstreamFailure
from interfaces import ImageGenerator, ProfileResolver, StoragePinner
from jobs import JobRecord, JobStore, normalize_key
from logging_utils import get_logger
from pinata_utils import build_metadata

logger = get_logger("worker")


@dataclass
class StartResult:
    admitted: bool
    record: JobRecord


def _error_text(exc: BaseException) -> str:
    text = str(exc).strip()
    return text or exc.__class__.__name__


class JobDriver:
    """
    Admits generation jobs and runs the box pipeline for each one as a
    background task: resolve picture -> generate -> pin image -> pin metadata.
    Every admitted run ends with exactly one write to the store.
    """

    def __init__(
        self,
        store: JobStore,
        resolver: ProfileResolver,
        generator: ImageGenerator,
        pinner: StoragePinner,
    ):
        self.store = store
        self.resolver = resolver
        self.generator = generator
        self.pinner = pinner
        self._tasks: Dict[str, asyncio.Task] = {}

    async def start(self, key) -> StartResult:
        fid = normalize_key(key)
        if not fid:
            raise InvalidInput("Missing FID", stage="start")

        admitted, record = self.store.admit(fid)
        if not admitted:
            logger.info("[box] fid=%s already %s, nothing scheduled", fid, record.status.value)
            return StartResult(admitted=False, record=record)

        metrics.jobs_started.inc()
        logger.info("[box] fid=%s job_id=%s stage=admitted", fid, record.job_id)
        task = asyncio.get_running_loop().create_task(self._run(fid, record))
        self._tasks[fid] = task
        task.add_done_callback(lambda t, k=fid: self._forget(k, t))
        return StartResult(admitted=True, record=record)

    def _forget(self, fid: str, task: asyncio.Task) -> None:
        if self._tasks.get(fid) is task:
            del self._tasks[fid]

    async def _run(self, fid: str, record: JobRecord) -> None:
        started = time.perf_counter()
        stage = "resolve"
        try:
            source = await self.resolver.resolve(fid)
            if not source:
                raise ProfileLookupFailed("no source image for FID")

            stage = "generate"
            logger.info("[box] fid=%s stage=%s source=%s", fid, stage, source)
            generated = await self.generator.generate(source)
            if not generated:
                raise GenerationFailed("image generator returned no image")

            stage = "pin_image"
            logger.info("[box] fid=%s stage=%s image=%s", fid, stage, generated)
            image_uri = await self.pinner.pin_image(generated, fid)
            if not image_uri:
                raise PinningFailed("IPFS image upload failed")

            stage = "pin_metadata"
            logger.info("[box] fid=%s stage=%s image_uri=%s", fid, stage, image_uri)
            metadata_uri = await self.pinner.pin_metadata(build_metadata(fid, image_uri))
            if not metadata_uri:
                raise PinningFailed("IPFS metadata upload failed")

            final = record.to_ready(image_uri, metadata_uri)
            metrics.jobs_ready.inc()
            logger.info("[box] fid=%s stage=ready image_uri=%s metadata_uri=%s", fid, image_uri, metadata_uri)
        except Exception as exc:
            final = record.to_error(_error_text(exc))
            metrics.jobs_failed.labels(stage=stage).inc()
            logger.error(
                "[box] fid=%s stage=error failed_at=%s error=%s",
                fid,
                stage,
                final.error_message,
                exc_info=not isinstance(exc, UpstreamFailure),
            )
        finally:
            metrics.job_seconds.observe(time.perf_counter() - started)

        if not self.store.complete(fid, record.job_id, final):
            logger.warning("[box] fid=%s job_id=%s record replaced before completion, result dropped", fid, record.job_id)

    def running(self) -> int:
        return len(self._tasks)

    def in_flight(self, key) -> bool:
        return normalize_key(key) in self._tasks

    async def wait(self, key) -> Optional[JobRecord]:
        """Wait for the running pipeline of key (if any) and return the record."""
        fid = normalize_key(key)
        task = self._tasks.get(fid)
        if task is not None:
            await asyncio.shield(task)
        return self.store.get(fid)

    async def drain(self) -> None:
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
