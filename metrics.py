from prometheus_client import Counter, Histogram

jobs_started = Counter(
    "box_jobs_started_total",
    "Generation jobs admitted",
)

jobs_ready = Counter(
    "box_jobs_ready_total",
    "Generation jobs that reached ready",
)

jobs_failed = Counter(
    "box_jobs_failed_total",
    "Generation jobs that ended in error",
    ["stage"],
)

job_seconds = Histogram(
    "box_job_processing_seconds",
    "Time from admission to terminal status in seconds",
)

mints_succeeded = Counter(
    "box_mints_succeeded_total",
    "Finalize calls that minted",
)

mints_failed = Counter(
    "box_mints_failed_total",
    "Finalize calls whose mint failed",
)
