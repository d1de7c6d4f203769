import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ai_providers import PassthroughGenerator, ReplicateGenerator
from box_worker import JobDriver
from config import Settings, settings
from errors import APIError, fail
from interfaces import ImageGenerator, Minter, ProfileResolver, StoragePinner
from jobs import JobStore
from logging_utils import get_logger
from mint_service import EngineMinter, MockMinter
from pinata_utils import PinataPinner
from profile_resolver import NeynarProfileResolver, PlaceholderProfileResolver
from routers import box, health
from services.minting import CompletionConsumer
from services.status_reader import StatusReader

logger = get_logger("app")

SHUTDOWN_DRAIN_SEC = 10


# ── collaborators ──────────────────────────────────────────────────────
def build_resolver(cfg: Settings) -> ProfileResolver:
    if cfg.NEYNAR_API_KEY:
        return NeynarProfileResolver(cfg.NEYNAR_API_KEY, base_url=cfg.NEYNAR_BASE_URL)
    return PlaceholderProfileResolver()


def build_generator(cfg: Settings) -> ImageGenerator:
    if cfg.REPLICATE_API_TOKEN and cfg.REPLICATE_I2I_MODEL:
        return ReplicateGenerator(cfg.REPLICATE_API_TOKEN, cfg.REPLICATE_I2I_MODEL)
    return PassthroughGenerator()


def build_pinner(cfg: Settings) -> StoragePinner:
    if not cfg.PINATA_API_KEY or not cfg.PINATA_SECRET_KEY:
        logger.warning("PINATA_API_KEY / PINATA_SECRET_KEY not set, pinning will fail")
    return PinataPinner(cfg.PINATA_API_KEY or "", cfg.PINATA_SECRET_KEY or "", base_url=cfg.PINATA_BASE_URL)


def build_minter(cfg: Settings) -> Minter:
    if cfg.ENGINE_URL and cfg.ENGINE_ACCESS_TOKEN and cfg.ENGINE_BACKEND_WALLET and cfg.NFT_CONTRACT_ADDRESS:
        return EngineMinter(
            cfg.ENGINE_URL,
            cfg.ENGINE_ACCESS_TOKEN,
            cfg.ENGINE_BACKEND_WALLET,
            cfg.NFT_CONTRACT_ADDRESS,
            chain=cfg.NFT_CHAIN,
        )
    return MockMinter()


# ── stale job sweep ────────────────────────────────────────────────────
async def _sweep_loop(store: JobStore, ttl_seconds: int, interval: int) -> None:
    while True:
        await asyncio.sleep(interval)
        removed = store.sweep(ttl_seconds)
        if removed:
            logger.info("[sweep] removed %d stale jobs: %s", len(removed), ", ".join(removed))


def create_app(
    cfg: Settings = settings,
    *,
    store: Optional[JobStore] = None,
    resolver: Optional[ProfileResolver] = None,
    generator: Optional[ImageGenerator] = None,
    pinner: Optional[StoragePinner] = None,
    minter: Optional[Minter] = None,
) -> FastAPI:
    store = store if store is not None else JobStore()
    driver = JobDriver(
        store,
        resolver or build_resolver(cfg),
        generator or build_generator(cfg),
        pinner or build_pinner(cfg),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper = None
        if cfg.JOB_TTL_SECONDS > 0:
            sweeper = asyncio.create_task(
                _sweep_loop(store, cfg.JOB_TTL_SECONDS, cfg.JOB_SWEEP_INTERVAL_SECONDS)
            )
        logger.info("%s started (env=%s)", cfg.APP_NAME, cfg.ENV)
        yield
        if sweeper is not None:
            sweeper.cancel()
        try:
            await asyncio.wait_for(driver.drain(), timeout=SHUTDOWN_DRAIN_SEC)
        except asyncio.TimeoutError:
            logger.warning("shutdown with %d pipelines still running", driver.running())

    app = FastAPI(title=cfg.APP_NAME, debug=cfg.DEBUG, lifespan=lifespan)
    app.state.store = store
    app.state.driver = driver
    app.state.status_reader = StatusReader(store)
    app.state.consumer = CompletionConsumer(store, minter or build_minter(cfg))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.ALLOWED_ORIGINS,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(APIError)
    async def _api_error(request: Request, exc: APIError):
        return JSONResponse(status_code=exc.status_code, content=fail(exc.error, exc.stage, **exc.extra))

    app.include_router(health.router)
    app.include_router(box.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
