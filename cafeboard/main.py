import asyncio
from contextlib import asynccontextmanager

import redis.asyncio as redis
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from cafeboard.api.router import api_router, health_router
from cafeboard.core.config import settings
from cafeboard.core.logger import get_logger
from cafeboard.infrastructure.cache import MemoryCacheBackend, RedisCacheBackend
from cafeboard.infrastructure.icafe.billing import BillingLogFetcher
from cafeboard.infrastructure.icafe.client import IcafeClient
from cafeboard.services.cache_refresh import CacheRefreshService, cache_refresh_loop
from cafeboard.services.cache_service import CacheService
from cafeboard.services.members import MemberService
from cafeboard.services.pcs import PcService
from cafeboard.services.rankings import RankingAggregator
from cafeboard.startup import initialize_application
from cafeboard.utils.retry import retry_async

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    initialize_application()
    logger.info("cafeboard_starting")

    backend = await _init_cache_backend()
    app.state.cache = CacheService(backend, settings.cache_ttl_seconds)
    app.state.client = IcafeClient.from_settings(settings)
    app.state.aggregator = RankingAggregator(
        BillingLogFetcher(app.state.client), max_pages=settings.ranking_max_pages
    )
    app.state.members = MemberService(
        app.state.client, settings.icafe_member_fanout_concurrency
    )
    app.state.pcs = PcService(app.state.client)
    app.state.cache_refresh = CacheRefreshService(
        app.state.aggregator,
        app.state.members,
        app.state.cache,
        settings.cache_ttl_seconds,
    )

    app.state.ready_event = asyncio.Event()
    app.state.stop_event = asyncio.Event()
    app.state.refresh_task = None
    if settings.cache_refresh_enabled:
        app.state.refresh_task = asyncio.create_task(
            cache_refresh_loop(
                app.state.cache_refresh,
                app.state.stop_event,
                settings.cache_refresh_interval_seconds,
                warm_on_startup=settings.cache_warm_on_startup,
                ready_event=app.state.ready_event,
            )
        )
    else:
        app.state.ready_event.set()

    try:
        yield
    finally:
        logger.info("cafeboard_stopping")
        app.state.stop_event.set()
        task = app.state.refresh_task
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:  # expected during shutdown
                logger.debug("refresh_task_cancelled")
            except Exception:  # noqa
                logger.debug("refresh_task_non_critical_exit", exc_info=True)
        await app.state.client.aclose()
        await backend.close()


async def _init_cache_backend():
    if settings.cache_backend != "redis":
        logger.info("cache_backend_selected", extra={"backend": "memory"})
        return MemoryCacheBackend(settings.cache_max_entries)

    async def _connect():
        r = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            decode_responses=True,
        )
        await r.ping()
        return r

    async def _on_retry(attempt: int, exc: BaseException, sleep_for: float):
        logger.warning(
            "redis_connect_retry",
            extra={
                "attempt": attempt,
                "error": str(exc),
                "sleep_for": round(sleep_for, 2),
            },
        )

    r = await retry_async(
        _connect,
        retries=6,
        base_delay=0.5,
        max_delay=8.0,
        jitter=0.2,
        on_retry=_on_retry,
    )
    logger.info("redis_connected", extra={"backend": "redis"})
    return RedisCacheBackend(r, settings.redis_key_prefix)


app = FastAPI(title="Cafeboard API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(
        "request_validation_failed",
        extra={"path": request.url.path, "error_count": len(exc.errors())},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": _validation_details(exc)},
    )


def _validation_details(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


instrumentator = Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    excluded_handlers=["/docs", "/openapi.json", "/metrics"],
)

instrumentator.instrument(app).expose(app)

app.include_router(health_router)
app.include_router(api_router, prefix=settings.api_prefix)
