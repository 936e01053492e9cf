import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flightguard.config import settings

# ─── Logging setup (file + console) ───
_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_LOG_DIR.mkdir(exist_ok=True)

_log_level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

logging.basicConfig(
    level=_log_level,
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[
        logging.StreamHandler(),
        RotatingFileHandler(
            _LOG_DIR / "flightguard.log",
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        ),
    ],
)

# Quiet noisy libraries
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("apscheduler").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

from flightguard.routers import flights, notes, notifications, weather
from flightguard.services.exceptions import FlightGuardError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    from flightguard.database import init_db

    await init_db()

    if settings.seed_demo_data:
        try:
            from flightguard.seed import seed
            await seed()
        except Exception as e:
            logger.warning(f"Auto-seed skipped: {e}")

    # Startup: launch the weather monitor
    scheduler = None
    if settings.scheduler_enabled:
        from apscheduler.schedulers.asyncio import AsyncIOScheduler
        from apscheduler.triggers.interval import IntervalTrigger

        scheduler = AsyncIOScheduler(timezone=settings.school_timezone)

        async def _run_weather_monitor():
            from flightguard.database import async_session_factory
            from flightguard.services.weather_monitor import weather_monitor
            async with async_session_factory() as db:
                summary = await weather_monitor.run(db)
                if summary.conflicts_detected:
                    logger.info(f"Weather monitor: {summary.conflicts_detected} flights placed on hold")

        scheduler.add_job(
            _run_weather_monitor,
            IntervalTrigger(minutes=settings.weather_check_interval_minutes),
            id="weather_monitor",
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        logger.info("Background scheduler started")

    yield

    # Shutdown
    if scheduler:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")


app = FastAPI(
    title="FlightGuard",
    description="Flight safety monitoring and weather rescheduling",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FlightGuardError)
async def flightguard_error_handler(request: Request, exc: FlightGuardError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "INTERNAL_ERROR", "message": "Internal server error"})


app.include_router(flights.router, prefix="/api/flights", tags=["flights"])
app.include_router(weather.router, prefix="/api/weather", tags=["weather"])
app.include_router(notes.router, prefix="/api", tags=["notes"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "flightguard", "demo_mode": settings.demo_mode}
