# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.


import logging
from contextlib import asynccontextmanager
from typing import Optional, Callable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from apscheduler.schedulers.background import BackgroundScheduler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException

from app.config import Settings, get_settings
from app.routers import (
    checkin_router,
    sms_router,
    push_router,
    user_router,
    admin_router,
    jobs_router,
    healthz_router,
)
from app.services.sms_dispatcher import SmsDispatcher
from app.stores.base import StoreFactory
from app.stores.factory import build_store_factory
from app.utils.errors import HankkiError
from app.utils.push_sender import WebPushSender
from app.utils.rate_limit_utils import limiter, configure_limiter
from app.utils.schedulers.cron.unresponsive_check_cron import unresponsive_check_cron
from app.utils.schedulers.cron.reminder_cron import reminder_cron
from app.utils.schedulers.cron.missed_checkin_cron import missed_checkin_cron
from app.utils.time_utils import utc_now

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


def build_scheduler(app: FastAPI) -> BackgroundScheduler:
    state = app.state
    tz = state.settings.tz
    scheduler = BackgroundScheduler(job_defaults={"misfire_grace_time": 60})

    # 🚨 Every hour: guardian escalation
    scheduler.add_job(
        unresponsive_check_cron, "cron", minute=0, timezone=tz,
        args=[state.store_factory, state.sms_dispatcher, state.settings],
        id="check_unresponsive",
    )

    # 🔔 Every hour: reminders (only act inside the window)
    scheduler.add_job(
        reminder_cron, "cron", minute=0, timezone=tz,
        args=[state.store_factory, state.push_sender, state.settings],
        id="send_reminder",
    )

    # 📝 Every day at 00:05: mark yesterday's missed check-ins
    scheduler.add_job(
        missed_checkin_cron, "cron", hour=0, minute=5, timezone=tz,
        args=[state.store_factory, state.settings],
        id="mark_missed",
    )
    return scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = None
    if app.state.settings.scheduler_enabled:
        scheduler = build_scheduler(app)
        scheduler.start()
        logger.info("⏰ Scheduler started")
    yield
    if scheduler:
        scheduler.shutdown()
    app.state.store_factory.dispose()


def create_app(
    settings: Optional[Settings] = None,
    store_factory: Optional[StoreFactory] = None,
    sms_dispatcher: Optional[SmsDispatcher] = None,
    push_sender: Optional[WebPushSender] = None,
    clock: Optional[Callable] = None,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        title="Hankki Check-in API",
        description="Daily meal check-in, streaks and guardian escalation",
        version="1.0"
    )

    app.state.settings = settings
    app.state.store_factory = store_factory or build_store_factory(settings)
    app.state.sms_dispatcher = sms_dispatcher or SmsDispatcher(settings)
    app.state.push_sender = push_sender or WebPushSender(settings)
    app.state.clock = clock or utc_now

    configure_limiter(settings)
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    # Include routers
    app.include_router(checkin_router.router)
    app.include_router(sms_router.router)
    app.include_router(push_router.router)
    app.include_router(user_router.router)
    app.include_router(admin_router.router)
    app.include_router(jobs_router.router)
    app.include_router(healthz_router.router)

    register_exception_handlers(app)

    @app.get("/")
    def read_root():
        return {"message": "Welcome to Hankki - daily check-in backend Live",
                "mode": "local-only" if settings.local_only else "shared-store"}

    return app


# ---------------------- ADDING EXCEPTION HANDLERS ----------------------
def register_exception_handlers(app: FastAPI):

    @app.exception_handler(HankkiError)
    async def hankki_error_handler(request: Request, exc: HankkiError):
        if exc.status_code >= 500:
            logger.error(f"🛑 {request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", []) if p not in ("body", "query"))
        detail = f"{field}: {first.get('msg')}" if field else "Invalid request"
        return JSONResponse(status_code=400, content={"error": detail})

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
        return JSONResponse(
            status_code=429,
            content={"error": "Too many requests. Please slow down."}
        )


app = create_app()
