import sys
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from novadesk.api import admin
from novadesk.api.webhook import build_webhook_router
from novadesk.bot.telegram_handler import build_application
from novadesk.core.config import Settings, settings as default_settings
from novadesk.core.config_loader import load_hotel_config
from novadesk.core.exceptions import AuthError, RateLimitError, StorageError, ValidationError
from novadesk.core.logger import logger, setup_logging
from novadesk.core.rate_limit import SlidingWindowRateLimiter
from novadesk.core.security import AdminGuard, challenge_headers
from novadesk.models.admin_models import ErrorResponse
from novadesk.services.admin_service import AdminQueryService
from novadesk.services.checkin_service import CheckinService
from novadesk.services.db_service import RecordStore, create_record_store

setup_logging(default_settings.LOG_LEVEL, default_settings.LOG_DIR)

ADMIN_PREFIXES = ("/api/reservas", "/admin")

def is_admin_path(path: str) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") or path.startswith(prefix + ".")
               for prefix in ADMIN_PREFIXES)

def create_app(settings: Optional[Settings] = None, store: Optional[RecordStore] = None,
               rate_limiter: Optional[SlidingWindowRateLimiter] = None, telegram_app=None) -> FastAPI:
    """
    Builds the HTTP app. Store, limiter and bot application are injected so
    tests can run against an in-memory store with their own limiter.
    """
    settings = settings or default_settings
    if store is None:
        store = create_record_store(settings)
    hotel = load_hotel_config(settings.HOTEL_CONFIG_PATH or None)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"🚀 Starting {settings.PROJECT_NAME} ({settings.ENVIRONMENT})")
        started_bot = False
        if app.state.telegram_app is None and settings.is_production and settings.BOT_TOKEN:
            app.state.telegram_app = build_application(
                settings.BOT_TOKEN, app.state.checkin_service, hotel,
                settings.TELEGRAM_ADMIN_IDS, webhook=True
            )
            await app.state.telegram_app.initialize()
            await app.state.telegram_app.start()
            started_bot = True
            try:
                await app.state.telegram_app.bot.set_webhook(settings.webhook_url)
                info = await app.state.telegram_app.bot.get_me()
                logger.info(f"🤖 Bot @{info.username} listo (webhook) → {settings.webhook_url}")
            except Exception as e:
                logger.error(f"❌ Error registering webhook: {e}")
        yield
        if started_bot:
            await app.state.telegram_app.stop()
            await app.state.telegram_app.shutdown()
        app.state.store.close()
        logger.info("🛑 Shutting down backend")

    app = FastAPI(title=settings.PROJECT_NAME, version="0.1.0", lifespan=lifespan)

    app.state.settings = settings
    app.state.store = store
    app.state.admin_guard = AdminGuard(settings.ADMIN_USER, settings.ADMIN_PASS)
    app.state.rate_limiter = rate_limiter or SlidingWindowRateLimiter(
        limit=settings.RATE_LIMIT_MAX,
        window_seconds=settings.RATE_LIMIT_WINDOW_MINUTES * 60,
    )
    app.state.admin_service = AdminQueryService(
        store,
        list_default_size=settings.LIST_DEFAULT_SIZE,
        csv_default_size=settings.CSV_DEFAULT_SIZE,
    )
    app.state.checkin_service = CheckinService(store)
    app.state.telegram_app = telegram_app

    if not app.state.admin_guard.configured:
        logger.warning("⚠️ ADMIN_USER/ADMIN_PASS not set, admin surface will refuse every request")

    # Middlewares: the last one added runs first
    @app.middleware("http")
    async def admin_rate_limit(request: Request, call_next):
        """Rate limit admin paths before authentication is even looked at."""
        if not is_admin_path(request.url.path):
            return await call_next(request)

        client_key = request.client.host if request.client else "unknown"
        try:
            decision = request.app.state.rate_limiter.check(client_key)
        except RateLimitError as e:
            logger.warning(f"⛔ Rate limit exceeded for {client_key} on {request.url.path}")
            return JSONResponse(
                status_code=429,
                content=ErrorResponse(error="Too many requests, please try again later.").model_dump(),
                headers=e.decision.headers(),
            )

        response = await call_next(request)
        response.headers.update(decision.headers())
        return response

    @app.middleware("http")
    async def trace_requests(request: Request, call_next):
        logger.info(f"➡️  {request.method} {request.url.path}")
        return await call_next(request)

    # Exception handlers
    @app.exception_handler(ValidationError)
    async def validation_exception_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content=ErrorResponse(error=str(exc)).model_dump())

    @app.exception_handler(AuthError)
    async def auth_exception_handler(request: Request, exc: AuthError):
        return JSONResponse(
            status_code=401,
            content=ErrorResponse(error="Unauthorized").model_dump(),
            headers=challenge_headers(),
        )

    @app.exception_handler(StorageError)
    async def storage_exception_handler(request: Request, exc: StorageError):
        logger.error(f"❌ Storage failure on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"message": "Internal Server Error", "detail": "Storage is unavailable, please retry."}
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"🔥 UNHANDLED ERROR: {str(exc)}")
        return JSONResponse(
            status_code=500,
            content={"message": "Internal Server Error", "detail": "An unexpected error occurred. Please contact support."}
        )

    # Routers
    app.include_router(admin.router, tags=["Admin"])
    if settings.is_production or telegram_app is not None:
        app.include_router(build_webhook_router(settings.WEBHOOK_PATH.strip()), tags=["Webhook"])

    @app.get("/")
    async def root():
        return PlainTextResponse("NovaDesk bot OK")

    @app.get("/healthz")
    async def healthz():
        return {"ok": True, "time": datetime.now().isoformat()}

    @app.get("/debug")
    async def debug():
        return {
            "environment": settings.ENVIRONMENT,
            "webhook_domain": settings.WEBHOOK_DOMAIN,
            "webhook_path": settings.WEBHOOK_PATH,
            "port": settings.PORT,
            "storage": settings.STORAGE_BACKEND,
        }

    return app

app = create_app()

def run_polling(settings: Settings = default_settings):
    """Development mode: long polling, no HTTP server."""
    store = create_record_store(settings)
    hotel = load_hotel_config(settings.HOTEL_CONFIG_PATH or None)
    application = build_application(
        settings.BOT_TOKEN, CheckinService(store), hotel, settings.TELEGRAM_ADMIN_IDS
    )
    logger.info("✅ NovaDesk bot en *polling* (DEV)")
    try:
        application.run_polling()
    finally:
        store.close()

def run():
    if not default_settings.BOT_TOKEN:
        logger.error("❌ Falta BOT_TOKEN en variables de entorno")
        sys.exit(1)

    if default_settings.is_production:
        import uvicorn
        uvicorn.run("novadesk.main:app", host="0.0.0.0", port=default_settings.PORT)
    else:
        run_polling()

if __name__ == "__main__":
    run()
