import logging
import time
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from src.api.error import register_error_handlers
from src.api.routes import admin_wallets, orders, wallets, webhooks

logger = logging.getLogger(__name__)


def create_app(config) -> FastAPI:
    if config.ENABLE_SENTRY and config.DSN_SENTRY:
        import sentry_sdk

        sentry_sdk.init(
            dsn=config.DSN_SENTRY,
            environment=config.SENTRY_ENVIRONMENT,
            traces_sample_rate=0.1,
        )

    app = FastAPI(
        title="Wallet Ledger Service",
        description="Wallet balances, top-ups, gateway callbacks and reconciliation",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=config.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if config.ENABLE_LOGGING_MIDDLEWARE:
        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            start = time.time()
            response = await call_next(request)
            duration_ms = int((time.time() - start) * 1000)
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms}ms)"
            )
            return response

    register_error_handlers(app)

    app.include_router(wallets.router)
    app.include_router(webhooks.router)
    app.include_router(admin_wallets.router)
    app.include_router(orders.router)

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    return app
