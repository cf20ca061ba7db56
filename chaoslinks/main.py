# chaoslinks/main.py

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from chaoslinks import config
from chaoslinks.db import base as db_base
from chaoslinks.middleware.error_handler import ErrorHandlerMiddleware, setup_exception_handlers
from chaoslinks.observability.logger import configure_logging
from chaoslinks.observability.metrics import PrometheusMiddleware, router as prometheus_router
from chaoslinks.routers.health import router as health_router
from chaoslinks.routers.share import router as share_router
from chaoslinks.utils.logger import log_info
from chaoslinks.utils.telemetry import init_otel

# Configure structured JSON logging as early as possible
configure_logging(config)


@asynccontextmanager
async def lifespan(app: FastAPI):
    log_info("Share API started")
    yield
    log_info("Disposing database engine...")
    await db_base.async_engine.dispose()


app = FastAPI(
    title="Chaos Maps Share API",
    description="Rate-limited public share links for chaos map configurations",
    version="1.0.0",
    lifespan=lifespan,
)

# Add middleware (order matters: last added = outermost)
app.add_middleware(PrometheusMiddleware)
# Error handler should be outermost to catch all errors
app.add_middleware(ErrorHandlerMiddleware, debug=config.DEBUG)

setup_exception_handlers(app)

app.include_router(health_router)  # Health checks at root level
app.include_router(prometheus_router)
app.include_router(share_router, prefix="/api")

if config.OTEL_ENABLED:
    init_otel(app=app, engine=db_base.async_engine)


if __name__ == "__main__":
    log_info(f"Server starting at http://{config.HOST}:{config.PORT}")
    uvicorn.run("chaoslinks.main:app", host=config.HOST, port=config.PORT, log_config=None)
