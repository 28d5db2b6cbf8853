# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Schedule Sync Service
=====================
Keeps declared on-call schedules in sync with PagerDuty.

Schedule layers can be added but never deleted remotely, only ended:
layers dropped from a declaration are end-dated on the next update and
filtered out of every read. Deleting a schedule first checks for open
incidents on its teams and detaches it from escalation policies when the
API refuses the delete.

Port: 8005
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from schedule_sync.controllers import schedule_controller, system_controller
from schedule_sync.core.config import settings
from schedule_sync.core.dependencies import close_clients
from schedule_sync.core.logging import get_logger
from schedule_sync.middleware import MetricsMiddleware, RequestIDMiddleware

logger = get_logger(settings.SERVICE_NAME)


# ── Lifespan ──────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    if not settings.PAGERDUTY_TOKEN:
        logger.warning("PAGERDUTY_TOKEN is not set — remote calls will be rejected")
    logger.info("Schedule sync started against %s", settings.PAGERDUTY_API_URL)
    yield
    close_clients()
    logger.info("Shutting down — HTTP client closed")


# ── FastAPI App ───────────────────────────────────────────────────────────
app = FastAPI(
    title="Schedule Sync Service",
    description="Reconciles declared on-call schedules with PagerDuty.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    req_id = getattr(request.state, "request_id", None)
    logger.exception("Unhandled exception", extra={"request_id": req_id})
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "detail": str(exc), "request_id": req_id},
    )


app.include_router(system_controller.router)
app.include_router(schedule_controller.router)


# ── Entrypoint ────────────────────────────────────────────────────────────
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.SERVICE_PORT, log_level="info")
