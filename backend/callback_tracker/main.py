import logging
import time
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from callback_tracker.api.deps import require_user
from callback_tracker.api.routes.metrics import router as metrics_router
from callback_tracker.api.routes.stats import router as stats_router
from callback_tracker.api.routes.tickets import router as tickets_router
from callback_tracker.api.routes.users import router as users_router
from callback_tracker.core.config import settings
from callback_tracker.core.errors import register_exception_handlers
from callback_tracker.core.logging import configure_logging
from callback_tracker.db import session as session_mod
from callback_tracker.metrics.prometheus import api_request_latency_seconds
from callback_tracker.services.auth import TokenVerifier
from callback_tracker.services.directory import DirectoryCache
from callback_tracker.services.mapping import iso_timestamp

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Callback Tracker API",
    version="1.0.0",
    description="Callback request tracking backend for the support dashboard",
    dependencies=[Depends(require_user)],
)

# The SPA is served from its own origin; reflect it and allow credentials.
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=settings.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.on_event("startup")
def on_startup():
    configure_logging(settings.log_level)
    session_mod.init_db()

    app.state.token_verifier = TokenVerifier(
        tenant_id=settings.azure_ad_tenant_id,
        audience=settings.azure_ad_api_audience,
        timeout=settings.upstream_timeout_seconds,
    )
    app.state.directory = DirectoryCache.from_settings(settings)

    if settings.skip_auth:
        logger.warning("SKIP_AUTH is set: bearer token checks are disabled")
    logger.info("%s started", settings.project_name)


@app.on_event("shutdown")
def on_shutdown():
    directory = getattr(app.state, "directory", None)
    if directory is not None:
        directory.close()
    session_mod.engine.dispose()
    logger.info("%s stopped", settings.project_name)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.perf_counter()
    response: Response
    status = "unknown"
    try:
        response = await call_next(request)
        status = str(response.status_code)
        return response
    finally:
        dt = time.perf_counter() - start
        # label by route template so ticket ids don't explode cardinality
        matched = request.scope.get("route")
        route = getattr(matched, "path", "unmatched")
        api_request_latency_seconds.labels(route=route, method=request.method, status=status).observe(dt)


@app.get("/health")
def health():
    return {"ok": True, "timestamp": iso_timestamp(datetime.now(timezone.utc))}


app.include_router(tickets_router)
app.include_router(users_router)
app.include_router(stats_router)
app.include_router(metrics_router)
