# devicehub/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from devicehub.config import settings
from devicehub.core.db import init_db, close_db
from devicehub.core.errors import register_exception_handlers
from devicehub.core.housekeeping import start_sweeper, stop_sweeper
from devicehub.core.ratelimit import install_rate_limiting
from devicehub.core.bootstrap import ensure_default_accounts

from devicehub.api.v1.deps import get_otp_service, get_user_repository
from devicehub.api.v1.routers import auth, devices, admin

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)

# Per-IP throttling (registered before CORS so CORS wraps it)
install_rate_limiting(app)

# CORS (with Cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Uniform {"success": False, "message", "code"} error envelope
register_exception_handlers(app)


@app.on_event("startup")
async def on_startup():
    await init_db()
    # Ensure there are default superadmin/admin accounts on first run
    await ensure_default_accounts(get_user_repository())
    start_sweeper(get_otp_service().sweep_expired, settings.otp_sweep_interval_sec)
    logger.info("[startup] %s ready (env=%s)", settings.APP_NAME, settings.env)


@app.on_event("shutdown")
async def on_shutdown():
    await stop_sweeper()
    await close_db()

# REST
app.include_router(auth.router, prefix="/api/v1")
app.include_router(devices.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")


@app.get("/healthz")
@app.get("/api/v1/healthz", include_in_schema=False)
def healthz():
    return {"success": True, "ok": True}
