import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from cvforge.api.routes import admin, ai, auth, cvs, health, orders, payment_webhook, payments, plans, templates
from cvforge.core import config
from cvforge.core.errors import CVForgeError, StoreUnavailable
from cvforge.core.logging_config import setup_logging
from cvforge.core.plan_catalog import get_catalog
from cvforge.db.base import Base
from cvforge.db.session import SessionLocal, engine
from cvforge.services.plan_service import ensure_admin_user
import cvforge.db.models  # noqa: F401  registers every table on Base.metadata

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(config.LOG_LEVEL, config.LOG_DIR)

    # Fail at startup, not on the first request, if the pricing file is bad
    get_catalog()

    if config.RUN_MIGRATIONS:
        from cvforge.db.migrate import run_migrations
        run_migrations()
    else:
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        ensure_admin_user(db, config.ADMIN_EMAIL)
    finally:
        db.close()

    logger.info("CVForge API started")
    yield


# ============================================
# FASTAPI APP INIT
# ============================================

app = FastAPI(title="CVForge API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)


# ============================================
# ERROR HANDLERS
# ============================================

@app.exception_handler(CVForgeError)
async def cvforge_error_handler(request: Request, exc: CVForgeError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_payload()})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}", exc_info=True)
    error = StoreUnavailable()
    return JSONResponse(status_code=error.status_code, content={"detail": error.to_payload()})


# ============================================
# REGISTER ALL ROUTERS
# ============================================

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(plans.router)
app.include_router(templates.router)
app.include_router(cvs.router)
app.include_router(ai.router)
app.include_router(orders.router)
app.include_router(payments.router)
app.include_router(payment_webhook.router)
app.include_router(admin.router)


@app.get("/")
def root():
    return {"status": "CVForge API running"}
