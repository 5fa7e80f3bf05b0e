import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from .config import INSECURE_SECRET, settings
from .db import get_engine
from .errors import (
    AuthenticationFailure, AuthorizationDenied, ReferentialViolation,
    SeedStepFailure, TokenInvalid,
)
from .logging_setup import log_event, request_id_var, setup_logging
from .models import Base
from .routes import auth, companies, content, feed, insights, pages, personas, users
from .security.session import delete_auth_cookie
from .services.seed import run_seed

logger = logging.getLogger(__name__)

def check_startup_settings() -> list[str]:
    problems = []
    if settings.secret_key == INSECURE_SECRET:
        problems.append("JWT_SECRET (Using default insecure key)")
    if settings.is_production and settings.database_url.startswith("sqlite"):
        problems.append("DATABASE_URL (Production Postgres required)")
    if settings.is_production and settings.admin_password == "admin123":
        problems.append("ADMIN_PASSWORD (Using default password)")
    if problems:
        logger.warning(f"CRITICAL STARTUP WARNING: Missing or unsafe required variables: {', '.join(problems)}")
    return problems

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    check_startup_settings()
    logger.info("STARTUP: Creating/verifying database tables...")
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    if settings.seed_on_startup:
        try:
            report = run_seed(engine)
            log_event("seed_complete", **report.as_dict())
        except SeedStepFailure as e:
            # the API still serves; run scripts/setup_db.py to finish provisioning
            log_event("seed_failed", level="error", step=e.step, error=str(e.cause))
    yield
    logger.info("Shutting down API...")
    engine.dispose()

app = FastAPI(title="Marketing Dashboard API", version="1.0.0", lifespan=lifespan)

@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    reset_token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(reset_token)
    response.headers["X-Request-ID"] = request_id
    return response

@app.exception_handler(AuthenticationFailure)
async def authentication_failure_handler(request: Request, exc: AuthenticationFailure):
    return JSONResponse(
        status_code=401,
        content={"detail": exc.message},
        headers={"WWW-Authenticate": "Bearer"},
    )

@app.exception_handler(TokenInvalid)
async def token_invalid_handler(request: Request, exc: TokenInvalid):
    log_event("auth_token_rejected", level="info", reason=type(exc).__name__, path=request.url.path)
    response = JSONResponse(
        status_code=401,
        content={"detail": "Session expired or invalid. Please sign in again."},
        headers={"WWW-Authenticate": "Bearer"},
    )
    delete_auth_cookie(response)
    return response

@app.exception_handler(AuthorizationDenied)
async def authorization_denied_handler(request: Request, exc: AuthorizationDenied):
    return JSONResponse(status_code=403, content={"detail": str(exc), "required": exc.required})

@app.exception_handler(ReferentialViolation)
async def referential_violation_handler(request: Request, exc: ReferentialViolation):
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "entity": exc.entity, "ids": list(exc.ids)},
    )

@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    message = str(exc.orig).lower()
    logger.warning(f"Integrity error on {request.url.path}: {exc.orig}")
    if "foreign key" in message:
        return JSONResponse(status_code=422, content={"detail": "Referenced record does not exist"})
    if "unique" in message or "duplicate" in message:
        return JSONResponse(status_code=409, content={"detail": "Record already exists"})
    return JSONResponse(status_code=400, content={"detail": "Request violates a data constraint"})

@app.get("/health")
def health_check():
    return {"status": "ok"}

@app.get("/ready")
def readiness_check():
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT id FROM users LIMIT 1"))
        return {"status": "ready"}
    except Exception as e:
        logger.warning(f"Readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "not_ready", "detail": "Database schema missing or DB unreachable."})

# Include Routers
app.include_router(pages.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(companies.router)
app.include_router(content.router)
app.include_router(personas.router)
app.include_router(insights.router)
app.include_router(feed.router)
