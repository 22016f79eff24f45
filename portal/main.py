import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from . import models  # noqa: F401
from .cache import build_cache
from .config import CORS_ORIGINS, ENV, REVOCATION_BACKEND, REVOCATION_SWEEP_INTERVAL_SECONDS, SEED_DATA
from .database import Base, SessionLocal, engine as default_engine
from .domain.access.router import router as permissions_router
from .domain.auth.router import router as auth_router
from .domain.bookings.router import router as bookings_router
from .domain.bookings.router import timeslot_router
from .errors import (
    AuthenticationError,
    CapacityExhausted,
    EmailAlreadyRegistered,
    InvalidBookingTransition,
    NotFoundError,
    PermissionDenied,
    PortalError,
)
from .redis_client import get_redis_client
from .revocation import InMemoryRevocationList, RedisRevocationList, RevocationSweeper
from .tokens import TokenService, build_token_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

# Most specific first
ERROR_STATUS_CODES = [
    (AuthenticationError, 401),
    (PermissionDenied, 403),
    (NotFoundError, 404),
    (CapacityExhausted, 409),
    (EmailAlreadyRegistered, 409),
    (InvalidBookingTransition, 409),
]


def status_code_for(exc: PortalError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 400


def build_revocation_list(backend: str = REVOCATION_BACKEND):
    if backend == "redis":
        logger.info("🔒 Using Redis revocation list")
        return RedisRevocationList(get_redis_client())
    if backend != "memory":
        raise ValueError(f"Unknown REVOCATION_BACKEND: {backend}")
    logger.info("🔒 Using in-memory revocation list (process-local)")
    return InMemoryRevocationList()


def create_app(
    token_service: Optional[TokenService] = None,
    engine: Optional[Engine] = None,
    seed: bool = SEED_DATA,
    start_sweeper: bool = True,
    session_factory: Optional[sessionmaker] = None,
) -> FastAPI:
    """
    Build the API. Request sessions come from ``session_factory`` when given,
    otherwise from a factory bound to ``engine`` (SessionLocal by default).
    """
    if session_factory is None:
        if engine is None:
            session_factory = SessionLocal
        else:
            session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine = engine or session_factory.kw.get("bind") or default_engine

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Application starting up ({ENV})...")
        try:
            Base.metadata.create_all(bind=engine, checkfirst=True)
            logger.info("Database tables created successfully")
        except Exception as e:
            # Ignore "already exists" errors from race conditions between workers
            error_msg = str(e)
            if "already exists" in error_msg or "duplicate key" in error_msg:
                logger.info("Database tables already exist (created by another worker)")
            else:
                logger.error(f"Failed to create database tables: {e}")
                raise

        if seed:
            from .seed import seed_all

            db = app.state.session_factory()
            try:
                seed_all(db)
            finally:
                db.close()

        # A missing or unusable signing key raises SigningKeyError here and aborts startup
        if app.state.token_service is None:
            app.state.token_service = build_token_service(build_revocation_list())

        if app.state.permission_cache is None:
            app.state.permission_cache = build_cache()
            if app.state.permission_cache is None:
                logger.info("Redis not configured - role permissions are read from the database")

        sweeper = None
        if start_sweeper:
            sweeper = RevocationSweeper(app.state.token_service, REVOCATION_SWEEP_INTERVAL_SECONDS)
            sweeper.start()

        yield

        logger.info("Application shutting down...")
        if sweeper is not None:
            sweeper.stop()

    app = FastAPI(title="Elterngeld Portal API", version="1.0.0", lifespan=lifespan)
    app.state.token_service = token_service
    app.state.session_factory = session_factory
    app.state.permission_cache = None

    @app.exception_handler(PortalError)
    async def portal_error_handler(request: Request, exc: PortalError):
        status_code = status_code_for(exc)
        headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
        logger.info(f"{request.method} {request.url.path} -> {status_code} {exc.code}")
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "code": exc.code},
            headers=headers,
        )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        try:
            response = await call_next(request)
            return response
        except Exception as e:
            logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
            raise

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
    )

    # Routes
    app.include_router(auth_router)
    app.include_router(permissions_router)
    app.include_router(timeslot_router)
    app.include_router(bookings_router)

    @app.get("/")
    def root():
        return {"message": "Elterngeld Portal API is running"}

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


app = create_app()
