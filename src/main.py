"""FastAPI application entry point with lifespan management."""

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.calculators import router as calculators_router
from src.api.health import router as health_router
from src.api.middleware import RequestContextMiddleware
from src.api.payroll import router as payroll_router
from src.api.tax_rates import router as tax_rates_router
from src.api.vat import router as vat_router
from src.core.config import settings
from src.core.database import create_engine, create_schema, create_session_factory, session_scope
from src.core.logging import configure_logging, get_logger
from src.core.sentry import init_sentry
from src.tax.errors import TaxEngineError
from src.tax.repository import RateRepository
from src.tax.seed import seed_default_rates

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle resources.

    Startup:
        - Configure structured logging
        - Initialize Sentry error tracking
        - Create database engine and session factory
        - Create missing tables and seed default rates (if enabled)

    Shutdown:
        - Dispose database engine

    The transaction source and employee directory are external
    collaborators. They are left as None unless the embedding
    application has already attached them to app.state.
    """
    configure_logging()
    logger.info("Starting application", environment=settings.environment)

    init_sentry()

    app.state.db_engine = create_engine()
    app.state.async_session = create_session_factory(app.state.db_engine)
    logger.info("Database engine created")

    if settings.create_schema_on_startup:
        await create_schema(app.state.db_engine)
    if settings.seed_on_startup:
        async with session_scope(app.state.async_session) as session:
            seeded = await seed_default_rates(RateRepository(session))
        logger.info("Default tax rates checked", seeded=seeded)

    if not hasattr(app.state, "transaction_source"):
        app.state.transaction_source = None
    if not hasattr(app.state, "employee_directory"):
        app.state.employee_directory = None

    yield

    logger.info("Shutting down application")
    await app.state.db_engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title="UK Tax Engine",
    description="Income Tax, National Insurance, VAT and Corporation Tax calculations",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(TaxEngineError)
async def tax_engine_error_handler(request: Request, exc: TaxEngineError) -> JSONResponse:
    """Render engine errors with their HTTP status."""
    logger.info(
        "tax_engine_error",
        error=type(exc).__name__,
        status=exc.http_status,
        path=request.url.path,
        message=exc.message,
    )
    return JSONResponse(status_code=exc.http_status, content={"detail": exc.message})


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestContextMiddleware)

app.include_router(health_router)
app.include_router(tax_rates_router)
app.include_router(payroll_router)
app.include_router(vat_router)
app.include_router(calculators_router)
