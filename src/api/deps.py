"""FastAPI dependency injection for the database and external collaborators."""

from collections.abc import AsyncGenerator
from datetime import date

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.logging import get_logger, tax_year_ctx
from src.tax.payroll import EmployeeDirectory
from src.tax.repository import RateRepository
from src.tax.tax_year import current_tax_year, latest_tax_year_until, parse_tax_year
from src.tax.vat import TransactionSource, VatEngine

logger = get_logger(__name__)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session from the app's session factory.

    Args:
        request: FastAPI request containing app state.

    Yields:
        AsyncSession for database operations with automatic commit/rollback.
    """
    async with request.app.state.async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_rate_repository(db: AsyncSession = Depends(get_db)) -> RateRepository:
    """Rate repository bound to the request's session."""
    return RateRepository(db)


async def get_vat_engine(
    repository: RateRepository = Depends(get_rate_repository),
) -> VatEngine:
    return VatEngine(repository, settings.vat_warning_tiers)


async def get_transaction_source(request: Request) -> TransactionSource:
    """Get the transaction source collaborator from app state.

    Raises:
        HTTPException: 503 if no transaction source is configured.
    """
    source = getattr(request.app.state, "transaction_source", None)
    if source is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Transaction source is not configured",
        )
    return source


async def get_employee_directory(request: Request) -> EmployeeDirectory | None:
    """Get the employee directory from app state, or None when not configured."""
    return getattr(request.app.state, "employee_directory", None)


async def resolve_tax_year(
    repository: RateRepository,
    tax_year: str | None = None,
    on: date | None = None,
) -> str:
    """Return the requested tax year, else the configured default, else a year from `on`.

    Without an explicit or configured year, the tax year containing `on`
    (default today) is used if it has rates; otherwise the latest seeded
    year before it. The resolved year is bound to the logging context for
    the request.

    Raises:
        InvalidTaxYear: If the resolved key is malformed.
    """
    resolved = tax_year or settings.default_tax_year
    if not resolved:
        current = current_tax_year(on)
        resolved = latest_tax_year_until(await repository.list_tax_years(), current) or current
        if resolved != current:
            logger.debug("tax_year_fallback", current_tax_year=current, tax_year=resolved)
    parse_tax_year(resolved)
    tax_year_ctx.set(resolved)
    return resolved
