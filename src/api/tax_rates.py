"""Tax rate administration endpoints.

Rates are read per tax year, edited one value at a time, and new years are
created by copying an existing year. All writes happen in the request's
transaction and are committed only if the whole request succeeds.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field, StrictInt

from src.api.deps import get_rate_repository, resolve_tax_year
from src.api.schemas import CamelModel
from src.models.tax_rate import RateType, TaxCategory, TaxRate
from src.tax.repository import RateRepository
from src.tax.seed import seed_default_rates
from src.tax.year_manager import TaxYearManager

router = APIRouter(prefix="/tax-rates", tags=["tax-rates"])


class TaxRateResponse(CamelModel):
    """A single tax rate row."""

    id: int
    category: TaxCategory
    name: str
    rate_type: RateType
    value: int
    tax_year: str
    effective_from: date
    effective_to: date
    description: str | None = None


class TaxRateListResponse(CamelModel):
    rates: list[TaxRateResponse]


class TaxYearsResponse(CamelModel):
    """Known tax years and the years that can be created next."""

    tax_years: list[str]
    available_years: list[str]


class GroupedRatesResponse(CamelModel):
    """Rates of one year as {category: {thresholds: {...}, rates: {...}}}."""

    tax_year: str
    rates: dict[str, dict[str, dict[str, int]]]


class RateUpdateRequest(CamelModel):
    """Payload for changing the value of one rate."""

    value: StrictInt


class CopyYearRequest(CamelModel):
    """Payload for cloning a tax year.

    Effective dates default to the target year's 6 April - 5 April bounds.
    """

    from_year: str = Field(min_length=1)
    to_year: str = Field(min_length=1)
    effective_from: date | None = None
    effective_to: date | None = None


class CopyForwardRequest(CamelModel):
    """Payload for creating the year after from_year (default: the latest year)."""

    from_year: str | None = None


class SeedResponse(CamelModel):
    seeded: list[str]


def _to_rate_response(rate: TaxRate) -> TaxRateResponse:
    """Map SQLAlchemy tax rate model to response model."""
    return TaxRateResponse(
        id=rate.id,
        category=rate.category,
        name=rate.name,
        rate_type=rate.rate_type,
        value=rate.value,
        tax_year=rate.tax_year,
        effective_from=rate.effective_from,
        effective_to=rate.effective_to,
        description=rate.description,
    )


@router.get("/years", response_model=TaxYearsResponse)
async def list_tax_years(
    repository: RateRepository = Depends(get_rate_repository),
) -> TaxYearsResponse:
    """List known tax years, most recent first, and the years available to create."""
    listing = await TaxYearManager(repository).listing()
    return TaxYearsResponse(
        tax_years=listing.tax_years,
        available_years=listing.available_years,
    )


@router.get("", response_model=TaxRateListResponse)
async def list_rates(
    tax_year: str | None = Query(default=None, alias="taxYear"),
    repository: RateRepository = Depends(get_rate_repository),
) -> TaxRateListResponse:
    """List every rate of a tax year."""
    year = await resolve_tax_year(repository, tax_year)
    rates = await repository.get_rates(year)
    return TaxRateListResponse(rates=[_to_rate_response(rate) for rate in rates])


@router.get("/grouped", response_model=GroupedRatesResponse)
async def grouped_rates(
    tax_year: str | None = Query(default=None, alias="taxYear"),
    repository: RateRepository = Depends(get_rate_repository),
) -> GroupedRatesResponse:
    """Rates of a tax year grouped by category and type."""
    year = await resolve_tax_year(repository, tax_year)
    return GroupedRatesResponse(tax_year=year, rates=await repository.grouped(year))


@router.put("/{rate_id}", response_model=TaxRateResponse)
async def update_rate(
    rate_id: int,
    payload: RateUpdateRequest,
    repository: RateRepository = Depends(get_rate_repository),
) -> TaxRateResponse:
    """Change the value of one rate."""
    rate = await repository.update_rate_value(rate_id, payload.value)
    return _to_rate_response(rate)


@router.post(
    "/copy-year",
    response_model=list[TaxRateResponse],
    status_code=status.HTTP_201_CREATED,
)
async def copy_year(
    payload: CopyYearRequest,
    repository: RateRepository = Depends(get_rate_repository),
) -> list[TaxRateResponse]:
    """Create a tax year by cloning every rate of another year."""
    rates = await TaxYearManager(repository).copy_year(
        payload.from_year,
        payload.to_year,
        payload.effective_from,
        payload.effective_to,
    )
    return [_to_rate_response(rate) for rate in rates]


@router.post(
    "/copy-forward",
    response_model=list[TaxRateResponse],
    status_code=status.HTTP_201_CREATED,
)
async def copy_forward(
    payload: CopyForwardRequest,
    repository: RateRepository = Depends(get_rate_repository),
) -> list[TaxRateResponse]:
    """Create the year following from_year, or following the latest known year."""
    rates = await TaxYearManager(repository).copy_forward(payload.from_year)
    return [_to_rate_response(rate) for rate in rates]


@router.post("/seed", response_model=SeedResponse)
async def seed_rates(
    repository: RateRepository = Depends(get_rate_repository),
) -> SeedResponse:
    """Insert the default UK rate table for any year not yet present."""
    return SeedResponse(seeded=await seed_default_rates(repository))
