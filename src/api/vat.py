"""VAT endpoints: return boxes, threshold status and dashboard summary."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field

from src.api.deps import (
    get_rate_repository,
    get_transaction_source,
    get_vat_engine,
    resolve_tax_year,
)
from src.api.schemas import CamelModel, TransactionPayload, VatBoxesResponse
from src.tax.repository import RateRepository
from src.tax.tax_year import tax_year_bounds
from src.tax.vat import (
    TransactionSource,
    TurnoverProjection,
    VatEngine,
    VatReturnStatus,
    compute_boxes,
    create_return,
)

router = APIRouter(prefix="/vat", tags=["vat"])


class VatBoxesRequest(CamelModel):
    transactions: list[TransactionPayload]


class VatReturnRequest(CamelModel):
    """Payload for creating a draft VAT return."""

    period_start: date
    period_end: date
    transactions: list[TransactionPayload]


class VatReturnResponse(VatBoxesResponse):
    """A draft VAT return with its boxes."""

    period_start: date
    period_end: date
    status: VatReturnStatus
    transaction_count: int


class TurnoverBlock(CamelModel):
    rolling_12_month: int = Field(alias="rolling12Month")
    period_start: date
    period_end: date
    transaction_count: int
    monthly: dict[str, int]


class ProjectionBlock(CamelModel):
    next_30_days: int = Field(alias="next30Days")
    average_daily: int
    exceeds_threshold: bool


class ThresholdBlock(CamelModel):
    registration_amount: int
    deregistration_amount: int | None
    tax_year: str


class WarningBlock(CamelModel):
    level: str
    remaining_until_threshold: int
    percentage: float


class ThresholdStatusResponse(CamelModel):
    """Rolling turnover and the 30-day projection against the registration threshold."""

    is_vat_registered: bool
    requires_monitoring: bool
    turnover: TurnoverBlock
    projection: ProjectionBlock
    threshold: ThresholdBlock
    warning: WarningBlock


class DashboardSummaryResponse(CamelModel):
    """Output VAT, input VAT and the balance for a period (pence)."""

    output_vat: int
    input_vat: int
    vat_balance: int
    transaction_count: int
    period_start: date
    period_end: date


@router.post("/boxes", response_model=VatBoxesResponse)
async def calculate_boxes(payload: VatBoxesRequest) -> VatBoxesResponse:
    """Compute the nine boxes for a list of transactions."""
    boxes = compute_boxes(t.to_transaction() for t in payload.transactions)
    return VatBoxesResponse.from_boxes(boxes)


@router.post(
    "/returns",
    response_model=VatReturnResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_vat_return(payload: VatReturnRequest) -> VatReturnResponse:
    """Build a draft return from the transactions dated inside the period."""
    vat_return = create_return(
        [t.to_transaction() for t in payload.transactions],
        payload.period_start,
        payload.period_end,
    )
    return VatReturnResponse(
        **vat_return.boxes.as_dict(),
        period_start=vat_return.period_start,
        period_end=vat_return.period_end,
        status=vat_return.status,
        transaction_count=vat_return.transaction_count,
    )


@router.get("/threshold-status", response_model=ThresholdStatusResponse)
async def threshold_status(
    as_of: date | None = Query(default=None, alias="asOf"),
    tax_year: str | None = Query(default=None, alias="taxYear"),
    is_vat_registered: bool = Query(default=False, alias="isVatRegistered"),
    expected_next_30_days: int | None = Query(default=None, alias="expectedNext30Days"),
    engine: VatEngine = Depends(get_vat_engine),
    repository: RateRepository = Depends(get_rate_repository),
    source: TransactionSource = Depends(get_transaction_source),
) -> ThresholdStatusResponse:
    """Rolling 12-month turnover measured against the registration threshold.

    expectedNext30Days replaces the projection from recent income when the
    caller knows of a large contract ahead.
    """
    as_of = as_of or date.today()
    year = await resolve_tax_year(repository, tax_year, on=as_of)
    turnover = await engine.turnover(source, as_of)
    if expected_next_30_days is None:
        projection = await engine.projection(source, as_of)
    else:
        projection = TurnoverProjection(next_30_days=expected_next_30_days)
    result = await engine.threshold_status(
        turnover.turnover,
        year,
        projected_next_30_days=projection.next_30_days,
        is_vat_registered=is_vat_registered,
    )
    return ThresholdStatusResponse(
        is_vat_registered=result.is_vat_registered,
        requires_monitoring=result.requires_monitoring,
        turnover=TurnoverBlock(
            rolling_12_month=turnover.turnover,
            period_start=turnover.start,
            period_end=turnover.end,
            transaction_count=turnover.transaction_count,
            monthly=turnover.monthly,
        ),
        projection=ProjectionBlock(
            next_30_days=projection.next_30_days,
            average_daily=projection.average_daily,
            exceeds_threshold=result.projected_exceeds_threshold,
        ),
        threshold=ThresholdBlock(
            registration_amount=result.threshold,
            deregistration_amount=result.deregistration_threshold,
            tax_year=year,
        ),
        warning=WarningBlock(
            level=result.level,
            remaining_until_threshold=result.remaining,
            percentage=float(result.percentage),
        ),
    )


@router.get("/dashboard-summary", response_model=DashboardSummaryResponse)
async def dashboard_summary(
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    tax_year: str | None = Query(default=None, alias="taxYear"),
    engine: VatEngine = Depends(get_vat_engine),
    repository: RateRepository = Depends(get_rate_repository),
    source: TransactionSource = Depends(get_transaction_source),
) -> DashboardSummaryResponse:
    """Output VAT, input VAT and balance; defaults to the whole tax year."""
    year_start, year_end = tax_year_bounds(await resolve_tax_year(repository, tax_year))
    start = start_date or year_start
    end = end_date or year_end
    summary = await engine.dashboard_summary(source, start, end)
    return DashboardSummaryResponse(
        output_vat=summary.output_vat,
        input_vat=summary.input_vat,
        vat_balance=summary.vat_balance,
        transaction_count=summary.transaction_count,
        period_start=start,
        period_end=end,
    )
