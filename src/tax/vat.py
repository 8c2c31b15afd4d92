"""VAT return boxes and registration threshold monitoring.

Box values are built from transactions carrying a net amount (pence) and
a VAT rate (basis points):

- Box 1: VAT on sales. Box 2: VAT on EU acquisitions.
- Box 3: Box 1 + Box 2. Box 4: VAT reclaimed on purchases.
- Box 5: Box 3 - Box 4; positive is owed, negative is a refund.
- Box 6 / Box 7: net sales / net purchases.
- Box 8 / Box 9: net EU supplies / net EU acquisitions.

Box 3 and Box 5 are derived on read and never stored separately.

Threshold monitoring compares rolling 12-month taxable turnover with the
registration threshold of the tax year. Warning tiers are ratios of the
threshold in basis points; the comparison is done in integers so a tier
boundary is exact. Registration is also due when the next 30 days alone
are expected to exceed the threshold; that expectation is projected from
average daily income over the last 3 months.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from fractions import Fraction
from typing import Protocol

from src.core.config import DEFAULT_VAT_WARNING_TIERS
from src.core.logging import get_logger
from src.models.tax_rate import TaxCategory
from src.tax import catalog as c
from src.tax.errors import InvalidPeriod, InvalidRateValue, NegativeTurnover
from src.tax.money import RATE_SCALE, apply_rate, percentage_of, round_half_up
from src.tax.repository import RateRepository
from src.tax.tax_year import add_months

logger = get_logger(__name__)

OK = "ok"
"""Warning level below the lowest configured tier."""

PROJECTION_DAYS = 30
PROJECTION_LOOKBACK_MONTHS = 3


# =============================================================================
# Transactions
# =============================================================================


class TransactionType(enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"


@dataclass(frozen=True)
class VatTransaction:
    """A sale or purchase as seen by the VAT return.

    Attributes:
        date: Transaction (tax point) date.
        amount: Net amount in pence, before VAT.
        vat_rate: VAT rate in basis points.
        type: Income (sale) or expense (purchase).
        vat_amount: VAT actually charged, when known. Overrides the
            amount x rate computation, e.g. for invoices rounded per line.
        eu_acquisition: Purchase of goods from the EU (expenses only).
        eu_supply: Supply of goods to the EU (income only).
    """

    date: date
    amount: int
    vat_rate: int
    type: TransactionType
    vat_amount: int | None = None
    eu_acquisition: bool = False
    eu_supply: bool = False

    def __post_init__(self):
        if not 0 <= self.vat_rate <= RATE_SCALE:
            raise InvalidRateValue(
                f"VAT rate must be between 0 and {RATE_SCALE}, got {self.vat_rate}"
            )

    @property
    def vat(self) -> int:
        """VAT on this transaction in pence."""
        if self.vat_amount is not None:
            return self.vat_amount
        return apply_rate(self.amount, self.vat_rate)

    @property
    def is_income(self) -> bool:
        return self.type is TransactionType.INCOME


class TransactionSource(Protocol):
    """Supplies the transactions of a date range (both ends inclusive)."""

    async def list_transactions(self, start: date, end: date) -> list[VatTransaction]: ...


class InMemoryTransactionSource:
    """TransactionSource over a list held in memory."""

    def __init__(self, transactions: Iterable[VatTransaction] = ()):
        self._transactions = list(transactions)

    def add(self, transaction: VatTransaction) -> None:
        self._transactions.append(transaction)

    async def list_transactions(self, start: date, end: date) -> list[VatTransaction]:
        return [t for t in self._transactions if start <= t.date <= end]


# =============================================================================
# Box computation
# =============================================================================


@dataclass(frozen=True)
class VatBoxSet:
    """The nine VAT return boxes in pence."""

    box1: int = 0
    box2: int = 0
    box4: int = 0
    box6: int = 0
    box7: int = 0
    box8: int = 0
    box9: int = 0

    @property
    def box3(self) -> int:
        return self.box1 + self.box2

    @property
    def box5(self) -> int:
        return self.box3 - self.box4

    @property
    def is_refund(self) -> bool:
        return self.box5 < 0

    def as_dict(self) -> dict[str, int]:
        return {f"box{n}": getattr(self, f"box{n}") for n in range(1, 10)}


def compute_boxes(transactions: Iterable[VatTransaction]) -> VatBoxSet:
    """Aggregate transactions into box values.

    An EU acquisition's VAT is both due (Box 2) and reclaimable (Box 4),
    so it has no net effect on Box 5. EU flags on the wrong transaction
    type are ignored.
    """
    box1 = box2 = box4 = box6 = box7 = box8 = box9 = 0
    for t in transactions:
        vat = t.vat
        if t.is_income:
            box1 += vat
            box6 += t.amount
            if t.eu_supply:
                box8 += t.amount
        else:
            box4 += vat
            box7 += t.amount
            if t.eu_acquisition:
                box2 += vat
                box9 += t.amount
    return VatBoxSet(box1=box1, box2=box2, box4=box4, box6=box6, box7=box7, box8=box8, box9=box9)


class VatReturnStatus(enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"


@dataclass(frozen=True)
class VatReturn:
    """A VAT return for one period, boxes computed from its transactions."""

    period_start: date
    period_end: date
    boxes: VatBoxSet
    status: VatReturnStatus = VatReturnStatus.DRAFT
    transaction_count: int = 0


def check_period(period_start: date, period_end: date) -> None:
    if period_start >= period_end:
        raise InvalidPeriod(
            f"Period start {period_start} must be before period end {period_end}"
        )


def create_return(
    transactions: Iterable[VatTransaction],
    period_start: date,
    period_end: date,
) -> VatReturn:
    """Build a draft return from the transactions dated inside the period.

    Both period dates are inclusive.

    Raises:
        InvalidPeriod: If period_start is not before period_end.
    """
    check_period(period_start, period_end)
    in_period = [t for t in transactions if period_start <= t.date <= period_end]
    return VatReturn(
        period_start=period_start,
        period_end=period_end,
        boxes=compute_boxes(in_period),
        transaction_count=len(in_period),
    )


@dataclass(frozen=True)
class VatSummary:
    """Output VAT, input VAT and their balance (pence)."""

    output_vat: int
    input_vat: int
    transaction_count: int = 0

    @property
    def vat_balance(self) -> int:
        return self.output_vat - self.input_vat


def summarize_vat(transactions: Iterable[VatTransaction]) -> VatSummary:
    transactions = list(transactions)
    boxes = compute_boxes(transactions)
    return VatSummary(
        output_vat=boxes.box3,
        input_vat=boxes.box4,
        transaction_count=len(transactions),
    )


# =============================================================================
# Turnover and threshold
# =============================================================================


@dataclass
class TurnoverSummary:
    """Taxable turnover over a rolling 12-month window.

    Attributes:
        start: First day of the window.
        end: Last day of the window (the as-of date).
        turnover: Net income in pence.
        transaction_count: Income transactions counted.
        monthly: Turnover per calendar month, keyed "YYYY-MM".
    """

    start: date
    end: date
    turnover: int
    transaction_count: int
    monthly: dict[str, int] = field(default_factory=dict)


def rolling_window(as_of: date) -> tuple[date, date]:
    """The 12 months ending on as_of: the day after one year earlier to as_of.

    Example:
        >>> rolling_window(date(2025, 3, 31))
        (datetime.date(2024, 4, 1), datetime.date(2025, 3, 31))
    """
    return add_months(as_of, -12) + timedelta(days=1), as_of


def rolling_turnover(transactions: Iterable[VatTransaction], as_of: date) -> TurnoverSummary:
    """Sum net income over the 12 months ending on as_of (inclusive)."""
    start, end = rolling_window(as_of)
    turnover = 0
    count = 0
    monthly: dict[str, int] = {}
    for t in transactions:
        if not t.is_income or not start <= t.date <= end:
            continue
        turnover += t.amount
        count += 1
        month = t.date.strftime("%Y-%m")
        monthly[month] = monthly.get(month, 0) + t.amount
    return TurnoverSummary(
        start=start,
        end=end,
        turnover=turnover,
        transaction_count=count,
        monthly=dict(sorted(monthly.items())),
    )


@dataclass(frozen=True)
class TurnoverProjection:
    """Expected turnover of the next 30 days (pence).

    Attributes:
        next_30_days: Projected net income over the next 30 days.
        average_daily: Average daily net income the projection is based on.
        based_on_days: Length of the look-back window in days.
    """

    next_30_days: int
    average_daily: int = 0
    based_on_days: int = 0


def projection_window(as_of: date) -> tuple[date, date]:
    """The 3 months ending on as_of, both ends inclusive.

    Example:
        >>> projection_window(date(2025, 3, 31))
        (datetime.date(2025, 1, 1), datetime.date(2025, 3, 31))
    """
    return add_months(as_of, -PROJECTION_LOOKBACK_MONTHS) + timedelta(days=1), as_of


def project_turnover(transactions: Iterable[VatTransaction], as_of: date) -> TurnoverProjection:
    """Project the next 30 days from average daily income over the last 3 months.

    The average is rounded half-up to the penny before it is multiplied
    out to 30 days.
    """
    start, end = projection_window(as_of)
    total = sum(t.amount for t in transactions if t.is_income and start <= t.date <= end)
    days = (end - start).days + 1
    average_daily = round_half_up(Fraction(total, days))
    return TurnoverProjection(
        next_30_days=average_daily * PROJECTION_DAYS,
        average_daily=average_daily,
        based_on_days=days,
    )


@dataclass(frozen=True)
class ThresholdStatus:
    """Turnover measured against the registration threshold.

    Attributes:
        level: "ok" or the name of the highest tier reached. Always "ok"
            for a business that is already registered.
        turnover: Rolling 12-month turnover in pence.
        threshold: Registration threshold in pence.
        remaining: Turnover left before the threshold, never negative.
        percentage: Turnover as a percentage of the threshold, 2 d.p.
        projected_next_30_days: Expected turnover of the next 30 days.
        projected_exceeds_threshold: The next 30 days alone exceed the
            registration threshold, which makes registration due now.
        deregistration_threshold: Turnover below which a registered
            business may deregister, when the year defines one.
        is_vat_registered: The business is already registered.
    """

    level: str
    turnover: int
    threshold: int
    remaining: int
    percentage: Decimal
    projected_next_30_days: int = 0
    projected_exceeds_threshold: bool = False
    deregistration_threshold: int | None = None
    is_vat_registered: bool = False

    @property
    def requires_monitoring(self) -> bool:
        """Only unregistered businesses are watched against the threshold."""
        return not self.is_vat_registered


def determine_warning_level(
    turnover: int,
    threshold: int,
    tiers: Mapping[str, int] = DEFAULT_VAT_WARNING_TIERS,
) -> str:
    """Return the highest tier whose ratio the turnover has reached.

    A tier with ratio r is reached when turnover >= threshold x r / 10000.

    Example:
        >>> determine_warning_level(8100000, 9000000)
        'approaching'
        >>> determine_warning_level(8099999, 9000000)
        'ok'
    """
    if turnover < 0:
        raise NegativeTurnover(turnover)
    level = OK
    for name, ratio in sorted(tiers.items(), key=lambda item: item[1]):
        if turnover * RATE_SCALE >= threshold * ratio:
            level = name
    return level


def threshold_status(
    turnover: int,
    threshold: int,
    tiers: Mapping[str, int] = DEFAULT_VAT_WARNING_TIERS,
    *,
    projected_next_30_days: int = 0,
    deregistration_threshold: int | None = None,
    is_vat_registered: bool = False,
) -> ThresholdStatus:
    """Warning level, remaining headroom and percentage reached.

    The 30-day projection is a separate test: projected turnover strictly
    above the threshold flags registration as due regardless of the
    rolling total. Registered businesses get level "ok" and no flag.

    Raises:
        NegativeTurnover: If turnover or the projection is negative.
    """
    if turnover < 0:
        raise NegativeTurnover(turnover)
    if projected_next_30_days < 0:
        raise NegativeTurnover(projected_next_30_days)
    monitored = not is_vat_registered
    return ThresholdStatus(
        level=determine_warning_level(turnover, threshold, tiers) if monitored else OK,
        turnover=turnover,
        threshold=threshold,
        remaining=max(0, threshold - turnover),
        percentage=percentage_of(turnover, threshold),
        projected_next_30_days=projected_next_30_days,
        projected_exceeds_threshold=monitored and projected_next_30_days > threshold,
        deregistration_threshold=deregistration_threshold,
        is_vat_registered=is_vat_registered,
    )


# =============================================================================
# Engine
# =============================================================================


class VatEngine:
    """VAT calculations that need the rate table or a transaction source."""

    def __init__(
        self,
        repository: RateRepository,
        tiers: Mapping[str, int] | None = None,
    ):
        self._repository = repository
        self._tiers = dict(tiers) if tiers is not None else dict(DEFAULT_VAT_WARNING_TIERS)

    @property
    def tiers(self) -> dict[str, int]:
        return dict(self._tiers)

    async def registration_threshold(self, tax_year: str) -> int:
        snapshot = await self._repository.get_snapshot(tax_year)
        return snapshot.threshold(TaxCategory.VAT, c.VAT_REGISTRATION)

    async def threshold_status(
        self,
        turnover: int,
        tax_year: str,
        projected_next_30_days: int = 0,
        is_vat_registered: bool = False,
    ) -> ThresholdStatus:
        """Compare turnover with the registration threshold of tax_year.

        Raises:
            NegativeTurnover: If turnover or the projection is negative.
            TaxYearNotFound: If the year has no rates.
            RateNotFound: If the year has no registration threshold.
        """
        if turnover < 0:
            raise NegativeTurnover(turnover)
        snapshot = await self._repository.get_snapshot(tax_year)
        status = threshold_status(
            turnover,
            snapshot.threshold(TaxCategory.VAT, c.VAT_REGISTRATION),
            self._tiers,
            projected_next_30_days=projected_next_30_days,
            deregistration_threshold=snapshot.optional_threshold(
                TaxCategory.VAT, c.VAT_DEREGISTRATION
            ),
            is_vat_registered=is_vat_registered,
        )
        logger.debug(
            "vat_threshold_checked",
            tax_year=tax_year,
            turnover=turnover,
            threshold=status.threshold,
            level=status.level,
            projected_next_30_days=projected_next_30_days,
            is_vat_registered=is_vat_registered,
        )
        if status.projected_exceeds_threshold:
            logger.info(
                "vat_projection_exceeds_threshold",
                tax_year=tax_year,
                projected_next_30_days=projected_next_30_days,
                threshold=status.threshold,
            )
        return status

    async def turnover(self, source: TransactionSource, as_of: date) -> TurnoverSummary:
        start, end = rolling_window(as_of)
        return rolling_turnover(await source.list_transactions(start, end), as_of)

    async def projection(self, source: TransactionSource, as_of: date) -> TurnoverProjection:
        start, end = projection_window(as_of)
        return project_turnover(await source.list_transactions(start, end), as_of)

    async def dashboard_summary(
        self,
        source: TransactionSource,
        start: date,
        end: date,
    ) -> VatSummary:
        """Output VAT, input VAT and balance for transactions in [start, end].

        Raises:
            InvalidPeriod: If start is not before end.
        """
        check_period(start, end)
        return summarize_vat(await source.list_transactions(start, end))
