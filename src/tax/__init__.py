"""UK tax calculations over a versioned, year-keyed rate table."""

from src.tax.errors import (
    DuplicateTaxYear,
    InvalidPeriod,
    InvalidRateValue,
    InvalidTaxCode,
    InvalidTaxYear,
    NegativeIncome,
    NegativeTurnover,
    RateNotFound,
    TaxEngineError,
    TaxYearNotFound,
    UnknownEmployee,
)
from src.tax.repository import RateRepository, RateRow, RateSnapshot
from src.tax.income_tax import IncomeTaxCalculator, IncomeTaxResult, compute_income_tax
from src.tax.national_insurance import (
    NationalInsuranceCalculator,
    NationalInsuranceResult,
    NiCategory,
    PayFrequency,
    compute_national_insurance,
)
from src.tax.payroll import (
    EmployeeDirectory,
    EmployeeOverrides,
    InMemoryEmployeeDirectory,
    PayrollCalculationResult,
    PayrollEngine,
)
from src.tax.vat import (
    InMemoryTransactionSource,
    ThresholdStatus,
    TransactionSource,
    VatBoxSet,
    VatEngine,
    VatReturn,
    VatTransaction,
    compute_boxes,
    create_return,
)
from src.tax.corporation_tax import (
    CorporationTaxCalculator,
    CorporationTaxResult,
    compute_corporation_tax,
)
from src.tax.year_manager import TaxYearManager

__all__ = [
    "CorporationTaxCalculator",
    "CorporationTaxResult",
    "DuplicateTaxYear",
    "EmployeeDirectory",
    "EmployeeOverrides",
    "InMemoryEmployeeDirectory",
    "InMemoryTransactionSource",
    "IncomeTaxCalculator",
    "IncomeTaxResult",
    "InvalidPeriod",
    "InvalidRateValue",
    "InvalidTaxCode",
    "InvalidTaxYear",
    "NationalInsuranceCalculator",
    "NationalInsuranceResult",
    "NegativeIncome",
    "NegativeTurnover",
    "NiCategory",
    "PayFrequency",
    "PayrollCalculationResult",
    "PayrollEngine",
    "RateNotFound",
    "RateRepository",
    "RateRow",
    "RateSnapshot",
    "TaxEngineError",
    "TaxYearManager",
    "TaxYearNotFound",
    "ThresholdStatus",
    "TransactionSource",
    "UnknownEmployee",
    "VatBoxSet",
    "VatEngine",
    "VatReturn",
    "VatTransaction",
    "compute_boxes",
    "compute_corporation_tax",
    "compute_income_tax",
    "compute_national_insurance",
    "create_return",
]
