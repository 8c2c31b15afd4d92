"""Domain errors raised by the tax engine.

Every error carries the HTTP status the API layer renders it with, so
route handlers never translate engine errors by hand.
"""

from __future__ import annotations


class TaxEngineError(Exception):
    """Base class for all tax engine errors."""

    http_status: int = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TaxYearNotFound(TaxEngineError):
    """No rate rows exist for the requested tax year."""

    http_status = 404

    def __init__(self, tax_year: str):
        self.tax_year = tax_year
        super().__init__(f"No tax rates found for tax year {tax_year}")


class RateNotFound(TaxEngineError):
    """A rate row looked up by id or identity does not exist."""

    http_status = 404


class DuplicateTaxYear(TaxEngineError):
    """The target year of a copy already has rate rows."""

    http_status = 409

    def __init__(self, tax_year: str):
        self.tax_year = tax_year
        super().__init__(f"Tax year {tax_year} already has rates")


class InvalidRateValue(TaxEngineError):
    """A threshold or percentage is outside its allowed range."""


class InvalidTaxYear(TaxEngineError):
    """A tax year key is not of the form YYYY-YY."""


class NegativeIncome(TaxEngineError):
    """Income, pay or profit supplied to a calculation is negative."""

    def __init__(self, field: str, value: int):
        self.field = field
        self.value = value
        super().__init__(f"{field} must not be negative, got {value}")


class NegativeTurnover(TaxEngineError):
    """Turnover supplied to the VAT threshold check is negative."""

    def __init__(self, value: int):
        self.value = value
        super().__init__(f"turnover must not be negative, got {value}")


class InvalidTaxCode(TaxEngineError):
    """An employee tax code cannot be parsed or is not supported."""


class UnknownEmployee(TaxEngineError):
    """Employee overrides are required but none exist for the employee."""

    http_status = 404

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"No payroll record for employee {employee_id}")


class InvalidPeriod(TaxEngineError):
    """A period is malformed: start not before end, or a pay period out of range."""
