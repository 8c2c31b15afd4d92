"""SQLAlchemy models for the tax engine."""

from src.models.base import Base
from src.models.tax_rate import RateType, TaxCategory, TaxRate

__all__ = [
    "Base",
    "RateType",
    "TaxCategory",
    "TaxRate",
]
