"""API module exports."""

from src.api.calculators import router as calculators_router
from src.api.deps import get_db, get_rate_repository
from src.api.health import router as health_router
from src.api.payroll import router as payroll_router
from src.api.tax_rates import router as tax_rates_router
from src.api.vat import router as vat_router

__all__ = [
    "calculators_router",
    "get_db",
    "get_rate_repository",
    "health_router",
    "payroll_router",
    "tax_rates_router",
    "vat_router",
]
