"""Tax rate SQLAlchemy model.

A row is either a monetary threshold (integer pence) or a percentage rate
(integer basis points, 2000 = 20.00%) for one regime and one tax year.
"""

import enum
from datetime import date

from sqlalchemy import (
    CheckConstraint,
    Date,
    Enum,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin


class TaxCategory(enum.Enum):
    """Tax regime a rate row belongs to."""

    VAT = "vat"
    INCOME_TAX = "income_tax"
    NATIONAL_INSURANCE = "national_insurance"
    CORPORATION_TAX = "corporation_tax"


class RateType(enum.Enum):
    """Whether a row holds a monetary boundary or a percentage."""

    THRESHOLD = "threshold"
    RATE = "rate"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class TaxRate(Base, TimestampMixin):
    """Versioned tax rate or threshold for a single tax year.

    category, name, rate_type and tax_year are fixed at creation; only
    value may change afterwards.
    """

    __tablename__ = "tax_rates"
    __table_args__ = (
        UniqueConstraint(
            "tax_year", "category", "name", "rate_type", name="uq_tax_rates_identity"
        ),
        CheckConstraint("value >= 0", name="ck_tax_rates_value_non_negative"),
        CheckConstraint(
            "rate_type != 'rate' OR value <= 10000", name="ck_tax_rates_rate_range"
        ),
        CheckConstraint(
            "effective_from < effective_to", name="ck_tax_rates_effective_order"
        ),
        Index("ix_tax_rates_tax_year", "tax_year"),
        Index("ix_tax_rates_category_rate_type", "category", "rate_type"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    category: Mapped[TaxCategory] = mapped_column(
        Enum(
            TaxCategory,
            native_enum=False,
            length=32,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    rate_type: Mapped[RateType] = mapped_column(
        Enum(
            RateType,
            native_enum=False,
            length=16,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    value: Mapped[int] = mapped_column(Integer, nullable=False)
    tax_year: Mapped[str] = mapped_column(String(7), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255))
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date] = mapped_column(Date, nullable=False)

    def __repr__(self) -> str:
        return (
            f"TaxRate(id={self.id!r}, tax_year={self.tax_year!r}, "
            f"category={self.category.value!r}, name={self.name!r}, "
            f"rate_type={self.rate_type.value!r}, value={self.value!r})"
        )
