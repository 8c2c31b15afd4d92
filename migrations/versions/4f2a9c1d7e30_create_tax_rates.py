"""create_tax_rates

Revision ID: 4f2a9c1d7e30
Revises:
Create Date: 2026-10-18 09:12:44.120931

"""
from datetime import date
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f2a9c1d7e30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Rate rows as of this revision: (category, name, rate_type, value, description).
# Later changes to the default table belong in a new revision.
_SHARED_ROWS = [
    ("vat", "registration", "threshold", 9000000, "VAT registration threshold"),
    ("vat", "deregistration", "threshold", 8800000, "VAT deregistration threshold"),
    ("vat", "standard", "rate", 2000, "Standard VAT rate"),
    ("vat", "reduced", "rate", 500, "Reduced VAT rate"),
    ("vat", "zero", "rate", 0, "Zero VAT rate"),
    ("income_tax", "personal_allowance", "threshold", 1257000, "Personal allowance"),
    (
        "income_tax", "allowance_taper_threshold", "threshold", 10000000,
        "Income above which the personal allowance is withdrawn",
    ),
    (
        "income_tax", "basic_rate_limit", "threshold", 3770000,
        "Basic rate band limit (taxable income above the allowance)",
    ),
    (
        "income_tax", "higher_rate_limit", "threshold", 12514000,
        "Higher rate band limit (taxable income above the allowance)",
    ),
    ("income_tax", "basic", "rate", 2000, "Basic rate"),
    ("income_tax", "higher", "rate", 4000, "Higher rate"),
    ("income_tax", "additional", "rate", 4500, "Additional rate"),
    ("national_insurance", "primary_threshold", "threshold", 1257000, "Primary threshold"),
    ("national_insurance", "upper_earnings_limit", "threshold", 5027000, "Upper earnings limit"),
    ("national_insurance", "employee_main", "rate", 800, "Employee main rate"),
    ("national_insurance", "employee_upper", "rate", 200, "Employee rate above the UEL"),
    ("corporation_tax", "small_profits", "rate", 1900, "Small profits rate"),
    ("corporation_tax", "main", "rate", 2500, "Main rate"),
    (
        "corporation_tax", "marginal_relief_fraction", "rate", 150,
        "Marginal relief fraction (3/200)",
    ),
    ("corporation_tax", "small_profits_limit", "threshold", 5000000, "Small profits lower limit"),
    (
        "corporation_tax", "marginal_relief_limit", "threshold", 25000000,
        "Marginal relief upper limit",
    ),
]

_RATE_TABLES = {
    "2024-25": (
        date(2024, 4, 6),
        date(2025, 4, 5),
        [
            *_SHARED_ROWS,
            (
                "national_insurance", "lower_earnings_limit", "threshold", 639600,
                "Lower earnings limit",
            ),
            (
                "national_insurance", "secondary_threshold", "threshold", 910000,
                "Secondary threshold",
            ),
            ("national_insurance", "employer", "rate", 1380, "Employer rate"),
        ],
    ),
    "2025-26": (
        date(2025, 4, 6),
        date(2026, 4, 5),
        [
            *_SHARED_ROWS,
            (
                "national_insurance", "lower_earnings_limit", "threshold", 654200,
                "Lower earnings limit",
            ),
            (
                "national_insurance", "secondary_threshold", "threshold", 500000,
                "Secondary threshold",
            ),
            ("national_insurance", "employer", "rate", 1500, "Employer rate"),
        ],
    ),
}


def upgrade() -> None:
    """Create tax_rates and load the default UK rate table."""
    tax_rates = op.create_table(
        "tax_rates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("rate_type", sa.String(length=16), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False),
        sa.Column("tax_year", sa.String(length=7), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("effective_from", sa.Date(), nullable=False),
        sa.Column("effective_to", sa.Date(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False
        ),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint(
            "tax_year", "category", "name", "rate_type", name="uq_tax_rates_identity"
        ),
        sa.CheckConstraint("value >= 0", name="ck_tax_rates_value_non_negative"),
        sa.CheckConstraint(
            "rate_type != 'rate' OR value <= 10000", name="ck_tax_rates_rate_range"
        ),
        sa.CheckConstraint(
            "effective_from < effective_to", name="ck_tax_rates_effective_order"
        ),
    )
    op.create_index("ix_tax_rates_tax_year", "tax_rates", ["tax_year"])
    op.create_index(
        "ix_tax_rates_category_rate_type", "tax_rates", ["category", "rate_type"]
    )

    rows = []
    for tax_year, (effective_from, effective_to, year_rows) in _RATE_TABLES.items():
        rows.extend(
            {
                "category": category,
                "name": name,
                "rate_type": rate_type,
                "value": value,
                "tax_year": tax_year,
                "description": description,
                "effective_from": effective_from,
                "effective_to": effective_to,
            }
            for category, name, rate_type, value, description in year_rows
        )
    op.bulk_insert(tax_rates, rows)


def downgrade() -> None:
    """Drop tax_rates."""
    op.drop_index("ix_tax_rates_category_rate_type", table_name="tax_rates")
    op.drop_index("ix_tax_rates_tax_year", table_name="tax_rates")
    op.drop_table("tax_rates")
