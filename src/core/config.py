"""Application configuration using Pydantic Settings."""

import json
import re
from pathlib import Path
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


# Warning tiers as level -> ratio of the registration threshold in basis
# points (9000 = 90.00%). Anything below the lowest tier is "ok".
DEFAULT_VAT_WARNING_TIERS = {
    "approaching": 9000,
    "exceeded": 10000,
}

TAX_YEAR_PATTERN = re.compile(r"(\d{4})-(\d{2})")
"""Tax year key "YYYY-YY"; the years must also be consecutive."""

DEFAULT_CORS_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./tax_engine.db"
    """Async SQLAlchemy connection URL (asyncpg in production, aiosqlite locally)."""

    # Error Tracking
    sentry_dsn: str | None = None
    """Sentry DSN for error tracking. Optional."""

    # Environment
    environment: str = "development"
    """Current environment (development, staging, production)."""

    debug: bool = False
    """Enable debug mode."""

    log_format: str | None = None
    """Logging format override (json or console). Defaults by environment."""

    cors_origins: Annotated[list[str], NoDecode] = DEFAULT_CORS_ORIGINS
    """Origins allowed to call the API from a browser."""

    # Tax engine
    default_tax_year: str | None = None
    """Tax year used when a request omits one. Derived from today's date if unset."""

    vat_warning_tiers: Annotated[dict[str, int], NoDecode] = DEFAULT_VAT_WARNING_TIERS
    """VAT registration warning tiers (level -> basis points of the threshold)."""

    create_schema_on_startup: bool = True
    """Create missing tables at startup. Disable where Alembic owns the schema."""

    seed_on_startup: bool = True
    """Insert the default UK rate table at startup for years not yet present."""

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: object) -> list[str]:
        """Parse CORS origins from JSON array, CSV, or list."""
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return DEFAULT_CORS_ORIGINS.copy()
            if text.startswith("["):
                decoded = json.loads(text)
                if not isinstance(decoded, list):
                    raise ValueError("CORS_ORIGINS must be a JSON array or CSV string.")
                return [str(item).strip() for item in decoded if str(item).strip()]
            return [item.strip() for item in text.split(",") if item.strip()]
        if isinstance(value, (list, tuple)):
            return [str(item).strip() for item in value if str(item).strip()]
        raise ValueError("CORS_ORIGINS must be a string or list.")

    @field_validator("default_tax_year")
    @classmethod
    def validate_default_tax_year(cls, value: str | None) -> str | None:
        """Reject malformed default tax year keys early."""
        if value is None:
            return None
        match = TAX_YEAR_PATTERN.fullmatch(value.strip())
        if match is None or (int(match.group(1)) + 1) % 100 != int(match.group(2)):
            raise ValueError(f"DEFAULT_TAX_YEAR must look like 2024-25, got {value!r}")
        return value.strip()

    @field_validator("vat_warning_tiers", mode="before")
    @classmethod
    def parse_vat_warning_tiers(cls, value: object) -> dict[str, int]:
        """Parse warning tiers from a JSON object, a `level=ratio` CSV, or a dict."""
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return DEFAULT_VAT_WARNING_TIERS.copy()

            try:
                decoded = json.loads(text)
            except json.JSONDecodeError:
                decoded = None

            if isinstance(decoded, dict):
                return _normalize_tiers(decoded.items())
            if decoded is not None:
                raise ValueError(
                    "VAT_WARNING_TIERS must be a JSON object or comma-separated level=ratio pairs."
                )

            pairs = []
            for item in text.split(","):
                level, sep, ratio = item.partition("=")
                if not sep:
                    raise ValueError(
                        f"VAT_WARNING_TIERS entry {item.strip()!r} is not level=ratio."
                    )
                pairs.append((level, ratio))
            return _normalize_tiers(pairs)

        if isinstance(value, dict):
            return _normalize_tiers(value.items())

        raise ValueError("VAT_WARNING_TIERS must be a string or mapping.")


def _normalize_tiers(items) -> dict[str, int]:
    """Normalize tier pairs and check ratios are positive integers."""
    tiers: dict[str, int] = {}
    for raw_level, raw_ratio in items:
        level = str(raw_level).strip().lower()
        if not level:
            continue
        if level == "ok":
            raise ValueError("VAT_WARNING_TIERS cannot redefine the implicit 'ok' level.")
        try:
            ratio = int(str(raw_ratio).strip())
        except ValueError as exc:
            raise ValueError(
                f"VAT_WARNING_TIERS ratio for {level!r} must be an integer."
            ) from exc
        if ratio <= 0:
            raise ValueError(f"VAT_WARNING_TIERS ratio for {level!r} must be positive.")
        tiers[level] = ratio

    if not tiers:
        return DEFAULT_VAT_WARNING_TIERS.copy()
    return tiers


try:
    settings = Settings()
except Exception as exc:
    env_file = Path(".env")
    root_error = str(exc)
    suggestions = [
        "Check DATABASE_URL is a valid async SQLAlchemy URL.",
        "DEFAULT_TAX_YEAR must look like 2024-25.",
        "Allowed values for VAT_WARNING_TIERS are:",
        '  1) {"approaching": 9000, "exceeded": 10000}',
        "  2) approaching=9000,exceeded=10000",
    ]

    raise RuntimeError(
        "Failed to initialize application settings. "
        f"Check environment variables in {env_file.resolve() if env_file.exists() else '.env'}.\n"
        + f"Error: {root_error}\n"
        + "\n".join(suggestions)
    ) from exc
