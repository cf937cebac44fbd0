import logging
import os
from decimal import Decimal, InvalidOperation
from pathlib import Path

from dotenv import load_dotenv


_PACKAGE_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _PACKAGE_DIR.parent

# Root .env is canonical; groupledger/.env is a local override fallback.
load_dotenv(_PROJECT_ROOT / ".env")
load_dotenv(_PACKAGE_DIR / ".env")


def _first_non_empty_env(*names: str, default: str) -> str:
    """Returns the first non-empty env var value from `names`, else `default`."""
    for name in names:
        value = os.getenv(name)
        if value is not None and value != "":
            return value
    return default


def _parse_bool_env(*names: str, default: bool) -> bool:
    """Parses the first non-empty env var in `names` as a boolean flag."""
    raw = _first_non_empty_env(*names, default="1" if default else "0")
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _parse_decimal_env(*names: str, default: str) -> Decimal:
    """Parses the first non-empty env var in `names` as Decimal, else returns `default`."""
    raw = _first_non_empty_env(*names, default=default)
    try:
        return Decimal(raw)
    except (InvalidOperation, ValueError):
        return Decimal(default)


class BaseConfig:

    # Currency minor unit. Balances are quantized to it before settlement and
    # any remaining amount below one quantum is treated as settled.
    SETTLEMENT_QUANTUM: Decimal = _parse_decimal_env(
        "SETTLEMENT_QUANTUM",
        default="0.01",
    )

    # When true, an unbalanced ledger raises UNBALANCED_LEDGER instead of
    # returning a best-effort result with a warning.
    SETTLEMENT_STRICT_BALANCE: bool = _parse_bool_env(
        "SETTLEMENT_STRICT_BALANCE",
        default=False,
    )

    DEFAULT_CURRENCY: str = _first_non_empty_env("DEFAULT_CURRENCY", default="INR")

    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="INFO")
    LOG_FORMAT: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class DevelopmentConfig(BaseConfig):
    DEBUG:   bool = True
    TESTING: bool = False

    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="DEBUG")


class TestingConfig(BaseConfig):

    DEBUG:   bool = True
    TESTING: bool = True

    # Tests must not depend on whatever the developer has in their .env.
    SETTLEMENT_QUANTUM: Decimal = Decimal("0.01")
    SETTLEMENT_STRICT_BALANCE: bool = False
    LOG_LEVEL: str = "WARNING"


class ProductionConfig(BaseConfig):

    DEBUG:   bool = False
    TESTING: bool = False

    # Unbalanced ledgers mean corrupt expense data upstream. Production can
    # opt into failing loudly via SETTLEMENT_STRICT_BALANCE=1.
    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="INFO")


def validate_config(config: type[BaseConfig]) -> None:
    """
    Fail-fast guard for settlement configuration.

    Called by configure() before anything else uses the config:

        config = configure("production")   # raises ValueError if misconfigured

    Raises ValueError if the quantum is not a power of ten of 1E-8 or
    coarser, or the log level is not a level the logging module
    knows about.
    """
    quantum = config.SETTLEMENT_QUANTUM
    if not isinstance(quantum, Decimal) or not quantum.is_finite() or quantum <= 0:
        raise ValueError(
            "SETTLEMENT_QUANTUM must be a positive decimal amount such as 0.01. "
            f"Got {quantum!r}."
        )
    # quantize() uses only the exponent: 0.05 would round to cents but treat
    # 0.04 as dust. Amounts are below MAX_AMOUNT (1e15); with at most eight
    # places a quantized value fits the 28-digit context.
    exponent = quantum.as_tuple().exponent
    if quantum != Decimal(1).scaleb(exponent) or exponent < -8:
        raise ValueError(
            "SETTLEMENT_QUANTUM must be a power of ten no finer than 1E-8, "
            f"such as 0.01 or 1. Got {quantum!r}."
        )
    if not isinstance(logging.getLevelName(config.LOG_LEVEL.upper()), int):
        raise ValueError(
            f"LOG_LEVEL {config.LOG_LEVEL!r} is not a valid logging level."
        )


# ── Config selector ────────────────────────────────────────────────────────
#
# Used by groupledger.app.configure():
#   from groupledger.config import config_by_name
#   config = config_by_name[env_name]
# ──────────────────────────────────────────────────────────────────────────

config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing":     TestingConfig,
    "production":  ProductionConfig,
}

# Convenience alias: resolves the active config class from GROUPLEDGER_ENV.
# Defaults to development if the variable is not set.
ActiveConfig: type[BaseConfig] = config_by_name.get(
    os.getenv("GROUPLEDGER_ENV", "development"),
    DevelopmentConfig,
)
