"""Checkout configuration.

Pricing constants are fixed per deployment and must be present and valid
before a checkout is allowed to start; computing totals with a silently
missing tax rate is worse than refusing to start. Defaults mirror the
HomeCook storefront and can be overridden with ``CHECKOUT_*`` environment
variables.
"""

import os
from collections.abc import Mapping
from decimal import Decimal

import structlog
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from checkout.errors import FatalConfigError
from checkout.shared.money import VALID_CURRENCIES

logger = structlog.get_logger(__name__)

ENV_PREFIX = "CHECKOUT_"


class CheckoutSettings(BaseModel):
    model_config = {"frozen": True}

    currency: str = "USD"

    # Tax is charged on the pre-discount subtotal.
    tax_rate: Decimal = Field(default=Decimal("0.0875"), ge=0, le=1)
    free_delivery_threshold: Decimal = Field(default=Decimal("25.00"), ge=0)
    default_delivery_fee: Decimal = Field(default=Decimal("2.99"), ge=0)

    express_fee: Decimal = Field(default=Decimal("4.99"), ge=0)
    express_minutes: int = Field(default=30, ge=1)
    lunch_fee: Decimal = Field(default=Decimal("1.99"), ge=0)
    dinner_fee: Decimal = Field(default=Decimal("2.99"), ge=0)
    delivery_lead_minutes: int = Field(default=45, ge=0)
    booking_horizon_days: int = Field(default=7, ge=1)
    capacity_timeout_seconds: float = Field(default=2.0, gt=0)

    idempotency_ttl_seconds: int = Field(default=86400, ge=1)
    # Live checkouts left untouched this long are dropped; placed ones sooner.
    checkout_idle_seconds: int = Field(default=1800, ge=1)
    placed_retention_seconds: int = Field(default=300, ge=1)
    max_instructions_length: int = Field(default=200, ge=0)

    @field_validator("currency")
    @classmethod
    def currency_must_be_supported(cls, value: str) -> str:
        if value not in VALID_CURRENCIES:
            raise ValueError(f"Unsupported currency: {value}")
        return value


def load_settings(environ: Mapping[str, str] | None = None) -> CheckoutSettings:
    """Build settings from defaults overlaid with ``CHECKOUT_*`` variables.

    Raises:
        FatalConfigError: a variable is present but blank, or any value fails
            validation.
    """
    environ = os.environ if environ is None else environ

    overrides = {}
    blank = []
    for name in CheckoutSettings.model_fields:
        key = f"{ENV_PREFIX}{name.upper()}"
        if key not in environ:
            continue
        value = environ[key].strip()
        if not value:
            blank.append(key)
            continue
        overrides[name] = value

    if blank:
        raise FatalConfigError({key: ["Configuration value is blank"] for key in blank})

    try:
        settings = CheckoutSettings(**overrides)
    except PydanticValidationError as exc:
        messages: dict[str, list[str]] = {}
        for error in exc.errors():
            field = f"{ENV_PREFIX}{str(error['loc'][0]).upper()}" if error["loc"] else "settings"
            messages.setdefault(field, []).append(error["msg"])
        raise FatalConfigError(messages) from exc

    logger.debug("checkout_settings_loaded", overrides=sorted(overrides))
    return settings
