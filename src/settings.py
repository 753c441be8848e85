"""Runtime settings read from the environment.

Every default that changes behavior is a named setting here, so an operator
can see and override it. Invalid values fail at startup.
"""

import os

from pydantic import BaseModel, Field, model_validator

from ordering.order.order import InvalidPricePolicy


def _env(name: str, default: str | None = None) -> str | None:
    value = os.environ.get(name)
    return value if value not in (None, "") else default


def _env_bool(name: str, default: bool = False) -> bool:
    value = _env(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class StripeSettings(BaseModel):
    secret_key: str | None = None
    webhook_secret: str | None = None
    currency: str = "eur"


class PayPalSettings(BaseModel):
    client_id: str | None = None
    client_secret: str | None = None
    base_url: str = "https://api-m.sandbox.paypal.com"
    currency: str = "EUR"
    webhook_id: str | None = None
    verify_capture: bool = False


class Settings(BaseModel):
    environment: str = "development"
    frontend_url: str = "http://localhost:5173"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # "live" wires Stripe and PayPal; "fake" wires FakeProcessor for both.
    # Production refuses "fake": it accepts any confirmation it is handed.
    payment_adapter: str = Field(default="fake", pattern="^(live|fake)$")
    on_invalid_price: InvalidPricePolicy = InvalidPricePolicy.ZERO

    low_stock_threshold: int = Field(default=10, ge=0)
    analytics_window_months: int = Field(default=6, ge=1)
    all_orders_page_size: int = Field(default=10, ge=1)

    identity_service_url: str | None = None
    identity_service_token: str | None = None
    catalogue_service_url: str | None = None
    http_timeout_seconds: float = Field(default=10.0, gt=0)

    stripe: StripeSettings = Field(default_factory=StripeSettings)
    paypal: PayPalSettings = Field(default_factory=PayPalSettings)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @model_validator(mode="after")
    def _no_fake_payments_in_production(self) -> "Settings":
        if self.is_production and self.payment_adapter == "fake":
            raise ValueError("PAYMENT_ADAPTER=fake is not allowed when PROTEAN_ENV=production")
        return self

    @classmethod
    def from_env(cls) -> "Settings":
        origins = _env("CORS_ORIGINS", "*")
        environment = _env("PROTEAN_ENV", "development")
        production = environment == "production"
        return cls(
            environment=environment,
            frontend_url=_env("FRONTEND_URL", "http://localhost:5173"),
            cors_origins=[origin.strip() for origin in origins.split(",") if origin.strip()],
            payment_adapter=_env("PAYMENT_ADAPTER", "live" if production else "fake"),
            on_invalid_price=_env("ON_INVALID_PRICE", InvalidPricePolicy.ZERO.value),
            low_stock_threshold=_env("LOW_STOCK_THRESHOLD", "10"),
            analytics_window_months=_env("ANALYTICS_WINDOW_MONTHS", "6"),
            all_orders_page_size=_env("ALL_ORDERS_PAGE_SIZE", "10"),
            identity_service_url=_env("IDENTITY_SERVICE_URL"),
            identity_service_token=_env("IDENTITY_SERVICE_TOKEN"),
            catalogue_service_url=_env("CATALOGUE_SERVICE_URL"),
            http_timeout_seconds=_env("HTTP_TIMEOUT_SECONDS", "10"),
            stripe=StripeSettings(
                secret_key=_env("STRIPE_SECRET_KEY"),
                webhook_secret=_env("STRIPE_WEBHOOK_SECRET"),
                currency=_env("STRIPE_CURRENCY", "eur"),
            ),
            paypal=PayPalSettings(
                client_id=_env("PAYPAL_CLIENT_ID"),
                client_secret=_env("PAYPAL_CLIENT_SECRET"),
                base_url=_env("PAYPAL_BASE_URL", "https://api-m.sandbox.paypal.com"),
                currency=_env("PAYPAL_CURRENCY", "EUR"),
                webhook_id=_env("PAYPAL_WEBHOOK_ID"),
                verify_capture=_env_bool("PAYPAL_VERIFY_CAPTURE", default=production),
            ),
        )
