"""Composition root: builds the collaborators the routes depend on.

Adapters are constructed here from settings and attached to the FastAPI
application. Nothing else in the code base creates them.
"""

from dataclasses import dataclass

from fastapi import FastAPI

from identity.provider.auth_service import AuthServiceIdentityProvider
from identity.provider.memory import InMemoryIdentityProvider
from identity.provider.port import IdentityProvider
from ordering.analytics.report import OrderAnalytics
from ordering.stock.catalogue_service import CatalogueServiceStockLevels
from ordering.stock.memory import InMemoryStockLevels
from ordering.stock.port import StockLevels
from payments.gateway import ProcessorRegistry, build_processors
from payments.reconciliation import PaymentReconciler
from settings import Settings


@dataclass
class Services:
    settings: Settings
    identity: IdentityProvider
    stock_levels: StockLevels
    processors: ProcessorRegistry
    reconciler: PaymentReconciler
    analytics: OrderAnalytics

    def close(self) -> None:
        """Release the HTTP clients held by remote collaborators."""
        self.identity.close()
        self.stock_levels.close()
        self.processors.close()


def build_services(
    settings: Settings,
    identity: IdentityProvider | None = None,
    stock_levels: StockLevels | None = None,
    processors: ProcessorRegistry | None = None,
) -> Services:
    """Wire every collaborator. Explicit arguments override what settings would build."""
    if identity is None:
        if settings.identity_service_url:
            identity = AuthServiceIdentityProvider(
                settings.identity_service_url,
                service_token=settings.identity_service_token,
                timeout=settings.http_timeout_seconds,
            )
        else:
            identity = InMemoryIdentityProvider()

    if stock_levels is None:
        if settings.catalogue_service_url:
            stock_levels = CatalogueServiceStockLevels(
                settings.catalogue_service_url,
                timeout=settings.http_timeout_seconds,
            )
        else:
            stock_levels = InMemoryStockLevels()

    if processors is None:
        processors = build_processors(settings)

    return Services(
        settings=settings,
        identity=identity,
        stock_levels=stock_levels,
        processors=processors,
        reconciler=PaymentReconciler(processors),
        analytics=OrderAnalytics(
            stock_levels,
            low_stock_threshold=settings.low_stock_threshold,
            window_months=settings.analytics_window_months,
        ),
    )


def install(app: FastAPI, services: Services) -> FastAPI:
    app.state.services = services
    return app
