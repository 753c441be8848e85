"""Payment processor registry.

Processors are built once by the composition root and handed to whoever needs
them. There is no module-level current processor: tests and the application
each build their own registry.
"""

from protean.exceptions import ValidationError

from ordering.order.order import PaymentMethod, parse_payment_method
from payments.gateway.fake_adapter import FakeProcessor
from payments.gateway.port import PaymentProcessorAdapter


class ProcessorRegistry:
    def __init__(self, processors: dict[PaymentMethod, PaymentProcessorAdapter]) -> None:
        self._processors = dict(processors)

    def get(self, processor) -> PaymentProcessorAdapter:
        """Return the adapter for a processor name or PaymentMethod."""
        method = parse_payment_method(processor)
        try:
            return self._processors[method]
        except KeyError:
            raise ValidationError({"processor": [f"{method.value} payments are not enabled"]}) from None

    def __contains__(self, processor) -> bool:
        return parse_payment_method(processor) in self._processors

    def close(self) -> None:
        for adapter in self._processors.values():
            adapter.close()

    @classmethod
    def fake(cls) -> "ProcessorRegistry":
        """A registry with a FakeProcessor for every supported processor."""
        return cls({method: FakeProcessor(method) for method in PaymentMethod})


def build_processors(settings) -> ProcessorRegistry:
    """Build the processor adapters named by the settings."""
    if settings.payment_adapter == "fake":
        return ProcessorRegistry.fake()

    from payments.gateway.paypal_adapter import PayPalProcessor
    from payments.gateway.stripe_adapter import StripeProcessor

    processors: dict[PaymentMethod, PaymentProcessorAdapter] = {}
    if settings.stripe.secret_key:
        processors[PaymentMethod.STRIPE] = StripeProcessor(
            api_key=settings.stripe.secret_key,
            webhook_secret=settings.stripe.webhook_secret,
            frontend_url=settings.frontend_url,
            currency=settings.stripe.currency,
        )
    if settings.paypal.client_id and settings.paypal.client_secret:
        processors[PaymentMethod.PAYPAL] = PayPalProcessor(
            client_id=settings.paypal.client_id,
            client_secret=settings.paypal.client_secret,
            frontend_url=settings.frontend_url,
            base_url=settings.paypal.base_url,
            currency=settings.paypal.currency,
            webhook_id=settings.paypal.webhook_id,
            verify_capture=settings.paypal.verify_capture,
            timeout=settings.http_timeout_seconds,
        )
    return ProcessorRegistry(processors)
