"""Ordering bounded context: order lifecycle and payment confirmation.

Orders are standard CQRS aggregates: each command loads the order, changes it
and persists it in one unit of work. Every state change raises a domain event
that lands in the event store as the audit trail.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
