"""Bulk status updates.

Each order is changed in its own unit of work, so one bad id does not hold
back the rest. The result says exactly what happened to every requested id,
including ids that failed after earlier ones were already committed.
"""

from dataclasses import dataclass, field

import structlog
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ordering.order.lookup import is_well_formed_id
from ordering.order.order import parse_admin_status
from ordering.order.status import UpdateOrderStatus
from shared.errors import error_message

logger = structlog.get_logger(__name__)

CONCURRENT_CHANGE = "Order was modified concurrently; retry"
UPDATE_FAILED = "Order could not be updated"


@dataclass
class BulkUpdateResult:
    status: str
    requested: int = 0
    updated: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    rejected: dict[str, str] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def modified_count(self) -> int:
        return len(self.updated)


def _apply_status(order_id: str, status: str) -> bool:
    return current_domain.process(
        UpdateOrderStatus(order_id=order_id, status=status),
        asynchronous=False,
    )


def bulk_update_orders(order_ids, new_status) -> BulkUpdateResult:
    """Apply one administrative status to many orders.

    The status is validated once for the whole request. Ids that are
    malformed or unknown are reported as missing, orders whose current
    state does not allow the move (or that changed underneath us) are
    reported as rejected with the reason, and anything else that goes
    wrong for a single id lands in ``failed``. The manifest is always
    returned.
    """
    if not order_ids:
        raise ValidationError({"order_ids": ["At least one order ID is required"]})
    target = parse_admin_status(new_status)

    # Duplicates are applied once
    unique_ids = list(dict.fromkeys(str(order_id) for order_id in order_ids))
    result = BulkUpdateResult(status=target.value, requested=len(unique_ids))

    for order_id in unique_ids:
        if not is_well_formed_id(order_id):
            result.missing.append(order_id)
            continue
        try:
            changed = _apply_status(order_id, target.value)
        except ObjectNotFoundError:
            result.missing.append(order_id)
        except ValidationError as exc:
            result.rejected[order_id] = error_message(exc)
        except ExpectedVersionError:
            result.rejected[order_id] = CONCURRENT_CHANGE
        except Exception:
            logger.exception("bulk_status_update_failed", order_id=order_id, status=target.value)
            result.failed[order_id] = UPDATE_FAILED
        else:
            (result.updated if changed else result.unchanged).append(order_id)

    logger.info(
        "bulk_status_update",
        status=target.value,
        requested=result.requested,
        updated=len(result.updated),
        unchanged=len(result.unchanged),
        missing=len(result.missing),
        rejected=len(result.rejected),
        failed=len(result.failed),
    )
    return result
