"""
Purchase order lifecycle.

    pending ──► approved ──► ordered ──► shipped ──► received
       │            │            │
       ├─► rejected └─► cancelled◄┘
       └─► cancelled

received, rejected and cancelled are terminal.  The table below is the single
source of truth for which status changes are legal.
"""
import logging
from datetime import date
from typing import Optional

from models.purchase_order import OrderStatus, PurchaseOrder
from .errors import InvalidTransition, ValidationFailure

logger = logging.getLogger(__name__)

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING:   frozenset({OrderStatus.APPROVED, OrderStatus.REJECTED, OrderStatus.CANCELLED}),
    OrderStatus.APPROVED:  frozenset({OrderStatus.ORDERED, OrderStatus.CANCELLED}),
    OrderStatus.ORDERED:   frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED:   frozenset({OrderStatus.RECEIVED}),
    OrderStatus.RECEIVED:  frozenset(),
    OrderStatus.REJECTED:  frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def can_transition(current: OrderStatus | str, target: OrderStatus | str) -> bool:
    """True when the lifecycle allows moving from *current* to *target*."""
    try:
        return OrderStatus(target) in TRANSITIONS[OrderStatus(current)]
    except ValueError:
        return False


def is_terminal(status: OrderStatus | str) -> bool:
    return not TRANSITIONS[OrderStatus(status)]


def allowed_targets(status: OrderStatus | str) -> list[OrderStatus]:
    """Legal next statuses, in declaration order."""
    targets = TRANSITIONS[OrderStatus(status)]
    return [s for s in OrderStatus if s in targets]


def apply_transition(
    order: PurchaseOrder,
    target: OrderStatus | str,
    actor: str,
    *,
    reason: Optional[str] = None,
    on: Optional[date] = None,
) -> PurchaseOrder:
    """
    Return a copy of *order* (and of each of its lines) moved to *target*.

    Sets approved_by/approved_date on approval, shipped_date on shipping and
    received_date on receipt.  Rejection needs a non-blank reason.

    Raises:
        InvalidTransition: the edge is not in TRANSITIONS.
        ValidationFailure: rejecting without a reason.
    """
    try:
        target = OrderStatus(target)
    except ValueError:
        raise InvalidTransition(order.status, target) from None
    if not can_transition(order.status, target):
        raise InvalidTransition(order.status, target)

    on = on or date.today()
    changes: dict = {"status": target}
    if target is OrderStatus.APPROVED:
        changes["approved_by"] = actor
        changes["approved_date"] = on
    elif target is OrderStatus.SHIPPED:
        changes["shipped_date"] = on
    elif target is OrderStatus.RECEIVED:
        changes["received_date"] = on
    elif target is OrderStatus.REJECTED:
        if not reason or not reason.strip():
            raise ValidationFailure("A reason is required to reject an order", field="reason")

    line_changes = dict(changes)
    lines = [line.model_copy(update=line_changes) for line in order.lines]
    if target is OrderStatus.REJECTED:
        changes["rejection_reason"] = reason.strip()

    logger.info(
        "Order %s: %s -> %s (by %s)",
        order.order_number, order.status.value, target.value, actor,
    )
    return order.model_copy(update={**changes, "lines": lines})
