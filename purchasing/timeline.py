"""
Tracking timelines for purchase orders.

Two sources of events:

  derive_timeline  Synthesises milestones implied by the order's current
                   status (Created, Approved, Ordered, Shipped, Received)
                   using fixed day offsets from the order date.  This is an
                   approximation for orders with no recorded history.

  TransitionLog    Append-only record of the transitions actually applied in
                   this session.  When an order has logged events,
                   build_timeline derives the milestones up to the status
                   the order was loaded with and appends the logged events.
"""
import logging
from datetime import date, timedelta
from typing import Iterator, Optional

from models.purchase_order import UNKNOWN_DATE, DateOrUnknown, OrderStatus, PurchaseOrder
from models.tracking import TrackingEvent

logger = logging.getLogger(__name__)

MANAGER_ACTOR = "Manager"
PROCUREMENT_ACTOR = "Procurement"
WAREHOUSE_ACTOR = "Warehouse"

_APPROVED_OR_LATER = {OrderStatus.APPROVED, OrderStatus.ORDERED, OrderStatus.SHIPPED, OrderStatus.RECEIVED}
_ORDERED_OR_LATER = {OrderStatus.ORDERED, OrderStatus.SHIPPED, OrderStatus.RECEIVED}
_SHIPPED_OR_LATER = {OrderStatus.SHIPPED, OrderStatus.RECEIVED}

# Label and description used for each status in logged events
_STATUS_TEXT = {
    OrderStatus.APPROVED:  ("Approved", "Purchase order approved"),
    OrderStatus.REJECTED:  ("Rejected", "Purchase order rejected"),
    OrderStatus.ORDERED:   ("Ordered", "Order placed with supplier"),
    OrderStatus.SHIPPED:   ("Shipped", "Order shipped by supplier"),
    OrderStatus.RECEIVED:  ("Received", "Order received and verified"),
    OrderStatus.CANCELLED: ("Cancelled", "Purchase order cancelled"),
}


def derive_timeline(order: PurchaseOrder) -> list[TrackingEvent]:
    """
    Events implied by the order's status, oldest first.

    pending/rejected/cancelled -> 1 event, approved -> 2, ordered -> 3,
    shipped -> 4, received -> 5.  Timestamps never go backwards: a Received
    date earlier than the Shipped milestone is moved up to it.
    """
    status = order.status
    events = [_event(order, order.order_date, "Created", "Purchase order created", order.requested_by)]

    if status in _APPROVED_OR_LATER:
        label, text = _STATUS_TEXT[OrderStatus.APPROVED]
        events.append(_event(order, _offset(order.order_date, 1), label, text,
                             order.approved_by or MANAGER_ACTOR))
    if status in _ORDERED_OR_LATER:
        label, text = _STATUS_TEXT[OrderStatus.ORDERED]
        events.append(_event(order, _offset(order.order_date, 2), label, text, PROCUREMENT_ACTOR))
    if status in _SHIPPED_OR_LATER:
        label, text = _STATUS_TEXT[OrderStatus.SHIPPED]
        events.append(_event(order, _offset(order.order_date, 3), label, text, order.supplier))
    if status is OrderStatus.RECEIVED:
        label, text = _STATUS_TEXT[OrderStatus.RECEIVED]
        received_at = _not_before(order.expected_delivery, events[-1].timestamp)
        events.append(_event(order, received_at, label, text, WAREHOUSE_ACTOR))

    return events


class TransitionLog:
    """
    Append-only log of status transitions, grouped per order.

    Events are never edited or removed individually; clear() drops the whole
    session history (used when a refresh discards local edits).
    """

    def __init__(self):
        self._events: list[TrackingEvent] = []
        # Status each order had before its first logged transition
        self._origins: dict[str, OrderStatus] = {}

    def record(
        self,
        order_number: str,
        status: OrderStatus,
        actor: str,
        on: Optional[date] = None,
        reason: Optional[str] = None,
        previous: Optional[OrderStatus] = None,
    ) -> TrackingEvent:
        label, description = _STATUS_TEXT[OrderStatus(status)]
        if reason:
            description = f"{description}: {reason}"
        event = TrackingEvent(
            order_number=order_number,
            timestamp=on or date.today(),
            status_label=label,
            description=description,
            actor=actor,
        )
        self._events.append(event)
        if previous is not None:
            self._origins.setdefault(order_number, OrderStatus(previous))
        logger.debug("Logged %s for order %s", label, order_number)
        return event

    def events_for(self, order_number: str) -> list[TrackingEvent]:
        return [e for e in self._events if e.order_number == order_number]

    def origin_status(self, order_number: str) -> Optional[OrderStatus]:
        return self._origins.get(order_number)

    def has_events(self, order_number: str) -> bool:
        return any(e.order_number == order_number for e in self._events)

    def clear(self) -> None:
        self._events.clear()
        self._origins.clear()

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[TrackingEvent]:
        return iter(list(self._events))


def build_timeline(order: PurchaseOrder, log: Optional[TransitionLog] = None) -> list[TrackingEvent]:
    """
    Timeline for display: recorded history when available, else derived.

    Recorded timelines start with the milestones derived from the status the
    order had before its first logged transition (just Created when that is
    unknown), followed by the logged transitions in the order they were
    applied.  Logged dates earlier than the preceding event are moved up to
    it so the timeline never goes backwards.
    """
    if log is None or not log.has_events(order.order_number):
        return derive_timeline(order)

    origin = log.origin_status(order.order_number)
    if origin is None:
        events = derive_timeline(order)[:1]
    else:
        events = derive_timeline(order.model_copy(update={"status": origin}))

    floor = _latest_known(events)
    for logged in log.events_for(order.order_number):
        when = _not_before(logged.timestamp, floor)
        if when != logged.timestamp:
            logged = logged.model_copy(update={"timestamp": when})
        events.append(logged)
        if isinstance(when, date):
            floor = when
    return events


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _event(order: PurchaseOrder, when: DateOrUnknown, label: str, description: str, actor: str) -> TrackingEvent:
    return TrackingEvent(
        order_number=order.order_number,
        timestamp=when,
        status_label=label,
        description=description,
        actor=actor,
    )


def _offset(base: DateOrUnknown, days: int) -> DateOrUnknown:
    if not isinstance(base, date):
        return UNKNOWN_DATE
    return base + timedelta(days=days)


def _not_before(when: DateOrUnknown, floor: DateOrUnknown) -> DateOrUnknown:
    if isinstance(when, date) and isinstance(floor, date) and when < floor:
        return floor
    return when


def _latest_known(events: list[TrackingEvent]) -> DateOrUnknown:
    known = [e.timestamp for e in events if isinstance(e.timestamp, date)]
    return max(known) if known else UNKNOWN_DATE
