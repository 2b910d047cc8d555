"""
Order aggregation.

Groups normalised purchase lines into PurchaseOrder aggregates keyed by order
number, preserving the order in which each order number first appears.  All
secondary views (status filter, search, counts) are pure functions over that
map rather than separate collections.
"""
import logging
from decimal import Decimal
from typing import Iterable

from models.purchase_order import OrderStatus, PurchaseLine, PurchaseOrder

logger = logging.getLogger(__name__)

# Minimum rapidfuzz score (0-100) for a fuzzy supplier search hit
SEARCH_FUZZY_THRESHOLD = 80

# Header fields that every line of one order is expected to share
_SHARED_FIELDS = ("supplier", "order_date", "expected_delivery", "status")


def aggregate_orders(lines: Iterable[PurchaseLine], *, strict: bool = False) -> dict[str, PurchaseOrder]:
    """
    Group lines by order_number.

    The first line of each group supplies the order header.  Groups whose
    lines disagree on supplier, dates or status are logged; with strict=True
    they are dropped from the result instead of being merged.
    """
    groups: dict[str, list[PurchaseLine]] = {}
    for line in lines:
        groups.setdefault(line.order_number, []).append(line)

    orders: dict[str, PurchaseOrder] = {}
    for order_number, group in groups.items():
        mismatched = _inconsistent_fields(group)
        if mismatched:
            if strict:
                logger.warning(
                    "Order %s skipped: lines disagree on %s",
                    order_number, ", ".join(mismatched),
                )
                continue
            logger.warning(
                "Order %s lines disagree on %s; using first line",
                order_number, ", ".join(mismatched),
            )
        orders[order_number] = _build_order(order_number, group)

    logger.debug("Aggregated %d orders", len(orders))
    return orders


def _build_order(order_number: str, group: list[PurchaseLine]) -> PurchaseOrder:
    first = group[0]
    return PurchaseOrder(
        order_number=order_number,
        lines=list(group),
        supplier=first.supplier,
        order_date=first.order_date,
        expected_delivery=first.expected_delivery,
        status=first.status,
        requested_by=first.requested_by,
        approved_by=first.approved_by,
        approved_date=first.approved_date,
        shipped_date=first.shipped_date,
        received_date=first.received_date,
    )


def _inconsistent_fields(group: list[PurchaseLine]) -> list[str]:
    first = group[0]
    return [
        name for name in _SHARED_FIELDS
        if any(getattr(line, name) != getattr(first, name) for line in group[1:])
    ]


# ------------------------------------------------------------------
# Secondary views
# ------------------------------------------------------------------

def filter_by_status(orders: dict[str, PurchaseOrder], status: OrderStatus | str) -> dict[str, PurchaseOrder]:
    """Orders in the given status.  "all" returns every order."""
    if status == "all":
        return dict(orders)
    status = OrderStatus(status)
    return {n: o for n, o in orders.items() if o.status is status}


def search_orders(
    orders: dict[str, PurchaseOrder],
    term: str,
    fuzzy_threshold: int = SEARCH_FUZZY_THRESHOLD,
) -> dict[str, PurchaseOrder]:
    """
    Case-insensitive search over order number, supplier and product names.

    Substring hits always match; otherwise the supplier name is compared with
    rapidfuzz so small typos ("Acme Suplies") still find the order.
    """
    needle = (term or "").strip().lower()
    if not needle:
        return dict(orders)

    from rapidfuzz import fuzz

    hits: dict[str, PurchaseOrder] = {}
    for number, order in orders.items():
        haystack = [order.order_number, order.supplier] + [line.product for line in order.lines]
        if any(needle in value.lower() for value in haystack):
            hits[number] = order
            continue
        score = fuzz.token_sort_ratio(needle, order.supplier.lower())
        if score >= fuzzy_threshold:
            logger.debug("Fuzzy search hit %s (supplier score %.0f)", number, score)
            hits[number] = order
    return hits


def status_counts(orders: dict[str, PurchaseOrder]) -> dict[OrderStatus, int]:
    """Number of orders in each status; every status is present."""
    counts = {status: 0 for status in OrderStatus}
    for order in orders.values():
        counts[order.status] += 1
    return counts


def order_totals(orders: dict[str, PurchaseOrder]) -> dict[str, Decimal]:
    return {n: o.total_amount for n, o in orders.items()}
