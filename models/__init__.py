from .purchase_order import (
    UNKNOWN_DATE, DateOrUnknown, OrderStatus, PurchaseLine, PurchaseOrder,
)
from .tracking import TrackingEvent
from .settlement import SettlementEntry, SettlementStatus

__all__ = [
    "UNKNOWN_DATE", "DateOrUnknown", "OrderStatus", "PurchaseLine", "PurchaseOrder",
    "TrackingEvent",
    "SettlementEntry", "SettlementStatus",
]
