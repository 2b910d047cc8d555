from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_DATE = "Unknown Date"

# A real calendar date, or the sentinel used when the source value is missing
# or unparseable.  Callers must check before doing date arithmetic.
DateOrUnknown = Union[date, Literal["Unknown Date"]]


class OrderStatus(str, Enum):
    """Lifecycle states of a purchase order (see purchasing.lifecycle)."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ORDERED = "ordered"
    SHIPPED = "shipped"
    RECEIVED = "received"
    CANCELLED = "cancelled"


class PurchaseLine(BaseModel):
    """
    One procured item, as read from a single purchase-order row.

    total is authoritative: it is taken verbatim from the source and is not
    recomputed from quantity * unit_price.
    """
    model_config = ConfigDict(frozen=True)

    order_number: str
    line_index: int = 0                     # position of the row in the source
    supplier: str
    product: str
    notes: str = ""
    order_date: DateOrUnknown = UNKNOWN_DATE
    expected_delivery: DateOrUnknown = UNKNOWN_DATE
    quantity: int = Field(default=0, ge=0)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)
    total: Decimal = Decimal("0")
    status: OrderStatus = OrderStatus.PENDING
    requested_by: str = "System User"
    approved_by: Optional[str] = None
    approved_date: Optional[date] = None
    shipped_date: Optional[date] = None
    received_date: Optional[date] = None

    @property
    def line_id(self) -> str:
        return f"{self.order_number}-{self.line_index}"


class PurchaseOrder(BaseModel):
    """
    All lines sharing an order number.  Derived on every refresh and never
    stored back to the data source.

    Header fields (supplier, dates, status, milestones) mirror the first line.
    """
    model_config = ConfigDict(frozen=True)

    order_number: str
    lines: List[PurchaseLine] = Field(default_factory=list)
    supplier: str
    order_date: DateOrUnknown = UNKNOWN_DATE
    expected_delivery: DateOrUnknown = UNKNOWN_DATE
    status: OrderStatus = OrderStatus.PENDING
    requested_by: str = "System User"
    approved_by: Optional[str] = None
    approved_date: Optional[date] = None
    shipped_date: Optional[date] = None
    received_date: Optional[date] = None
    rejection_reason: Optional[str] = None

    @property
    def item_count(self) -> int:
        return len(self.lines)

    @property
    def total_amount(self) -> Decimal:
        return sum((line.total for line in self.lines), Decimal("0"))
