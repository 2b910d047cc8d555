from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SettlementStatus(str, Enum):
    PAID = "paid"
    CREDITED = "credited"


class SettlementEntry(BaseModel):
    """
    A standalone record of money paid out or credited back.

    Entries are independent of order status; seeding one from a purchase
    line copies the amount rather than linking to it.
    """
    id: str
    description: str
    reference: Optional[str] = None         # e.g. the originating order number
    amount: Decimal = Field(gt=0)
    status: SettlementStatus = SettlementStatus.PAID
    date: str                               # YYYY-MM-DD, set at creation
