from pydantic import BaseModel, ConfigDict

from .purchase_order import DateOrUnknown


class TrackingEvent(BaseModel):
    """A single milestone shown on an order's tracking timeline."""
    model_config = ConfigDict(frozen=True)

    order_number: str
    timestamp: DateOrUnknown
    status_label: str                       # e.g. "Created", "Shipped"
    description: str
    actor: str                              # who performed the step
