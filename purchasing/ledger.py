"""
Settlement ledger.

A session-scoped list of money paid out or credited back, independent of
purchase order status.  Aggregates are computed from the current entries on
every read, so they can never go stale.
"""
import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterator, Optional

from models.purchase_order import PurchaseLine
from models.settlement import SettlementEntry, SettlementStatus
from .errors import ValidationFailure
from .normalizer import DEFAULT_CURRENCY_PREFIX, parse_amount_strict

logger = logging.getLogger(__name__)


def _new_entry_id() -> str:
    return f"STL-{uuid.uuid4().hex[:10].upper()}"


class SettlementLedger:
    """
    Insertion-ordered collection of SettlementEntry objects.

    Usage:
        ledger = SettlementLedger()
        ledger.add_entry("Rent", "250000", "paid")
        ledger.add_entry("Ad refund", "30000", "credited")
        ledger.net_settlement      # Decimal("220000")
    """

    def __init__(
        self,
        currency_prefix: str = DEFAULT_CURRENCY_PREFIX,
        today: Callable[[], date] = date.today,
        id_factory: Callable[[], str] = _new_entry_id,
    ):
        self.currency_prefix = currency_prefix
        self._today = today
        self._id_factory = id_factory
        self._entries: list[SettlementEntry] = []

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_entry(
        self,
        description: str,
        amount: Any,
        status: SettlementStatus | str = SettlementStatus.PAID,
        reference: Optional[str] = None,
    ) -> SettlementEntry:
        """
        Append a new entry and return it.

        Raises ValidationFailure (ledger unchanged) for a blank description,
        an amount that is not a positive finite number, or an unknown status.
        """
        description = (description or "").strip()
        if not description:
            raise ValidationFailure("Settlement description is required", field="description")

        parsed = parse_amount_strict(amount, self.currency_prefix)
        if parsed is None or parsed <= 0:
            raise ValidationFailure(
                f"Settlement amount must be a positive number, got {amount!r}", field="amount"
            )

        try:
            status = SettlementStatus(status)
        except ValueError:
            raise ValidationFailure(f"Unknown settlement status {status!r}", field="status") from None

        entry = SettlementEntry(
            id=self._id_factory(),
            description=description,
            reference=(reference or "").strip() or None,
            amount=parsed,
            status=status,
            date=self._today().isoformat(),
        )
        self._entries.append(entry)
        logger.info("Settlement %s added: %s %s (%s)", entry.id, status.value, parsed, description)
        return entry

    def remove_entry(self, entry_id: str) -> bool:
        """Remove an entry if present.  Returns False when nothing matched."""
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.id != entry_id]
        removed = len(self._entries) != before
        if removed:
            logger.info("Settlement %s removed", entry_id)
        return removed

    def set_status(self, entry_id: str, status: SettlementStatus | str) -> Optional[SettlementEntry]:
        """Change an entry's status in place.  No-op (returns None) if absent."""
        try:
            status = SettlementStatus(status)
        except ValueError:
            raise ValidationFailure(f"Unknown settlement status {status!r}", field="status") from None
        for i, entry in enumerate(self._entries):
            if entry.id == entry_id:
                self._entries[i] = entry.model_copy(update={"status": status})
                logger.info("Settlement %s marked %s", entry_id, status.value)
                return self._entries[i]
        logger.debug("Settlement %s not found; status unchanged", entry_id)
        return None

    def seed_from_purchase(self, line: PurchaseLine) -> SettlementEntry:
        """Create a paid entry copying a purchase line's total."""
        return self.add_entry(
            description=f"{line.product} ({line.order_number})",
            amount=line.total,
            status=SettlementStatus.PAID,
            reference=line.order_number,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def entries(self) -> list[SettlementEntry]:
        return list(self._entries)

    def get(self, entry_id: str) -> Optional[SettlementEntry]:
        return next((e for e in self._entries if e.id == entry_id), None)

    @property
    def total_paid(self) -> Decimal:
        return self._sum(SettlementStatus.PAID)

    @property
    def total_credited(self) -> Decimal:
        return self._sum(SettlementStatus.CREDITED)

    @property
    def net_settlement(self) -> Decimal:
        return self.total_paid - self.total_credited

    def summary(self) -> dict:
        return {
            "entries": len(self._entries),
            "total_paid": self.total_paid,
            "total_credited": self.total_credited,
            "net_settlement": self.net_settlement,
        }

    def _sum(self, status: SettlementStatus) -> Decimal:
        return sum((e.amount for e in self._entries if e.status is status), Decimal("0"))

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[SettlementEntry]:
        return iter(list(self._entries))
