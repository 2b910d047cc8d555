"""
PurchasingStore: the single owner of purchasing session state.

Holds the current line snapshot, the aggregated orders derived from it, the
transition log and the settlement ledger.  Every mutation the presentation
layer can request goes through a method here, so the aggregate invariants
(order totals, shared header fields, ledger netting) are enforced in one
place.

Status changes are local view state only: they are not written back to the
row source, and refresh() replaces them with a fresh snapshot.
"""
import logging
from datetime import date
from pathlib import Path
from typing import Any, Callable, Optional

from config import Config
from models.purchase_order import OrderStatus, PurchaseLine, PurchaseOrder
from models.settlement import SettlementEntry, SettlementStatus
from models.tracking import TrackingEvent
from .aggregator import aggregate_orders, filter_by_status, search_orders
from .errors import FetchFailure
from .export import export_csv, write_csv
from .ledger import SettlementLedger
from .lifecycle import apply_transition
from .normalizer import RowNormalizer
from .sources import CSVRowSource, SheetsApiSource
from .timeline import TransitionLog, build_timeline, derive_timeline

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[str], bool]


def _always_confirm(message: str) -> bool:
    return True


def source_from_config(config: Config):
    """Pick the row source described by *config* (CSV file or sheet service)."""
    if config.po_csv:
        return CSVRowSource(config.po_csv)
    return SheetsApiSource(
        config.sheets_api_url,
        sheet_name=config.po_sheet_name,
        timeout=config.sheets_timeout_seconds,
    )


class PurchasingStore:
    """
    Session-scoped purchasing state with explicit action entry points.

    Usage:
        store = PurchasingStore(CSVRowSource("purchase_orders.csv"))
        store.refresh()
        store.approve("PO-1", actor="Jane")
        store.timeline("PO-1")

    confirm is called with a human-readable message before each destructive
    action; returning False cancels the action and the method returns None.
    """

    def __init__(
        self,
        source: Any = None,
        config: Optional[Config] = None,
        confirm: ConfirmFn = _always_confirm,
        today: Callable[[], date] = date.today,
    ):
        self.config = config or Config()
        self.source = source if source is not None else source_from_config(self.config)
        self.confirm = confirm
        self._today = today
        self.normalizer = RowNormalizer(
            currency_prefix=self.config.currency_prefix,
            default_requester=self.config.default_requester,
        )
        self.ledger = SettlementLedger(currency_prefix=self.config.currency_prefix, today=today)
        self.transition_log = TransitionLog()
        self._lines: list[PurchaseLine] = []
        self._orders: dict[str, PurchaseOrder] = {}
        self.last_refreshed: Optional[date] = None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def refresh(self) -> dict[str, PurchaseOrder]:
        """
        Replace lines, orders and local edits with a fresh snapshot.

        Raises FetchFailure with the previous state left untouched.
        """
        try:
            rows = self.source.fetch_rows()
        except FetchFailure:
            logger.warning("Refresh failed; keeping %d previously loaded orders", len(self._orders))
            raise

        lines = self.normalizer.normalize_rows(rows)
        orders = aggregate_orders(lines, strict=self.config.strict_order_groups)

        self._lines = lines
        self._orders = orders
        self.transition_log.clear()
        self.last_refreshed = self._today()
        logger.info("Loaded %d purchase lines in %d orders", len(lines), len(orders))
        return dict(orders)

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def lines(self) -> list[PurchaseLine]:
        """Current lines, reflecting any local status changes."""
        return self._current_lines()

    @property
    def orders(self) -> dict[str, PurchaseOrder]:
        return dict(self._orders)

    def order(self, order_number: str) -> PurchaseOrder:
        """Raises KeyError for an unknown order number."""
        try:
            return self._orders[order_number]
        except KeyError:
            raise KeyError(f"Unknown purchase order: {order_number}") from None

    def find_orders(self, status: OrderStatus | str = "all", search: str = "") -> dict[str, PurchaseOrder]:
        found = filter_by_status(self._orders, status)
        return search_orders(found, search, fuzzy_threshold=self.config.search_fuzzy_threshold)

    def timeline(self, order_number: str) -> list[TrackingEvent]:
        order = self.order(order_number)
        if self.config.record_transitions:
            return build_timeline(order, self.transition_log)
        return derive_timeline(order)

    # ------------------------------------------------------------------
    # Lifecycle actions
    # ------------------------------------------------------------------

    def approve(self, order_number: str, actor: str) -> Optional[PurchaseOrder]:
        return self.transition(order_number, OrderStatus.APPROVED, actor)

    def reject(self, order_number: str, reason: str, actor: str = "Manager") -> Optional[PurchaseOrder]:
        return self.transition(order_number, OrderStatus.REJECTED, actor, reason=reason)

    def transition(
        self,
        order_number: str,
        status: OrderStatus | str,
        actor: str,
        reason: Optional[str] = None,
    ) -> Optional[PurchaseOrder]:
        """
        Move an order to *status*.

        Raises InvalidTransition / ValidationFailure with the order unchanged.
        Returns None if the confirmation callback declines.
        """
        order = self.order(order_number)
        # Validated before confirming: an illegal change is never offered.
        updated = apply_transition(order, status, actor, reason=reason, on=self._today())
        label = updated.status.value
        if not self.confirm(f"Mark purchase order #{order_number} as {label}?"):
            logger.info("Transition of %s to %s cancelled by user", order_number, label)
            return None

        self._orders[order_number] = updated
        if self.config.record_transitions:
            self.transition_log.record(
                order_number, updated.status, actor, on=self._today(), reason=updated.rejection_reason,
                previous=order.status,
            )
        return updated

    # ------------------------------------------------------------------
    # Settlement actions
    # ------------------------------------------------------------------

    def add_settlement_entry(
        self,
        description: str,
        amount: Any,
        status: SettlementStatus | str = SettlementStatus.PAID,
        reference: Optional[str] = None,
    ) -> SettlementEntry:
        return self.ledger.add_entry(description, amount, status, reference)

    def remove_settlement_entry(self, entry_id: str) -> Optional[bool]:
        """Returns None if declined, else whether an entry was removed."""
        entry = self.ledger.get(entry_id)
        if entry is None:
            return False
        if not self.confirm(f"Delete settlement entry '{entry.description}'?"):
            return None
        return self.ledger.remove_entry(entry_id)

    def set_settlement_status(self, entry_id: str, status: SettlementStatus | str) -> Optional[SettlementEntry]:
        return self.ledger.set_status(entry_id, status)

    def seed_settlement(self, order_number: str, line_index: int = 0) -> SettlementEntry:
        """Seed a paid ledger entry from one line of an order (first by default)."""
        order = self.order(order_number)
        try:
            line = order.lines[line_index]
        except IndexError:
            raise KeyError(f"Order {order_number} has no line {line_index}") from None
        return self.ledger.seed_from_purchase(line)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_csv(self) -> str:
        return export_csv(self.lines)

    def write_csv(self, path: Optional[str | Path] = None) -> Path:
        if path is None:
            self.config.ensure_export_dir()
            path = self.config.export_dir / "purchase_orders.csv"
        return write_csv(self.lines, path)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _current_lines(self) -> list[PurchaseLine]:
        # Source row order, with each line replaced by its order's copy so
        # local status changes are visible.
        by_id = {
            (line.order_number, line.line_index): line
            for order in self._orders.values() for line in order.lines
        }
        return [by_id.get((line.order_number, line.line_index), line) for line in self._lines]
