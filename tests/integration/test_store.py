"""
Integration tests for PurchasingStore: refresh, lifecycle actions, ledger
actions and export working together.
"""
import csv
import io
from datetime import date
from decimal import Decimal

import pytest

from models.purchase_order import OrderStatus
from purchasing.errors import FetchFailure, InvalidTransition, ValidationFailure
from purchasing.sources import CSVRowSource, SheetsApiSource
from purchasing.store import PurchasingStore, source_from_config


@pytest.mark.integration
class TestRefresh:
    """Tests for loading and refreshing."""

    def test_refresh_builds_orders(self, store):
        """Test the sample rows load into three orders."""
        assert list(store.orders) == ["PO-1", "PO-2", "PO-3"]
        assert len(store.lines) == 5
        assert store.order("PO-2").total_amount == Decimal("190000")
        assert store.last_refreshed == date(2024, 6, 1)

    def test_received_scenario(self, test_config, row_source_factory):
        """Test a single received row gives one order with a five-event timeline."""
        rows = [
            ["header"],
            ["PO-1", "Acme", "2024-01-01", "2024-01-10", "received", "Widget", "", "10", "100", "1000", ""],
        ]
        s = PurchasingStore(row_source_factory(rows), config=test_config)
        orders = s.refresh()

        assert list(orders) == ["PO-1"]
        assert orders["PO-1"].total_amount == Decimal("1000")
        events = s.timeline("PO-1")
        assert len(events) == 5
        assert events[-1].status_label == "Received"
        assert events[-1].timestamp == date(2024, 1, 10)

    def test_refresh_twice_is_identical(self, store):
        """Test identical source rows give identical order maps."""
        first = {n: o.model_dump_json() for n, o in store.orders.items()}
        store.refresh()
        second = {n: o.model_dump_json() for n, o in store.orders.items()}
        assert first == second

    def test_failed_refresh_keeps_state(self, store, static_source):
        """Test a fetch failure leaves previously loaded data in place."""
        store.approve("PO-2", "Jane")
        static_source.fail = True

        with pytest.raises(FetchFailure):
            store.refresh()

        assert list(store.orders) == ["PO-1", "PO-2", "PO-3"]
        assert store.order("PO-2").status is OrderStatus.APPROVED

    def test_refresh_discards_local_edits(self, store):
        """Test local status changes do not survive a refresh."""
        store.approve("PO-2", "Jane")
        store.refresh()
        assert store.order("PO-2").status is OrderStatus.PENDING
        assert len(store.transition_log) == 0

    def test_unknown_order(self, store):
        """Test unknown order numbers raise KeyError."""
        with pytest.raises(KeyError):
            store.order("PO-404")
        with pytest.raises(KeyError):
            store.approve("PO-404", "Jane")

    def test_source_from_config(self, test_config):
        """Test CSV is chosen when configured, the sheet service otherwise."""
        assert isinstance(source_from_config(test_config), CSVRowSource)
        test_config.po_csv = None
        source = source_from_config(test_config)
        assert isinstance(source, SheetsApiSource)
        assert source.sheet_name == "PurchaseOrders"

    def test_store_over_csv_file(self, test_config, sample_po_csv):
        """Test the store reads a CSV file chosen through config."""
        test_config.po_csv = sample_po_csv
        s = PurchasingStore(config=test_config)
        s.refresh()
        assert len(s.orders) == 3


@pytest.mark.integration
class TestLifecycleActions:
    """Tests for approve / reject / transition through the store."""

    def test_approve(self, store):
        """Test approval updates the order, its lines and the timeline."""
        updated = store.approve("PO-2", "Jane")

        assert updated.status is OrderStatus.APPROVED
        assert store.order("PO-2").approved_by == "Jane"
        assert store.order("PO-2").approved_date == date(2024, 6, 1)
        assert all(l.status is OrderStatus.APPROVED for l in store.lines if l.order_number == "PO-2")

        events = store.timeline("PO-2")
        assert [e.status_label for e in events] == ["Created", "Approved"]
        assert events[1].timestamp == date(2024, 6, 1)
        assert events[1].actor == "Jane"

    def test_received_after_loaded_shipped_keeps_milestones(self, store):
        """Test a shipped order moved to received shows all five events."""
        store.transition("PO-3", "received", "Wh")

        events = store.timeline("PO-3")
        assert [e.status_label for e in events] == ["Created", "Approved", "Ordered", "Shipped", "Received"]
        assert [e.timestamp for e in events] == [
            date(2024, 3, 5), date(2024, 3, 6), date(2024, 3, 7), date(2024, 3, 8), date(2024, 6, 1),
        ]
        assert events[-1].actor == "Wh"

    def test_transition_dated_before_order_keeps_timeline_ordered(self, test_config, row_source_factory):
        """Test a transition stamped before the order date is moved up to it."""
        rows = [
            ["header"],
            ["PO-8", "Acme", "2024-03-01", "2024-03-10", "pending", "Widget", "", "1", "10", "10", ""],
        ]
        s = PurchasingStore(row_source_factory(rows), config=test_config, today=lambda: date(2024, 2, 1))
        s.refresh()
        s.approve("PO-8", "Jane")

        stamps = [e.timestamp for e in s.timeline("PO-8")]
        assert stamps == [date(2024, 3, 1), date(2024, 3, 1)]

    def test_reject_requires_reason(self, store):
        """Test rejecting without a reason changes nothing."""
        with pytest.raises(ValidationFailure):
            store.reject("PO-2", "")
        assert store.order("PO-2").status is OrderStatus.PENDING
        assert len(store.transition_log) == 0

    def test_reject(self, store):
        """Test rejection keeps the reason and shows in the timeline."""
        updated = store.reject("PO-2", "Over budget")
        assert updated.rejection_reason == "Over budget"
        labels = [e.status_label for e in store.timeline("PO-2")]
        assert labels == ["Created", "Rejected"]

    def test_invalid_transition_leaves_state(self, store):
        """Test a received order cannot be approved again."""
        before = store.order("PO-1")
        with pytest.raises(InvalidTransition):
            store.approve("PO-1", "Jane")
        assert store.order("PO-1") == before

    def test_full_happy_path(self, store):
        """Test walking an order from pending to received."""
        for status in ("approved", "ordered", "shipped", "received"):
            store.transition("PO-2", status, "Jane")
        order = store.order("PO-2")
        assert order.status is OrderStatus.RECEIVED
        assert order.received_date == date(2024, 6, 1)
        assert len(store.timeline("PO-2")) == 5

    def test_declined_confirmation(self, static_source, test_config):
        """Test a declined confirmation cancels the change."""
        asked = []

        def decline(message):
            asked.append(message)
            return False

        s = PurchasingStore(static_source, config=test_config, confirm=decline)
        s.refresh()

        assert s.approve("PO-2", "Jane") is None
        assert s.order("PO-2").status is OrderStatus.PENDING
        assert asked == ["Mark purchase order #PO-2 as approved?"]

    def test_confirmation_not_asked_for_illegal_change(self, static_source, test_config):
        """Test illegal changes fail before the user is asked."""
        asked = []
        s = PurchasingStore(static_source, config=test_config, confirm=lambda m: asked.append(m) or True)
        s.refresh()
        with pytest.raises(InvalidTransition):
            s.approve("PO-1", "Jane")
        assert asked == []

    def test_derived_timeline_when_log_disabled(self, static_source, test_config):
        """Test timelines are derived from status when recording is off."""
        test_config.record_transitions = False
        s = PurchasingStore(static_source, config=test_config, today=lambda: date(2024, 6, 1))
        s.refresh()
        s.approve("PO-2", "Jane")

        events = s.timeline("PO-2")
        assert events[1].timestamp == date(2024, 2, 2)
        assert events[1].actor == "Jane"
        assert len(s.transition_log) == 0


@pytest.mark.integration
class TestSettlementActions:
    """Tests for ledger actions through the store."""

    def test_add_and_net(self, store):
        """Test the rent / refund netting scenario."""
        store.add_settlement_entry("Rent", "250000", "paid")
        store.add_settlement_entry("Ad refund", "30000", "credited")
        assert store.ledger.net_settlement == Decimal("220000")

    def test_seed_from_order(self, store):
        """Test seeding from an order line copies its total."""
        entry = store.seed_settlement("PO-2", 1)
        assert entry.amount == Decimal("90000")
        assert entry.reference == "PO-2"
        assert "Toner" in entry.description

    def test_seed_bad_line(self, store):
        """Test seeding from a missing line raises KeyError."""
        with pytest.raises(KeyError):
            store.seed_settlement("PO-3", 5)

    def test_set_status_and_remove(self, store):
        """Test status toggling and removal."""
        entry = store.add_settlement_entry("Deposit", "1000")
        store.set_settlement_status(entry.id, "credited")
        assert store.ledger.net_settlement == Decimal("-1000")

        assert store.remove_settlement_entry(entry.id) is True
        assert store.remove_settlement_entry(entry.id) is False
        assert len(store.ledger) == 0

    def test_remove_declined(self, static_source, test_config):
        """Test a declined confirmation keeps the entry."""
        s = PurchasingStore(static_source, config=test_config, confirm=lambda m: False)
        entry = s.add_settlement_entry("Deposit", "1000")
        assert s.remove_settlement_entry(entry.id) is None
        assert len(s.ledger) == 1

    def test_ledger_survives_refresh(self, store):
        """Test the ledger is independent of order snapshots."""
        store.add_settlement_entry("Rent", "100")
        store.refresh()
        assert len(store.ledger) == 1


@pytest.mark.integration
class TestStoreExport:
    """Tests for exporting through the store."""

    def test_export_reflects_local_changes(self, store):
        """Test exported lines keep source order and show local statuses."""
        store.approve("PO-2", "Jane")
        rows = list(csv.reader(io.StringIO(store.export_csv())))

        assert [r[0] for r in rows[1:]] == ["PO-1", "PO-2", "PO-2", "PO-3", "PO-1"]
        assert rows[2][4] == "approved"
        assert rows[3][4] == "approved"

    def test_write_default_path(self, store, test_config):
        """Test the default export location under export_dir."""
        path = store.write_csv()
        assert path == test_config.export_dir / "purchase_orders.csv"
        assert path.exists()
