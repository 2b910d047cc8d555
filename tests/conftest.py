"""
Pytest configuration and shared fixtures for the purchasing test suite.
"""
import os
import shutil
import tempfile
from datetime import date
from pathlib import Path
from typing import Generator

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
os.chdir(PROJECT_ROOT)

HEADER = [
    "Order Number", "Supplier", "Order Date", "Expected Delivery", "Status",
    "Product", "Description", "Quantity", "Unit Price", "Total", "Notes",
]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    tmp_path = tempfile.mkdtemp(prefix="purchasing_test_")
    yield Path(tmp_path)
    shutil.rmtree(tmp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path, monkeypatch) -> "Config":
    """Provide a test configuration isolated from env vars and settings files."""
    for name in ("SHEETS_API_URL", "PO_SHEET_NAME", "SHEETS_TIMEOUT", "PO_CSV", "EXPORT_DIR",
                 "CURRENCY_PREFIX", "DEFAULT_REQUESTER", "RECORD_TRANSITIONS",
                 "STRICT_ORDER_GROUPS", "SEARCH_FUZZY_THRESHOLD"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CONFIG_DIR", str(temp_dir / "config"))

    from config import Config

    config = Config()
    config.po_csv = temp_dir / "data" / "purchase_orders.csv"
    config.export_dir = temp_dir / "output" / "export"
    config.po_csv.parent.mkdir(parents=True, exist_ok=True)
    return config


@pytest.fixture
def sample_rows() -> list[list[str]]:
    """Raw sheet rows (header first), two multi-line orders and two single-line ones."""
    return [
        HEADER,
        ["PO-1", "Acme Supplies", "2024-01-01", "2024-01-10", "received", "Widget", "", "10", "100", "1000", ""],
        ["PO-2", "Global Traders", "2024-02-01", "2024-02-15", "", "Paper A4", "", "20", "TSh5,000", "TSh100,000", "Urgent"],
        ["PO-2", "Global Traders", "2024-02-01", "2024-02-15", "", "Toner", "", "2", "TSh45,000", "TSh90,000", ""],
        ["PO-3", "Acme Supplies", "2024-03-05", "2024-03-20", "shipped", "Chairs", "", "4", "25000", "100000", "Lobby"],
        ["PO-1", "Acme Supplies", "2024-01-01", "2024-01-10", "received", "Bolts", "", "100", "5", "500", ""],
    ]


@pytest.fixture
def sample_po_csv(temp_dir: Path, sample_rows) -> Path:
    """Write sample_rows to a CSV file."""
    import csv

    csv_path = temp_dir / "data" / "purchase_orders.csv"
    csv_path.parent.mkdir(parents=True, exist_ok=True)
    with open(csv_path, "w", newline="", encoding="utf-8") as f:
        csv.writer(f).writerows(sample_rows)
    return csv_path


class StaticRowSource:
    """In-memory row source; set fail=True to simulate an unreachable sheet."""

    name = "static"

    def __init__(self, rows):
        self.rows = rows
        self.fail = False
        self.calls = 0

    def fetch_rows(self):
        from purchasing.errors import FetchFailure

        self.calls += 1
        if self.fail:
            raise FetchFailure("sheet service unreachable", source=self.name)
        return [list(r) for r in self.rows]


@pytest.fixture
def row_source_factory():
    """Build an in-memory row source from arbitrary rows."""
    return StaticRowSource


@pytest.fixture
def static_source(sample_rows) -> StaticRowSource:
    return StaticRowSource(sample_rows)


@pytest.fixture
def fixed_today() -> date:
    return date(2024, 6, 1)


@pytest.fixture
def store(static_source, test_config, fixed_today):
    """A loaded PurchasingStore over the sample rows."""
    from purchasing.store import PurchasingStore

    s = PurchasingStore(static_source, config=test_config, today=lambda: fixed_today)
    s.refresh()
    return s


# Configure pytest markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
