"""
CSV export of purchase lines.

One row per line in source order, every field quoted, so the file opens
cleanly in spreadsheet tools even when notes contain commas.
"""
import csv
import io
import logging
from pathlib import Path
from typing import Iterable

from models.purchase_order import PurchaseLine

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "Order Number", "Supplier", "Order Date", "Expected Delivery", "Status",
    "Product", "Quantity", "Unit Price", "Total", "Notes",
]


def line_to_row(line: PurchaseLine) -> list[str]:
    return [
        line.order_number,
        line.supplier,
        str(line.order_date),
        str(line.expected_delivery),
        line.status.value,
        line.product,
        str(line.quantity),
        str(line.unit_price),
        str(line.total),
        line.notes,
    ]


def export_csv(lines: Iterable[PurchaseLine]) -> str:
    """Serialise lines to CSV text (header included)."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for line in lines:
        writer.writerow(line_to_row(line))
    return buf.getvalue()


def write_csv(lines: Iterable[PurchaseLine], path: str | Path) -> Path:
    """Write the CSV export to *path*, creating parent directories."""
    lines = list(lines)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(export_csv(lines), encoding="utf-8", newline="")
    logger.info("Exported %d purchase lines to %s", len(lines), path)
    return path
