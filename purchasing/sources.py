"""
Row sources for purchase-order data.

A row source returns the whole sheet as a list of rows (lists of strings),
header row included.  Any transport or format problem is raised as
FetchFailure so callers can show a retry banner without applying partial
state.

  CSVRowSource     a local CSV export of the sheet
  SheetsApiSource  the spreadsheet REST service
                   (GET {base_url}/api/v1/sheets/{sheet} -> {"data": {"values": [...]}})
"""
import csv
import http.client
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from datetime import datetime, timezone
from pathlib import Path

from .errors import FetchFailure

logger = logging.getLogger(__name__)

DEFAULT_SHEET_NAME = "PurchaseOrders"
DEFAULT_TIMEOUT_SECONDS = 10


class CSVRowSource:
    """Reads rows from a CSV file on disk."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    @property
    def name(self) -> str:
        return f"csv:{self.path.name}"

    def fetch_rows(self) -> list[list[str]]:
        if not self.path.exists():
            raise FetchFailure(f"CSV file not found: {self.path}", source=self.name)
        try:
            with open(self.path, newline="", encoding="utf-8") as f:
                rows = [row for row in csv.reader(f)]
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            logger.error("Failed to read CSV %s: %s", self.path, exc)
            raise FetchFailure(f"Could not read {self.path}: {exc}", source=self.name) from exc
        logger.info("Loaded %d rows from %s", max(len(rows) - 1, 0), self.path.name)
        return rows

    def get_metadata(self) -> dict:
        """
        Describe the backing file without parsing it into lines.

        Returns:
            dict with keys: exists, path, mtime_iso, size, rows
        """
        if not self.path.exists():
            return {"exists": False, "path": str(self.path), "size": 0, "rows": 0}
        stat = self.path.stat()
        try:
            rows = max(len(self.fetch_rows()) - 1, 0)
        except FetchFailure:
            rows = 0
        return {
            "exists": True,
            "path": str(self.path),
            "mtime_iso": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
            "size": stat.st_size,
            "rows": rows,
        }


class SheetsApiSource:
    """Reads a sheet through the spreadsheet REST service."""

    def __init__(
        self,
        base_url: str,
        sheet_name: str = DEFAULT_SHEET_NAME,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.sheet_name = sheet_name
        self.timeout = timeout

    @property
    def name(self) -> str:
        return f"sheet:{self.sheet_name}"

    @property
    def url(self) -> str:
        return f"{self.base_url}/api/v1/sheets/{urllib.parse.quote(self.sheet_name)}"

    def fetch_rows(self) -> list[list[str]]:
        req = urllib.request.Request(self.url, method="GET")
        req.add_header("Accept", "application/json")

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                body = response.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            detail = e.read().decode("utf-8", errors="replace")[:200] if e.fp else str(e)
            logger.error("Sheet fetch failed for %s: HTTP %d - %s", self.sheet_name, e.code, detail)
            raise FetchFailure(f"HTTP {e.code} fetching sheet '{self.sheet_name}'", source=self.name) from e
        except (urllib.error.URLError, http.client.HTTPException, OSError) as e:
            logger.error("Sheet service unreachable at %s: %s", self.base_url, e)
            raise FetchFailure(f"Sheet service unreachable: {e}", source=self.name) from e

        try:
            payload = json.loads(body)
        except ValueError as e:
            raise FetchFailure(f"Malformed response for sheet '{self.sheet_name}'", source=self.name) from e

        values = _extract_values(payload)
        if values is None:
            raise FetchFailure(f"Response for sheet '{self.sheet_name}' has no values", source=self.name)

        rows = [[_cell_text(cell) for cell in row] for row in values if isinstance(row, list)]
        logger.info("Fetched %d rows from sheet %s", max(len(rows) - 1, 0), self.sheet_name)
        return rows


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _extract_values(payload) -> list | None:
    # The service wraps rows as {"data": {"values": [...]}}; an empty sheet
    # may omit "values" entirely.
    if not isinstance(payload, dict):
        return None
    data = payload.get("data", payload)
    if not isinstance(data, dict):
        return None
    values = data.get("values", [])
    return values if isinstance(values, list) else None


def _cell_text(cell) -> str:
    return "" if cell is None else str(cell)
