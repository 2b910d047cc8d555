"""
Row normalisation for the purchase-order sheet.

Turns one raw row (a list of free-text cells, possibly short or holding
None) into a typed PurchaseLine.  The source is untrusted spreadsheet text,
so nothing here raises: every field has a deterministic fallback.

Column layout (header row is skipped by normalize_rows):
  0 order_number   1 supplier   2 order_date   3 expected_delivery
  4 status         5 product    6 (unused)     7 quantity
  8 unit_price     9 total     10 notes
"""
import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional, Sequence

from models.purchase_order import UNKNOWN_DATE, DateOrUnknown, OrderStatus, PurchaseLine

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY_PREFIX = "TSh"
DEFAULT_REQUESTER = "System User"

COL_ORDER_NUMBER = 0
COL_SUPPLIER = 1
COL_ORDER_DATE = 2
COL_EXPECTED_DELIVERY = 3
COL_STATUS = 4
COL_PRODUCT = 5
COL_QUANTITY = 7
COL_UNIT_PRICE = 8
COL_TOTAL = 9
COL_NOTES = 10

# Status strings are matched case-sensitively; anything else is pending.
_KNOWN_STATUSES = {s.value: s for s in OrderStatus if s is not OrderStatus.PENDING}

_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%Y/%m/%d")
_ISO_PREFIX = re.compile(r"^(\d{4}-\d{2}-\d{2})[T ]")

# Amounts of 10**16 or more are treated as unparseable (e.g. "1e5000")
_MAX_EXPONENT = 15


def parse_amount_strict(value: Any, currency_prefix: str = DEFAULT_CURRENCY_PREFIX) -> Optional[Decimal]:
    """
    Parse a money/number cell such as "TSh1,250.50".

    Returns None when the value is empty, unparseable, not finite or
    implausibly large.
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return _checked(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _checked(Decimal(value) if isinstance(value, int) else Decimal(str(value)))
    text = str(value).strip()
    if currency_prefix:
        text = text.replace(currency_prefix, "")
    text = text.replace(",", "").strip()
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    return _checked(amount)


def _checked(amount: Decimal) -> Optional[Decimal]:
    if not amount.is_finite() or amount.adjusted() > _MAX_EXPONENT:
        return None
    return amount


def parse_amount(value: Any, currency_prefix: str = DEFAULT_CURRENCY_PREFIX) -> Decimal:
    """Lenient variant of parse_amount_strict: failures become 0."""
    amount = parse_amount_strict(value, currency_prefix)
    if amount is None:
        if value not in (None, ""):
            logger.debug("Unparseable amount %r, defaulting to 0", value)
        return Decimal("0")
    return amount


def parse_date(value: Any) -> DateOrUnknown:
    """Parse a date cell, returning the UNKNOWN_DATE sentinel on failure."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not text:
        return UNKNOWN_DATE
    m = _ISO_PREFIX.match(text)
    if m:
        text = m.group(1)
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    logger.debug("Unparseable date %r", value)
    return UNKNOWN_DATE


def parse_status(value: Any) -> OrderStatus:
    return _KNOWN_STATUSES.get(str(value or "").strip(), OrderStatus.PENDING)


class RowNormalizer:
    """
    Converts purchase-order sheet rows into PurchaseLine objects.

    Usage:
        normalizer = RowNormalizer(currency_prefix="TSh")
        lines = normalizer.normalize_rows(rows)      # rows[0] is the header
    """

    def __init__(
        self,
        currency_prefix: str = DEFAULT_CURRENCY_PREFIX,
        default_requester: str = DEFAULT_REQUESTER,
    ):
        self.currency_prefix = currency_prefix
        self.default_requester = default_requester

    def normalize(self, row: Sequence[Any], index: int) -> PurchaseLine:
        """Build one PurchaseLine from a raw row.  Never raises."""
        row = row or ()
        quantity = parse_amount(_cell(row, COL_QUANTITY), self.currency_prefix)
        unit_price = parse_amount(_cell(row, COL_UNIT_PRICE), self.currency_prefix)

        return PurchaseLine(
            order_number=_text(row, COL_ORDER_NUMBER) or "N/A",
            line_index=index,
            supplier=_text(row, COL_SUPPLIER) or "Unknown Supplier",
            order_date=parse_date(_cell(row, COL_ORDER_DATE)),
            expected_delivery=parse_date(_cell(row, COL_EXPECTED_DELIVERY)),
            status=parse_status(_cell(row, COL_STATUS)),
            product=_text(row, COL_PRODUCT) or "Unknown Product",
            quantity=max(int(quantity), 0),
            unit_price=max(unit_price, Decimal("0")),
            total=parse_amount(_cell(row, COL_TOTAL), self.currency_prefix),
            notes=_text(row, COL_NOTES),
            requested_by=self.default_requester,
        )

    def normalize_rows(self, rows: Iterable[Sequence[Any]], skip_header: bool = True) -> list[PurchaseLine]:
        """Normalise every data row.  Row indexes count from the first data row."""
        rows = list(rows or [])
        if skip_header and rows:
            rows = rows[1:]
        lines = [self.normalize(row, i) for i, row in enumerate(rows)]
        logger.debug("Normalised %d purchase-order rows", len(lines))
        return lines


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _cell(row: Sequence[Any], idx: int) -> Any:
    return row[idx] if idx < len(row) else None


def _text(row: Sequence[Any], idx: int) -> str:
    value = _cell(row, idx)
    return str(value).strip() if value is not None else ""
