from .errors import PurchasingError, FetchFailure, InvalidTransition, ValidationFailure
from .normalizer import RowNormalizer, parse_amount, parse_amount_strict, parse_date
from .aggregator import aggregate_orders, filter_by_status, search_orders, status_counts, order_totals
from .lifecycle import TRANSITIONS, can_transition, apply_transition, is_terminal, allowed_targets
from .timeline import TransitionLog, derive_timeline, build_timeline
from .ledger import SettlementLedger
from .sources import CSVRowSource, SheetsApiSource
from .export import export_csv, write_csv, EXPORT_COLUMNS
from .store import PurchasingStore, source_from_config

__all__ = [
    "PurchasingError", "FetchFailure", "InvalidTransition", "ValidationFailure",
    "RowNormalizer", "parse_amount", "parse_amount_strict", "parse_date",
    "aggregate_orders", "filter_by_status", "search_orders", "status_counts", "order_totals",
    "TRANSITIONS", "can_transition", "apply_transition", "is_terminal", "allowed_targets",
    "TransitionLog", "derive_timeline", "build_timeline",
    "SettlementLedger",
    "CSVRowSource", "SheetsApiSource",
    "export_csv", "write_csv", "EXPORT_COLUMNS",
    "PurchasingStore", "source_from_config",
]
