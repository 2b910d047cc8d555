"""
Central configuration for the purchasing core.

All data-source locations, parsing conventions and lifecycle options are
defined here.  Override via environment variables or by passing a Config
instance directly.

Settings priority (highest wins):
  1. Environment variables
  2. config/purchasing_settings.json  (admin-editable, persisted)
  3. Hardcoded defaults in this file
"""
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Project root (directory containing this file)
PROJECT_ROOT = Path(__file__).parent

# Default output location (relative to project root)
DEFAULT_EXPORT_DIR = PROJECT_ROOT / "output" / "export"

# Environment variables that override the settings file
_ENV_KEYS = {
    "sheets_api_url":         "SHEETS_API_URL",
    "po_sheet_name":          "PO_SHEET_NAME",
    "sheets_timeout_seconds": "SHEETS_TIMEOUT",
    "currency_prefix":        "CURRENCY_PREFIX",
    "default_requester":      "DEFAULT_REQUESTER",
    "record_transitions":     "RECORD_TRANSITIONS",
    "strict_order_groups":    "STRICT_ORDER_GROUPS",
    "search_fuzzy_threshold": "SEARCH_FUZZY_THRESHOLD",
}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ("false", "0", "no", "off")


def _to_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("false", "0", "no", "off")
    return bool(value)


@dataclass
class Config:
    # --- Spreadsheet REST service ---
    # Base URL of the sheet service; rows are read from
    # {sheets_api_url}/api/v1/sheets/{po_sheet_name}
    sheets_api_url: str = field(
        default_factory=lambda: os.getenv("SHEETS_API_URL", "http://localhost:3000")
    )
    po_sheet_name: str = field(
        default_factory=lambda: os.getenv("PO_SHEET_NAME", "PurchaseOrders")
    )
    sheets_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("SHEETS_TIMEOUT", "10"))
    )

    # --- Local CSV alternative ---
    po_csv: Optional[Path] = field(
        default_factory=lambda: Path(os.getenv("PO_CSV")) if os.getenv("PO_CSV") else None
    )
    # When po_csv is None the sheet service is used.

    # --- Output ---
    export_dir: Path = field(
        default_factory=lambda: Path(os.getenv("EXPORT_DIR", str(DEFAULT_EXPORT_DIR)))
    )

    # --- Row parsing ---
    currency_prefix: str = field(
        default_factory=lambda: os.getenv("CURRENCY_PREFIX", "TSh")
    )
    default_requester: str = field(
        default_factory=lambda: os.getenv("DEFAULT_REQUESTER", "System User")
    )

    # --- Lifecycle / aggregation ---
    record_transitions: bool = field(
        default_factory=lambda: _env_bool("RECORD_TRANSITIONS", True)
    )
    # True  → timelines show transitions as they were applied this session
    # False → timelines are always derived from the current status
    strict_order_groups: bool = field(
        default_factory=lambda: _env_bool("STRICT_ORDER_GROUPS", False)
    )
    # True drops orders whose lines disagree on supplier/dates/status

    # --- Search ---
    search_fuzzy_threshold: int = field(
        default_factory=lambda: int(os.getenv("SEARCH_FUZZY_THRESHOLD", "80"))
    )

    def __post_init__(self) -> None:
        """Overlay runtime-tunable settings from purchasing_settings.json if present."""
        config_dir = Path(os.getenv("CONFIG_DIR", str(PROJECT_ROOT / "config")))
        settings_file = config_dir / "purchasing_settings.json"
        if not settings_file.exists():
            return
        _type_map: dict[str, type] = {
            "sheets_api_url":          str,
            "po_sheet_name":           str,
            "sheets_timeout_seconds":  float,
            "currency_prefix":         str,
            "default_requester":       str,
            "record_transitions":      _to_bool,
            "strict_order_groups":     _to_bool,
            "search_fuzzy_threshold":  int,
        }
        try:
            with open(settings_file, encoding="utf-8") as f:
                overrides = {k: v for k, v in json.load(f).items() if not k.startswith("_")}
            for key, val in overrides.items():
                # Environment variables win over the settings file
                if key in _ENV_KEYS and os.getenv(_ENV_KEYS[key]) is not None:
                    continue
                if key in _type_map and hasattr(self, key):
                    setattr(self, key, _type_map[key](val))
        except Exception as exc:
            logger.warning("Failed to load purchasing_settings.json: %s", exc)

    def ensure_export_dir(self) -> None:
        self.export_dir.mkdir(parents=True, exist_ok=True)
