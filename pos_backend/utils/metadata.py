"""
Lookups over WooCommerce `meta_data` lists.

The wire format is an ordered list of {"key", "value"} entries that may
repeat a key; the first entry for a key wins.
"""
from typing import Any, Iterable, List, Optional

POS_ORDER_KEY = "_pos_order"
FMS_COMPONENTS_KEY = "_hr_fms_components"
CUSTOMER_TYPE_KEY = "customer_type"
ORDER_TYPE_KEY = "order_type"
MEASUREMENTS_KEY = "measurements"


def _entries(record: Any) -> Iterable[dict]:
    if not isinstance(record, dict):
        return []
    meta = record.get("meta_data")
    if not isinstance(meta, list):
        return []
    return (m for m in meta if isinstance(m, dict))


def find_meta(record: Any, key: str) -> Optional[dict]:
    """First meta entry with `key`, or None."""
    for entry in _entries(record):
        if entry.get("key") == key:
            return entry
    return None


def get_meta(record: Any, key: str, default: Any = None) -> Any:
    """Value of the first meta entry with `key`; `default` when absent or empty."""
    entry = find_meta(record, key)
    if entry is None:
        return default
    value = entry.get("value")
    if value is None or value == "":
        return default
    return value


def meta_entry(key: str, value: Any) -> dict:
    return {"key": key, "value": value}


def meta_keys(record: Any) -> List[str]:
    return [entry.get("key") for entry in _entries(record)]
