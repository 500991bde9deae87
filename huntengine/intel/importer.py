"""Indicator import parser — turns pasted JSON or CSV text into bulk-create entries.

Two formats are accepted:

* JSON: a single object or an array of objects. The value is read from
  ``value``, ``ioc`` or ``indicator``; the kind from ``type`` or ``ioc_type``.
* Plain text / CSV: one indicator per line, ``value[,kind]``.

A missing kind, ``auto`` or ``auto-detect`` leaves classification to the
indicator store.
"""

import json

from ..exceptions import ValidationError

_VALUE_KEYS = ("value", "ioc", "indicator")
_KIND_KEYS = ("type", "ioc_type", "kind")
_COPIED_KEYS = ("severity", "source", "threat_name", "description", "tags")


def _first(item: dict, keys: tuple[str, ...]):
    for key in keys:
        if item.get(key):
            return item[key]
    return None


def _parse_json(text: str) -> list[dict]:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Invalid JSON format: {exc.msg}") from exc

    items = parsed if isinstance(parsed, list) else [parsed]
    entries = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("JSON import items must be objects")
        entry = {
            "value": str(_first(item, _VALUE_KEYS) or "").strip(),
            "kind": _first(item, _KIND_KEYS),
        }
        for key in _COPIED_KEYS:
            if item.get(key) is not None:
                entry[key] = item[key]
        entries.append(entry)
    return entries


def _parse_lines(lines: list[str]) -> list[dict]:
    entries = []
    for line in lines:
        parts = [p.strip() for p in line.split(",")]
        entries.append({
            "value": parts[0],
            "kind": parts[1] if len(parts) > 1 and parts[1] else None,
        })
    return entries


def parse_indicator_import(text: str) -> list[dict]:
    """Parse import text into a list of entries for ``IndicatorStore.bulk_create``."""
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return []

    first = lines[0].strip()
    if first.startswith("[") or first.startswith("{"):
        return _parse_json(text)
    return _parse_lines(lines)
