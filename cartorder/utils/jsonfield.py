# cartorder/utils/jsonfield.py
"""Kodowanie dokumentow JSON trzymanych w kolumnach tekstowych (pozycje koszyka,
adres i pozycje zamowienia)."""
import json
from decimal import Decimal
from typing import Any


def _default(value: Any):
    if isinstance(value, Decimal):
        # kwoty jako string, bez utraty precyzji
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dumps(value: Any) -> str:
    return json.dumps(value, default=_default, ensure_ascii=False)


def loads(raw: str | None) -> Any:
    if raw is None:
        raise ValueError("stored document is NULL")
    return json.loads(raw)
