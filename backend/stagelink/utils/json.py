from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

import orjson


def _default(o: Any):
    # Normalize common non-JSON-native types
    if isinstance(o, Decimal):
        return float(o)
    if isinstance(o, (datetime, date)):
        return o.isoformat()
    if isinstance(o, Enum):
        return o.value
    return str(o)


def dumps_bytes(obj: Any) -> bytes:
    """Serialize to JSON bytes, allowing non-string dict keys."""
    return orjson.dumps(obj, option=orjson.OPT_NON_STR_KEYS, default=_default)


def dumps(obj: Any) -> str:
    return dumps_bytes(obj).decode("utf-8")


def loads(data: str | bytes) -> Any:
    return orjson.loads(data)
