"""Opaque cursor pagination helpers shared by ledger and trade listings."""

import base64
import json
from typing import Any


def cursor_encode(position: dict[str, Any]) -> str:
    """Encode the last seen sort key into an opaque Base64 cursor string."""
    payload = json.dumps(position, default=str, separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> dict[str, Any] | None:
    """Decode a cursor string back to its sort key. Returns None on error."""
    if not cursor:
        return None
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode()).decode())
    except (ValueError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None
