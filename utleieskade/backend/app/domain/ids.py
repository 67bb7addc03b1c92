# backend/app/domain/ids.py
from __future__ import annotations

import secrets
from datetime import datetime, timezone


def generate_unique_id(prefix: str) -> str:
    """PREFIX-yymmddHHMM-xxxxxxxx, e.g. CASE-2610171342-9f3a01bc."""
    stamp = datetime.now(timezone.utc).strftime("%y%m%d%H%M")
    return f"{prefix}-{stamp}-{secrets.token_hex(4)}"
