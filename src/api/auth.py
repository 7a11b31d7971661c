"""API key authentication.

Launch endpoints spend real SOL, so every call must present the key from
settings in the ``X-API-Key`` header. An empty configured key rejects all.
"""

from __future__ import annotations

import hmac

API_KEY_HEADER = "X-API-Key"


def verify_api_key(provided: str | None, expected: str) -> bool:
    """Constant-time comparison; False if either side is empty."""
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())
