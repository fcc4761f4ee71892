"""
Request signing for the Binance SAPI endpoints.

Every signed call carries ``signature=<hex>`` computed over the query string
that precedes it.
"""

import hashlib
import hmac


def sign(query: str, secret: str) -> str:
    """
    HMAC-SHA256 of ``query`` keyed by ``secret``.

    Args:
        query: Canonical query string, e.g. ``timestamp=1700000000000``
        secret: API secret

    Returns:
        Lowercase hex digest
    """
    return hmac.new(
        secret.encode('utf-8'),
        query.encode('utf-8'),
        hashlib.sha256,
    ).hexdigest()
