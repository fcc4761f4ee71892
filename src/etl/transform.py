"""
ETL Transform Layer
===================
Normalizes raw C2C API values into the Python types stored in the
database, and maps parsed payloads onto table rows.

The API is inconsistent about numeric encoding: the same decimal field
can arrive as a JSON number in one response and as a numeric string in
the next. Both forms must land as the identical Decimal, and an absent
decimal is stored as zero rather than failing the order.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


def to_decimal(data: dict, key: str) -> Decimal:
    """
    Extract a decimal from a payload dict.

    Textual values are parsed with invariant formatting (a plain
    ``Decimal`` literal, no locale separators); numeric values are taken
    directly. Absent, null or unparseable values normalize to zero.
    """
    val = data.get(key)
    if val is None or isinstance(val, bool):
        return ZERO
    if isinstance(val, str):
        try:
            return Decimal(val.strip())
        except InvalidOperation:
            logger.debug("Unparseable decimal for %s: %r", key, val)
            return ZERO
    if isinstance(val, (int, float, Decimal)):
        # str() keeps 12.5 as 12.5 instead of the binary float expansion
        return Decimal(str(val))
    return ZERO


def to_int(data: dict, key: str) -> Optional[int]:
    """Extract an int, None when absent or unparseable."""
    val = data.get(key)
    if val is None:
        return None
    try:
        return int(val)
    except (ValueError, TypeError):
        logger.debug("Unparseable integer for %s: %r", key, val)
        return None


def to_str(data: dict, key: str) -> Optional[str]:
    """Extract a string, None when absent."""
    val = data.get(key)
    if val is None:
        return None
    return str(val)


def to_bool(data: dict, key: str) -> Optional[bool]:
    """Extract a boolean, None when absent."""
    val = data.get(key)
    if val is None:
        return None
    if isinstance(val, str):
        return val.strip().lower() == 'true'
    return bool(val)


def ms_to_datetime(value) -> Optional[datetime]:
    """Epoch milliseconds to a tz-aware UTC datetime."""
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    except (ValueError, TypeError, OverflowError, OSError):
        logger.debug("Unparseable epoch-ms timestamp: %r", value)
        return None


def to_datetime(data: dict, key: str) -> Optional[datetime]:
    """Extract an epoch-ms field as a UTC datetime, None when absent."""
    return ms_to_datetime(data.get(key))


def datetime_to_ms(value: datetime) -> int:
    """UTC datetime to epoch milliseconds (naive values are read as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


# ============================================================
# ROW MAPPING
# ============================================================

def user_row(detail) -> Dict:
    """
    Volatile profile columns for the taker's Users row.

    KYC columns are written only by the KYC batch.
    """
    return {
        'taker_user_no': detail.taker_user_no,
        'nickname': detail.seller_nickname,
        'full_name': detail.seller_name,
        'mobile_phone': detail.seller_mobile_phone,
    }


def order_row(summary) -> Dict:
    """Map an OrderSummary onto the Orders table columns."""
    if not summary.order_number:
        raise ValueError("order summary has no orderNumber")
    if summary.create_time is None:
        raise ValueError(f"order {summary.order_number} has no createTime")
    return summary.as_row()


def order_detail_row(detail, taker_user_no: str) -> Dict:
    """Map an OrderDetail onto the OrderDetails table columns."""
    if not detail.order_number:
        raise ValueError("order detail has no orderNumber")
    if detail.create_time is None:
        raise ValueError(f"order detail {detail.order_number} has no createTime")
    row = detail.as_row()
    row['taker_user_no'] = taker_user_no
    return row


def pay_method_rows(detail) -> List[Dict]:
    """PayMethods rows for a detail, keyed by its order number."""
    rows = []
    for method in detail.pay_methods:
        if method.pay_method_id is None:
            raise ValueError(
                f"pay method without id on order {detail.order_number}"
            )
        row = method.as_row()
        row['order_number'] = detail.order_number
        rows.append(row)
    return rows


def pay_method_field_rows(detail) -> List[Dict]:
    """
    PayMethodFields rows for a detail.

    Fields are only taken when the detail declares a non-zero ``fields``
    count; otherwise the pay methods are stored without their fields.
    """
    if detail.declared_field_count <= 0:
        return []

    rows = []
    for method in detail.pay_methods:
        for field in method.fields:
            row = field.as_row()
            row['pay_method_id'] = method.pay_method_id
            row['order_number'] = detail.order_number
            rows.append(row)
    return rows
