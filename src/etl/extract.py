"""
ETL Extract Layer
=================
Pulls C2C orders from the Binance API for one extraction window.

The order list is paginated and must be fetched completely or not at
all: a failure on any page raises, so the caller never mistakes a partial
list for the whole window. Order details are fetched one at a time and a
missing detail only costs that single order.
"""

import time
import logging
from typing import Callable, List, Optional

from src.api.binance_c2c import C2CApiError
from src.etl.payloads import OrderDetail, OrderSummary

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
DEFAULT_DELAY_SECONDS = 0.25


class OrderListFetchError(Exception):
    """The order list for a window could not be retrieved completely."""

    def __init__(self, window, message: str):
        super().__init__(f"Order list fetch failed for {window}: {message}")
        self.window = window


def fetch_order_list(
    client,
    window,
    page_size: int = DEFAULT_PAGE_SIZE,
    delay_seconds: float = DEFAULT_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> List[OrderSummary]:
    """
    Fetch every order summary in a window.

    The ``total`` reported by the first page is authoritative; pages are
    requested until that many orders have been collected.

    Args:
        client: BinanceC2CClient
        window: Window to query
        page_size: Rows per page
        delay_seconds: Pause between page requests (rate limiting)
        sleep: Sleep function override (for testing)

    Returns:
        list of OrderSummary in API order (empty when total is 0)

    Raises:
        OrderListFetchError: on transport/HTTP errors, success=false, a
            response that is not a JSON object, or a page that comes back
            empty before ``total`` orders were collected
    """
    summaries = []
    page = 1
    total = 0

    while True:
        try:
            response = client.list_orders(page, page_size, window.start_ms, window.end_ms)
        except C2CApiError as e:
            raise OrderListFetchError(window, str(e)) from e

        if not isinstance(response, dict):
            raise OrderListFetchError(window, f"page {page} response is not a JSON object")
        if not response.get('success'):
            raise OrderListFetchError(
                window, response.get('message') or 'API reported success=false'
            )

        if page == 1:
            total = int(response.get('total') or 0)
            if total == 0:
                logger.info("No orders found for %s", window)
                return []

        data = response.get('data') or []
        summaries.extend(OrderSummary.from_payload(item) for item in data)

        total_pages = -(-total // page_size)
        logger.info(
            "Order page %d of %d fetched: %d of %d orders",
            page, total_pages, len(summaries), total
        )

        if len(summaries) >= total:
            break
        if not data:
            raise OrderListFetchError(
                window,
                f"page {page} returned no orders with {len(summaries)} of {total} collected"
            )

        page += 1
        sleep(delay_seconds)

    return summaries


def fetch_order_detail(client, order_number: str) -> Optional[OrderDetail]:
    """
    Fetch the detail payload for one order.

    Any failure is logged and reported as None so the rest of the batch
    can proceed.

    Args:
        client: BinanceC2CClient
        order_number: Order number from the summary

    Returns:
        OrderDetail, or None if the detail is unavailable
    """
    try:
        response = client.get_order_detail(order_number)
    except C2CApiError as e:
        logger.warning("Could not fetch detail for order %s: %s", order_number, e)
        return None

    if not isinstance(response, dict):
        logger.warning("Detail for order %s is not a JSON object", order_number)
        return None

    if not response.get('success'):
        logger.warning(
            "Detail for order %s not available: %s",
            order_number, response.get('message') or 'success=false'
        )
        return None

    data = response.get('data')
    if not isinstance(data, dict):
        logger.warning("Detail for order %s has no data object", order_number)
        return None

    return OrderDetail.from_payload(data)
