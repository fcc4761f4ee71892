"""
Binance C2C API Client
Handles signed calls to the Binance peer-to-peer order endpoints
"""

import time
import logging
from typing import Dict, List, Optional

import requests

from src.api.signing import sign

logger = logging.getLogger(__name__)

LIST_ORDERS_ENDPOINT = '/sapi/v1/c2c/orderMatch/listOrders'
ORDER_DETAIL_ENDPOINT = '/sapi/v1/c2c/orderMatch/getUserOrderDetail'

# Completed, cancelled, cancelled by system
DEFAULT_ORDER_STATUSES = (4, 6, 7)


class C2CApiError(Exception):
    """Transport failure, non-2xx status or unreadable body from the C2C API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BinanceC2CClient:
    """Client for Binance C2C order-match endpoints"""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        base_url: str = 'https://api.binance.com',
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        if not api_key or not api_secret:
            raise ValueError("Binance API credentials not configured")

        self.api_key = api_key
        self.api_secret = api_secret
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers.update({
            'X-MBX-APIKEY': self.api_key,
            'clientType': 'web',
        })

    @classmethod
    def from_settings(cls, settings) -> 'BinanceC2CClient':
        return cls(
            settings.BINANCE_API_KEY,
            settings.BINANCE_API_SECRET,
            base_url=settings.BINANCE_API_URL,
            timeout=settings.HTTP_TIMEOUT,
        )

    def _signed_query(self) -> str:
        query = f"timestamp={int(time.time() * 1000)}"
        return f"{query}&signature={sign(query, self.api_secret)}"

    def signed_post(self, endpoint: str, body: Dict) -> Dict:
        """
        POST a JSON body to a signed endpoint.

        Args:
            endpoint: Path such as LIST_ORDERS_ENDPOINT
            body: JSON-serializable request body

        Returns:
            dict: Decoded JSON response

        Raises:
            C2CApiError: on transport errors, non-2xx status, invalid JSON
                or a body that is not a JSON object
        """
        url = f"{self.base_url}{endpoint}?{self._signed_query()}"

        try:
            response = self.session.post(url, json=body, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()

        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise C2CApiError(f"{endpoint} returned HTTP {status}", status) from e
        except ValueError as e:
            raise C2CApiError(f"{endpoint} returned invalid JSON: {e}") from e
        except requests.RequestException as e:
            raise C2CApiError(f"{endpoint} request failed: {e}") from e

        if not isinstance(payload, dict):
            raise C2CApiError(
                f"{endpoint} returned {type(payload).__name__} instead of a JSON object"
            )
        return payload

    def list_orders(
        self,
        page: int,
        rows: int,
        start_ms: int,
        end_ms: int,
        statuses: List[int] = DEFAULT_ORDER_STATUSES,
    ) -> Dict:
        """
        Fetch one page of order summaries.

        Returns:
            dict: {'success': bool, 'total': int, 'data': [...], 'message': str}
        """
        body = {
            'orderStatusList': list(statuses),
            'page': page,
            'rows': rows,
            'startDate': start_ms,
            'endDate': end_ms,
        }
        if page == 1:
            logger.debug("List request body: %s", body)
        return self.signed_post(LIST_ORDERS_ENDPOINT, body)

    def get_order_detail(self, order_number: str) -> Dict:
        """
        Fetch the full detail of one order.

        Returns:
            dict: {'success': bool, 'data': {...}}
        """
        return self.signed_post(ORDER_DETAIL_ENDPOINT, {'adOrderNo': order_number})
