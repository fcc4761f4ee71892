"""
Pytest configuration and fixtures for the P2P order ETL.

This module provides:
- Temporary SQLite order store with the full schema
- Sample list/detail payloads as returned by the C2C API
- A fake C2C client that serves canned pages and details
- Test settings
"""

import pytest
from datetime import datetime, timezone

from sqlalchemy import create_engine

from src.database.models import Base

# 2026-03-15 12:00:00 UTC
BASE_TIME_MS = 1773576000000
HOUR_MS = 3600 * 1000


# ============================================================
# DATABASE FIXTURES
# ============================================================

@pytest.fixture(scope="function")
def engine(tmp_path):
    """
    Fresh file-backed SQLite store for each test function.

    A file (not :memory:) so every engine.begin() sees the same database.
    """
    db_engine = create_engine(f"sqlite:///{tmp_path / 'test_orders.db'}")
    Base.metadata.create_all(db_engine)
    yield db_engine
    db_engine.dispose()


# ============================================================
# PAYLOAD FIXTURES
# ============================================================

def make_summary_payload(order_number='22001', create_ms=BASE_TIME_MS, **overrides):
    """One element of the listOrders data array."""
    payload = {
        'orderNumber': order_number,
        'advNo': '11001',
        'tradeType': 'SELL',
        'asset': 'USDT',
        'fiat': 'COP',
        'fiatSymbol': '$',
        'amount': '125.50',
        'totalPrice': '502000.00',
        'unitPrice': '4000.00',
        'orderStatus': 4,
        'createTime': create_ms,
        'confirmPayEndTime': create_ms + HOUR_MS,
        'notifyPayEndTime': create_ms + HOUR_MS // 4,
        'sellerNickname': 'merchant-one',
        'buyerNickname': 'buyer-one',
        'commissionRate': '0.0016',
        'commission': '0.2008',
        'currencyTicketSize': '0.01',
        'assetTicketSize': '0.01',
        'priceTicketSize': '0.01',
        'chatUnreadCount': 0,
        'takerCommissionRate': '0',
        'takerCommission': '0',
        'takerAmount': '125.50',
        'additionalKycVerify': 0,
    }
    payload.update(overrides)
    return payload


def make_pay_method(pay_method_id=501, with_fields=True):
    method = {
        'id': pay_method_id,
        'identifier': 'Nequi',
        'tradeMethodName': 'Nequi',
        'iconUrlColor': '#6A1D6E',
    }
    if with_fields:
        method['fields'] = [
            {
                'fieldId': f'{pay_method_id}-1',
                'fieldName': 'Name',
                'fieldContentType': 'payee',
                'restrictionType': 1,
                'lengthLimit': 100,
                'isRequired': True,
                'isCopyable': True,
                'hintWord': 'Account holder',
                'fieldValue': 'Ana Perez',
            },
            {
                'fieldId': f'{pay_method_id}-2',
                'fieldName': 'Account number',
                'fieldContentType': 'pay_account',
                'restrictionType': 1,
                'lengthLimit': 30,
                'isRequired': True,
                'isCopyable': True,
                'fieldValue': '3001234567',
            },
        ]
    return method


def make_detail_payload(order_number='22001', taker='S10001', create_ms=BASE_TIME_MS,
                        pay_method_ids=(501,), **overrides):
    """The getUserOrderDetail data object."""
    payload = {
        'orderNumber': order_number,
        'takerUserNo': taker,
        'advOrderNumber': '11001',
        'buyerMobilePhone': '+573001112233',
        'sellerMobilePhone': '+573004445566',
        'buyerNickname': 'buyer-one',
        'buyerName': 'Ana Perez',
        'sellerNickname': 'merchant-one',
        'sellerName': 'Carlos Gomez',
        'tradeType': 'SELL',
        'payType': 'Nequi',
        'selectedPayId': 501,
        'orderStatus': 4,
        'asset': 'USDT',
        'amount': '125.50',
        'price': '4000.00',
        'totalPrice': '502000.00',
        'fiatUnit': 'COP',
        'isComplaintAllowed': True,
        'confirmPayTimeout': 15,
        'remark': '',
        'createTime': create_ms,
        'notifyPayTime': create_ms + 60000,
        'confirmPayTime': create_ms + 120000,
        'notifyPayEndTime': create_ms + HOUR_MS // 4,
        'confirmPayEndTime': create_ms + HOUR_MS,
        'expectedPayTime': create_ms + HOUR_MS // 4,
        'fiatSymbol': '$',
        'currencyTicketSize': '0.01',
        'assetTicketSize': '0.01',
        'priceTicketSize': '0.01',
        'notifyPayedExpireMinute': 15,
        'confirmPayedExpireMinute': 15,
        'clientType': 'web',
        'onlineStatus': 'online',
        'origin': 'MAKER',
        'unreadCount': 0,
        'iconUrl': 'https://example.invalid/icon.png',
        'avgReleasePeriod': 3,
        'avgPayPeriod': 5,
        'commissionRate': '0.0016',
        'commission': '0.2008',
        'takerCommissionRate': '0',
        'takerCommission': '0',
        'takerAmount': '125.50',
        'additionalKycVerify': 0,
        'fields': 2,
        'payMethods': [make_pay_method(pid) for pid in pay_method_ids],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def summary_payload():
    return make_summary_payload()


@pytest.fixture
def detail_payload():
    return make_detail_payload()


# ============================================================
# FAKE API CLIENT
# ============================================================

class FakeC2CClient:
    """
    Stands in for BinanceC2CClient.

    ``orders_for_window(start_ms, end_ms)`` returns the summary payloads
    for a window; by default every window is empty. ``details`` maps order
    number to detail payload (missing numbers answer success=false).
    """

    def __init__(self, orders_for_window=None, details=None):
        self.orders_for_window = orders_for_window or (lambda start_ms, end_ms: [])
        self.details = details or {}
        self.list_calls = []
        self.detail_calls = []

    def list_orders(self, page, rows, start_ms, end_ms, statuses=(4, 6, 7)):
        self.list_calls.append({'page': page, 'rows': rows, 'start': start_ms, 'end': end_ms})
        orders = self.orders_for_window(start_ms, end_ms)
        chunk = orders[(page - 1) * rows: page * rows]
        return {'success': True, 'total': len(orders), 'data': chunk}

    def get_order_detail(self, order_number):
        self.detail_calls.append(order_number)
        if order_number in self.details:
            return {'success': True, 'data': self.details[order_number]}
        return {'success': False, 'message': 'order not found'}


@pytest.fixture
def fake_client():
    return FakeC2CClient()


# ============================================================
# SETTINGS
# ============================================================

class StubSettings:
    """Minimal settings object for pipeline tests (no .env loading)."""

    BINANCE_API_KEY = 'test-key'
    BINANCE_API_SECRET = 'test-secret'
    BINANCE_API_URL = 'https://api.example.invalid'
    DATABASE_URL = 'sqlite://'
    KYC_FILE_PATH = ''
    REQUEST_DELAY_SECONDS = 0.25
    ORDER_PAGE_SIZE = 20
    HTTP_TIMEOUT = None
    MAX_PASSES = None


@pytest.fixture
def stub_settings():
    return StubSettings()


def utc(*args):
    """Shorthand for an aware UTC datetime."""
    return datetime(*args, tzinfo=timezone.utc)


def seed_order(engine, order_number, create_ms, taker='S10001', **detail_overrides):
    """Load one complete order into the store and return the outcome."""
    from src.etl.load import load_order
    from src.etl.payloads import OrderDetail, OrderSummary

    summary = OrderSummary.from_payload(make_summary_payload(order_number, create_ms))
    detail = OrderDetail.from_payload(
        make_detail_payload(order_number, taker=taker, create_ms=create_ms, **detail_overrides)
    )
    return load_order(engine, summary, detail)
