"""
C2C API Payload Types
=====================
Typed views of the two payload shapes returned by the C2C API: the order
summary (one element of the list endpoint's ``data`` array) and the order
detail (the detail endpoint's ``data`` object).

Every attribute maps one JSON key. Optional keys that are missing from the
payload are ``None`` on the dataclass and NULL in the database; decimals
are the exception and normalize to zero (see transform.to_decimal).
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from src.etl.transform import to_bool, to_datetime, to_decimal, to_int, to_str

_READERS = {
    'str': to_str,
    'int': to_int,
    'bool': to_bool,
    'decimal': to_decimal,
    'time': to_datetime,
}


def _key(json_key: str, kind: str = 'str'):
    """Declare a column attribute read from ``json_key``."""
    return field(default=None, metadata={'key': json_key, 'kind': kind})


def _read(cls, data: Dict) -> Dict:
    values = {}
    for f in fields(cls):
        if 'key' in f.metadata:
            values[f.name] = _READERS[f.metadata['kind']](data, f.metadata['key'])
    return values


class _Payload:
    """Shared row export for the payload dataclasses."""

    def as_row(self) -> Dict:
        """Column attributes only, keyed by model attribute name."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if 'key' in f.metadata
        }


@dataclass
class PayMethodField(_Payload):
    field_id: Optional[str] = _key('fieldId')
    field_name: Optional[str] = _key('fieldName')
    field_content_type: Optional[str] = _key('fieldContentType')
    restriction_type: Optional[int] = _key('restrictionType', 'int')
    length_limit: Optional[int] = _key('lengthLimit', 'int')
    is_required: Optional[bool] = _key('isRequired', 'bool')
    is_copyable: Optional[bool] = _key('isCopyable', 'bool')
    hint_word: Optional[str] = _key('hintWord')
    field_value: Optional[str] = _key('fieldValue')

    @classmethod
    def from_payload(cls, data: Dict) -> 'PayMethodField':
        return cls(**_read(cls, data))


@dataclass
class PayMethod(_Payload):
    pay_method_id: Optional[int] = _key('id', 'int')
    identifier: Optional[str] = _key('identifier')
    trade_method_name: Optional[str] = _key('tradeMethodName')
    icon_url_color: Optional[str] = _key('iconUrlColor')
    fields: List[PayMethodField] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: Dict) -> 'PayMethod':
        method = cls(**_read(cls, data))
        method.fields = [
            PayMethodField.from_payload(item)
            for item in (data.get('fields') or [])
            if isinstance(item, dict)
        ]
        return method


@dataclass
class OrderSummary(_Payload):
    """One element of the listOrders ``data`` array."""

    order_number: Optional[str] = _key('orderNumber')
    adv_no: Optional[str] = _key('advNo')
    trade_type: Optional[str] = _key('tradeType')
    asset: Optional[str] = _key('asset')
    fiat: Optional[str] = _key('fiat')
    fiat_symbol: Optional[str] = _key('fiatSymbol')
    amount: Decimal = _key('amount', 'decimal')
    total_price: Decimal = _key('totalPrice', 'decimal')
    order_status: Optional[int] = _key('orderStatus', 'int')
    create_time: Optional[datetime] = _key('createTime', 'time')
    confirm_pay_end_time: Optional[datetime] = _key('confirmPayEndTime', 'time')
    notify_pay_end_time: Optional[datetime] = _key('notifyPayEndTime', 'time')
    seller_nickname: Optional[str] = _key('sellerNickname')
    buyer_nickname: Optional[str] = _key('buyerNickname')
    commission_rate: Decimal = _key('commissionRate', 'decimal')
    commission: Decimal = _key('commission', 'decimal')
    currency_ticket_size: Decimal = _key('currencyTicketSize', 'decimal')
    asset_ticket_size: Decimal = _key('assetTicketSize', 'decimal')
    price_ticket_size: Decimal = _key('priceTicketSize', 'decimal')
    chat_unread_count: Optional[int] = _key('chatUnreadCount', 'int')
    taker_commission_rate: Decimal = _key('takerCommissionRate', 'decimal')
    taker_commission: Decimal = _key('takerCommission', 'decimal')
    taker_amount: Decimal = _key('takerAmount', 'decimal')
    additional_kyc_verify: Optional[int] = _key('additionalKycVerify', 'int')
    raw: Dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, data: Dict) -> 'OrderSummary':
        return cls(raw=data, **_read(cls, data))


@dataclass
class OrderDetail(_Payload):
    """The getUserOrderDetail ``data`` object."""

    order_number: Optional[str] = _key('orderNumber')
    taker_user_no: Optional[str] = _key('takerUserNo')
    adv_order_number: Optional[str] = _key('advOrderNumber')
    buyer_mobile_phone: Optional[str] = _key('buyerMobilePhone')
    seller_mobile_phone: Optional[str] = _key('sellerMobilePhone')
    buyer_nickname: Optional[str] = _key('buyerNickname')
    buyer_name: Optional[str] = _key('buyerName')
    seller_nickname: Optional[str] = _key('sellerNickname')
    seller_name: Optional[str] = _key('sellerName')
    trade_type: Optional[str] = _key('tradeType')
    pay_type: Optional[str] = _key('payType')
    selected_pay_id: Optional[int] = _key('selectedPayId', 'int')
    order_status: Optional[int] = _key('orderStatus', 'int')
    asset: Optional[str] = _key('asset')
    amount: Decimal = _key('amount', 'decimal')
    price: Decimal = _key('price', 'decimal')
    total_price: Decimal = _key('totalPrice', 'decimal')
    fiat_unit: Optional[str] = _key('fiatUnit')
    is_complaint_allowed: Optional[bool] = _key('isComplaintAllowed', 'bool')
    confirm_pay_timeout: Optional[int] = _key('confirmPayTimeout', 'int')
    remark: Optional[str] = _key('remark')
    create_time: Optional[datetime] = _key('createTime', 'time')
    notify_pay_time: Optional[datetime] = _key('notifyPayTime', 'time')
    confirm_pay_time: Optional[datetime] = _key('confirmPayTime', 'time')
    notify_pay_end_time: Optional[datetime] = _key('notifyPayEndTime', 'time')
    confirm_pay_end_time: Optional[datetime] = _key('confirmPayEndTime', 'time')
    expected_pay_time: Optional[datetime] = _key('expectedPayTime', 'time')
    expected_release_time: Optional[datetime] = _key('expectedReleaseTime', 'time')
    fiat_symbol: Optional[str] = _key('fiatSymbol')
    currency_ticket_size: Decimal = _key('currencyTicketSize', 'decimal')
    asset_ticket_size: Decimal = _key('assetTicketSize', 'decimal')
    price_ticket_size: Decimal = _key('priceTicketSize', 'decimal')
    notify_payed_expire_minute: Optional[int] = _key('notifyPayedExpireMinute', 'int')
    confirm_payed_expire_minute: Optional[int] = _key('confirmPayedExpireMinute', 'int')
    client_type: Optional[str] = _key('clientType')
    online_status: Optional[str] = _key('onlineStatus')
    merchant_no: Optional[str] = _key('merchantNo')
    origin: Optional[str] = _key('origin')
    unread_count: Optional[int] = _key('unreadCount', 'int')
    icon_url: Optional[str] = _key('iconUrl')
    avg_release_period: Optional[int] = _key('avgReleasePeriod', 'int')
    avg_pay_period: Optional[int] = _key('avgPayPeriod', 'int')
    commission_rate: Decimal = _key('commissionRate', 'decimal')
    commission: Decimal = _key('commission', 'decimal')
    taker_commission_rate: Decimal = _key('takerCommissionRate', 'decimal')
    taker_commission: Decimal = _key('takerCommission', 'decimal')
    taker_amount: Decimal = _key('takerAmount', 'decimal')
    additional_kyc_verify: Optional[int] = _key('additionalKycVerify', 'int')
    declared_field_count: int = 0
    pay_methods: List[PayMethod] = field(default_factory=list)
    raw: Dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, data: Dict) -> 'OrderDetail':
        detail = cls(raw=data, **_read(cls, data))
        detail.declared_field_count = to_int(data, 'fields') or 0
        detail.pay_methods = [
            PayMethod.from_payload(item)
            for item in (data.get('payMethods') or [])
            if isinstance(item, dict)
        ]
        return detail
