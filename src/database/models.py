"""
Database Models
Defines the structure of the C2C order tables

Table and column names are the quoted PascalCase identifiers of the
production PostgreSQL schema. Every column is keyed by its snake_case
attribute name, so Core statements address `table.c.order_number` while the
SQL renders "OrderNumber".
"""

from sqlalchemy import (
    create_engine, Column, Integer, BigInteger, String, Numeric, Date, DateTime,
    Boolean, Text, ForeignKey, ForeignKeyConstraint,
)
from sqlalchemy.orm import declarative_base
import logging
import os

logger = logging.getLogger(__name__)

Base = declarative_base()

# Asset amounts carry up to 8 decimals, rates a little more
Amount = Numeric(28, 8)
Rate = Numeric(18, 10)


class User(Base):
    """Trading counterparty, keyed by the taker user number"""
    __tablename__ = 'Users'

    taker_user_no = Column('TakerUserNo', String(64), primary_key=True, key='taker_user_no')
    nickname = Column('Nickname', String(255), key='nickname')
    full_name = Column('FullName', String(255), key='full_name')
    mobile_phone = Column('MobilePhone', String(64), key='mobile_phone')

    # Written by the KYC batch only
    city = Column('City', String(255), key='city')
    phone = Column('Phone', String(64), key='phone')
    email = Column('Email', String(255), key='email')
    nationality = Column('Nationality', String(255), key='nationality')
    identification_full_name = Column('IdentificationFullName', String(255), key='identification_full_name')
    identification_id = Column('IdentificationID', String(64), key='identification_id')
    identification_type = Column('IdentificationType', String(64), key='identification_type')
    kyc_date = Column('KycDate', Date, key='kyc_date')
    kyc_available = Column('KycAvailable', Boolean, nullable=False, default=False, key='kyc_available')
    kyc_level = Column('KycLevel', Integer, nullable=False, default=1, key='kyc_level')

    def __repr__(self):
        return f"<User(taker={self.taker_user_no}, kyc={self.kyc_available})>"


class Order(Base):
    """One matched C2C order, as returned by the list endpoint"""
    __tablename__ = 'Orders'

    order_number = Column('OrderNumber', String(64), primary_key=True, key='order_number')
    adv_no = Column('AdvNo', String(64), key='adv_no')
    trade_type = Column('TradeType', String(16), key='trade_type')
    asset = Column('Asset', String(16), key='asset')
    fiat = Column('Fiat', String(16), key='fiat')
    fiat_symbol = Column('FiatSymbol', String(16), key='fiat_symbol')
    amount = Column('Amount', Amount, key='amount')
    total_price = Column('TotalPrice', Amount, key='total_price')
    order_status = Column('OrderStatus', Integer, key='order_status')
    create_time = Column('CreateTime', DateTime(timezone=True), nullable=False, index=True, key='create_time')
    confirm_pay_end_time = Column('ConfirmPayEndTime', DateTime(timezone=True), key='confirm_pay_end_time')
    notify_pay_end_time = Column('NotifyPayEndTime', DateTime(timezone=True), key='notify_pay_end_time')
    seller_nickname = Column('SellerNickname', String(255), key='seller_nickname')
    buyer_nickname = Column('BuyerNickname', String(255), key='buyer_nickname')
    commission_rate = Column('CommissionRate', Rate, key='commission_rate')
    commission = Column('Commission', Amount, key='commission')
    currency_ticket_size = Column('CurrencyTicketSize', Amount, key='currency_ticket_size')
    asset_ticket_size = Column('AssetTicketSize', Amount, key='asset_ticket_size')
    price_ticket_size = Column('PriceTicketSize', Amount, key='price_ticket_size')
    chat_unread_count = Column('ChatUnreadCount', Integer, key='chat_unread_count')
    taker_commission_rate = Column('TakerCommissionRate', Rate, key='taker_commission_rate')
    taker_commission = Column('TakerCommission', Amount, key='taker_commission')
    taker_amount = Column('TakerAmount', Amount, key='taker_amount')
    additional_kyc_verify = Column('AdditionalKycVerify', Integer, key='additional_kyc_verify')

    def __repr__(self):
        return f"<Order(number={self.order_number}, status={self.order_status})>"


class OrderDetail(Base):
    """Enriched view of an order from the detail endpoint"""
    __tablename__ = 'OrderDetails'

    order_number = Column('OrderNumber', String(64), primary_key=True, key='order_number')
    taker_user_no = Column('TakerUserNo', String(64), ForeignKey(User.__table__.c.taker_user_no), nullable=False, key='taker_user_no')
    adv_order_number = Column('AdvOrderNumber', String(64), key='adv_order_number')
    buyer_mobile_phone = Column('BuyerMobilePhone', String(64), key='buyer_mobile_phone')
    seller_mobile_phone = Column('SellerMobilePhone', String(64), key='seller_mobile_phone')
    buyer_nickname = Column('BuyerNickname', String(255), key='buyer_nickname')
    buyer_name = Column('BuyerName', String(255), key='buyer_name')
    seller_nickname = Column('SellerNickname', String(255), key='seller_nickname')
    seller_name = Column('SellerName', String(255), key='seller_name')
    trade_type = Column('TradeType', String(16), key='trade_type')
    pay_type = Column('PayType', String(64), key='pay_type')
    selected_pay_id = Column('SelectedPayId', BigInteger, key='selected_pay_id')
    order_status = Column('OrderStatus', Integer, key='order_status')
    asset = Column('Asset', String(16), key='asset')
    amount = Column('Amount', Amount, key='amount')
    price = Column('Price', Amount, key='price')
    total_price = Column('TotalPrice', Amount, key='total_price')
    fiat_unit = Column('FiatUnit', String(16), key='fiat_unit')
    is_complaint_allowed = Column('IsComplaintAllowed', Boolean, key='is_complaint_allowed')
    confirm_pay_timeout = Column('ConfirmPayTimeout', Integer, key='confirm_pay_timeout')
    remark = Column('Remark', Text, key='remark')
    create_time = Column('CreateTime', DateTime(timezone=True), nullable=False, key='create_time')
    notify_pay_time = Column('NotifyPayTime', DateTime(timezone=True), key='notify_pay_time')
    confirm_pay_time = Column('ConfirmPayTime', DateTime(timezone=True), key='confirm_pay_time')
    notify_pay_end_time = Column('NotifyPayEndTime', DateTime(timezone=True), key='notify_pay_end_time')
    confirm_pay_end_time = Column('ConfirmPayEndTime', DateTime(timezone=True), key='confirm_pay_end_time')
    expected_pay_time = Column('ExpectedPayTime', DateTime(timezone=True), key='expected_pay_time')
    expected_release_time = Column('ExpectedReleaseTime', DateTime(timezone=True), key='expected_release_time')
    fiat_symbol = Column('FiatSymbol', String(16), key='fiat_symbol')
    currency_ticket_size = Column('CurrencyTicketSize', Amount, key='currency_ticket_size')
    asset_ticket_size = Column('AssetTicketSize', Amount, key='asset_ticket_size')
    price_ticket_size = Column('PriceTicketSize', Amount, key='price_ticket_size')
    notify_payed_expire_minute = Column('NotifyPayedExpireMinute', Integer, key='notify_payed_expire_minute')
    confirm_payed_expire_minute = Column('ConfirmPayedExpireMinute', Integer, key='confirm_payed_expire_minute')
    client_type = Column('ClientType', String(32), key='client_type')
    online_status = Column('OnlineStatus', String(32), key='online_status')
    merchant_no = Column('MerchantNo', String(64), key='merchant_no')
    origin = Column('Origin', String(64), key='origin')
    unread_count = Column('UnreadCount', Integer, key='unread_count')
    icon_url = Column('IconUrl', Text, key='icon_url')
    avg_release_period = Column('AvgReleasePeriod', Integer, key='avg_release_period')
    avg_pay_period = Column('AvgPayPeriod', Integer, key='avg_pay_period')
    commission_rate = Column('CommissionRate', Rate, key='commission_rate')
    commission = Column('Commission', Amount, key='commission')
    taker_commission_rate = Column('TakerCommissionRate', Rate, key='taker_commission_rate')
    taker_commission = Column('TakerCommission', Amount, key='taker_commission')
    taker_amount = Column('TakerAmount', Amount, key='taker_amount')
    additional_kyc_verify = Column('AdditionalKycVerify', Integer, key='additional_kyc_verify')

    def __repr__(self):
        return f"<OrderDetail(number={self.order_number}, taker={self.taker_user_no})>"


class PayMethod(Base):
    """Payment option offered on one order"""
    __tablename__ = 'PayMethods'

    pay_method_id = Column('PayMethodId', BigInteger, primary_key=True, autoincrement=False, key='pay_method_id')
    order_number = Column('OrderNumber', String(64), primary_key=True, key='order_number')
    identifier = Column('Identifier', String(128), key='identifier')
    trade_method_name = Column('TradeMethodName', String(255), key='trade_method_name')
    icon_url_color = Column('IconUrlColor', String(32), key='icon_url_color')

    def __repr__(self):
        return f"<PayMethod(id={self.pay_method_id}, order={self.order_number})>"


class PayMethodField(Base):
    """Labeled attribute of a pay method (account number, bank name...)"""
    __tablename__ = 'PayMethodFields'
    __table_args__ = (
        ForeignKeyConstraint(
            ['pay_method_id', 'order_number'],
            [PayMethod.__table__.c.pay_method_id, PayMethod.__table__.c.order_number],
            ondelete='CASCADE',
        ),
    )

    field_id = Column('FieldId', String(64), primary_key=True, key='field_id')
    pay_method_id = Column('PayMethodId', BigInteger, primary_key=True, autoincrement=False, key='pay_method_id')
    order_number = Column('OrderNumber', String(64), primary_key=True, key='order_number')
    field_name = Column('FieldName', String(255), key='field_name')
    field_content_type = Column('FieldContentType', String(64), key='field_content_type')
    restriction_type = Column('RestrictionType', Integer, key='restriction_type')
    length_limit = Column('LengthLimit', Integer, key='length_limit')
    is_required = Column('IsRequired', Boolean, key='is_required')
    is_copyable = Column('IsCopyable', Boolean, key='is_copyable')
    hint_word = Column('HintWord', Text, key='hint_word')
    field_value = Column('FieldValue', Text, key='field_value')

    def __repr__(self):
        return f"<PayMethodField(id={self.field_id}, pay_method={self.pay_method_id})>"


# Database initialization and helper functions
class Database:
    """Database management and operations"""

    def __init__(self, database_url: str = None, **engine_kwargs):
        if database_url is None:
            database_url = os.getenv('DATABASE_URL', 'sqlite:///data/p2p_orders.db')

        # Create directory for file-based SQLite databases
        if database_url.startswith('sqlite:///') and database_url != 'sqlite:///:memory:':
            db_dir = os.path.dirname(database_url[len('sqlite:///'):])
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)

        self.engine = create_engine(database_url, echo=False, **engine_kwargs)

    def create_all_tables(self):
        """Create all tables in the database"""
        Base.metadata.create_all(self.engine)
        logger.info("All database tables created")
