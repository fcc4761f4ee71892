"""
ETL Load Layer
==============
Writes one order (summary + detail) into the store as a single
transaction:

  1. Users          upsert, volatile profile columns only
  2. Orders         upsert, every column
  3. OrderDetails   upsert, every column
  4. PayMethods / PayMethodFields   delete, then insert the current set

A failure anywhere rolls back that order alone. Every statement is keyed
by business identifiers, so loading the same order twice leaves the same
rows behind.
"""

import logging
from enum import Enum

from sqlalchemy import delete
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from src.database.models import Order, OrderDetail, PayMethod, PayMethodField, User
from src.etl.transform import (
    order_detail_row,
    order_row,
    pay_method_field_rows,
    pay_method_rows,
    user_row,
)
from src.utils.safe_logging import PIIProtector

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    'postgresql': postgresql.insert,
    'sqlite': sqlite.insert,
}

# Errors that abort one order's transaction without stopping the batch
LOAD_ERRORS = (SQLAlchemyError, KeyError, TypeError, ValueError, ArithmeticError)


class LoadOutcome(Enum):
    COMMITTED = 'committed'
    SKIPPED = 'skipped'
    FAILED = 'failed'


def _insert_for(conn):
    """Dialect insert construct supporting ON CONFLICT."""
    name = conn.dialect.name
    try:
        return _DIALECT_INSERTS[name]
    except KeyError:
        raise SQLAlchemyError(f"Dialect '{name}' does not support ON CONFLICT upserts")


def _upsert(conn, table, row, key_columns, update_columns):
    insert = _insert_for(conn)
    stmt = insert(table).values(**row)
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c[name] for name in key_columns],
        set_={name: stmt.excluded[name] for name in update_columns},
    )
    conn.execute(stmt)


def _insert_ignore(conn, table, rows, key_columns):
    if not rows:
        return
    insert = _insert_for(conn)
    for row in rows:
        stmt = insert(table).values(**row).on_conflict_do_nothing(
            index_elements=[table.c[name] for name in key_columns]
        )
        conn.execute(stmt)


def save_user(conn, detail):
    """Insert the taker with KYC defaults, or refresh nickname/name/phone."""
    table = User.__table__
    row = user_row(detail)
    row.update(kyc_available=False, kyc_level=1)
    _upsert(
        conn, table, row,
        key_columns=['taker_user_no'],
        update_columns=['nickname', 'full_name', 'mobile_phone'],
    )


def save_order(conn, summary):
    table = Order.__table__
    row = order_row(summary)
    _upsert(
        conn, table, row,
        key_columns=['order_number'],
        update_columns=[name for name in row if name != 'order_number'],
    )


def save_order_detail(conn, detail, taker_user_no):
    table = OrderDetail.__table__
    row = order_detail_row(detail, taker_user_no)
    _upsert(
        conn, table, row,
        key_columns=['order_number'],
        update_columns=[name for name in row if name != 'order_number'],
    )


def save_pay_methods(conn, detail):
    """Replace the order's pay methods and fields with the detail's current set."""
    order_number = detail.order_number

    conn.execute(
        delete(PayMethodField.__table__)
        .where(PayMethodField.__table__.c.order_number == order_number)
    )
    conn.execute(
        delete(PayMethod.__table__)
        .where(PayMethod.__table__.c.order_number == order_number)
    )

    _insert_ignore(
        conn, PayMethod.__table__, pay_method_rows(detail),
        key_columns=['pay_method_id', 'order_number'],
    )
    _insert_ignore(
        conn, PayMethodField.__table__, pay_method_field_rows(detail),
        key_columns=['field_id', 'pay_method_id', 'order_number'],
    )


def load_order(engine, summary, detail) -> LoadOutcome:
    """
    Persist one order atomically.

    Args:
        engine: SQLAlchemy engine for the order store
        summary: OrderSummary from the list endpoint
        detail: OrderDetail from the detail endpoint, or None if unavailable

    Returns:
        LoadOutcome.COMMITTED, SKIPPED (no detail / no taker) or FAILED
    """
    order_number = summary.order_number

    if not order_number:
        logger.warning("Skipping order summary without orderNumber")
        return LoadOutcome.SKIPPED

    if detail is None:
        logger.warning("No detail for order %s, skipped", order_number)
        return LoadOutcome.SKIPPED

    taker_user_no = detail.taker_user_no
    if not taker_user_no:
        logger.warning("No takerUserNo in detail for order %s, skipped", order_number)
        return LoadOutcome.SKIPPED

    try:
        # engine.begin() commits on exit and rolls back if anything raises
        with engine.begin() as conn:
            save_user(conn, detail)
            save_order(conn, summary)
            save_order_detail(conn, detail, taker_user_no)
            save_pay_methods(conn, detail)

    except LOAD_ERRORS as e:
        logger.error(
            "Failed to save order %s, rolled back: %s",
            order_number, PIIProtector.sanitize_message(str(e))
        )
        return LoadOutcome.FAILED

    logger.debug("Order %s saved", order_number)
    return LoadOutcome.COMMITTED
