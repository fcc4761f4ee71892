"""
KYC Update Batch
================
Applies identity-verification answers from the KYC form export (an
.xlsx workbook) onto Users rows created by the order extraction.

Each form row names an order. The order's taker is looked up in
OrderDetails and only completed orders (status 4) qualify; the taker's
identity columns are then overwritten and KycAvailable set to true.
Extraction never writes these columns, so a later sync cannot undo them.
"""

from datetime import date, datetime
from pathlib import Path
from zipfile import BadZipFile
from typing import Dict, Optional

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from src.database.models import OrderDetail, User
from src.utils.safe_logging import PIIProtector, get_safe_logger

logger = get_safe_logger(__name__)

KYC_SHEET_NAME = 'Respuestas de formulario 1'
COMPLETED_ORDER_STATUS = 4

# Form column headers
COL_ORDER = 'OrdenID (NO EDITAR)'
COL_OPERATION = 'OPERACION'
COL_NATIONALITY = 'Nacionalidad'
COL_CITY = 'Ciudad de residencia'
COL_PHONE = 'Número Celular'
COL_EMAIL = 'Email'
COL_FULL_NAME = 'NOMBRE'
COL_DOCUMENT_ID = 'NUMERO DOCUMENTO'
COL_DOCUMENT_TYPE = 'Tipo documento'
COL_TIMESTAMP = 'Marca temporal'

PENDING_OPERATION = 'PENDIENTE'

_TIMESTAMP_FORMATS = (
    '%d/%m/%Y %H:%M:%S',
    '%d/%m/%Y %H:%M',
    '%d/%m/%Y',
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d',
)


def cell_text(value) -> str:
    """Cell value as trimmed text ('' for empty cells)."""
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        # Numeric cells: 12345.0 -> '12345'
        return str(int(value))
    return str(value).strip()


def parse_kyc_date(value) -> Optional[date]:
    """Date part of the form timestamp, None when it cannot be read."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = cell_text(value)
    for fmt in _TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def read_kyc_rows(workbook_path, sheet_name: str = KYC_SHEET_NAME):
    """
    Read the form sheet as a list of dicts keyed by header.

    Raises:
        KeyError: if the sheet does not exist
    """
    workbook = openpyxl.load_workbook(workbook_path, read_only=True, data_only=True)
    try:
        if sheet_name not in workbook.sheetnames:
            raise KeyError(f"Sheet '{sheet_name}' not found in {workbook_path}")

        rows = workbook[sheet_name].iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            return []

        columns = [cell_text(name) for name in header]
        return [dict(zip(columns, values)) for values in rows]
    finally:
        workbook.close()


def _find_order_taker(conn, order_number: str):
    table = OrderDetail.__table__
    return conn.execute(
        select(table.c.taker_user_no, table.c.order_status)
        .where(table.c.order_number == order_number)
    ).first()


def _update_user(conn, taker_user_no: str, row: Dict) -> int:
    table = User.__table__
    result = conn.execute(
        update(table)
        .where(table.c.taker_user_no == taker_user_no)
        .values(
            city=cell_text(row.get(COL_CITY)),
            phone=cell_text(row.get(COL_PHONE)),
            email=cell_text(row.get(COL_EMAIL)),
            nationality=cell_text(row.get(COL_NATIONALITY)),
            identification_full_name=cell_text(row.get(COL_FULL_NAME)),
            identification_id=cell_text(row.get(COL_DOCUMENT_ID)),
            identification_type=cell_text(row.get(COL_DOCUMENT_TYPE)),
            kyc_date=parse_kyc_date(row.get(COL_TIMESTAMP)),
            kyc_available=True,
        )
    )
    return result.rowcount


def apply_kyc_updates(engine, workbook_path, sheet_name: str = KYC_SHEET_NAME) -> Dict:
    """
    Apply the KYC workbook to the Users table.

    Args:
        engine: SQLAlchemy engine for the order store
        workbook_path: Path to the .xlsx export
        sheet_name: Worksheet holding the form answers

    Returns:
        dict with: 'rows', 'updated', 'skipped', 'not_completed', 'errors': int
        and 'error': str when the workbook could not be read
    """
    result = {'rows': 0, 'updated': 0, 'skipped': 0, 'not_completed': 0, 'errors': 0}

    if not workbook_path or not Path(workbook_path).is_file():
        logger.error(f"KYC file not found: {workbook_path}")
        result['error'] = 'file not found'
        return result

    logger.info(f"Reading KYC file: {workbook_path}")

    try:
        rows = read_kyc_rows(workbook_path, sheet_name)
    except (KeyError, InvalidFileException, BadZipFile, OSError) as e:
        logger.error(f"Could not read KYC file: {e}")
        result['error'] = str(e)
        return result

    result['rows'] = len(rows)
    logger.info(f"Found {len(rows)} KYC records, processing...")

    for row in rows:
        order_number = cell_text(row.get(COL_ORDER))
        operation = cell_text(row.get(COL_OPERATION))
        nationality = cell_text(row.get(COL_NATIONALITY))

        if not order_number or operation.upper() == PENDING_OPERATION or not nationality:
            result['skipped'] += 1
            continue

        try:
            with engine.begin() as conn:
                match = _find_order_taker(conn, order_number)
                if match is None or match.order_status != COMPLETED_ORDER_STATUS:
                    result['not_completed'] += 1
                    continue

                if not match.taker_user_no:
                    result['skipped'] += 1
                    continue

                if _update_user(conn, match.taker_user_no, row) > 0:
                    result['updated'] += 1
                    logger.info("User KYC updated", taker=match.taker_user_no, order=order_number)

        except SQLAlchemyError as e:
            logger.error(
                f"KYC update failed for order {order_number}: "
                f"{PIIProtector.sanitize_message(str(e))}"
            )
            result['errors'] += 1

    logger.info(f"KYC update finished: {result['updated']} users updated")
    return result
