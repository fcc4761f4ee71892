"""
P2P Order ETL - Pipeline
========================
Extracts Binance C2C orders and loads them into the relational store,
resuming from the newest stored order on every run.

Pipeline: Resolve window → Extract → Transform → Load
  - window.py:    Next date range from MAX("CreateTime") in Orders
  - extract.py:   Paginated order list + per-order detail calls
  - transform.py: Decimal/timestamp normalization and row mapping
  - load.py:      Per-order transactional upserts
  - pipeline.py:  Pass loop with window widening until caught up
  - kyc.py:       Identity-verification updates from the KYC workbook
"""

from src.etl.extract import fetch_order_detail, fetch_order_list
from src.etl.kyc import apply_kyc_updates
from src.etl.load import LoadOutcome, load_order
from src.etl.pipeline import OrderSyncPipeline
from src.etl.window import Window, resolve_window

__all__ = [
    'fetch_order_list',
    'fetch_order_detail',
    'apply_kyc_updates',
    'LoadOutcome',
    'load_order',
    'OrderSyncPipeline',
    'Window',
    'resolve_window',
]
