"""
P2P Order ETL - Pipeline Runner
================================
Runs the Binance C2C order sync:
  1. Extract orders window by window, resuming from the newest stored order
  2. Load each order with its detail, user and pay methods
  3. Apply the KYC workbook to the stored users

Usage:
    python scripts/run_etl.py                        # Sync orders, then KYC
    python scripts/run_etl.py --skip-kyc             # Orders only
    python scripts/run_etl.py --kyc-only             # KYC workbook only
    python scripts/run_etl.py --kyc-file answers.xlsx
    python scripts/run_etl.py --max-passes 5         # Stop after 5 windows
    python scripts/run_etl.py --init-db              # Create tables first
"""

import sys
import argparse
import logging
from pathlib import Path

# Ensure project root is in path
PROJECT_DIR = Path(__file__).resolve().parent.parent
if str(PROJECT_DIR) not in sys.path:
    sys.path.insert(0, str(PROJECT_DIR))

from config.settings import ConfigurationError, Settings
from src.api.binance_c2c import BinanceC2CClient
from src.database.models import Database
from src.etl.extract import OrderListFetchError
from src.etl.kyc import apply_kyc_updates
from src.etl.pipeline import OrderSyncPipeline
from src.etl.window import WindowResolutionError

logger = logging.getLogger(__name__)


def configure_logging(settings):
    handlers = [logging.StreamHandler()]
    if settings.LOG_FILE:
        Path(settings.LOG_FILE).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.LOG_FILE))

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='[%(asctime)s] [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=handlers,
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description='Sync Binance C2C orders into the database'
    )
    parser.add_argument(
        '--env-file', type=str, default=None,
        help='Path to a .env file (default: config/.env.<ETL_ENV> or .env)'
    )
    parser.add_argument(
        '--kyc-file', type=str, default=None,
        help='KYC workbook path (default: KYC_FILE_PATH setting)'
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        '--skip-kyc', action='store_true',
        help='Do not apply the KYC workbook after the sync'
    )
    group.add_argument(
        '--kyc-only', action='store_true',
        help='Only apply the KYC workbook'
    )
    parser.add_argument(
        '--max-passes', type=int, default=None,
        help='Stop after this many extraction windows'
    )
    parser.add_argument(
        '--init-db', action='store_true',
        help='Create missing tables before running'
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    settings = Settings(env_file=args.env_file)
    configure_logging(settings)

    if args.max_passes is not None:
        settings.MAX_PASSES = args.max_passes

    logger.info("=" * 60)
    logger.info("P2P ORDER ETL - Binance C2C to database")
    logger.info("=" * 60)

    try:
        settings.validate()
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return 1

    db = Database(settings.DATABASE_URL)
    if args.init_db:
        db.create_all_tables()

    if not args.kyc_only:
        client = BinanceC2CClient.from_settings(settings)
        pipeline = OrderSyncPipeline(settings, client, db.engine)

        try:
            stats = pipeline.run()
        except (WindowResolutionError, OrderListFetchError) as e:
            logger.error("ETL pipeline failed: %s", e)
            return 1

        logger.info("-" * 60)
        logger.info("PIPELINE SUMMARY")
        logger.info("-" * 60)
        logger.info("  Passes: %d", stats['passes'])
        logger.info("  Orders: %d fetched, %d saved, %d skipped, %d failed",
                    stats['fetched'], stats['committed'],
                    stats['skipped'], stats['failed'])
        logger.info("  Caught up to yesterday: %s", 'yes' if stats['caught_up'] else 'no')

    if not args.skip_kyc:
        kyc_file = args.kyc_file or settings.KYC_FILE_PATH
        kyc_stats = apply_kyc_updates(db.engine, kyc_file)
        logger.info("  KYC: %d rows, %d users updated, %d not completed, %d skipped",
                    kyc_stats['rows'], kyc_stats['updated'],
                    kyc_stats['not_completed'], kyc_stats['skipped'])

    logger.info("=" * 60)
    logger.info("[OK] ETL PIPELINE COMPLETED")
    logger.info("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
