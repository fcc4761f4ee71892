"""
C2C Order Sync Pipeline
=======================
Drives repeated extraction passes until the store is caught up to
yesterday:

    RESOLVING -> FETCHING -> PROCESSING -> DECIDING -> RESOLVING ... -> DONE

Each pass resolves a window from the newest stored order, fetches the
window's order list, then fetches and loads every order's detail. A pass
that yields nothing grows the window by one day so sparse stretches of
history are crossed instead of retried forever; once a zero-yield window
already ends at yesterday the run is complete. Any pass that yields orders
resets the span to one day.
"""

import time
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Optional

from src.etl.extract import fetch_order_detail, fetch_order_list
from src.etl.load import LoadOutcome, load_order
from src.etl.window import resolve_window, yesterday_utc

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    RESOLVING = 'resolving'
    FETCHING = 'fetching'
    PROCESSING = 'processing'
    DECIDING = 'deciding'
    DONE = 'done'


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OrderSyncPipeline:
    """
    Incremental C2C order extraction into the relational store.

    Usage:
        pipeline = OrderSyncPipeline(settings, client, engine)
        stats = pipeline.run()
    """

    def __init__(
        self,
        settings,
        client,
        engine,
        sleep: Callable[[float], None] = time.sleep,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            settings: Settings (page size, pacing delay, optional pass limit)
            client: BinanceC2CClient
            engine: SQLAlchemy engine for the order store
            sleep: Sleep function override (for testing)
            clock: Returns the current UTC time (for testing)
        """
        self.settings = settings
        self.client = client
        self.engine = engine
        self.sleep = sleep
        self.clock = clock or _utc_now

        self.page_size = settings.ORDER_PAGE_SIZE
        self.delay_seconds = settings.REQUEST_DELAY_SECONDS
        self.max_passes = settings.MAX_PASSES

    def _process_orders(self, summaries, stats: Dict):
        """Fetch and load every order of a pass, in list order."""
        count = len(summaries)
        logger.info("Processing %d orders...", count)

        for index, summary in enumerate(summaries, start=1):
            order_number = summary.order_number
            logger.info("Processing %d/%d: order %s", index, count, order_number)

            detail = None
            if order_number:
                detail = fetch_order_detail(self.client, order_number)

            outcome = load_order(self.engine, summary, detail)
            stats[outcome.value] += 1

            self.sleep(self.delay_seconds)

    def run(self) -> Dict:
        """
        Run extraction passes until caught up.

        Returns:
            dict with: 'passes', 'fetched', 'committed', 'skipped',
            'failed': int and 'caught_up': bool

        Raises:
            WindowResolutionError: if the checkpoint read fails
            OrderListFetchError: if an order list cannot be fetched
        """
        stats = {
            'passes': 0,
            'fetched': 0,
            LoadOutcome.COMMITTED.value: 0,
            LoadOutcome.SKIPPED.value: 0,
            LoadOutcome.FAILED.value: 0,
            'caught_up': False,
        }

        widen_days = 1
        state = PipelineState.RESOLVING
        window = None
        summaries = []
        # Window start of the last pass that fetched orders
        yield_start = None

        while state is not PipelineState.DONE:
            logger.debug("Pipeline state: %s", state.value)

            if state is PipelineState.RESOLVING:
                if self.max_passes is not None and stats['passes'] >= self.max_passes:
                    logger.info("Reached pass limit (%d), stopping", self.max_passes)
                    state = PipelineState.DONE
                    continue

                window = resolve_window(self.engine, widen_days, now=self.clock())
                if window is None:
                    stats['caught_up'] = True
                    state = PipelineState.DONE
                elif window.start == yield_start:
                    # Orders were fetched but none moved the checkpoint
                    logger.error(
                        "Checkpoint did not advance past %s, stopping to avoid "
                        "refetching the same orders", window.start
                    )
                    state = PipelineState.DONE
                else:
                    state = PipelineState.FETCHING

            elif state is PipelineState.FETCHING:
                stats['passes'] += 1
                summaries = fetch_order_list(
                    self.client, window,
                    page_size=self.page_size,
                    delay_seconds=self.delay_seconds,
                    sleep=self.sleep,
                )
                state = PipelineState.PROCESSING

            elif state is PipelineState.PROCESSING:
                if summaries:
                    self._process_orders(summaries, stats)
                stats['fetched'] += len(summaries)
                state = PipelineState.DECIDING

            elif state is PipelineState.DECIDING:
                if summaries:
                    widen_days = 1
                    yield_start = window.start
                    state = PipelineState.RESOLVING
                elif window.end.date() < yesterday_utc(self.clock()).date():
                    widen_days += 1
                    logger.info(
                        "No orders in %s, widening window to %d days",
                        window, widen_days
                    )
                    state = PipelineState.RESOLVING
                else:
                    logger.info("No orders through yesterday, extraction complete")
                    stats['caught_up'] = True
                    state = PipelineState.DONE

        logger.info(
            "Extraction finished: %d passes, %d fetched, %d committed, %d skipped, %d failed",
            stats['passes'], stats['fetched'], stats['committed'],
            stats['skipped'], stats['failed']
        )
        return stats
