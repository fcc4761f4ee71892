"""
Tests for the multi-pass order sync pipeline.

The clock is pinned to 2026-03-20 10:00 UTC, so yesterday is 2026-03-19.
"""

import pytest
from unittest.mock import MagicMock

from sqlalchemy import func, select

from src.database.models import Order, User
from src.etl.extract import OrderListFetchError
from src.etl.pipeline import OrderSyncPipeline
from src.etl.transform import datetime_to_ms
from src.etl.window import WindowResolutionError
from tests.conftest import (
    BASE_TIME_MS,
    HOUR_MS,
    FakeC2CClient,
    make_detail_payload,
    make_pay_method,
    make_summary_payload,
    seed_order,
    utc,
)

NOW = utc(2026, 3, 20, 10, 0)
DAY_MS = 24 * HOUR_MS


def _pipeline(settings, client, engine, sleep=None):
    return OrderSyncPipeline(
        settings, client, engine,
        sleep=sleep or MagicMock(),
        clock=lambda: NOW,
    )


def _orders_in_window(orders):
    """orders_for_window callback serving payloads by createTime."""
    def serve(start_ms, end_ms):
        return [o for o in orders if start_ms <= o['createTime'] < end_ms]
    return serve


def _order_count(engine):
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(Order.__table__)).scalar()


class TestTermination:

    def test_caught_up_store_does_nothing(self, engine, stub_settings, fake_client):
        seed_order(engine, '1', datetime_to_ms(utc(2026, 3, 19, 2)))

        stats = _pipeline(stub_settings, fake_client, engine).run()

        assert stats['passes'] == 0
        assert stats['caught_up'] is True
        assert fake_client.list_calls == []

    def test_gap_closes_in_gap_days_passes(self, engine, stub_settings, fake_client):
        # Two empty days between the newest order and yesterday
        seed_order(engine, '1', datetime_to_ms(utc(2026, 3, 17)))

        stats = _pipeline(stub_settings, fake_client, engine).run()

        assert stats['passes'] == 2
        assert stats['caught_up'] is True
        spans = [call['end'] - call['start'] for call in fake_client.list_calls]
        assert spans[0] == DAY_MS
        assert fake_client.list_calls[-1]['end'] == datetime_to_ms(utc(2026, 3, 19))

    def test_empty_store_widens_from_bootstrap(self, engine, stub_settings, fake_client):
        stub_settings.MAX_PASSES = 3

        stats = _pipeline(stub_settings, fake_client, engine).run()

        bootstrap = datetime_to_ms(utc(2025, 4, 20))
        assert stats['passes'] == 3
        assert stats['caught_up'] is False
        assert [(c['start'], c['end']) for c in fake_client.list_calls] == [
            (bootstrap, bootstrap + DAY_MS),
            (bootstrap, bootstrap + 2 * DAY_MS),
            (bootstrap, bootstrap + 3 * DAY_MS),
        ]

    def test_pass_limit(self, engine, stub_settings, fake_client):
        stub_settings.MAX_PASSES = 1
        seed_order(engine, '1', datetime_to_ms(utc(2026, 3, 1)))

        stats = _pipeline(stub_settings, fake_client, engine).run()

        assert stats['passes'] == 1
        assert stats['caught_up'] is False


class TestProcessing:

    def test_partial_failure_isolated(self, engine, stub_settings):
        seed_order(engine, '10000', BASE_TIME_MS - DAY_MS)

        broken_method = make_pay_method(502)
        del broken_method['id']
        orders = [
            make_summary_payload('A', BASE_TIME_MS - 3 * HOUR_MS),
            make_summary_payload('B', BASE_TIME_MS - 2 * HOUR_MS),
            make_summary_payload('C', BASE_TIME_MS - HOUR_MS),
        ]
        details = {
            'A': make_detail_payload('A', taker='S1', create_ms=BASE_TIME_MS - 3 * HOUR_MS),
            'B': make_detail_payload('B', taker='S2', create_ms=BASE_TIME_MS - 2 * HOUR_MS,
                                     payMethods=[broken_method]),
            'C': make_detail_payload('C', taker='S3', create_ms=BASE_TIME_MS - HOUR_MS),
        }
        client = FakeC2CClient(orders_for_window=_orders_in_window(orders), details=details)

        stats = _pipeline(stub_settings, client, engine).run()

        assert stats['fetched'] == 3
        assert stats['committed'] == 2
        assert stats['failed'] == 1
        assert stats['caught_up'] is True
        assert client.detail_calls == ['A', 'B', 'C']

        with engine.connect() as conn:
            numbers = conn.execute(select(Order.__table__.c.order_number)).scalars().all()
            takers = conn.execute(select(User.__table__.c.taker_user_no)).scalars().all()
        assert sorted(numbers) == ['10000', 'A', 'C']
        assert 'S2' not in takers

    def test_span_resets_after_orders(self, engine, stub_settings):
        seed_order(engine, '10000', BASE_TIME_MS - DAY_MS)
        orders = [make_summary_payload('A', BASE_TIME_MS - HOUR_MS)]
        details = {'A': make_detail_payload('A', create_ms=BASE_TIME_MS - HOUR_MS)}
        client = FakeC2CClient(orders_for_window=_orders_in_window(orders), details=details)

        _pipeline(stub_settings, client, engine).run()

        spans = [call['end'] - call['start'] for call in client.list_calls]
        # Pass 1 finds A, pass 2 restarts at one day past A
        assert spans[0] == DAY_MS
        assert spans[1] == DAY_MS
        assert client.list_calls[1]['start'] == BASE_TIME_MS - HOUR_MS + 1000

    def test_pacing_after_each_order(self, engine, stub_settings):
        seed_order(engine, '10000', BASE_TIME_MS - DAY_MS)
        orders = [
            make_summary_payload('A', BASE_TIME_MS - 2 * HOUR_MS),
            make_summary_payload('B', BASE_TIME_MS - HOUR_MS),
        ]
        details = {
            'A': make_detail_payload('A', create_ms=BASE_TIME_MS - 2 * HOUR_MS),
            'B': make_detail_payload('B', create_ms=BASE_TIME_MS - HOUR_MS),
        }
        client = FakeC2CClient(orders_for_window=_orders_in_window(orders), details=details)
        stub_settings.MAX_PASSES = 1
        sleep = MagicMock()

        _pipeline(stub_settings, client, engine, sleep=sleep).run()

        assert sleep.call_count == 2
        sleep.assert_called_with(0.25)

    def test_stalled_checkpoint_stops(self, engine, stub_settings):
        seed_order(engine, '10000', BASE_TIME_MS - DAY_MS)
        orders = [make_summary_payload('A', BASE_TIME_MS - HOUR_MS)]
        # No detail for A, so nothing is stored and the window repeats
        client = FakeC2CClient(orders_for_window=_orders_in_window(orders))

        stats = _pipeline(stub_settings, client, engine).run()

        assert stats['passes'] == 1
        assert stats['skipped'] == 1
        assert stats['caught_up'] is False
        assert _order_count(engine) == 1

    def test_unloadable_order_in_widened_window_stops(self, engine, stub_settings):
        """An order days past the checkpoint that never loads must not be refetched in a loop."""
        seed_order(engine, '10000', datetime_to_ms(utc(2026, 3, 1)))
        orders = [make_summary_payload('A', datetime_to_ms(utc(2026, 3, 3, 12)))]
        client = FakeC2CClient(orders_for_window=_orders_in_window(orders))
        stub_settings.MAX_PASSES = 30

        stats = _pipeline(stub_settings, client, engine).run()

        spans = [call['end'] - call['start'] for call in client.list_calls]
        assert spans == [DAY_MS, 2 * DAY_MS, 3 * DAY_MS]
        assert stats['passes'] == 3
        assert stats['skipped'] == 1
        assert stats['caught_up'] is False
        assert client.detail_calls == ['A']


class TestFatalErrors:

    def test_list_fetch_error_propagates(self, engine, stub_settings):
        client = MagicMock()
        client.list_orders.return_value = {'success': False, 'message': 'rate limited'}

        with pytest.raises(OrderListFetchError):
            _pipeline(stub_settings, client, engine).run()

    def test_checkpoint_error_propagates(self, tmp_path, stub_settings, fake_client):
        from sqlalchemy import create_engine

        bare = create_engine(f"sqlite:///{tmp_path / 'no_tables.db'}")
        with pytest.raises(WindowResolutionError):
            _pipeline(stub_settings, fake_client, bare).run()
        bare.dispose()

    def test_nothing_written_before_list_error(self, engine, stub_settings):
        seed_order(engine, '10000', BASE_TIME_MS - DAY_MS)
        client = MagicMock()
        client.list_orders.side_effect = [
            {'success': True, 'total': 25, 'data': [make_summary_payload('A')] * 20},
            {'success': False, 'message': 'timeout'},
        ]

        with pytest.raises(OrderListFetchError):
            _pipeline(stub_settings, client, engine).run()

        client.get_order_detail.assert_not_called()
        assert _order_count(engine) == 1
