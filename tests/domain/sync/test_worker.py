"""Tests for the reconciliation worker."""

import queue
import threading
import time
from unittest.mock import Mock

import pytest

from sheetsync.domain.auth.credentials import AuthReadySignal
from sheetsync.domain.auth.exceptions import NotAuthenticatedError
from sheetsync.domain.sync.attribution import SYNC_BOT
from sheetsync.domain.sync.models import ChangeAction, ChangeEvent, WorkerState
from sheetsync.domain.sync.retry import FixedRetry
from sheetsync.domain.sync.worker import ReconciliationWorker

TS = "2024-01-01 00:00:00"

PRODUCTS = [
    {"uuid": "k1", "product_name": "Mouse", "quantity": 5, "price": 9.99,
     "discount": False, "last_updated_by": "alice@example.com"},
    {"uuid": "k2", "product_name": "Cable", "quantity": 10, "price": 1.5,
     "discount": True, "last_updated_by": ""},
]


def event(action, key, **fields):
    if fields:
        fields.setdefault("last_updated_by", "alice@example.com")
    return ChangeEvent(source="binlog", key=key, action=action, fields=fields,
                       actor="alice@example.com")


@pytest.fixture
def signal():
    return AuthReadySignal()


@pytest.fixture
def make_worker(signal, fake_mirror):
    def _make(acquire=None, products=None, **kwargs):
        return ReconciliationWorker(
            events=queue.Queue(maxsize=100),
            acquire_mirror=acquire or (lambda: fake_mirror),
            load_products=lambda: list(products if products is not None else PRODUCTS),
            signal=signal,
            poll_interval=0.01,
            clock=lambda: TS,
            **kwargs,
        )

    return _make


class TestConnect:
    def test_connect_resyncs_in_store_order(self, make_worker, fake_mirror):
        worker = make_worker()

        assert worker.connect() is True
        assert worker.state == WorkerState.SYNCING
        assert fake_mirror.data_rows() == [
            ["k1", "Mouse", 5, 9.99, False, TS, "alice@example.com"],
            ["k2", "Cable", 10, 1.5, True, TS, "initial_sync"],
        ]
        assert fake_mirror.rows[0][0] == "UUID"

    def test_resync_replaces_drifted_rows(self, make_worker, make_mirror):
        drifted = make_mirror([["k9", "Stale"], ["k1", "Old name"]])
        worker = make_worker(acquire=lambda: drifted)

        worker.connect()

        assert drifted.keys() == ["k1", "k2"]
        assert drifted.data_rows()[0][1] == "Mouse"

    def test_resync_never_writes_sentinel(self, make_worker, fake_mirror):
        worker = make_worker()
        worker.connect()
        assert all(row[6] != SYNC_BOT for row in fake_mirror.data_rows())

    def test_resync_of_empty_store_clears_mirror(self, make_worker, make_mirror):
        mirror = make_mirror([["k9", "Stale"]])
        worker = make_worker(acquire=lambda: mirror, products=[])

        worker.connect()

        assert mirror.data_rows() == []

    def test_initial_failure_is_unauthenticated(self, make_worker):
        worker = make_worker(acquire=Mock(side_effect=NotAuthenticatedError("no token")))

        assert worker.connect() is False
        assert worker.state == WorkerState.UNAUTHENTICATED
        assert not worker.has_mirror

    def test_reload_failure_keeps_previous_mirror(self, make_worker, fake_mirror):
        acquire = Mock(side_effect=[fake_mirror, NotAuthenticatedError("revoked")])
        worker = make_worker(acquire=acquire)
        worker.connect()

        assert worker.connect() is False
        assert worker.state == WorkerState.DEGRADED
        assert worker.has_mirror

        worker.process(event(ChangeAction.INSERT, "k3", product_name="Hub"))
        assert "k3" in fake_mirror.keys()

    def test_resync_failure_is_absorbed(self, make_worker, fake_mirror, api_error):
        fake_mirror.fail_with = api_error
        worker = make_worker()

        assert worker.connect() is True
        assert worker.full_resync() is False

    def test_product_load_failure_is_absorbed(self, signal, fake_mirror):
        worker = ReconciliationWorker(
            events=queue.Queue(),
            acquire_mirror=lambda: fake_mirror,
            load_products=Mock(side_effect=RuntimeError("db down")),
            signal=signal,
        )
        worker.connect()
        assert "clear_and_overwrite" not in fake_mirror.calls


class TestApply:
    @pytest.fixture
    def worker(self, make_worker):
        worker = make_worker()
        worker.connect()
        return worker

    def test_insert_appends_when_absent(self, worker, fake_mirror):
        worker.process(event(ChangeAction.INSERT, "k3", product_name="Hub",
                             quantity=1, price=20.0, discount=False))

        assert fake_mirror.data_rows()[-1] == [
            "k3", "Hub", 1, 20.0, False, TS, "alice@example.com"
        ]

    def test_update_overwrites_in_place(self, worker, fake_mirror):
        worker.process(event(ChangeAction.UPDATE, "k2", product_name="USB-C Cable",
                             quantity=7, price=2.0, discount=True))

        assert fake_mirror.keys() == ["k1", "k2"]
        assert fake_mirror.data_rows()[1] == [
            "k2", "USB-C Cable", 7, 2.0, True, TS, "alice@example.com"
        ]

    def test_update_of_unknown_key_appends(self, worker, fake_mirror):
        worker.process(event(ChangeAction.UPDATE, "k4", product_name="Dock"))
        assert fake_mirror.keys() == ["k1", "k2", "k4"]

    def test_delete_removes_row(self, worker, fake_mirror):
        worker.process(event(ChangeAction.DELETE, "k1"))
        assert fake_mirror.keys() == ["k2"]

    def test_delete_of_missing_key_is_noop(self, worker, fake_mirror):
        assert worker.process(event(ChangeAction.DELETE, "nope")) is True
        assert fake_mirror.keys() == ["k1", "k2"]
        assert "delete_row" not in fake_mirror.calls

    def test_noop_event_skipped(self, worker, fake_mirror):
        calls_before = len(fake_mirror.calls)
        assert worker.process(event(ChangeAction.UPDATE, "k1")) is False
        assert len(fake_mirror.calls) == calls_before

    def test_apply_error_dropped(self, worker, fake_mirror, api_error):
        fake_mirror.fail_with = api_error

        assert worker.process(event(ChangeAction.INSERT, "k3", product_name="Hub")) is False
        assert worker.failed == 1

        fake_mirror.fail_with = None
        assert worker.process(event(ChangeAction.INSERT, "k5", product_name="Fan")) is True

    def test_events_dropped_without_mirror(self, make_worker):
        worker = make_worker(acquire=Mock(side_effect=NotAuthenticatedError("no token")))
        worker.connect()
        assert worker.process(event(ChangeAction.INSERT, "k3", product_name="Hub")) is False

    def test_retry_policy_wraps_apply(self, make_worker, fake_mirror, api_error):
        worker = make_worker(retry=FixedRetry(attempts=1, delay=0, sleep=lambda _: None))
        worker.connect()

        original = fake_mirror.append_row
        attempts = []

        def flaky(values):
            attempts.append(values)
            if len(attempts) == 1:
                raise api_error
            original(values)

        fake_mirror.append_row = flaky
        assert worker.process(event(ChangeAction.INSERT, "k3", product_name="Hub")) is True
        assert len(attempts) == 2
        assert fake_mirror.keys()[-1] == "k3"


class TestEventLoop:
    def test_events_applied_in_arrival_order(self, make_worker, fake_mirror):
        worker = make_worker(products=[])
        worker.connect()

        worker.events.put(event(ChangeAction.INSERT, "a", product_name="A"))
        worker.events.put(event(ChangeAction.INSERT, "b", product_name="B"))
        worker.events.put(event(ChangeAction.DELETE, "a"))
        worker.events.put(event(ChangeAction.INSERT, "c", product_name="C"))
        for _ in range(4):
            worker.step()

        assert fake_mirror.keys() == ["b", "c"]

    def test_signal_checked_before_events(self, make_worker, fake_mirror, signal):
        acquire = Mock(return_value=fake_mirror)
        worker = make_worker(acquire=acquire)
        worker.connect()
        worker.events.put(event(ChangeAction.INSERT, "k3", product_name="Hub"))
        signal.notify()

        worker.step()

        assert acquire.call_count == 2
        assert worker.events.qsize() == 1

    def test_idle_step_returns(self, make_worker):
        worker = make_worker()
        worker.connect()
        worker.step()  # Empty queue, no signal
        assert worker.state == WorkerState.SYNCING


class TestThreadedLifecycle:
    def test_waits_for_login_then_syncs(self, make_worker, fake_mirror, signal):
        acquire = Mock(side_effect=[NotAuthenticatedError("no token"), fake_mirror])
        worker = make_worker(acquire=acquire)
        worker.start()
        try:
            time.sleep(0.05)
            assert worker.state == WorkerState.UNAUTHENTICATED

            signal.notify()
            worker.events.put(event(ChangeAction.INSERT, "k3", product_name="Hub"))
            deadline = time.time() + 2.0
            while "k3" not in fake_mirror.keys() and time.time() < deadline:
                time.sleep(0.01)

            assert worker.state == WorkerState.SYNCING
            assert fake_mirror.keys() == ["k1", "k2", "k3"]
        finally:
            worker.stop()

    def test_loop_runs_after_failed_second_acquisition(self, make_worker, signal):
        acquire = Mock(side_effect=NotAuthenticatedError("still no token"))
        worker = make_worker(acquire=acquire)
        worker.start()
        try:
            signal.notify()
            worker.events.put(event(ChangeAction.INSERT, "k3", product_name="Hub"))
            deadline = time.time() + 2.0
            while not worker.events.empty() and time.time() < deadline:
                time.sleep(0.01)

            assert worker.events.empty()
            assert worker.state == WorkerState.UNAUTHENTICATED
        finally:
            worker.stop()

    def test_stop_joins_thread(self, make_worker):
        worker = make_worker()
        worker.start()
        worker.stop()
        assert not any(t.name == "reconciliation-worker" and t.is_alive()
                       for t in threading.enumerate())
