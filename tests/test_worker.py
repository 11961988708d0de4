import asyncio

from unittest.mock import MagicMock

from catalog_inventory.outbox import DispatchSummary
from catalog_inventory.worker import OutboxWorker


def fake_dispatcher(batch_size=50):
    dispatcher = MagicMock()
    dispatcher.worker_id = 'test-worker'
    dispatcher.batch_size = batch_size
    return dispatcher


class TestOutboxWorker:
    """Test the polling loop around the dispatcher."""

    def test_runs_cycles_until_stopped(self, app):
        dispatcher = fake_dispatcher()
        worker = OutboxWorker(app, dispatcher, poll_interval=0.01)
        cycles = []

        def run_once():
            cycles.append(1)
            if len(cycles) == 3:
                worker.request_stop()
            return DispatchSummary()

        dispatcher.run_once.side_effect = run_once

        asyncio.run(asyncio.wait_for(worker.start(), timeout=5))

        assert len(cycles) == 3
        assert worker.is_running is False

    def test_full_batch_runs_next_cycle_immediately(self, app):
        dispatcher = fake_dispatcher(batch_size=2)
        # A long poll interval would time the test out if the loop waited
        worker = OutboxWorker(app, dispatcher, poll_interval=30)
        summaries = [DispatchSummary(claimed=2), DispatchSummary(claimed=2), DispatchSummary(claimed=1)]

        def run_once():
            summary = summaries.pop(0)
            if not summaries:
                worker.request_stop()
            return summary

        dispatcher.run_once.side_effect = run_once

        asyncio.run(asyncio.wait_for(worker.start(), timeout=5))

        assert dispatcher.run_once.call_count == 3

    def test_wake_interrupts_poll_wait(self, app):
        dispatcher = fake_dispatcher()
        worker = OutboxWorker(app, dispatcher, poll_interval=30)
        cycles = []

        def run_once():
            cycles.append(1)
            if len(cycles) == 2:
                worker.request_stop()
            return DispatchSummary()

        dispatcher.run_once.side_effect = run_once

        async def scenario():
            task = asyncio.ensure_future(worker.start())
            while not cycles:
                await asyncio.sleep(0.01)
            worker.wake()
            await asyncio.wait_for(task, timeout=5)

        asyncio.run(scenario())

        assert len(cycles) == 2

    def test_cycle_errors_do_not_stop_the_loop(self, app):
        dispatcher = fake_dispatcher()
        worker = OutboxWorker(app, dispatcher, poll_interval=0.01)
        calls = []

        def run_once():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError('database unavailable')
            worker.request_stop()
            return DispatchSummary()

        dispatcher.run_once.side_effect = run_once

        asyncio.run(asyncio.wait_for(worker.start(), timeout=5))

        assert len(calls) == 2

    def test_wake_before_start_is_noop(self, app):
        worker = OutboxWorker(app, fake_dispatcher(), poll_interval=0.01)

        worker.wake()

        assert worker.is_running is False
