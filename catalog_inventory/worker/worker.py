"""
Outbox Worker - Delivery loop
Polls the outbox and hands ready rows to the dispatcher
"""
import os
import signal
import asyncio
import logging
import threading
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class OutboxWorker:
    """
    Runs dispatch cycles until stopped.

    A cycle starts every ``poll_interval`` seconds, immediately after a full
    batch, or as soon as ``wake`` is called by a committed publish.
    """

    def __init__(self, app, dispatcher, poll_interval: Optional[float] = None):
        self.app = app
        self.dispatcher = dispatcher
        self.poll_interval = poll_interval or app.config['OUTBOX_POLL_INTERVAL_SECONDS']
        self.is_running = False
        self._loop = None
        self._wakeup = None
        self._thread = None

    def _run_cycle(self):
        # Fresh app context per cycle so each batch gets its own session
        with self.app.app_context():
            return self.dispatcher.run_once()

    async def start(self):
        """Start the worker and dispatch until stopped"""
        self._loop = asyncio.get_running_loop()
        self._wakeup = asyncio.Event()
        self.is_running = True
        logger.info(
            f"Outbox worker {self.dispatcher.worker_id} started, polling every {self.poll_interval}s"
        )

        while self.is_running:
            self._wakeup.clear()
            try:
                summary = await self._loop.run_in_executor(None, self._run_cycle)
            except Exception as e:
                logger.error(f"Outbox dispatch cycle failed: {e}")
                summary = None

            if summary is not None and summary.claimed + summary.skipped >= self.dispatcher.batch_size:
                # Full batch; more rows are probably waiting
                continue

            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass

        logger.info(f"Outbox worker {self.dispatcher.worker_id} stopped")

    def wake(self):
        """Start the next cycle now; safe to call from any thread"""
        loop = self._loop
        if loop is None or loop.is_closed() or self._wakeup is None:
            return
        loop.call_soon_threadsafe(self._wakeup.set)

    def request_stop(self):
        """Ask the loop to exit after the current cycle; safe to call from any thread"""
        self.is_running = False
        self.wake()

    async def stop(self):
        """Gracefully stop the worker"""
        logger.info("Stopping outbox worker...")
        self.request_stop()
        self.dispatcher.shutdown()

    def start_in_background(self) -> threading.Thread:
        """Run the loop on a daemon thread inside the API process"""
        self._thread = threading.Thread(
            target=lambda: asyncio.run(self.start()),
            name='outbox-worker',
            daemon=True
        )
        self._thread.start()
        return self._thread

    def stop_background(self, timeout: float = 5.0):
        self.request_stop()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        self.dispatcher.shutdown()


async def main(config_name: Optional[str] = None):
    """Main entry point for the worker"""
    load_dotenv()

    from catalog_inventory import create_app
    app = create_app(config_name or os.environ.get('FLASK_ENV', 'production'))
    worker = OutboxWorker(app, app.extensions['outbox_dispatcher'])

    # Register signal handlers for graceful shutdown
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, worker.request_stop)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            signal.signal(signum, lambda *_: worker.request_stop())

    try:
        await worker.start()
    except Exception as e:
        logger.error(f"Worker error: {str(e)}")
        raise
    finally:
        await worker.stop()
