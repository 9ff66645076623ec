"""
Main application module for the Resale Ticket Alert.
"""
import asyncio
import logging
import signal
import time
from datetime import datetime
from typing import Awaitable, Callable, Optional

from .errors import classify_error, describe_exception
from .models import AppConfig, LogEntry, PollResult
from .notifications import TicketNotifier
from .run_log import RunLogger, format_timestamp
from .scraper import TicketScraper

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class TicketMonitor:
    """Checks the event page on a fixed schedule, retrying failed checks."""

    def __init__(
        self,
        config: AppConfig,
        scraper: Optional[TicketScraper] = None,
        notifier: Optional[TicketNotifier] = None,
        run_logger: Optional[RunLogger] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initialize with application configuration."""
        self.config = config
        self.scraper = scraper or TicketScraper(config.scraper)
        self.notifier = notifier or TicketNotifier(config.notification, config.event_url)
        self.run_logger = run_logger or RunLogger(config.log_file_path)
        self.shutdown_event = asyncio.Event()
        self.check_count = 0
        self._sleep = sleep
        self._run_lock = asyncio.Lock()
        self._current_tick: Optional[asyncio.Task] = None

    def install_signal_handlers(self) -> None:
        """Request a graceful shutdown on SIGINT/SIGTERM."""
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self._handle_shutdown, signum)
            except (NotImplementedError, RuntimeError):
                # Windows event loops have no add_signal_handler
                signal.signal(signum, lambda s, _frame: loop.call_soon_threadsafe(self._handle_shutdown, s))

    def _handle_shutdown(self, signum) -> None:
        """Handle shutdown signals gracefully."""
        logger.warning(f"Received signal {signum}, finishing current check before stopping...")
        self.request_shutdown()

    def request_shutdown(self) -> None:
        self.shutdown_event.set()

    async def run_check(self) -> PollResult:
        """One attempt: check the page and notify if tickets were found."""
        result = await self.scraper.check_for_resale_tickets(self.config.event_url)

        if result.found and result.count > 0:
            logger.warning(f"🎉 Found {result.count} resale ticket(s)!")
            await self.notifier.notify_tickets_found(result.count, list(result.tickets))
        elif result.captcha_detected:
            logger.info("🤖 Check ended at a CAPTCHA")
        else:
            logger.info("❌ No resale tickets found")

        return result

    async def run_with_retry(self) -> LogEntry:
        """Run a check with up to ``max_retries`` attempts and log the run once.

        A failed attempt is retried after ``attempt * retry_delay`` seconds.
        Running out of attempts is only logged.
        """
        start = time.monotonic()
        max_retries = self.config.max_retries
        attempt = 0
        result: Optional[PollResult] = None
        error_message = ''

        while attempt < max_retries:
            try:
                result = await self.run_check()
                error_message = ''
                break
            except Exception as e:
                attempt += 1
                error_message = describe_exception(e)
                logger.error(f"❌ Attempt {attempt}/{max_retries} failed: {e}", exc_info=True)
                if attempt < max_retries:
                    delay = attempt * self.config.retry_delay
                    logger.info(f"⏳ Retrying in {delay:g} seconds...")
                    await self._sleep(delay)

        if result is None:
            logger.error(f"❌ Giving up after {max_retries} attempts, waiting for the next scheduled check")
        elif result.error:
            error_message = result.error

        entry = LogEntry(
            timestamp=format_timestamp(timezone=self.config.timezone),
            success=result is not None and not result.error,
            tickets_found=result.count if result is not None and result.found else 0,
            error_message=classify_error(error_message),
            run_duration=int((time.monotonic() - start) * 1000),
            captcha_detected=result.captcha_detected if result is not None else False,
        )
        self.run_logger.log_run(entry)
        return entry

    async def run(self) -> None:
        """Check now and then every ``interval_minutes`` until shutdown.

        Ticks are fixed-rate: each boundary is computed from the start time,
        so a slow check doesn't push later checks back.
        """
        interval = self.config.interval_minutes * 60
        logger.info("🚀 Starting Resale Ticket Alert")
        logger.info(f"👀 Checking {self.config.event_url} every {self.config.interval_minutes:g} minutes")

        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while not self.shutdown_event.is_set():
            self._start_tick()
            next_tick += interval
            await self._wait_until(next_tick)

        if self._current_tick is not None and not self._current_tick.done():
            logger.info("⏳ Waiting for the current check to finish...")
            await self._current_tick

        logger.info("✅ Ticket checking stopped")

    def _start_tick(self) -> Optional[asyncio.Task]:
        if self._run_lock.locked() or (self._current_tick is not None and not self._current_tick.done()):
            logger.warning("⚠️ Previous check still running, skipping this scheduled check")
            return None

        self.check_count += 1
        self._current_tick = asyncio.create_task(self._tick(self.check_count))
        return self._current_tick

    async def _tick(self, number: int) -> None:
        async with self._run_lock:
            logger.info(f"🔄 Starting check #{number} at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
            try:
                await self.run_with_retry()
            except Exception as e:
                logger.error(f"Error in monitoring loop: {e}", exc_info=True)

    async def _wait_until(self, deadline: float) -> None:
        """Sleep until ``deadline`` (event loop time) or until shutdown is requested."""
        loop = asyncio.get_running_loop()
        remaining = deadline - loop.time()
        next_check = datetime.fromtimestamp(time.time() + max(remaining, 0)).strftime('%H:%M:%S')
        logger.info(f"⏳ Next check at ~{next_check}")

        try:
            await asyncio.wait_for(self.shutdown_event.wait(), timeout=max(remaining, 0))
        except asyncio.TimeoutError:
            pass
