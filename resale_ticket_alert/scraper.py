"""
One full check of the event page, from browser launch to browser close.
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from .browser import BrowserManager
from .detector import PageStateDetector
from .errors import describe_exception
from .models import PollResult, ScraperConfig

logger = logging.getLogger(__name__)


class TicketScraper:
    """Checks the event page for resale tickets using a fresh browser session."""

    def __init__(
        self,
        config: ScraperConfig,
        browser_factory: Callable[[ScraperConfig], BrowserManager] = BrowserManager,
    ):
        """Initialize with scraper configuration."""
        self.config = config
        self.browser_factory = browser_factory

    async def check_for_resale_tickets(self, event_url: str) -> PollResult:
        """Check the event page once.

        Failures after the browser is up are turned into a negative result
        carrying the error description; the session is always closed.

        Raises:
            SessionLifecycleError: If the browser can't be launched.
        """
        logger.info("=" * 80)
        logger.info(f"🚀 STARTING TICKET CHECK - {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        logger.info("=" * 80)

        browser = self.browser_factory(self.config)
        await browser.setup()

        detector: Optional[PageStateDetector] = None
        try:
            storage = await browser.clear_storage()
            for warning in storage.warnings:
                logger.info(f"ℹ️ {warning} - this is normal")

            await browser.navigate_to_event(event_url)

            detector = PageStateDetector(browser.page, self.config, screenshot=browser.take_screenshot)
            result = await detector.detect()

            logger.info(f"🏁 CHECK COMPLETE - found={result.found} count={result.count}")
            return result

        except Exception as e:
            logger.error(f"❌ Error checking for tickets: {e}", exc_info=True)
            captcha_detected = detector.captcha_detected if detector else False
            return PollResult.none(captcha_detected=captcha_detected, error=describe_exception(e))

        finally:
            await browser.close()
