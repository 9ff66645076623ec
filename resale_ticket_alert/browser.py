"""
Browser session management and page interactions for the event page.
"""
import asyncio
import logging
from typing import Optional

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError
)

from .errors import SessionLifecycleError
from .models import ScraperConfig, StepOutcome

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    '--disable-features=site-per-process',
    '--disable-web-security',
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',
    '--disable-accelerated-2d-canvas',
    '--no-first-run',
    '--no-zygote',
    '--disable-gpu',
]

CONTENT_SELECTOR = 'main, #content, .event-detail, .event-header, .tm-header'
TICKET_ELEMENT_SELECTOR = (
    '[data-testid="quickpicksList"], .ticket-list, [data-tid="ticket-tile"], '
    '.event-tickets, .ticket-card'
)

# Each store is cleared separately so one security restriction doesn't
# prevent clearing the others. Returns the names of stores that failed.
CLEAR_STORAGE_SCRIPT = """
() => {
    const blocked = [];
    try { localStorage.clear(); } catch (e) { blocked.push('localStorage'); }
    try { sessionStorage.clear(); } catch (e) { blocked.push('sessionStorage'); }
    try {
        if (window.indexedDB && typeof indexedDB.databases === 'function') {
            indexedDB.databases().then((databases) => {
                for (const db of databases) {
                    if (db.name) indexedDB.deleteDatabase(db.name);
                }
            }).catch(() => {});
        }
    } catch (e) { blocked.push('indexedDB'); }
    return blocked;
}
"""

SETTLE_AFTER_CONTENT_MS = 2000
SETTLE_AFTER_NETWORK_IDLE_MS = 5000
TICKET_ELEMENT_TIMEOUT_MS = 5000


class BrowserManager:
    """Owns one browser, context and page for a single poll attempt."""

    def __init__(self, config: ScraperConfig):
        """Initialize with scraper configuration."""
        self.config = config
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    async def setup(self) -> None:
        """Launch the browser and open an isolated context and page.

        Raises:
            SessionLifecycleError: If the browser can't be started.
        """
        logger.info("🚀 Launching browser...")
        try:
            self.playwright = await async_playwright().start()
            self.browser = await self.playwright.chromium.launch(
                headless=self.config.headless,
                args=LAUNCH_ARGS,
            )
            self.context = await self.browser.new_context(
                user_agent=self.config.user_agent,
                viewport={'width': self.config.viewport[0], 'height': self.config.viewport[1]},
                accept_downloads=False,
                ignore_https_errors=True,
            )
            self.page = await self.context.new_page()
        except Exception as e:
            await self._release()
            raise SessionLifecycleError(f"Browser launch failed: {e}") from e

    async def clear_storage(self) -> StepOutcome:
        """Clear cookies, local/session storage and IndexedDB.

        Browsers often refuse storage access on a blank page, so every
        failure here is reported as a warning.
        """
        outcome = StepOutcome()
        if not self.context or not self.page:
            outcome.warn("Browser not initialized, nothing to clear")
            return outcome

        try:
            await self.context.clear_cookies()
        except Exception as e:
            outcome.warn(f"Could not clear cookies: {e}")

        try:
            blocked = await self.page.evaluate(CLEAR_STORAGE_SCRIPT)
        except Exception as e:
            outcome.warn(f"Storage clearing was restricted by browser security policy: {e}")
        else:
            for store in blocked or []:
                outcome.warn(f"{store} clearing was restricted by browser security policy")

        if outcome.ok:
            logger.info("✅ Cleared cookies and storage")
        return outcome

    async def navigate_to_event(self, url: str) -> None:
        """Load the event page and give its ticket widgets time to render.

        Only the initial page load can fail; the waits that follow are
        best-effort.
        """
        if not self.page:
            raise RuntimeError("Browser not initialized. Call setup() first.")

        page = self.page
        logger.info(f"🌐 Navigating to {url}")
        await page.goto(
            url,
            wait_until='domcontentloaded',
            timeout=self.config.navigation_timeout * 1000
        )
        logger.info("⏳ Page loaded, waiting for content...")

        if not await self.wait_for_selector(CONTENT_SELECTOR, state='attached', timeout=self.config.content_timeout):
            logger.warning("⚠️ Timed out waiting for content selectors, but continuing anyway")

        await page.wait_for_timeout(SETTLE_AFTER_CONTENT_MS)

        try:
            await page.wait_for_load_state('networkidle')
        except PlaywrightTimeoutError:
            logger.warning("⚠️ Network did not go idle, continuing anyway")

        logger.info("⏳ Waiting 5 seconds for ticket content to fully load...")
        await page.wait_for_timeout(SETTLE_AFTER_NETWORK_IDLE_MS)

        if await self.wait_for_selector(
            TICKET_ELEMENT_SELECTOR,
            state='attached',
            timeout=TICKET_ELEMENT_TIMEOUT_MS / 1000
        ):
            logger.info("🎟️ Found potential ticket elements on the page")
        else:
            logger.info("ℹ️ No ticket elements found in initial scan")

    async def take_screenshot(self, path: Optional[str] = None) -> bool:
        """Take a screenshot of the current page."""
        if not self.page:
            return False

        path = path or self.config.screenshot_path
        try:
            await self.page.screenshot(path=path)
        except Exception as e:
            logger.warning(f"⚠️ Could not take screenshot: {e}")
            return False

        logger.info(f"📸 Screenshot saved to {path}")
        return True

    async def wait_for_selector(
        self,
        selector: str,
        state: str = "visible",
        timeout: Optional[float] = None
    ) -> bool:
        """Wait for a selector, returning False on timeout."""
        if not self.page:
            return False

        try:
            await self.page.wait_for_selector(
                selector,
                state=state,
                timeout=(timeout or self.config.content_timeout) * 1000  # Convert to ms
            )
            return True
        except PlaywrightTimeoutError:
            logger.debug(f"Timeout waiting for selector: {selector}")
            return False

    async def close(self) -> StepOutcome:
        """Release the session. Never raises; problems come back as warnings."""
        logger.info("🧹 Closing browser session...")
        if self.browser and not self.config.headless and self.config.close_grace_period > 0:
            logger.info(f"⏳ Browser will close in {self.config.close_grace_period:g} seconds...")
            await asyncio.sleep(self.config.close_grace_period)

        outcome = await self._release()
        for warning in outcome.warnings:
            logger.error(f"❌ Error while closing browser: {warning}")
        return outcome

    async def _release(self) -> StepOutcome:
        outcome = StepOutcome()
        if self.browser:
            try:
                await self.browser.close()
            except Exception as e:
                outcome.warn(f"browser: {e}")
        if self.playwright:
            try:
                await self.playwright.stop()
            except Exception as e:
                outcome.warn(f"playwright: {e}")

        self.page = None
        self.context = None
        self.browser = None
        self.playwright = None
        return outcome
