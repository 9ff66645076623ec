"""Tests for the browser module."""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from resale_ticket_alert.browser import (
    CLEAR_STORAGE_SCRIPT,
    CONTENT_SELECTOR,
    LAUNCH_ARGS,
    BrowserManager,
)
from resale_ticket_alert.errors import SessionLifecycleError
from resale_ticket_alert.models import ScraperConfig


def make_page():
    page = MagicMock()
    for name in ("goto", "wait_for_selector", "wait_for_timeout", "wait_for_load_state", "evaluate", "screenshot"):
        setattr(page, name, AsyncMock())
    return page


class TestBrowserManager:
    """Tests for the BrowserManager class."""

    @pytest.fixture
    def config(self):
        """Create a test ScraperConfig."""
        return ScraperConfig(
            headless=True,
            user_agent="test-user-agent",
            viewport=(800, 600),
        )

    @pytest.fixture
    def browser_manager(self, config):
        """Create a BrowserManager with a mocked session attached."""
        manager = BrowserManager(config)
        manager.playwright = MagicMock(stop=AsyncMock())
        manager.browser = MagicMock(close=AsyncMock())
        manager.context = MagicMock(clear_cookies=AsyncMock())
        manager.page = make_page()
        return manager

    @pytest.mark.asyncio
    async def test_setup_creates_browser_and_context(self, config):
        """Test that setup creates a browser and context with correct settings."""
        page = make_page()
        context = MagicMock(new_page=AsyncMock(return_value=page))
        browser = MagicMock(new_context=AsyncMock(return_value=context))
        playwright = MagicMock()
        playwright.chromium.launch = AsyncMock(return_value=browser)

        with patch("resale_ticket_alert.browser.async_playwright") as mock_async_playwright:
            mock_async_playwright.return_value.start = AsyncMock(return_value=playwright)

            manager = BrowserManager(config)
            await manager.setup()

        playwright.chromium.launch.assert_awaited_once_with(headless=True, args=LAUNCH_ARGS)
        assert '--no-sandbox' in LAUNCH_ARGS
        assert '--disable-web-security' in LAUNCH_ARGS

        call_kwargs = browser.new_context.await_args.kwargs
        assert call_kwargs["user_agent"] == "test-user-agent"
        assert call_kwargs["viewport"] == {'width': 800, 'height': 600}
        assert call_kwargs["accept_downloads"] is False
        assert call_kwargs["ignore_https_errors"] is True
        assert manager.page is page

    @pytest.mark.asyncio
    async def test_setup_failure_raises_session_error_and_stops_playwright(self, config):
        """Test a failed launch is reported and leaves nothing running."""
        playwright = MagicMock(stop=AsyncMock())
        playwright.chromium.launch = AsyncMock(side_effect=Exception("Executable doesn't exist"))

        with patch("resale_ticket_alert.browser.async_playwright") as mock_async_playwright:
            mock_async_playwright.return_value.start = AsyncMock(return_value=playwright)

            manager = BrowserManager(config)
            with pytest.raises(SessionLifecycleError, match="Browser launch failed"):
                await manager.setup()

        playwright.stop.assert_awaited_once()
        assert manager.playwright is None

    @pytest.mark.asyncio
    async def test_clear_storage_success(self, browser_manager):
        """Test cookies and storage are cleared without warnings."""
        browser_manager.page.evaluate.return_value = []

        outcome = await browser_manager.clear_storage()

        assert outcome.ok is True
        assert outcome.warnings == []
        browser_manager.context.clear_cookies.assert_awaited_once()
        browser_manager.page.evaluate.assert_awaited_once_with(CLEAR_STORAGE_SCRIPT)

    @pytest.mark.asyncio
    async def test_clear_storage_reports_blocked_stores(self, browser_manager):
        """Test stores the page refused to clear come back as warnings."""
        browser_manager.page.evaluate.return_value = ["localStorage", "sessionStorage"]

        outcome = await browser_manager.clear_storage()

        assert outcome.ok is False
        assert len(outcome.warnings) == 2
        assert "localStorage" in outcome.warnings[0]

    @pytest.mark.asyncio
    async def test_clear_storage_never_raises(self, browser_manager):
        """Test failures while clearing are warnings, not errors."""
        browser_manager.context.clear_cookies.side_effect = Exception("context closed")
        browser_manager.page.evaluate.side_effect = Exception("SecurityError: access denied")

        outcome = await browser_manager.clear_storage()

        assert outcome.ok is False
        assert len(outcome.warnings) == 2

    @pytest.mark.asyncio
    async def test_navigate_to_event(self, browser_manager):
        """Test navigation loads the page and waits for content to settle."""
        page = browser_manager.page
        url = "https://example.com/event/1"

        await browser_manager.navigate_to_event(url)

        page.goto.assert_awaited_once_with(url, wait_until='domcontentloaded', timeout=60000)
        first_wait = page.wait_for_selector.await_args_list[0]
        assert first_wait.args[0] == CONTENT_SELECTOR
        assert first_wait.kwargs["timeout"] == 30000
        page.wait_for_load_state.assert_awaited_once_with('networkidle')
        assert [c.args[0] for c in page.wait_for_timeout.await_args_list] == [2000, 5000]

    @pytest.mark.asyncio
    async def test_navigate_tolerates_missing_content_and_busy_network(self, browser_manager):
        """Test selector and network-idle timeouts don't fail navigation."""
        page = browser_manager.page
        page.wait_for_selector.side_effect = PlaywrightTimeoutError("Timeout 30000ms exceeded.")
        page.wait_for_load_state.side_effect = PlaywrightTimeoutError("Timeout 30000ms exceeded.")

        await browser_manager.navigate_to_event("https://example.com/event/1")

        assert page.wait_for_timeout.await_count == 2

    @pytest.mark.asyncio
    async def test_navigate_failure_propagates(self, browser_manager):
        """Test a failed page load is raised to the caller."""
        browser_manager.page.goto.side_effect = PlaywrightTimeoutError("Page.goto: Timeout 60000ms exceeded.")

        with pytest.raises(PlaywrightTimeoutError):
            await browser_manager.navigate_to_event("https://example.com/event/1")

    @pytest.mark.asyncio
    async def test_navigate_requires_setup(self, config):
        """Test navigating before setup is an error."""
        with pytest.raises(RuntimeError):
            await BrowserManager(config).navigate_to_event("https://example.com")

    @pytest.mark.asyncio
    async def test_close_releases_resources(self, browser_manager):
        """Test that close shuts down the browser and Playwright."""
        browser = browser_manager.browser
        playwright = browser_manager.playwright

        outcome = await browser_manager.close()

        assert outcome.ok is True
        browser.close.assert_awaited_once()
        playwright.stop.assert_awaited_once()
        assert browser_manager.page is None

    @pytest.mark.asyncio
    async def test_close_never_raises(self, browser_manager):
        """Test close failures are returned as warnings."""
        browser_manager.browser.close.side_effect = Exception("Target closed")
        playwright = browser_manager.playwright

        outcome = await browser_manager.close()

        assert outcome.ok is False
        assert "Target closed" in outcome.warnings[0]
        playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_waits_in_interactive_mode(self, browser_manager):
        """Test a visible browser stays open for the grace period."""
        browser_manager.config = ScraperConfig(headless=False, close_grace_period=3)

        with patch("resale_ticket_alert.browser.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await browser_manager.close()

        mock_sleep.assert_awaited_once_with(3)

    @pytest.mark.asyncio
    async def test_take_screenshot(self, browser_manager):
        """Test screenshots go to the configured path by default."""
        assert await browser_manager.take_screenshot() is True
        browser_manager.page.screenshot.assert_awaited_once_with(path="captcha-detected.png")

        browser_manager.page.screenshot.side_effect = Exception("page crashed")
        assert await browser_manager.take_screenshot("other.png") is False
