"""
Page-state detection for the event page: CAPTCHA, availability and ticket
extraction.

The page is only asked for raw facts (element boxes, marker presence and
element text). Every decision is made in Python so it can be tested without
a browser.
"""
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import ElementHandle, Page, TimeoutError as PlaywrightTimeoutError

from .models import (
    SYNTHETIC_TICKET_TYPE,
    ElementBox,
    PollResult,
    ScraperConfig,
    TicketInfo,
)

logger = logging.getLogger(__name__)

MIN_VISIBLE_SIZE = 10  # px, both width and height

CAPTCHA_SELECTORS = [
    '.g-recaptcha:not([style*="display: none"]):not([style*="visibility: hidden"])',
    'iframe[src*="recaptcha/api2"]:not([style*="display: none"])',
    '.recaptcha-checkbox[role="checkbox"]',
    '.recaptcha-challenge:not(.recaptcha-challenge-expired)',
]
CAPTCHA_TEXT_TAGS = 'div, p, h1, h2, h3, h4, h5, span'
CAPTCHA_PHRASES = [
    "please complete the security check",
    "confirm you're not a robot",
]

# Looser marker set used while waiting for a human to solve the challenge.
CAPTCHA_CLEARED_SELECTORS = [
    '.g-recaptcha:not([style*="display: none"])',
    'iframe[src*="recaptcha"]:not([style*="display: none"])',
    '.recaptcha-checkbox',
    '.recaptcha-challenge',
]

TICKET_CONTAINER_SELECTORS = [
    '[data-testid="quickpicksList"]',
    '.ticket-list',
    '[data-tid="ticket-tile"]',
    '.event-tickets',
    '.ticket-card',
    '[data-tid="verified-resale"]',
]
NO_RESULTS_TEXT = "Sorry, we couldn't find any results"


@dataclass(frozen=True)
class SelectorStrategy:
    """A named way of finding ticket elements on the page."""
    name: str
    selector: str


TICKET_STRATEGIES: Tuple[SelectorStrategy, ...] = (
    SelectorStrategy('quick picks list', '[data-testid="quickpicksList"] > div'),
    SelectorStrategy('ticket list', '.ticket-list > div'),
    SelectorStrategy('ticket tile', '[data-tid="ticket-tile"]'),
    SelectorStrategy('event tickets', '.event-tickets > div'),
    SelectorStrategy('ticket card', '.ticket-card'),
)

# Per-field selector cascades, tried in order inside each ticket element.
FIELD_SELECTORS: Dict[str, List[str]] = {
    'section': ['[data-testid="section-name"]', '[data-tid="section-name"]', '.section', '.section-name'],
    'price': ['[data-testid="price"]', '[data-tid="price"]', '.ticket-price', '.price'],
    'row': ['[data-testid="row-name"]', '[data-tid="row-name"]', '.row', '.row-name'],
    'type': ['[data-testid="verified-resale"]', '[data-tid="verified-resale"]', '.ticket-type', '.type'],
}

CAPTCHA_PROBE_SCRIPT = """
({selectors, textTags, phrases}) => {
    const describe = (el) => {
        const style = el.style || {};
        return {
            tag: el.tagName,
            offsetWidth: el.offsetWidth || 0,
            offsetHeight: el.offsetHeight || 0,
            hasOffsetParent: el.offsetParent !== null && el.offsetParent !== undefined,
            display: style.display || '',
            visibility: style.visibility || '',
            opacity: style.opacity || '',
        };
    };
    const found = [];
    for (const selector of selectors) {
        const el = document.querySelector(selector);
        if (el) found.push(describe(el));
    }
    for (const el of document.querySelectorAll(textTags)) {
        const text = (el.textContent || '').toLowerCase();
        if (phrases.some((phrase) => text.includes(phrase))) found.push(describe(el));
    }
    return found;
}
"""

CAPTCHA_CLEARED_SCRIPT = """
(selectors) => !selectors.some((selector) => {
    const el = document.querySelector(selector);
    return el !== null && (el.offsetParent !== null || el.tagName === 'BODY');
})
"""

AVAILABILITY_PROBE_SCRIPT = """
({containers, noResultsText}) => ({
    hasContainer: containers.some((selector) => document.querySelector(selector) !== null),
    hasNoResultsText: ((document.body && document.body.textContent) || '').includes(noResultsText),
})
"""

def is_visible(box: Optional[ElementBox]) -> bool:
    """Whether an element is actually showing to the user."""
    if box is None:
        return False

    has_size = box.offset_width > MIN_VISIBLE_SIZE and box.offset_height > MIN_VISIBLE_SIZE
    in_layout = box.has_offset_parent or box.tag == 'BODY'
    hidden_by_css = (
        box.visibility == 'hidden'
        or box.display == 'none'
        or box.opacity.strip() in ('0', '0.0')
    )
    return has_size and in_layout and not hidden_by_css


def resolve_availability(has_container: bool, has_no_results_text: bool) -> bool:
    """Ticket containers win; otherwise tickets are available unless the
    page says there are no results."""
    if has_container:
        return True
    return not has_no_results_text


def build_tickets(records: Sequence[Dict[str, Any]]) -> List[TicketInfo]:
    """Turn extracted records into tickets, keeping partial ones.

    Only called once availability is established, so an empty result
    becomes a single placeholder ticket rather than "no tickets".
    """
    tickets = [TicketInfo.from_record(record) for record in records]
    tickets = [ticket for ticket in tickets if ticket.has_details()]
    if not tickets:
        # NOTE: this also hides selector breakage. Kept so a page that shows
        # tickets in an unknown layout still triggers an alert.
        logger.warning("⚠️ Tickets appear available but no details could be parsed")
        tickets = [TicketInfo(type=SYNTHETIC_TICKET_TYPE)]
    return tickets


async def find_ticket_elements(page: Page) -> Tuple[Optional[SelectorStrategy], List[ElementHandle]]:
    """Return the first strategy that matches anything, with its elements."""
    for strategy in TICKET_STRATEGIES:
        elements = await page.query_selector_all(strategy.selector)
        if elements:
            return strategy, elements
    return None, []


async def first_text(element: ElementHandle, selectors: Sequence[str]) -> Optional[str]:
    """Text of the first selector in the cascade whose match has non-blank text."""
    for selector in selectors:
        match = await element.query_selector(selector)
        if match is None:
            continue
        text = (await match.text_content() or '').strip()
        if text:
            return text
    return None


async def read_ticket_fields(element: ElementHandle) -> Dict[str, str]:
    record = {}
    for name, selectors in FIELD_SELECTORS.items():
        text = await first_text(element, selectors)
        if text:
            record[name] = text
    return record


class PageStateDetector:
    """Inspects an already-loaded event page and produces one PollResult."""

    def __init__(
        self,
        page: Page,
        config: ScraperConfig,
        screenshot: Optional[Callable[[str], Awaitable[bool]]] = None,
    ):
        self.page = page
        self.config = config
        self._screenshot = screenshot
        self.captcha_detected = False

    async def detect(self) -> PollResult:
        """Run CAPTCHA, availability and extraction checks in order."""
        self.captcha_detected = await self.check_for_captcha()
        if self.captcha_detected and self.config.headless:
            logger.warning("⚠️ Running in headless mode, cannot solve CAPTCHA. Consider setting HEADLESS=false")
            return PollResult.none(captcha_detected=True)

        if not await self.check_for_tickets():
            return PollResult.none(captcha_detected=self.captcha_detected)

        tickets = await self.extract_tickets()
        return PollResult.from_tickets(tickets, captcha_detected=self.captcha_detected)

    async def check_for_captcha(self) -> bool:
        """Look for a visible challenge; in interactive mode wait for it to be solved."""
        probes = await self.page.evaluate(
            CAPTCHA_PROBE_SCRIPT,
            {'selectors': CAPTCHA_SELECTORS, 'textTags': CAPTCHA_TEXT_TAGS, 'phrases': CAPTCHA_PHRASES}
        )
        has_captcha = any(is_visible(ElementBox.from_dict(probe)) for probe in probes or [])
        if not has_captcha:
            return False

        logger.warning("⚠️ reCAPTCHA detected!")
        if not self.config.headless:
            await self._wait_for_captcha_solution()
        return True

    async def _wait_for_captcha_solution(self) -> None:
        if self._screenshot is not None:
            await self._screenshot(self.config.screenshot_path)
        logger.info("🙋 Please solve the CAPTCHA in the browser window, then wait for the check to continue...")

        try:
            await self.page.wait_for_function(
                CAPTCHA_CLEARED_SCRIPT,
                arg=CAPTCHA_CLEARED_SELECTORS,
                timeout=self.config.captcha_timeout * 1000
            )
            logger.info("✅ CAPTCHA appears to be solved, continuing...")
        except PlaywrightTimeoutError:
            logger.warning("⚠️ Timed out waiting for CAPTCHA resolution, will try to proceed anyway...")
        except PlaywrightError as e:
            logger.warning(f"⚠️ Error while waiting for CAPTCHA resolution: {e}, will try to proceed anyway...")

    async def check_for_tickets(self) -> bool:
        """Decide whether the page offers any tickets at all."""
        probe = await self.page.evaluate(
            AVAILABILITY_PROBE_SCRIPT,
            {'containers': TICKET_CONTAINER_SELECTORS, 'noResultsText': NO_RESULTS_TEXT}
        )
        has_container = bool(probe.get('hasContainer'))
        has_no_results_text = bool(probe.get('hasNoResultsText'))
        logger.debug(f"Ticket containers found: {has_container}, no-results text: {has_no_results_text}")

        available = resolve_availability(has_container, has_no_results_text)
        if not available:
            logger.info(f'❌ No tickets are available at the moment. "{NO_RESULTS_TEXT}" message found.')
        return available

    async def extract_tickets(self) -> List[TicketInfo]:
        """Read ticket details from the first selector strategy that matches."""
        logger.info("🔍 Extracting ticket information...")
        strategy, elements = await find_ticket_elements(self.page)
        if strategy:
            logger.info(f"   Found {len(elements)} potential ticket elements using {strategy.name}")
        else:
            logger.info("   No ticket elements matched any selector strategy")

        records = [await read_ticket_fields(element) for element in elements]
        tickets = build_tickets(records)
        logger.info(f"✅ Successfully extracted {len(tickets)} tickets")
        return tickets
