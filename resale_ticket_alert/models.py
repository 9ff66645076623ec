"""Data models and types for the Resale Ticket Alert."""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

SYNTHETIC_TICKET_TYPE = "Available Ticket"


@dataclass(frozen=True)
class TicketInfo:
    """Represents one ticket listing observed on the event page."""
    section: Optional[str] = None
    price: Optional[str] = None
    row: Optional[str] = None
    type: Optional[str] = None

    def has_details(self) -> bool:
        """Whether at least one field was resolved."""
        return any((self.section, self.price, self.row, self.type))

    def summary(self) -> str:
        """Join the present section, row and price fields for display."""
        details = []
        if self.section:
            details.append(self.section)
        if self.row:
            details.append(f"Row {self.row}")
        if self.price:
            details.append(self.price)
        return ", ".join(details)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "TicketInfo":
        """Build from a raw record returned by a page evaluation."""
        def clean(key: str) -> Optional[str]:
            value = record.get(key)
            if value is None:
                return None
            value = str(value).strip()
            return value or None

        return cls(
            section=clean("section"),
            price=clean("price"),
            row=clean("row"),
            type=clean("type"),
        )


@dataclass(frozen=True)
class PollResult:
    """Outcome of one poll of the event page."""
    found: bool
    count: int
    tickets: Tuple[TicketInfo, ...] = ()
    captcha_detected: bool = False
    error: Optional[str] = None

    @classmethod
    def none(cls, captcha_detected: bool = False, error: Optional[str] = None) -> "PollResult":
        """A negative result: nothing found."""
        return cls(found=False, count=0, tickets=(), captcha_detected=captcha_detected, error=error)

    @classmethod
    def from_tickets(cls, tickets: Sequence[TicketInfo], captcha_detected: bool = False) -> "PollResult":
        tickets = tuple(tickets)
        return cls(
            found=len(tickets) > 0,
            count=len(tickets),
            tickets=tickets,
            captcha_detected=captcha_detected,
        )


@dataclass(frozen=True)
class LogEntry:
    """One row of the run log, written once per top-level run."""
    timestamp: str
    success: bool
    tickets_found: int
    error_message: str
    run_duration: int  # milliseconds
    captcha_detected: bool

    def as_row(self) -> List[str]:
        """Render as CSV cells, booleans in lower case."""
        return [
            self.timestamp,
            _flag(self.success),
            str(self.tickets_found),
            self.error_message,
            str(self.run_duration),
            _flag(self.captcha_detected),
        ]


def _flag(value: bool) -> str:
    return "true" if value else "false"


@dataclass
class StepOutcome:
    """Result of a best-effort step that reports problems as warnings."""
    ok: bool = True
    warnings: List[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        self.ok = False
        self.warnings.append(message)


@dataclass(frozen=True)
class ElementBox:
    """Layout facts about one DOM element, as reported by the page."""
    tag: str = ""
    offset_width: float = 0
    offset_height: float = 0
    has_offset_parent: bool = False
    display: str = ""
    visibility: str = ""
    opacity: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ElementBox":
        return cls(
            tag=str(data.get("tag") or "").upper(),
            offset_width=data.get("offsetWidth") or 0,
            offset_height=data.get("offsetHeight") or 0,
            has_offset_parent=bool(data.get("hasOffsetParent")),
            display=str(data.get("display") or ""),
            visibility=str(data.get("visibility") or ""),
            opacity=str(data.get("opacity") if data.get("opacity") is not None else ""),
        )


@dataclass(frozen=True)
class ScraperConfig:
    """Configuration for the browser session and page checks."""
    headless: bool = True
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/122.0.0.0 Safari/537.36"
    )
    viewport: Tuple[int, int] = (1280, 720)
    navigation_timeout: int = 60  # seconds
    content_timeout: int = 30  # seconds
    captcha_timeout: int = 120  # seconds
    close_grace_period: float = 3.0  # seconds, interactive mode only
    screenshot_path: str = "captcha-detected.png"


@dataclass(frozen=True)
class NotificationConfig:
    """Configuration for notifications."""
    notify_url: str = "https://ntfy.sh/ticket-alert"
    title: str = "Ticket Alert"
    priority: str = "urgent"
    tags: Tuple[str, ...] = ("warning", "skull")
    action_label: str = "Open Ticketmaster"
    open_browser: bool = True
    timeout: float = 30.0


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration, read once at start-up."""
    event_url: str
    interval_minutes: float = 10.0
    max_retries: int = 3
    retry_delay: float = 5.0  # seconds, multiplied by the attempt number
    log_file_path: Path = field(default_factory=lambda: Path.cwd() / "ticketmaster_scraping_log.csv")
    log_level: str = "INFO"
    timezone: str = "Europe/Paris"
    scraper: ScraperConfig = field(default_factory=ScraperConfig)
    notification: NotificationConfig = field(default_factory=NotificationConfig)
