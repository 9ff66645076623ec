"""Resale Ticket Alert package.

This package watches a single event page for resale tickets, logs every
run to a CSV file and sends a notification when tickets appear.
"""

__version__ = "0.1.0"

# Import key components to make them available at the package level
from .app import TicketMonitor
from .models import AppConfig, LogEntry, PollResult, TicketInfo, ScraperConfig, NotificationConfig
from .notifications import TicketNotifier, NtfyNotificationService
from .scraper import TicketScraper
from .browser import BrowserManager
from .detector import PageStateDetector
from .errors import classify_error

__all__ = [
    'TicketMonitor',
    'AppConfig',
    'LogEntry',
    'PollResult',
    'TicketInfo',
    'ScraperConfig',
    'NotificationConfig',
    'TicketNotifier',
    'NtfyNotificationService',
    'TicketScraper',
    'BrowserManager',
    'PageStateDetector',
    'classify_error',
]
