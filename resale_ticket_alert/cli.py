"""Command-line interface for the Resale Ticket Alert."""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from resale_ticket_alert import __version__
from resale_ticket_alert.app import TicketMonitor
from resale_ticket_alert.config import VALID_LOG_LEVELS, load_config
from resale_ticket_alert.models import AppConfig

logger = logging.getLogger(__name__)


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments.

    Options left unset fall back to the environment / .env settings.

    Args:
        args: List of command line arguments. If None, uses sys.argv[1:].

    Returns:
        Parsed arguments.
    """
    parser = argparse.ArgumentParser(
        description="Watch an event page for resale tickets and get notified when they appear.",
    )

    event_group = parser.add_argument_group('Event Configuration')
    event_group.add_argument(
        '--event-url',
        type=str,
        help='URL of the event page to monitor',
    )

    notification_group = parser.add_argument_group('Notification Configuration')
    notification_group.add_argument(
        '--ntfy-url',
        type=str,
        help='ntfy topic URL to post notifications to',
    )
    notification_group.add_argument(
        '--no-open-browser',
        dest='open_browser',
        action='store_false',
        default=None,
        help='do not open the event page locally when tickets are found',
    )

    schedule_group = parser.add_argument_group('Schedule')
    schedule_group.add_argument(
        '--interval',
        type=float,
        help='minutes between checks',
    )
    schedule_group.add_argument(
        '--max-retries',
        type=int,
        help='attempts per check before giving up until the next one',
    )
    schedule_group.add_argument(
        '--once',
        action='store_true',
        help='run a single check (with retries) and exit',
    )

    browser_group = parser.add_argument_group('Browser Configuration')
    browser_group.add_argument(
        '--headless',
        dest='headless',
        action='store_true',
        default=None,
        help='run browser in headless mode',
    )
    browser_group.add_argument(
        '--no-headless',
        dest='headless',
        action='store_false',
        help='run browser with GUI so a CAPTCHA can be solved by hand',
    )

    log_group = parser.add_argument_group('Logging')
    log_group.add_argument(
        '--log-file',
        type=str,
        help='CSV file the run log is appended to',
    )
    log_group.add_argument(
        '--log-level',
        type=str,
        choices=sorted(VALID_LOG_LEVELS),
        help='logging level',
    )
    log_group.add_argument(
        '--verbose', '-v',
        action='store_const',
        const='DEBUG',
        dest='log_level',
        help='enable verbose output (same as --log-level DEBUG)',
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}',
        help='show version and exit',
    )

    if args is None:
        args = sys.argv[1:]
    return parser.parse_args(args)


def create_config_from_args(args: argparse.Namespace, env_file: Optional[str] = '.env') -> AppConfig:
    """Build the configuration snapshot, command line taking precedence."""
    return load_config(
        env_file=env_file,
        TICKETMASTER_URL=args.event_url,
        NTFY_URL=args.ntfy_url,
        OPEN_BROWSER=args.open_browser,
        INTERVAL_MINUTES=args.interval,
        MAX_RETRIES=args.max_retries,
        HEADLESS=args.headless,
        LOG_FILE_PATH=args.log_file,
        LOG_LEVEL=args.log_level,
    )


def configure_logging(level: str = 'INFO') -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as a string (e.g., 'INFO', 'DEBUG').
    """
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
        ]
    )

    # Set log level for Playwright to WARNING to reduce noise
    logging.getLogger('playwright').setLevel(logging.WARNING)


def print_config(config: AppConfig) -> None:
    """Print the current configuration."""
    print("\n=== Resale Ticket Alert ===")
    print(f"\nEvent URL:\n  {config.event_url}")
    print(f"\nCheck Interval:\n  every {config.interval_minutes:g} minutes, {config.max_retries} attempts per check")
    print(f"\nBrowser:\n  Headless: {'enabled' if config.scraper.headless else 'disabled'}")
    print(f"\nNotifications:\n  {config.notification.notify_url}")
    print(f"\nRun Log:\n  {config.log_file_path}")
    print(f"\nLog Level: {config.log_level}")
    print("=" * 27 + "\n")


async def async_main(args: Optional[List[str]] = None) -> int:
    """Async entry point for the CLI."""
    parsed = parse_args(args)

    try:
        config = create_config_from_args(parsed)
    except ValidationError as e:
        configure_logging()
        logger.error(f"❌ Invalid configuration:\n{e}")
        return 2

    configure_logging(level=config.log_level)
    print_config(config)

    monitor = TicketMonitor(config)
    try:
        if parsed.once:
            await monitor.run_with_retry()
        else:
            monitor.install_signal_handlers()
            await monitor.run()
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        return 1

    logger.info("👋 Ticket checking stopped by user" if monitor.shutdown_event.is_set() else "👋 Done")
    return 0


def main() -> int:
    """Main entry point for CLI."""
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        print("\n👋 Ticket checking stopped by user")
        return 0


if __name__ == "__main__":
    sys.exit(main())
