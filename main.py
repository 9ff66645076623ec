"""Resale Ticket Alert

Watches an event page for resale tickets and sends notifications when available.
"""
import logging
import sys


def main() -> int:
    """Main entry point that runs the CLI with proper asyncio setup."""
    try:
        # Import here so logging errors during import are reported below
        from resale_ticket_alert.cli import main as cli_main

        return cli_main()

    except Exception as e:
        logging.error(f"Unexpected error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
