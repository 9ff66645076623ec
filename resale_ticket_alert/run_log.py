"""
Run logging: timestamps and the append-only CSV run log.
"""
import csv
import logging
from datetime import datetime, timezone as dt_timezone
from pathlib import Path
from typing import Optional, Union
from zoneinfo import ZoneInfo

from .errors import LogWriteError
from .models import LogEntry

logger = logging.getLogger(__name__)

LOG_HEADER = ["timestamp", "success", "ticketsFound", "errorMessage", "runDuration", "captchaDetected"]


def format_timestamp(now: Optional[datetime] = None, timezone: str = "Europe/Paris") -> str:
    """Format an instant as ``YYYY-MM-DDThh:mm:ss+hh:mm`` in the given zone.

    Naive datetimes are taken to be UTC. The offset sign is ``+`` for zones
    at or east of UTC.
    """
    if now is None:
        now = datetime.now(dt_timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=dt_timezone.utc)

    local = now.astimezone(ZoneInfo(timezone))
    offset_minutes = int(local.utcoffset().total_seconds() // 60)
    sign = "+" if offset_minutes >= 0 else "-"
    hours, minutes = divmod(abs(offset_minutes), 60)
    return f"{local.strftime('%Y-%m-%dT%H:%M:%S')}{sign}{hours:02d}:{minutes:02d}"


class RunLogger:
    """Appends one CSV row per run, creating the file with a header first."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def write(self, entry: LogEntry) -> None:
        """Append an entry, raising LogWriteError if the file can't be written."""
        try:
            is_new = not self.path.exists()
            if is_new:
                self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", newline="", encoding="utf-8") as fh:
                writer = csv.writer(fh, lineterminator="\n")
                if is_new:
                    writer.writerow(LOG_HEADER)
                writer.writerow(entry.as_row())
        except OSError as e:
            raise LogWriteError(f"Could not write run log {self.path}: {e}") from e

    def log_run(self, entry: LogEntry) -> bool:
        """Append an entry; failures are logged and reported as False."""
        try:
            self.write(entry)
        except LogWriteError as e:
            logger.error(f"❌ Error logging run information: {e}")
            return False

        logger.info(f"📝 Run information logged to {self.path}")
        return True
