"""Tests for the run_log module."""
import re
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from resale_ticket_alert.errors import LogWriteError
from resale_ticket_alert.models import LogEntry
from resale_ticket_alert.run_log import LOG_HEADER, RunLogger, format_timestamp

TIMESTAMP_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}[+-]\d{2}:\d{2}$")


def make_entry(**overrides):
    values = dict(
        timestamp="2025-06-01T14:00:03+02:00",
        success=True,
        tickets_found=0,
        error_message="",
        run_duration=1500,
        captcha_detected=False,
    )
    values.update(overrides)
    return LogEntry(**values)


class TestFormatTimestamp:
    """Tests for format_timestamp."""

    def test_summer_time_in_paris(self):
        """Test a fixed instant is shown in Paris summer time."""
        instant = datetime(2025, 7, 5, 12, 30, 15, tzinfo=timezone.utc)
        assert format_timestamp(instant, "Europe/Paris") == "2025-07-05T14:30:15+02:00"

    def test_winter_time_in_paris(self):
        """Test the offset follows daylight saving."""
        instant = datetime(2025, 1, 15, 8, 0, 0, tzinfo=timezone.utc)
        assert format_timestamp(instant, "Europe/Paris") == "2025-01-15T09:00:00+01:00"

    def test_zone_west_of_utc_has_negative_sign(self):
        """Test zones behind UTC get a minus sign."""
        instant = datetime(2025, 1, 15, 8, 0, 0, tzinfo=timezone.utc)
        assert format_timestamp(instant, "America/New_York") == "2025-01-15T03:00:00-05:00"

    def test_utc_and_half_hour_offsets(self):
        """Test UTC is +00:00 and minutes are kept for partial-hour zones."""
        instant = datetime(2025, 1, 15, 8, 0, 0, tzinfo=timezone.utc)
        assert format_timestamp(instant, "UTC") == "2025-01-15T08:00:00+00:00"
        assert format_timestamp(instant, "Asia/Kolkata") == "2025-01-15T13:30:00+05:30"

    def test_naive_datetime_is_utc(self):
        """Test naive datetimes are treated as UTC."""
        assert format_timestamp(datetime(2025, 1, 15, 8, 0, 0), "UTC") == "2025-01-15T08:00:00+00:00"

    def test_now_matches_pattern(self):
        """Test the current time is formatted canonically."""
        assert TIMESTAMP_PATTERN.match(format_timestamp())


class TestRunLogger:
    """Tests for the RunLogger class."""

    def test_creates_file_with_header(self, tmp_path):
        """Test the first write adds the header row."""
        path = tmp_path / "runs.csv"
        run_logger = RunLogger(path)

        assert run_logger.log_run(make_entry()) is True

        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines == [
            ",".join(LOG_HEADER),
            "2025-06-01T14:00:03+02:00,true,0,,1500,false",
        ]

    def test_appends_without_repeating_header(self, tmp_path):
        """Test later writes only append rows."""
        path = tmp_path / "runs.csv"
        run_logger = RunLogger(path)

        run_logger.log_run(make_entry())
        run_logger.log_run(make_entry(success=False, error_message="Browser timeout", captcha_detected=True))

        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines[0] == "timestamp,success,ticketsFound,errorMessage,runDuration,captchaDetected"
        assert len(lines) == 3
        assert lines[2] == "2025-06-01T14:00:03+02:00,false,0,Browser timeout,1500,true"

    def test_creates_missing_directories(self, tmp_path):
        """Test the log directory is created on first write."""
        path = tmp_path / "logs" / "nested" / "runs.csv"

        assert RunLogger(path).log_run(make_entry(tickets_found=3)) is True
        assert path.exists()

    def test_write_failure_raises_log_write_error(self, tmp_path):
        """Test write() reports failures with LogWriteError."""
        run_logger = RunLogger(tmp_path / "runs.csv")

        with patch("pathlib.Path.open", side_effect=PermissionError("read-only")):
            with pytest.raises(LogWriteError):
                run_logger.write(make_entry())

    def test_log_run_failure_is_logged_not_raised(self, tmp_path):
        """Test log_run() swallows write failures after logging them."""
        run_logger = RunLogger(tmp_path / "runs.csv")

        with patch("pathlib.Path.open", side_effect=OSError("disk full")), \
                patch("resale_ticket_alert.run_log.logger") as mock_logger:
            assert run_logger.log_run(make_entry()) is False
            mock_logger.error.assert_called_once()
