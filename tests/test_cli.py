"""
Tests for the Typer command line interface.
"""

import json

import pytest
from typer.testing import CliRunner

from salonslots.cli.app import app

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path):
    data_dir = tmp_path / "data"
    path = tmp_path / "config.yaml"
    path.write_text(
        "store:\n"
        "  backend: json\n"
        f"  data_dir: {data_dir.as_posix()}\n"
        "  key_prefix: test\n"
        "services:\n"
        "  - name: Extension Styles\n"
        "    duration: 5小时\n",
        encoding="utf-8",
    )
    return path


def _invoke(*args):
    return runner.invoke(app, list(args))


def test_available_on_open_tuesday(config_path):
    result = _invoke("available", "2024-11-26", "--hours", "3", "--config", str(config_path))

    assert result.exit_code == 0
    for time in ("09:00", "12:00", "15:00", "18:00"):
        assert time in result.output


def test_available_with_catalogue_service(config_path):
    result = _invoke("available", "2024-11-26", "--service", "Extension Styles", "--config", str(config_path))

    assert result.exit_code == 0
    assert "14:00" in result.output
    assert "18:00" not in result.output


def test_available_reads_bookings(config_path, tmp_path):
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "test_bookings.json").write_text(
        json.dumps([{"bookingId": "BK1", "selectedDate": "2024-11-27", "selectedTime": "09:00"}]),
        encoding="utf-8",
    )

    result = _invoke("available", "2024-11-27", "--hours", "3", "--config", str(config_path))

    assert result.exit_code == 0
    assert "09:00" not in result.output
    assert "12:00" in result.output


def test_available_without_service(config_path):
    result = _invoke("available", "2024-11-27", "--config", str(config_path))

    assert result.exit_code == 0
    assert "select a service" in result.output


def test_block_then_available(config_path):
    """A whole-day block leaves nothing to book."""
    block = _invoke("block", "2024-11-27", "--config", str(config_path))
    available = _invoke("available", "2024-11-27", "--hours", "3", "--config", str(config_path))

    assert block.exit_code == 0
    assert "whole day" in block.output
    assert available.exit_code == 0
    assert "No available times" in available.output


def test_block_and_unblock_time(config_path):
    block = _invoke("block", "2024-11-27", "12:00", "--config", str(config_path))
    grid = _invoke("grid", "2024-11-27", "--config", str(config_path))
    unblock = _invoke("unblock", "2024-11-27", "12:00", "--config", str(config_path))

    assert block.exit_code == 0
    assert "12:00" in block.output
    assert grid.exit_code == 0
    assert "blocked" in grid.output
    assert unblock.exit_code == 0
    assert "fully open" in unblock.output


def test_unblock_unknown_date_fails(config_path):
    result = _invoke("unblock", "2024-11-27", "--config", str(config_path))

    assert result.exit_code == 1
    assert "not found" in result.output


def test_invalid_date_fails(config_path):
    result = _invoke("available", "27.11.2024", "--hours", "3", "--config", str(config_path))

    assert result.exit_code == 1
    assert "YYYY-MM-DD" in result.output


def test_missing_config_fails(tmp_path):
    result = _invoke("grid", "2024-11-27", "--config", str(tmp_path / "missing.yaml"))

    assert result.exit_code == 1
    assert "Config file not found" in result.output


def _book(config_path, time, email="lin@example.com"):
    return _invoke(
        "book", "2024-11-27", time,
        "--service", "3小时",
        "--name", "Lin",
        "--wechat-name", "lin_nails",
        "--email", email,
        "--phone", "604 555 0199",
        "--config", str(config_path),
    )


class TestBookingCommands:
    """Tests for the book and cancel commands."""

    def test_book_then_cancel(self, config_path, tmp_path):
        """A booked time disappears from the offer until it is cancelled."""
        booked = _book(config_path, "12:00")
        stored = json.loads((tmp_path / "data" / "test_bookings.json").read_text(encoding="utf-8"))
        booking_id = stored["bookings"][0]["bookingId"]

        while_booked = _invoke("available", "2024-11-27", "--hours", "3", "--config", str(config_path))
        cancelled = _invoke("cancel", booking_id, "--config", str(config_path))
        after_cancel = _invoke("available", "2024-11-27", "--hours", "3", "--config", str(config_path))

        assert booked.exit_code == 0
        assert booking_id in booked.output
        assert "12:00" not in while_booked.output
        assert "09:00" in while_booked.output
        assert cancelled.exit_code == 0
        assert "12:00" in after_cancel.output

    def test_book_taken_time_fails(self, config_path):
        _book(config_path, "12:00")

        result = _book(config_path, "12:00")

        assert result.exit_code == 1
        assert "not available" in result.output

    def test_book_invalid_contact_fails(self, config_path):
        result = _book(config_path, "09:00", email="not-an-email")

        assert result.exit_code == 1
        assert "Invalid email address format" in result.output

    def test_cancel_unknown_booking_fails(self, config_path):
        result = _invoke("cancel", "BK404", "--config", str(config_path))

        assert result.exit_code == 1
        assert "Booking not found" in result.output


def test_list_services(config_path):
    result = _invoke("list-services", "--config", str(config_path))

    assert result.exit_code == 0
    assert "Extension Styles" in result.output


def test_version():
    result = _invoke("version")

    assert result.exit_code == 0
    assert "0.1.0" in result.output
