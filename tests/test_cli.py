"""
Tests for the Typer CLI against a local JSON document store.
"""

import json

import pytest
from typer.testing import CliRunner

from clubroom.adapters.local_store import LocalDocumentStore
from clubroom.cli.app import app
from clubroom.domain.exceptions import RemoteStoreError

runner = CliRunner()

MONDAY = "2030-01-07"


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "data.json"


@pytest.fixture
def config_file(tmp_path, data_file):
    path = tmp_path / "config.yaml"
    path.write_text(
        f"local_store_path: '{data_file.as_posix()}'\n"
        "sync:\n"
        "  settle_delay_seconds: 0\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def invoke(config_file):
    def _invoke(*args, role="member", input=None):
        return runner.invoke(
            app,
            ["--config", str(config_file), "--local", "--role", role, *args],
            input=input,
        )
    return _invoke


def _stored(data_file):
    return json.loads(data_file.read_text(encoding="utf-8"))


class TestBookingCommands:
    """Tests for book / cancel / day."""

    def test_book_and_show_day(self, invoke, data_file):
        """Test a booking is stored and shown on the day view."""
        result = invoke("book", MONDAY, "16:00-17:00", "Band A")

        assert result.exit_code == 0, result.output
        assert "Booked" in result.output

        bookings = _stored(data_file)["bookings"]
        assert len(bookings) == 1
        assert bookings[0]["date"] == MONDAY
        assert bookings[0]["timeSlot"] == "16:00-17:00"
        assert bookings[0]["bandName"] == "Band A"

        result = invoke("day", MONDAY)

        assert result.exit_code == 0, result.output
        assert "Band A" in result.output
        assert "17:00-18:00" in result.output

    def test_book_prompts_for_missing_values(self, invoke, data_file):
        result = invoke("book", MONDAY, input="17:00-18:00\nBand B\n")

        assert result.exit_code == 0, result.output
        assert _stored(data_file)["bookings"][0]["timeSlot"] == "17:00-18:00"

    def test_double_booking_rejected(self, invoke, data_file):
        """Test the second booking of a slot fails and changes nothing."""
        invoke("book", MONDAY, "16:00-17:00", "Band A")

        result = invoke("book", MONDAY, "16:00-17:00", "Band B")

        assert result.exit_code == 1
        assert "already booked" in result.output
        assert [b["bandName"] for b in _stored(data_file)["bookings"]] == ["Band A"]

    def test_blank_band_rejected(self, invoke, data_file):
        result = invoke("book", MONDAY, "16:00-17:00", "   ")

        assert result.exit_code == 1
        assert not data_file.exists()

    def test_past_date_rejected(self, invoke):
        result = invoke("book", "2000-01-03", "16:00-17:00", "Band A")

        assert result.exit_code == 1
        assert "past" in result.output

    def test_invalid_date(self, invoke):
        result = invoke("day", "2030-13-01")

        assert result.exit_code == 1
        assert "Invalid date" in result.output

    def test_cancel(self, invoke, data_file):
        invoke("book", MONDAY, "16:00-17:00", "Band A")
        booking_id = _stored(data_file)["bookings"][0]["id"]

        result = invoke("cancel", booking_id, "--yes")

        assert result.exit_code == 0, result.output
        assert _stored(data_file)["bookings"] == []

    def test_cancel_declined(self, invoke, data_file):
        """Test answering no keeps the booking."""
        invoke("book", MONDAY, "16:00-17:00", "Band A")
        booking_id = _stored(data_file)["bookings"][0]["id"]

        result = invoke("cancel", booking_id, input="n\n")

        assert result.exit_code == 1
        assert len(_stored(data_file)["bookings"]) == 1

    def test_cancel_unknown(self, invoke):
        result = invoke("cancel", "id-0-missing", "--yes")

        assert result.exit_code == 0
        assert "No booking" in result.output


class TestAdvisorCommands:
    """Tests for the schedule editing commands."""

    def test_member_cannot_edit_rules(self, invoke, data_file):
        result = invoke("rule-add", "wed", "16:00-17:00")

        assert result.exit_code == 1
        assert "advisor" in result.output
        assert not data_file.exists()

    def test_rule_add_and_remove(self, invoke, data_file):
        result = invoke("rule-add", "wed", "16:00-17:00", role="advisor")

        assert result.exit_code == 0, result.output
        rules = {r["dayOfWeek"]: r["slots"] for r in _stored(data_file)["rules"]}
        assert rules[3] == ["16:00-17:00"]

        result = invoke("rule-remove", "1", "16:00-17:00", role="advisor")

        assert result.exit_code == 0, result.output
        rules = {r["dayOfWeek"]: r["slots"] for r in _stored(data_file)["rules"]}
        assert rules[1] == ["17:00-18:00"]

    def test_rule_add_unknown_weekday(self, invoke):
        result = invoke("rule-add", "someday", "16:00-17:00", role="advisor")

        assert result.exit_code == 1
        assert "Unknown weekday" in result.output

    def test_rules_listing(self, invoke):
        result = invoke("rules")

        assert result.exit_code == 0, result.output
        assert "16:00-17:00" in result.output

    def test_override_commands(self, invoke, data_file):
        """Test customizing a date, closing it and resetting it."""
        result = invoke("override-add", MONDAY, "18:00-19:00", role="advisor")

        assert result.exit_code == 0, result.output
        specials = _stored(data_file)["specialSchedules"]
        assert specials == [{
            "date": MONDAY,
            "slots": ["16:00-17:00", "17:00-18:00", "18:00-19:00"],
            "isDisabled": False,
        }]

        for slot in ["16:00-17:00", "17:00-18:00", "18:00-19:00"]:
            result = invoke("override-remove", MONDAY, slot, role="advisor")
            assert result.exit_code == 0, result.output

        assert "closed" in result.output
        assert _stored(data_file)["specialSchedules"][0]["isDisabled"] is True

        result = invoke("override-reset", MONDAY, "--yes", role="advisor")

        assert result.exit_code == 0, result.output
        assert _stored(data_file)["specialSchedules"] == []

    def test_wipe(self, invoke, data_file):
        invoke("book", MONDAY, "16:00-17:00", "Band A")
        invoke("rule-add", "sun", "10:00-11:00", role="advisor")

        result = invoke("wipe", "--yes", role="advisor")

        assert result.exit_code == 0, result.output
        stored = _stored(data_file)
        assert stored["bookings"] == []
        assert stored["specialSchedules"] == []
        assert 0 not in [r["dayOfWeek"] for r in stored["rules"]]

    def test_wipe_declined(self, invoke, data_file):
        invoke("book", MONDAY, "16:00-17:00", "Band A")

        result = invoke("wipe", role="advisor", input="n\n")

        assert result.exit_code == 1
        assert len(_stored(data_file)["bookings"]) == 1


class TestMisc:
    """Tests for read-only commands and option handling."""

    def test_month(self, invoke):
        invoke("book", MONDAY, "16:00-17:00", "Band A")

        result = invoke("month", "2030-01")

        assert result.exit_code == 0, result.output
        assert "2030-01" in result.output

    def test_month_invalid(self, invoke):
        result = invoke("month", "January")

        assert result.exit_code == 1

    def test_refresh_summary(self, invoke):
        invoke("book", MONDAY, "16:00-17:00", "Band A")

        result = invoke("refresh")

        assert result.exit_code == 0, result.output
        assert "Bookings" in result.output

    def test_corrupt_store_keeps_defaults(self, invoke, data_file):
        """Test an unreadable store is reported and the command still runs."""
        data_file.write_text("{broken", encoding="utf-8")

        result = invoke("rules")

        assert result.exit_code == 0, result.output
        assert "Could not load" in result.output

    def test_missing_config_file(self, tmp_path):
        result = runner.invoke(app, ["--config", str(tmp_path / "missing.yaml"), "rules"])

        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_version(self, invoke):
        result = invoke("version")

        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestFailedLoad:
    """Tests for commands run while the store cannot be read."""

    @pytest.fixture
    def unreachable_store(self, monkeypatch):
        def _fail(self):
            raise RemoteStoreError("transient GET failure")

        monkeypatch.setattr(LocalDocumentStore, "fetch_document", _fail)

    def test_booking_refused_and_data_kept(self, invoke, data_file, monkeypatch):
        """Test a failed load stops a mutating command before it can overwrite the store."""
        invoke("book", MONDAY, "16:00-17:00", "Band A")
        invoke("book", MONDAY, "17:00-18:00", "Band B")

        def _fail(self):
            raise RemoteStoreError("transient GET failure")

        monkeypatch.setattr(LocalDocumentStore, "fetch_document", _fail)

        result = invoke("book", "2030-01-14", "16:00-17:00", "Band C")

        assert result.exit_code == 1
        assert "Could not load" in result.output
        assert [b["bandName"] for b in _stored(data_file)["bookings"]] == ["Band A", "Band B"]

    def test_advisor_commands_refused(self, invoke, data_file, unreachable_store):
        result = invoke("rule-add", "wed", "16:00-17:00", role="advisor")

        assert result.exit_code == 1
        assert not data_file.exists()

        result = invoke("wipe", "--yes", role="advisor")

        assert result.exit_code == 1
        assert not data_file.exists()

    def test_read_only_command_still_runs(self, invoke, unreachable_store):
        result = invoke("day", MONDAY)

        assert result.exit_code == 0, result.output
        assert "Could not load" in result.output
        assert "16:00-17:00" in result.output
