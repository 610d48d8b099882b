"""
Tests for the taskcal CLI commands.

Commands that read items get a seeded InMemoryFacade instead of Google.
"""

from datetime import date

import pytest

from cli import main as cli
from taskcal.errors import RemoteError
from taskcal.integrations.memory import InMemoryFacade


@pytest.fixture
def facade(monkeypatch):
    facade = InMemoryFacade()
    facade.add_task_list("L1", "Inbox")
    facade.add_task("L1", "t1", "Pay rent", due=date(2025, 10, 20))
    monkeypatch.setattr(cli, "build_default_facade", lambda: facade)
    return facade


class TestParseCommands:
    """parse-date and parse-time echo how input is read."""

    def test_parse_date(self, capsys):
        cli.cmd_parse_date(["2025-10-20"])
        assert capsys.readouterr().out.startswith("2025-10-20")

    def test_parse_date_unrecognized(self, capsys):
        cli.cmd_parse_date(["someday"])
        assert "Unrecognized date: 'someday'" in capsys.readouterr().out

    def test_parse_time(self, capsys):
        cli.cmd_parse_time(["2:30", "PM"])
        assert capsys.readouterr().out.startswith("14:30")

    def test_parse_time_unrecognized(self, capsys):
        cli.cmd_parse_time(["25:99"])
        assert "Unrecognized time" in capsys.readouterr().out


class TestMonth:
    """Month grid and day listing."""

    def test_month_lists_items(self, facade, capsys):
        cli.cmd_month(["2025-10"])
        out = capsys.readouterr().out

        assert "2025-10" in out
        assert " 20*" in out
        assert "Mon Oct 20" in out
        assert "all day  Pay rent" in out
        assert len(facade.calls_to("list_events")) == 1

    def test_bad_month_argument(self, facade, capsys):
        cli.cmd_month(["2025-13"])
        assert "Month must be 1-12" in capsys.readouterr().out
        assert facade.calls == []

    def test_remote_failure_exits_with_hint(self, facade, capsys):
        facade.fail_next("list_task_lists", RemoteError("down", hint="Check the network."))

        with pytest.raises(SystemExit) as exc_info:
            cli.cmd_month(["2025-10"])

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "Could not load items: down" in out
        assert "Check the network." in out


class TestAgenda:
    """Upcoming items."""

    def test_empty_agenda(self, facade, capsys):
        facade.tasks["L1"].clear()
        cli.cmd_agenda(["3"])
        out = capsys.readouterr().out
        assert "NEXT 3 DAYS" in out
        assert "Nothing scheduled." in out

    def test_bad_days_argument(self, facade, capsys):
        cli.cmd_agenda(["abc"])
        assert "Expected a number of days, got abc" in capsys.readouterr().out
        assert facade.calls_to("list_events") == []


class TestMain:
    """Command dispatch."""

    def test_unknown_command(self, monkeypatch, capsys):
        monkeypatch.setattr(cli, "configure_logging", lambda level: None)
        monkeypatch.setattr("sys.argv", ["taskcal", "bogus"])
        cli.main()
        assert "Unknown command: bogus" in capsys.readouterr().out

    def test_no_command_shows_help(self, monkeypatch, capsys):
        monkeypatch.setattr(cli, "configure_logging", lambda level: None)
        monkeypatch.setattr("sys.argv", ["taskcal"])
        cli.main()
        assert "COMMANDS:" in capsys.readouterr().out

    def test_aliases(self):
        assert cli.COMMANDS["a"] is cli.cmd_agenda
        assert cli.COMMANDS["m"] is cli.cmd_month
