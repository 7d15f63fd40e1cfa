import json
import logging

import pytest

from gator.cli import build_commands, main
from gator.commands import Command, CommandError


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    return tmp_path


def _write_config(home, user=""):
    payload = {"db_url": str(home / "gator.db"), "current_user_name": user}
    (home / ".gatorconfig.json").write_text(json.dumps(payload), encoding="utf-8")


def test_build_commands_registers_every_command():
    assert sorted(build_commands().handlers) == sorted(
        [
            "login", "register", "reset", "users", "agg", "addfeed",
            "feeds", "follow", "following", "unfollow", "browse",
        ]
    )


def test_build_commands_rejects_unknown():
    with pytest.raises(CommandError, match="command not found"):
        build_commands().run(None, Command("nope"))


def test_main_without_config(home, caplog):
    with caplog.at_level(logging.INFO):
        assert main(["users"]) == 1
    assert "error reading config" in caplog.text


def test_main_without_command(home, caplog):
    _write_config(home)
    with caplog.at_level(logging.INFO):
        assert main([]) == 1
    assert "usage: cli <command> [args...]" in caplog.text


def test_main_register_then_users(home, capsys):
    _write_config(home)
    assert main(["register", "alice"]) == 0
    saved = json.loads((home / ".gatorconfig.json").read_text(encoding="utf-8"))
    assert saved["current_user_name"] == "alice"
    capsys.readouterr()
    assert main(["users"]) == 0
    assert capsys.readouterr().out == "* alice (current)\n"


def test_main_failing_command(home, caplog):
    _write_config(home)
    with caplog.at_level(logging.INFO):
        assert main(["login", "nobody"]) == 1
    assert "error running command login" in caplog.text


def test_main_logged_in_command_requires_user(home, caplog):
    _write_config(home, user="ghost")
    with caplog.at_level(logging.INFO):
        assert main(["following"]) == 1
    assert "couldn't retrieve user" in caplog.text