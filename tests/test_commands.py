from datetime import datetime, timezone
from uuid import uuid4

import pytest

from gator.commands import Command, CommandError, Commands, State, logged_in
from gator.config import Config
from gator.database import connect


@pytest.fixture
def state(tmp_path):
    with connect(":memory:") as db:
        yield State(db=db, config=Config(db_url=":memory:", path=tmp_path / "config.json"))


def test_command_defaults_to_no_args():
    assert Command("users").args == []


def test_run_dispatches_to_registered_handler(state):
    calls = []
    commands = Commands()
    commands.register("echo", lambda s, c: calls.append((s, c)) or len(c.args))
    command = Command("echo", ["a", "b"])
    assert commands.run(state, command) == 2
    assert calls == [(state, command)]


def test_register_replaces_handler(state):
    commands = Commands()
    commands.register("x", lambda s, c: "first")
    commands.register("x", lambda s, c: "second")
    assert commands.run(state, Command("x")) == "second"


def test_unknown_command(state):
    with pytest.raises(CommandError, match="command not found"):
        Commands().run(state, Command("nope"))


def test_logged_in_passes_current_user(state):
    now = datetime.now(timezone.utc)
    created = state.db.create_user(uuid4(), now, now, "alice")
    state.config.current_user_name = "alice"

    @logged_in
    def handler(s, c, user):
        return user

    assert handler(state, Command("whoami")) == created


def test_logged_in_without_user(state):
    state.config.current_user_name = "ghost"
    wrapped = logged_in(lambda s, c, user: user)
    with pytest.raises(CommandError, match="couldn't retrieve user"):
        wrapped(state, Command("whoami"))