"""Command dispatch and the logged-in user check."""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Any, Callable

from gator.config import Config
from gator.database import DatabaseError, Queries
from gator.models import User


class CommandError(Exception):
    """A command failed; the message says why."""


@dataclass
class Command:
    """A command name and its arguments."""

    name: str
    args: list[str] = field(default_factory=list)


@dataclass
class State:
    """What every command works with: the database and the configuration."""

    db: Queries
    config: Config


Handler = Callable[[State, Command], Any]
UserHandler = Callable[[State, Command, User], Any]


class Commands:
    """A registry of command handlers by name."""

    def __init__(self) -> None:
        self.handlers: dict[str, Handler] = {}

    def register(self, name: str, handler: Handler) -> None:
        """Register ``handler`` under ``name``, replacing any earlier one."""
        self.handlers[name] = handler

    def run(self, state: State, command: Command) -> Any:
        """Run the handler registered for ``command.name``."""
        try:
            handler = self.handlers[command.name]
        except KeyError:
            raise CommandError("command not found") from None
        return handler(state, command)


def logged_in(handler: UserHandler) -> Handler:
    """Wrap ``handler`` so it receives the current user as a third argument."""

    @functools.wraps(handler)
    def wrapper(state: State, command: Command) -> Any:
        try:
            user = state.db.get_user(state.config.current_user_name)
        except DatabaseError as exc:
            raise CommandError(f"couldn't retrieve user: {exc}") from exc
        return handler(state, command, user)

    return wrapper