"""The gator command line."""

from __future__ import annotations

import logging
import sys

from gator.commands import Command, CommandError, Commands, State, logged_in
from gator.config import read_config
from gator.database import DatabaseError, connect
from gator.handlers import (
    handler_add_feed,
    handler_agg,
    handler_browse,
    handler_feeds,
    handler_follow,
    handler_following,
    handler_login,
    handler_register,
    handler_reset,
    handler_unfollow,
    handler_users,
)

logger = logging.getLogger(__name__)


def build_commands() -> Commands:
    """Return the registry of every command the program knows."""
    commands = Commands()
    commands.register("login", handler_login)
    commands.register("register", handler_register)
    commands.register("reset", handler_reset)
    commands.register("users", handler_users)
    commands.register("agg", handler_agg)
    commands.register("addfeed", logged_in(handler_add_feed))
    commands.register("feeds", handler_feeds)
    commands.register("follow", logged_in(handler_follow))
    commands.register("following", logged_in(handler_following))
    commands.register("unfollow", logged_in(handler_unfollow))
    commands.register("browse", logged_in(handler_browse))
    return commands


def main(argv: list[str] | None = None) -> int:
    """Run one command; return the process exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    try:
        config = read_config()
    except (OSError, ValueError) as exc:
        logger.error("error reading config: %s", exc)
        return 1

    try:
        db = connect(config.db_url)
    except DatabaseError as exc:
        logger.error("error connecting to db: %s", exc)
        return 1

    with db:
        if not args:
            logger.error("usage: cli <command> [args...]")
            return 1
        command = Command(args[0], args[1:])
        try:
            build_commands().run(State(db=db, config=config), command)
        except CommandError as exc:
            logger.error("error running command %s: %s", command.name, exc)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())