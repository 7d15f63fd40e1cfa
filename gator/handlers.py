"""The commands of the feed aggregator."""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from gator.commands import Command, CommandError, State
from gator.database import DatabaseError, Queries, UniqueViolationError
from gator.models import Feed, FeedFollowRow, PostRow, User
from gator.rss import FeedError, fetch_feed

logger = logging.getLogger(__name__)

MIN_INTERVAL = timedelta(minutes=1)
_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
_RFC1123Z = "%a, %d %b %Y %H:%M:%S %z"
_SEPARATOR = "======================================"
_POST_SEPARATOR = "====================================="

_UNITS = {
    "ns": Decimal("0.001"),
    "us": Decimal(1),
    "µs": Decimal(1),
    "μs": Decimal(1),
    "ms": Decimal(1000),
    "s": Decimal(1_000_000),
    "m": Decimal(60_000_000),
    "h": Decimal(3_600_000_000),
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)([^\d.]*)")
_INTEGER = re.compile(r"[+-]?\d+")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _usage(command: Command, rest: str) -> CommandError:
    return CommandError(f"usage: {command.name} {rest}")


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``1h30m``, ``90s`` or ``1.5m``."""
    rest = text
    sign = 1
    if rest[:1] in ("+", "-"):
        sign = -1 if rest[0] == "-" else 1
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f'time: invalid duration "{text}"')

    total = Decimal(0)
    pos = 0
    while pos < len(rest):
        match = _DURATION_PART.match(rest, pos)
        if match is None:
            raise ValueError(f'time: invalid duration "{text}"')
        number, unit = match.groups()
        if not unit:
            raise ValueError(f'time: missing unit in duration "{text}"')
        if unit not in _UNITS:
            raise ValueError(f'time: unknown unit "{unit}" in duration "{text}"')
        total += Decimal(number) * _UNITS[unit]
        pos = match.end()
    return timedelta(microseconds=int(sign * total))


def _format_duration(interval: timedelta) -> str:
    micros = interval // timedelta(microseconds=1)
    sign = "-" if micros < 0 else ""
    micros = abs(micros)
    hours, micros = divmod(micros, 3_600_000_000)
    minutes, micros = divmod(micros, 60_000_000)
    seconds, micros = divmod(micros, 1_000_000)
    secs = f"{seconds}.{micros:06d}".rstrip("0") if micros else str(seconds)
    if hours:
        return f"{sign}{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{sign}{minutes}m{secs}s"
    return f"{sign}{secs}s"


# aggregation


def handler_agg(state: State, command: Command) -> None:
    """Scrape the stalest feed, then repeat at the given interval forever."""
    if len(command.args) != 1:
        raise _usage(command, "<time_between_reqs>")
    try:
        interval = parse_duration(command.args[0])
    except ValueError as exc:
        raise CommandError(f"error parsing time_between_reqs: {exc}") from exc
    # Prevent excessive requests.
    interval = max(interval, MIN_INTERVAL)

    print(f"Collecting feeds every {_format_duration(interval)}")
    while True:
        scrape_feeds(state)
        time.sleep(interval.total_seconds())


def scrape_feeds(state: State) -> None:
    """Scrape the feed that was fetched longest ago."""
    try:
        feed = state.db.get_next_feed_to_fetch()
    except DatabaseError as exc:
        logger.error("error getting next feed to fetch: %s", exc)
        return
    logger.info("found a feed to fetch")
    scrape_feed(state.db, feed)


def _parse_pub_date(value: str) -> datetime:
    try:
        return datetime.strptime(value, _RFC1123Z)
    except ValueError as exc:
        logger.error("error parsing time: %s", exc)
        return _ZERO_TIME


def scrape_feed(db: Queries, feed: Feed) -> None:
    """Mark ``feed`` fetched, download it and store its new posts."""
    try:
        db.mark_feed_fetched(feed.id)
    except DatabaseError as exc:
        logger.error("error marking feed as fetched: %s", exc)
        return

    try:
        data = fetch_feed(feed.url)
    except FeedError as exc:
        logger.error("error fetching feed: %s", exc)
        return

    for item in data.items:
        print(f"Found post: {item.title}")
        published_at = _parse_pub_date(item.pub_date)
        now = _now()
        try:
            db.create_post(
                uuid4(),
                now,
                now,
                item.title,
                item.link,
                item.description,
                published_at,
                feed.id,
            )
        except UniqueViolationError:
            continue
        except DatabaseError as exc:
            logger.error("Couldn't create post: %s", exc)
    logger.info("Feed %s collected, %d posts found", feed.name, len(data.items))


# browsing


def handler_browse(state: State, command: Command, user: User) -> None:
    """Show the newest posts from the feeds the user follows."""
    limit = 2
    if len(command.args) == 1:
        text = command.args[0]
        if not _INTEGER.fullmatch(text):
            raise CommandError(f'error parsing int: invalid syntax "{text}"')
        limit = int(text)

    try:
        posts = state.db.get_posts_for_user(user.id, limit)
    except DatabaseError as exc:
        raise CommandError(f"error fetching posts: {exc}") from exc

    print(f"Found {len(posts)} posts for {user.name}")
    _print_posts(posts)


def _print_posts(posts: list[PostRow]) -> None:
    for post in posts:
        published = post.published_at or _ZERO_TIME
        print(f"{published:%a %b} {published.day} from {post.feed_name}")
        print(f"--- {post.title} ---")
        print(f"    {post.description or ''}")
        print(f"Link: {post.url}")
        print(_POST_SEPARATOR)


# feeds


def handler_add_feed(state: State, command: Command, user: User) -> None:
    """Add a feed and follow it as the current user."""
    if len(command.args) != 2:
        raise _usage(command, "<name> <url>")
    name, url = command.args
    now = _now()
    try:
        feed = state.db.create_feed(uuid4(), now, now, name, url, user.id)
    except DatabaseError as exc:
        raise CommandError(f"error creating feed: {exc}") from exc

    print(f"feed entry for {feed.name} has been created:")
    _print_feed(feed, user)
    print()

    try:
        _follow_created(state, url, user)
    except CommandError as exc:
        raise CommandError(f"error following feed: {exc}") from exc
    print(_SEPARATOR)


def _print_feed(feed: Feed, user: User) -> None:
    print(f"* ID:            {feed.id}")
    print(f"* Created:       {feed.created_at}")
    print(f"* Updated:       {feed.updated_at}")
    print(f"* Name:          {feed.name}")
    print(f"* URL:           {feed.url}")
    print(f"* User:          {user.name}")


def handler_feeds(state: State, command: Command) -> None:
    """List every feed with the user who added it."""
    try:
        feeds = state.db.get_feeds()
    except DatabaseError as exc:
        raise CommandError(f"error retrieving feed entries from db: {exc}") from exc

    if not feeds:
        print("No feeds found.")
        return

    print(f"Found {len(feeds)} feeds:")
    for feed in feeds:
        try:
            user = state.db.get_user_by_id(feed.user_id)
        except DatabaseError as exc:
            raise CommandError(f"error retrieving feed entry author: {exc}") from exc
        _print_feed(feed, user)
        print(_SEPARATOR)


# follows


def handler_follow(state: State, command: Command, user: User) -> None:
    """Follow the feed with the given URL."""
    if len(command.args) != 1:
        raise _usage(command, "<url>")
    try:
        feed = state.db.get_feed_by_url(command.args[0])
    except DatabaseError as exc:
        raise CommandError(f"couldn't retrieve info for url: {exc}") from exc

    now = _now()
    try:
        follow = state.db.create_feed_follow(uuid4(), now, now, user.id, feed.id)
    except DatabaseError as exc:
        raise CommandError(f"error while creating feed follow: {exc}") from exc

    print("Feed follow created:")
    _print_feed_follow(follow.user_name, follow.feed_name)


def handler_following(state: State, command: Command, user: User) -> None:
    """List the feeds the user follows."""
    try:
        follows = state.db.get_feed_follows_for_user(user.id)
    except DatabaseError as exc:
        raise CommandError(f"error retrieving feed follows for current user: {exc}") from exc

    if not follows:
        print("Current user does not follow any feed.")
        return
    _print_feed_follows(follows)


def _print_feed_follows(follows: list[FeedFollowRow]) -> None:
    print("currently following: ")
    for follow in follows:
        print(f"- {follow.feed_name}")


def _follow_created(state: State, url: str, user: User) -> None:
    handler_follow(state, Command("follow", [url]), user)


def _print_feed_follow(user_name: str, feed_name: str) -> None:
    print(f"* User:          {user_name}")
    print(f"* Feed:          {feed_name}")


def handler_unfollow(state: State, command: Command, user: User) -> None:
    """Stop following the feed with the given URL."""
    if len(command.args) != 1:
        raise _usage(command, "<url>")
    try:
        feed = state.db.get_feed_by_url(command.args[0])
    except DatabaseError as exc:
        raise CommandError(f"error retrieving feed info: {exc}") from exc

    try:
        state.db.delete_feed_follow(user.id, feed.id)
    except DatabaseError as exc:
        raise CommandError(f"error unfollowing: {exc}") from exc
    print(f"{feed.name} unfollowed")


# users


def handler_reset(state: State, command: Command) -> None:
    """Delete every user and everything they own."""
    try:
        state.db.reset()
    except DatabaseError as exc:
        raise CommandError(f"error resetting db: {exc}") from exc
    print("Db reset")


def handler_login(state: State, command: Command) -> None:
    """Switch the current user to an existing one."""
    if len(command.args) != 1:
        raise _usage(command, "<name>")
    name = command.args[0]
    try:
        user = state.db.get_user(name)
    except DatabaseError as exc:
        raise CommandError(f"user {name} does not exist in database") from exc

    try:
        state.config.set_user(user.name)
    except OSError as exc:
        raise CommandError(f"couldn't switch current user to {exc}") from exc
    print(f"username has been set to {user.name}")


def handler_register(state: State, command: Command) -> None:
    """Create a user and make it the current one."""
    if len(command.args) != 1:
        raise _usage(command, "<name>")
    now = _now()
    try:
        user = state.db.create_user(uuid4(), now, now, command.args[0])
    except DatabaseError as exc:
        raise CommandError(f"error creating user: {exc}") from exc

    try:
        state.config.set_user(user.name)
    except OSError as exc:
        raise CommandError(str(exc)) from exc

    print(f"user {user.name} has been created")
    _print_user(user)


def _print_user(user: User) -> None:
    print(f" * ID:      {user.id}")
    print(f" * Name:    {user.name}")


def handler_users(state: State, command: Command) -> None:
    """List every user, marking the current one."""
    try:
        users = state.db.get_users()
    except DatabaseError as exc:
        raise CommandError(f"error retrieving users list from db: {exc}") from exc
    for user in users:
        marker = " (current)" if user.name == state.config.current_user_name else ""
        print(f"* {user.name}{marker}")