# gator

`gator` is a small command-line RSS aggregator. It keeps a list of users,
the feeds they have added and the feeds they follow, collects the posts of
those feeds into a local SQLite database, and lets the current user browse
the newest posts from the feeds they follow.

It has no dependencies beyond the Python standard library (3.10 or later).

## Installation

```
pip install .
```

This installs the `gator` command. `python -m gator.cli` runs the same
program.

## Configuration

`gator` reads its settings from `.gatorconfig.json` in your home directory.
The file must exist before the first run; create it by hand:

```json
{"db_url": "/home/alice/gator.db", "current_user_name": ""}
```

- `db_url` names the SQLite database. It may be a file path, `:memory:`,
  or a `sqlite:///path` URL. Any other `scheme://` URL is rejected. The
  tables are created automatically the first time the database is opened.
- `current_user_name` is the user commands act on. `gator` rewrites the
  file itself when you `register` or `login`.

Both fields must be strings; a missing field counts as empty.

## Usage

```
gator <command> [args...]
```

| Command                      | What it does                                                        |
|------------------------------|---------------------------------------------------------------------|
| `register <name>`            | Create a user and make it the current user.                         |
| `login <name>`               | Switch to an existing user.                                         |
| `users`                      | List all users, marking the current one with `(current)`.           |
| `addfeed <name> <url>`       | Add a feed and follow it as the current user.                       |
| `feeds`                      | List every feed with the user who added it.                         |
| `follow <url>`               | Follow an already added feed.                                       |
| `unfollow <url>`             | Stop following a feed.                                              |
| `following`                  | List the feeds the current user follows.                            |
| `agg <time_between_reqs>`    | Collect posts forever, one feed per tick (e.g. `1m`, `1h30m`).      |
| `browse [limit]`             | Show the newest posts from followed feeds (default limit: 2).       |
| `reset`                      | Delete all users, and with them their feeds, follows and posts.     |

User names and feed URLs are unique; adding a second feed with the same URL
or following the same feed twice fails.

### Collecting posts

`agg` takes a duration made of numbers and units (`ns`, `us`, `ms`, `s`,
`m`, `h`), such as `90s`, `1.5m` or `1h30m`. Intervals shorter than one
minute are raised to one minute so feeds are not polled too aggressively.

On every tick it picks the feed that was fetched longest ago (never-fetched
feeds first), marks it fetched, downloads it (10 second timeout, `User-Agent:
gator`) and stores each item as a post. Items whose link is already stored
are skipped. Publication dates are read in the `Mon, 02 Jan 2006 15:04:05
-0700` form; a date that does not parse is logged and stored as year 1.
Progress and errors are logged to standard error. Stop it with Ctrl-C.

### Example

```
gator register alice
gator addfeed "Example News" https://example.com/feed.xml
gator agg 1m        # leave running for a while, then stop it
gator browse 5
```

Commands that act for the current user (`addfeed`, `follow`, `following`,
`unfollow`, `browse`) fail if the configured user does not exist. Any
failing command logs the error and exits with status 1.

## Using it as a library

- `gator.config`: `Config`, `read_config(path)`, `write_config(config, path)`,
  `config_path()`.
- `gator.database`: `connect(url)` returns a `Queries` object (usable as a
  context manager that closes the connection) with methods such as
  `create_user`, `get_user`, `create_feed`, `get_next_feed_to_fetch`,
  `create_feed_follow`, `create_post` and `get_posts_for_user`. Failures
  raise `DatabaseError`, `NotFoundError` or `UniqueViolationError`.
- `gator.rss`: `parse_feed(data)` and `fetch_feed(url, timeout)` return an
  `RSSFeed` of `RSSItem`s, with HTML entities in titles and descriptions
  unescaped; failures raise `FeedError`.
- `gator.commands`: `Commands`, `Command`, `State`, `CommandError` and the
  `logged_in` wrapper; `gator.cli.build_commands()` returns the registry of
  every command above.

## Limitations

- Only SQLite databases are supported.
- Only RSS documents with a `<channel>` of `<item>`s are understood; Atom
  feeds yield no posts.
- `agg` runs in the foreground until interrupted; there is no background
  service.

## Running the tests

```
pip install ".[test]"
pytest
```