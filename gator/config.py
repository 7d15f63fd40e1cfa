"""Reading and writing the user's configuration file."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_FILE_NAME = ".gatorconfig.json"


@dataclass
class Config:
    """Database location and the name of the logged-in user."""

    db_url: str = ""
    current_user_name: str = ""
    path: Path | None = field(default=None, compare=False, repr=False)

    def set_user(self, username: str) -> None:
        """Make ``username`` the current user and save the configuration."""
        self.current_user_name = username
        write_config(self, self.path)

    def describe(self) -> str:
        """Return a human-readable summary of the configuration."""
        return "\n".join(
            [
                "reading config: ",
                f"database url: {self.db_url}",
                f"current username: {self.current_user_name}",
            ]
        )


def config_path() -> Path:
    """Return the location of the configuration file in the home directory."""
    return Path.home() / CONFIG_FILE_NAME


def _string_field(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"config field {key!r} must be a string")
    return value


def read_config(path: str | Path | None = None) -> Config:
    """Load the configuration from ``path`` (the home-directory file by default)."""
    target = Path(path) if path is not None else config_path()
    with target.open(encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError("config file must hold a JSON object")
    return Config(
        db_url=_string_field(data, "db_url"),
        current_user_name=_string_field(data, "current_user_name"),
        path=target,
    )


def write_config(config: Config, path: str | Path | None = None) -> None:
    """Save ``config`` as JSON to ``path`` (the home-directory file by default)."""
    target = Path(path) if path is not None else config_path()
    payload = {"db_url": config.db_url, "current_user_name": config.current_user_name}
    text = json.dumps(payload, separators=(",", ":"), ensure_ascii=False) + "\n"
    target.write_text(text, encoding="utf-8")