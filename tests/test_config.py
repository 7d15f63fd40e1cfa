import json
from pathlib import Path

import pytest

from gator.config import Config, config_path, read_config, write_config


def test_config_path_is_in_home_directory():
    path = config_path()
    assert path.parent == Path.home()
    assert path.name == ".gatorconfig.json"


def test_write_then_read_round_trip(tmp_path):
    target = tmp_path / "cfg.json"
    original = Config(db_url="sqlite:///feeds.db", current_user_name="alice")
    write_config(original, target)
    loaded = read_config(target)
    assert loaded == original
    assert loaded.path == target


def test_written_json_layout(tmp_path):
    target = tmp_path / "cfg.json"
    write_config(Config(db_url="postgres://localhost/gator", current_user_name="alice"), target)
    assert target.read_text(encoding="utf-8") == (
        '{"db_url":"postgres://localhost/gator","current_user_name":"alice"}\n'
    )


def test_read_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_config(tmp_path / "absent.json")


def test_read_ignores_unknown_and_defaults_missing(tmp_path):
    target = tmp_path / "cfg.json"
    target.write_text(json.dumps({"db_url": "x.db", "extra": 5}), encoding="utf-8")
    loaded = read_config(target)
    assert loaded.db_url == "x.db"
    assert loaded.current_user_name == ""


def test_read_invalid_json_raises(tmp_path):
    target = tmp_path / "cfg.json"
    target.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        read_config(target)


def test_read_non_object_raises(tmp_path):
    target = tmp_path / "cfg.json"
    target.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        read_config(target)


def test_read_wrong_field_type_raises(tmp_path):
    target = tmp_path / "cfg.json"
    target.write_text(json.dumps({"db_url": 12}), encoding="utf-8")
    with pytest.raises(ValueError):
        read_config(target)


def test_set_user_persists_to_own_path(tmp_path):
    target = tmp_path / "cfg.json"
    write_config(Config(db_url="a.db"), target)
    cfg = read_config(target)
    cfg.set_user("bob")
    assert cfg.current_user_name == "bob"
    reloaded = read_config(target)
    assert reloaded.current_user_name == "bob"
    assert reloaded.db_url == "a.db"


def test_describe_lists_fields():
    cfg = Config(db_url="a.db", current_user_name="carol")
    lines = cfg.describe().splitlines()
    assert lines[0] == "reading config: "
    assert lines[1] == "database url: a.db"
    assert lines[2] == "current username: carol"