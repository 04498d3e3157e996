import importlib
import os
import sys

import pytest


def _cleanup_app_modules():
    for module in [
        name for name in sys.modules if name == "scoreboard" or name.startswith("scoreboard.")
    ]:
        sys.modules.pop(module, None)


@pytest.fixture(autouse=True)
def app_import_isolation(monkeypatch):
    app_path = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    saved = {
        name: mod
        for name, mod in sys.modules.items()
        if name == "scoreboard" or name.startswith("scoreboard.")
    }
    cleanup = _cleanup_app_modules
    cleanup()
    monkeypatch.syspath_prepend(app_path)
    try:
        yield
    finally:
        cleanup()
        sys.modules.update(saved)


def test_rejects_wildcard_with_credentials(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "*")
    monkeypatch.setenv("ALLOW_CREDENTIALS", "true")
    with pytest.raises(ValueError):
        importlib.import_module("scoreboard.main")


def test_requires_allowed_origins(monkeypatch):
    monkeypatch.delenv("ALLOWED_ORIGINS", raising=False)
    monkeypatch.delenv("ALLOW_CREDENTIALS", raising=False)
    with pytest.raises(ValueError):
        importlib.import_module("scoreboard.main")


def test_parses_origin_list(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", " http://a.test , ,http://b.test")
    monkeypatch.setenv("ALLOW_CREDENTIALS", "false")
    main = importlib.import_module("scoreboard.main")
    assert main.ALLOWED_ORIGINS == ["http://a.test", "http://b.test"]
    assert main.ALLOW_CREDENTIALS is False


def test_normalizes_api_prefix(monkeypatch):
    monkeypatch.setenv("API_PREFIX", "bowling/")
    config = importlib.import_module("scoreboard.config")
    assert config.API_PREFIX == "/bowling"


def test_player_bounds_from_environment(monkeypatch):
    monkeypatch.setenv("MIN_PLAYERS", "1")
    monkeypatch.setenv("MAX_PLAYERS", "nope")
    config = importlib.import_module("scoreboard.config")
    assert config.MIN_PLAYERS == 1
    assert config.MAX_PLAYERS == 5


def test_rejects_inverted_player_bounds(monkeypatch):
    monkeypatch.setenv("MIN_PLAYERS", "6")
    monkeypatch.setenv("MAX_PLAYERS", "3")
    with pytest.raises(ValueError):
        importlib.import_module("scoreboard.config")
