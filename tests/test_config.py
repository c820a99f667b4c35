"""
Tests for environment-driven configuration and logging setup.

Run: python3 -m pytest tests/test_config.py -v
"""

import importlib
import logging
from pathlib import Path

import pytest

from utils import config, logging_config
from utils.logging_config import parse_level


@pytest.fixture
def reload_config(monkeypatch):
    """Reload utils.config after patching the environment; restore afterwards."""
    def _reload(**env):
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        return importlib.reload(config)

    yield _reload
    monkeypatch.undo()
    importlib.reload(config)


class TestConfig:

    def test_overrides(self, reload_config, tmp_path):
        state = tmp_path / "state.json"
        cfg = reload_config(
            MESH_WEB_PORT="9000",
            MESH_DEFAULT_TERRAIN="Open",
            MESH_STATE_FILE=str(state),
        )
        assert cfg.WEB_PORT == 9000
        assert cfg.DEFAULT_TERRAIN == "Open"
        assert cfg.STATE_FILE == state

    def test_defaults(self, reload_config, monkeypatch):
        for key in ("MESH_WEB_HOST", "MESH_WEB_PORT", "MESH_DEFAULT_BAND"):
            monkeypatch.delenv(key, raising=False)
        cfg = reload_config()
        assert cfg.WEB_HOST == "127.0.0.1"
        assert cfg.WEB_PORT == 8090
        assert cfg.DEFAULT_BAND == "2.4"
        assert isinstance(cfg.STATE_FILE, Path)


class TestLogging:

    @pytest.mark.parametrize("level,expected", [
        ("debug", logging.DEBUG),
        ("WARNING", logging.WARNING),
        (logging.ERROR, logging.ERROR),
        ("nonsense", logging.INFO),
    ])
    def test_parse_level(self, level, expected):
        assert parse_level(level) == expected

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "planner.log"
        root = logging.getLogger()
        saved = (root.level, list(root.handlers), logging_config._initialized)
        try:
            logging_config.setup_logging(level="INFO", log_file=str(log_file),
                                         use_colors=False, force=True)
            logging.getLogger("mesh.test").info("hello planner")
            for handler in root.handlers:
                handler.flush()
            assert "hello planner" in log_file.read_text()
            assert logging.getLogger("werkzeug").level == logging.WARNING
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved[1]
            root.setLevel(saved[0])
            logging_config._initialized = saved[2]
