"""Pytest configuration for the scoreboard server."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_repo_on_path() -> None:
    """Make the repository importable without an editable install."""
    repo_root = Path(__file__).resolve().parent.parent
    if repo_root.exists():
        path_str = str(repo_root)
        if path_str not in sys.path:
            sys.path.insert(0, path_str)


_ensure_repo_on_path()

from flask import Flask  # noqa: E402

from core.data_manager import DataManager  # noqa: E402
from core.plugin_manager import PluginManager  # noqa: E402
from plugins.scoreboard.logic.constants import DEFAULT_CONFIG  # noqa: E402

REPO_ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture
def data_manager(tmp_path):
    return DataManager(str(tmp_path / "data"), lock_timeout=0.2)


@pytest.fixture
def default_config():
    return {
        "specialChars": list(DEFAULT_CONFIG["specialChars"]),
        "deductionRules": [dict(rule) for rule in DEFAULT_CONFIG["deductionRules"]],
    }


@pytest.fixture
def server(data_manager):
    app = Flask(__name__)
    manager = PluginManager(str(REPO_ROOT / "plugins"), app, data_manager, history_limit=100)
    manager.load_plugins()
    assert manager.get_plugin_by_id("scoreboard") is not None
    return app, manager


@pytest.fixture
def client(server):
    app, _ = server
    return app.test_client()


@pytest.fixture
def auth_headers(server):
    _, manager = server
    token = "test-token-alice"
    manager.core_api.register_token(token)
    return {"Authorization": f"Bearer {token}"}
