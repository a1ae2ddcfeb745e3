from __future__ import annotations

import pytest

from fastfib import runtime


@pytest.fixture(autouse=True)
def isolated_workspace(tmp_path, monkeypatch):
    """Point the workspace at a temp dir and start every test with a fresh Runtime."""
    ws = tmp_path / "workspace"
    monkeypatch.setenv("FASTFIB_HOME", str(ws))
    runtime.reset()
    yield ws
    runtime.reset()
