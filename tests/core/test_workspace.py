from __future__ import annotations

import pytest

from quiz_bank.core import workspace


def test_ensure_workspace_creates_directories(tmp_path, monkeypatch):
    root = tmp_path / "data"
    monkeypatch.setenv(workspace.WORKSPACE_ENV, str(root))

    layout = workspace.ensure_workspace()

    assert layout.home == root
    assert [name for name, _ in layout.items()] == ["config", "logs", "bank"]
    for name, path in layout.items():
        assert path.is_dir()
        assert layout.created[name] is True
    assert layout.created["home"] is True


def test_ensure_workspace_is_idempotent(tmp_path, monkeypatch):
    root = tmp_path / "existing"
    monkeypatch.setenv(workspace.WORKSPACE_ENV, str(root))

    first = workspace.ensure_workspace()
    second = workspace.ensure_workspace()

    assert first.home == second.home
    assert all(not created for created in second.created.values())


def test_ensure_workspace_respects_custom_path(tmp_path):
    custom = tmp_path / "custom-root"

    layout = workspace.ensure_workspace(path=custom)

    assert layout.home == custom
    assert layout.path_for("bank") == custom / "bank"


def test_ensure_workspace_without_create(tmp_path, monkeypatch):
    root = tmp_path / "deferred"
    monkeypatch.setenv(workspace.WORKSPACE_ENV, str(root))

    layout = workspace.ensure_workspace(create=False)

    assert layout.home == root
    assert not root.exists()
    assert all(not created for created in layout.created.values())


def test_ensure_workspace_errors_when_path_is_file(tmp_path, monkeypatch):
    root = tmp_path / "file"
    root.write_text("not a dir", encoding="utf-8")
    monkeypatch.setenv(workspace.WORKSPACE_ENV, str(root))

    with pytest.raises(workspace.WorkspaceError):
        workspace.ensure_workspace()


def test_ensure_workspace_errors_when_subdir_is_file(tmp_path):
    root = tmp_path / "ws"
    root.mkdir()
    (root / "bank").write_text("oops", encoding="utf-8")

    with pytest.raises(workspace.WorkspaceError):
        workspace.ensure_workspace(path=root, create=False)
    with pytest.raises(workspace.WorkspaceError):
        workspace.ensure_workspace(path=root)


def test_path_for_unknown_key_errors(tmp_path):
    layout = workspace.ensure_workspace(path=tmp_path, create=False)

    with pytest.raises(workspace.WorkspaceError):
        layout.path_for("unknown")


def test_resolve_home_prefers_env_mapping(tmp_path):
    env_home = tmp_path / "env-home"
    env = {workspace.WORKSPACE_ENV: str(env_home)}

    assert workspace.resolve_home(env=env) == env_home
    assert workspace.resolve_home(env={}) == workspace.DEFAULT_WORKSPACE
    assert workspace.resolve_home(env=env, path=tmp_path) == tmp_path
