from __future__ import annotations

import pytest

from quiz_bank.bank import config as config_mod
from quiz_bank.core import workspace as workspace_mod


@pytest.fixture
def env(tmp_path):
    return {workspace_mod.WORKSPACE_ENV: str(tmp_path / "ws")}


def test_defaults_without_config_file(env, tmp_path):
    cfg = config_mod.load_config(env=env)

    assert cfg.layout.home == tmp_path / "ws"
    assert cfg.bank_path == tmp_path / "ws" / "bank" / "questions.json"
    assert cfg.log_dir == tmp_path / "ws" / "logs"
    assert cfg.storage.lock_timeout_seconds == 5.0
    assert cfg.topics.untitled_label == "untitled"
    assert cfg.grading.vocabulary.tokens == ("TAK", "NIE")
    assert cfg.logging.level == "INFO"
    assert cfg.logging.verbose is False


def test_template_round_trips_to_defaults(env, tmp_path):
    path = tmp_path / "ws" / "config" / config_mod.CONFIG_FILENAME
    config_mod.write_template(path)

    cfg = config_mod.load_config(env=env)
    explicit = config_mod.load_config(env=env, explicit_path=path)

    for section in ("storage", "topics", "grading", "logging"):
        assert getattr(cfg, section) == getattr(explicit, section)
    assert cfg.storage.filename == "questions.json"


def test_write_template_refuses_overwrite(tmp_path):
    path = tmp_path / "bank.toml"
    config_mod.write_template(path)
    with pytest.raises(config_mod.BankConfigError):
        config_mod.write_template(path)
    config_mod.write_template(path, overwrite=True)
    assert path.read_text(encoding="utf-8") == config_mod.config_template()


def test_overrides_are_applied(env, tmp_path):
    path = tmp_path / "custom.toml"
    path.write_text(
        "\n".join(
            [
                "[storage]",
                'filename = "other.json"',
                "lock_timeout_seconds = 2",
                "[topics]",
                'untitled_label = "Bez tematu"',
                "[grading]",
                'yes_token = "yes"',
                'no_token = "no"',
                "[logging]",
                'level = "debug"',
            ]
        ),
        encoding="utf-8",
    )

    cfg = config_mod.load_config(env=env, explicit_path=path)

    assert cfg.bank_path.name == "other.json"
    assert cfg.storage.lock_timeout_seconds == 2.0
    assert cfg.topics.untitled_label == "Bez tematu"
    assert cfg.grading.vocabulary.tokens == ("YES", "NO")
    assert cfg.logging.level == "DEBUG"


def test_env_var_selects_config(env, tmp_path):
    path = tmp_path / "env.toml"
    path.write_text('[topics]\nuntitled_label = "inbox"\n', encoding="utf-8")
    env = {**env, config_mod.CONFIG_PATH_ENV: str(path)}

    assert config_mod.resolve_config_path(env=env) == path
    assert config_mod.load_config(env=env).topics.untitled_label == "inbox"


def test_missing_explicit_path_is_error(env, tmp_path):
    with pytest.raises(config_mod.BankConfigError):
        config_mod.load_config(env=env, explicit_path=tmp_path / "nope.toml")


@pytest.mark.parametrize(
    "content",
    [
        "[storage]\nunknown = 1\n",
        "storage = 3\n",
        '[storage]\nfilename = "../escape.json"\n',
        "[storage]\nlock_timeout_seconds = 0\n",
        "[storage]\nlock_timeout_seconds = true\n",
        '[grading]\nyes_token = "nie"\n',
        '[topics]\nuntitled_label = "  "\n',
        '[logging]\nlevel = "LOUD"\n',
        '[logging]\nverbose = "yes"\n',
        "[storage\n",
    ],
)
def test_invalid_config_is_rejected(env, tmp_path, content):
    path = tmp_path / "bad.toml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(config_mod.BankConfigError):
        config_mod.load_config(env=env, explicit_path=path)
