from pathlib import Path

import pytest

from quizbook import config as qconfig


def _write_config(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")
    return path


def test_defaults_without_config_file(tmp_path):
    result = qconfig.load_config(env={}, workspace_path=tmp_path)
    assert result.config_path is None
    assert result.config.storage_dir == result.layout.path_for("storage")
    assert result.config.max_bytes == 0
    assert result.config.completion_delay == 1.0
    assert result.config.shuffle is False
    assert result.config.log_level == "INFO"


def test_workspace_config_file_is_picked_up(tmp_path):
    config_path = _write_config(
        tmp_path / "config" / qconfig.CONFIG_FILENAME,
        """
[storage]
dir = "book"
max_bytes = 4096

[quiz]
completion_delay = 0.5
shuffle = true

[logging]
level = "debug"
""",
    )
    result = qconfig.load_config(env={}, workspace_path=tmp_path)
    assert result.config_path == config_path
    assert result.config.storage_dir == (tmp_path / "book").resolve()
    assert result.config.max_bytes == 4096
    assert result.config.completion_delay == 0.5
    assert result.config.shuffle is True
    assert result.config.log_level == "DEBUG"


def test_precedence_cli_over_env_over_file(tmp_path):
    _write_config(
        tmp_path / "config" / qconfig.CONFIG_FILENAME,
        '[quiz]\ncompletion_delay = 3\n[logging]\nlevel = "WARNING"\n',
    )
    env = {
        "QUIZBOOK_COMPLETION_DELAY": "2",
        "QUIZBOOK_LOG_LEVEL": "error",
        "QUIZBOOK_STORAGE_DIR": str(tmp_path / "from-env"),
    }
    result = qconfig.load_config(env=env, workspace_path=tmp_path)
    assert result.config.completion_delay == 2.0
    assert result.config.log_level == "ERROR"
    assert result.config.storage_dir == (tmp_path / "from-env").resolve()

    overrides = qconfig.ConfigOverrides(
        completion_delay=0.0,
        log_level="debug",
        storage_dir=tmp_path / "from-cli",
        shuffle=True,
    )
    result = qconfig.load_config(
        env=env, workspace_path=tmp_path, overrides=overrides
    )
    assert result.config.completion_delay == 0.0
    assert result.config.log_level == "DEBUG"
    assert result.config.storage_dir == (tmp_path / "from-cli").resolve()
    assert result.config.shuffle is True


def test_env_config_path_is_used(tmp_path):
    custom = _write_config(
        tmp_path / "elsewhere.toml", "[quiz]\nshuffle = true\n"
    )
    result = qconfig.load_config(
        env={qconfig.CONFIG_ENV: str(custom)}, workspace_path=tmp_path
    )
    assert result.config_path == custom
    assert result.config.shuffle is True


def test_missing_explicit_config_raises(tmp_path):
    with pytest.raises(qconfig.QuizbookConfigError):
        qconfig.load_config(
            config_path=tmp_path / "nope.toml",
            env={},
            workspace_path=tmp_path,
        )
    with pytest.raises(qconfig.QuizbookConfigError):
        qconfig.load_config(
            env={qconfig.CONFIG_ENV: str(tmp_path / "nope.toml")},
            workspace_path=tmp_path,
        )


@pytest.mark.parametrize(
    "body",
    [
        "[quiz]\nunknown = 1\n",
        "[storage]\nmax_bytes = -1\n",
        '[quiz]\ncompletion_delay = "soon"\n',
        "[quiz]\ncompletion_delay = -1\n",
        '[quiz]\nshuffle = "yes"\n',
        "[storage]\ndir = 5\n",
        '[logging]\nlevel = " "\n',
        "not toml at all [",
    ],
)
def test_invalid_config_values_raise(tmp_path, body):
    path = _write_config(tmp_path / "bad.toml", body)
    with pytest.raises(qconfig.QuizbookConfigError):
        qconfig.load_config(
            config_path=path, env={}, workspace_path=tmp_path
        )


def test_invalid_env_delay_raises(tmp_path):
    with pytest.raises(qconfig.QuizbookConfigError):
        qconfig.load_config(
            env={"QUIZBOOK_COMPLETION_DELAY": "later"},
            workspace_path=tmp_path,
        )
