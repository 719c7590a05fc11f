from pathlib import Path

import pytest

from inventory_metrics.config import default_app_config, load_app_config


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "inventory_metrics_config.toml"
    path.write_text(content, encoding="utf-8")
    return path


def test_load_app_config_full_file(tmp_path):
    """Every section is read and paths resolve next to the TOML file."""
    path = _write(
        tmp_path,
        """
[database]
engine = "sqlite"
path = "db/metrics.sqlite"

[metrics]
days_in_period = 31
sync_workers = 4

[logging]
level = "debug"
file = "logs/metrics.log"

[display]
decimals = 3
""",
    )

    cfg = load_app_config(str(path))

    assert cfg.database.engine == "sqlite"
    assert cfg.database.path == (tmp_path / "db" / "metrics.sqlite").resolve()
    assert cfg.metrics.days_in_period == 31
    assert cfg.metrics.sync_workers == 4
    assert cfg.logging.level == "DEBUG"
    assert cfg.logging.file == (tmp_path / "logs" / "metrics.log").resolve()
    assert cfg.display_decimals == 3


def test_load_app_config_defaults_for_missing_sections(tmp_path):
    """Missing sections fall back to defaults."""
    cfg = load_app_config(str(_write(tmp_path, "")))

    assert cfg.database.path == (
        tmp_path / "data" / "db" / "inventory_metrics.sqlite"
    ).resolve()
    assert cfg.metrics.days_in_period == 30
    assert cfg.metrics.sync_workers == 1
    assert cfg.logging.level == "INFO"
    assert cfg.logging.file is None
    assert cfg.display_decimals == 2


def test_load_app_config_uses_cwd_file_by_default(tmp_path, monkeypatch):
    _write(tmp_path, "[metrics]\nsync_workers = 2\n")
    monkeypatch.chdir(tmp_path)

    assert load_app_config().metrics.sync_workers == 2


def test_load_app_config_missing_file(tmp_path):
    """A missing config file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_app_config(str(tmp_path / "missing.toml"))


def test_load_app_config_invalid_toml(tmp_path):
    """Unparsable TOML raises ValueError."""
    with pytest.raises(ValueError, match="Failed to parse TOML"):
        load_app_config(str(_write(tmp_path, "[database\npath = ")))


@pytest.mark.parametrize(
    "content",
    [
        "[metrics]\ndays_in_period = 0\n",
        "[metrics]\nsync_workers = 'many'\n",
        "[metrics]\nsync_workers = true\n",
        "[logging]\nlevel = 'LOUD'\n",
    ],
)
def test_load_app_config_invalid_values(tmp_path, content):
    """Out-of-range options raise ValueError."""
    with pytest.raises(ValueError):
        load_app_config(str(_write(tmp_path, content)))


def test_default_app_config(tmp_path):
    cfg = default_app_config(tmp_path)

    assert cfg.database.path == (
        tmp_path / "data" / "db" / "inventory_metrics.sqlite"
    ).resolve()
    assert cfg.metrics.days_in_period == 30
