"""Tests for the command line entry point."""

import logging

import pytest

from sysdash import __version__
from sysdash.cli import main, resolve_config
from sysdash.config import Config
from sysdash.logs import LOG_FILE, initialize_logging


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    monkeypatch.setenv("SYSDASH_CONFIG", str(tmp_path / "config"))
    monkeypatch.setenv("SYSDASH_DATA", str(tmp_path / "data"))


def test_flags_override_config():
    """Test command line flags win over the config file."""
    args, config = resolve_config(["--tick-rate", "10", "-f", "30", "--mouse"])

    assert config.tick_rate == 10.0
    assert config.frame_rate == 30.0
    assert config.mouse is True
    assert config.paste is False
    assert args.config is None


def test_config_flag(tmp_path):
    """Test --config loads the given file."""
    path = tmp_path / "sysdash.toml"
    path.write_text("paste = true\n")

    _, config = resolve_config(["--config", str(path)])

    assert config.paste is True


def test_invalid_rate_exits_with_error(capsys):
    """Test a bad flag value is reported, not raised."""
    assert main(["--tick-rate", "0"]) == 1
    assert "sysdash: tick_rate must be positive" in capsys.readouterr().err


def test_missing_config_exits_with_error(tmp_path, capsys):
    """Test a missing --config file is reported."""
    assert main(["--config", str(tmp_path / "missing.toml")]) == 1
    assert "config file not found" in capsys.readouterr().err


def test_version(tmp_path, capsys):
    """Test --version prints the version and directories."""
    assert main(["--version"]) == 0

    out = capsys.readouterr().out
    assert __version__ in out
    assert str(tmp_path / "config") in out
    assert str(tmp_path / "data") in out


def test_print_config(capsys):
    """Test --print-config prints the default TOML."""
    assert main(["--print-config"]) == 0
    assert "tick_rate = 4.0" in capsys.readouterr().out


def test_initialize_logging_writes_to_data_dir(tmp_path, monkeypatch):
    """Test log records land in <data_dir>/sysdash.log."""
    monkeypatch.delenv("SYSDASH_LOGLEVEL", raising=False)
    config = Config(data_dir=tmp_path / "logs", log_level="DEBUG")

    path = initialize_logging(config)
    logging.getLogger("sysdash.test").debug("hello from the test")
    # Re-initializing swaps the handler instead of stacking a second one
    initialize_logging(config)
    logging.getLogger("sysdash.test").info("second line")

    assert path == tmp_path / "logs" / LOG_FILE
    lines = path.read_text().splitlines()
    assert sum("hello from the test" in line for line in lines) == 1
    assert sum("second line" in line for line in lines) == 1


def test_loglevel_env_overrides_config(tmp_path, monkeypatch):
    """Test SYSDASH_LOGLEVEL beats the configured level."""
    monkeypatch.setenv("SYSDASH_LOGLEVEL", "error")
    initialize_logging(Config(data_dir=tmp_path, log_level="DEBUG"))

    assert logging.getLogger("sysdash").level == logging.ERROR
