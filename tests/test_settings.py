import logging

import pytest

from sms_ledger.core import settings
from sms_ledger.logger import ColourizedFormatter, get_logging_config


def test_env_int(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BALANCE_CONFLICT_RETRIES", "5")
    assert settings.get_balance_conflict_retries() == 5

    monkeypatch.setenv("BALANCE_CONFLICT_RETRIES", "many")
    assert settings.get_balance_conflict_retries() == settings.DEFAULT_BALANCE_CONFLICT_RETRIES

    monkeypatch.setenv("BALANCE_CONFLICT_RETRIES", "-1")
    assert settings.get_balance_conflict_retries() == settings.DEFAULT_BALANCE_CONFLICT_RETRIES


def test_env_float(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MEMORY_THRESHOLD", "85.5")
    assert settings.get_memory_threshold() == 85.5

    monkeypatch.setenv("MEMORY_THRESHOLD", "high")
    assert settings.get_memory_threshold() == settings.DEFAULT_MEMORY_THRESHOLD


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("true", True), ("YES", True), ("0", False), ("off", False), ("maybe", True), ("", True)],
)
def test_env_bool(monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
    monkeypatch.setenv("PERSIST_STORES", raw)
    assert settings.get_persist_stores() is expected


def test_read_config_file(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "# comment\nLOG_LEVEL: debug  # inline\nDATA_DIR: \"/var/lib/sms\"\nEMPTY:\nnot a pair\n",
        encoding="utf-8",
    )
    assert settings.read_config_file(str(path)) == {"LOG_LEVEL": "debug", "DATA_DIR": "/var/lib/sms"}
    assert settings.read_config_file(str(tmp_path / "missing.yaml")) == {}


def test_environment_wins_over_config_file(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "config.yaml").write_text("MEMORY_THRESHOLD: 70\nBALANCE_CONFLICT_RETRIES: 7\n", encoding="utf-8")
    monkeypatch.setenv("CONFIG_DIR", str(tmp_path))
    monkeypatch.setenv("MEMORY_THRESHOLD", "95")
    monkeypatch.delenv("BALANCE_CONFLICT_RETRIES", raising=False)

    settings.load_environment()

    assert settings.get_config_path() == str(tmp_path / "config.yaml")
    assert settings.get_memory_threshold() == 95.0
    assert settings.get_balance_conflict_retries() == 7


def test_logging_config_with_log_dir(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_DIR", str(tmp_path))
    config = get_logging_config()

    assert config["handlers"]["file"]["filename"] == str(tmp_path / "app.log")
    assert config["loggers"]["sms_ledger.misses"]["handlers"] == ["misses"]


def test_logging_config_console_only(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LOG_DIR", raising=False)
    config = get_logging_config()
    assert set(config["handlers"]) == {"console"}


def test_colourized_formatter_restores_levelname() -> None:
    formatter = ColourizedFormatter("%(levelname)s %(message)s")
    record = logging.LogRecord("x", logging.WARNING, __file__, 1, "hello", None, None)

    assert "\x1b[33m" in formatter.format(record)
    assert record.levelname == "WARNING"
