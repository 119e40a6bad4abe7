"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from ipdrviz.config import DEFAULT_DETECTION_URL, IpdrConfig


@pytest.fixture
def xdg(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in (
        "IPDRVIZ_DETECTION_URL",
        "IPDRVIZ_DETECTION_TIMEOUT",
        "IPDRVIZ_WEB_PORT",
        "IPDRVIZ_HISTORY_LIMIT",
        "IPDRVIZ_FALLBACK_SEED",
    ):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


def test_defaults(xdg: Path):
    config = IpdrConfig.load()
    assert config.detection_url == DEFAULT_DETECTION_URL
    assert config.detection_timeout == 30.0
    assert config.history_limit == 10
    assert config.web_host == "127.0.0.1"
    assert config.db_path == xdg / "data" / "ipdrviz" / "ipdrviz.db"


def test_env_overrides(xdg: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("IPDRVIZ_DETECTION_URL", "http://localhost:9000/api")
    monkeypatch.setenv("IPDRVIZ_DETECTION_TIMEOUT", "5")
    monkeypatch.setenv("IPDRVIZ_WEB_PORT", "9999")
    monkeypatch.setenv("IPDRVIZ_HISTORY_LIMIT", "3")
    monkeypatch.setenv("IPDRVIZ_FALLBACK_SEED", "abc")

    config = IpdrConfig.load()
    assert config.detection_url == "http://localhost:9000/api"
    assert config.detection_timeout == 5.0
    assert config.web_port == 9999
    assert config.history_limit == 3
    assert config.fallback_seed == "abc"


def test_config_file(xdg: Path, monkeypatch: pytest.MonkeyPatch):
    config_dir = xdg / "config" / "ipdrviz"
    config_dir.mkdir(parents=True)
    (config_dir / "config.yaml").write_text(
        "detection:\n"
        "  url: http://detector.local/v1\n"
        "  timeout: 12\n"
        "  fallback_delay: [0, 0.5]\n"
        "history_limit: 4\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("IPDRVIZ_HISTORY_LIMIT", "7")

    config = IpdrConfig.load()
    assert config.detection_url == "http://detector.local/v1"
    assert config.detection_timeout == 12.0
    assert config.fallback_delay == (0.0, 0.5)
    # Environment wins over the file
    assert config.history_limit == 7


def test_config_file_must_be_mapping(xdg: Path):
    config_dir = xdg / "config" / "ipdrviz"
    config_dir.mkdir(parents=True)
    (config_dir / "config.yaml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError, match="mapping"):
        IpdrConfig.load()
