"""Global configuration: XDG paths, config file, env vars, defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_DETECTION_URL = "https://ipdr-graph-engine.onrender.com/api/v1"


def _default_data_dir() -> Path:
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / "ipdrviz"
    return Path.home() / ".local" / "share" / "ipdrviz"


def _default_config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "ipdrviz"
    return Path.home() / ".config" / "ipdrviz"


@dataclass
class IpdrConfig:
    """Application-wide configuration."""

    data_dir: Path = field(default_factory=_default_data_dir)
    config_dir: Path = field(default_factory=_default_config_dir)
    detection_url: str = DEFAULT_DETECTION_URL
    detection_timeout: float = 30.0
    fallback_delay: tuple[float, float] = (1.0, 3.0)
    fallback_seed: str | None = None
    history_limit: int = 10
    web_host: str = "127.0.0.1"  # loopback only
    web_port: int = 8470
    verbose: bool = False

    @property
    def db_path(self) -> Path:
        return self.data_dir / "ipdrviz.db"

    @classmethod
    def load(cls) -> IpdrConfig:
        """Load config from config.yaml, then environment variables."""
        config = cls()

        config_file = config.config_dir / "config.yaml"
        if config_file.is_file():
            config._apply_file(config_file)

        env_url = os.environ.get("IPDRVIZ_DETECTION_URL")
        if env_url:
            config.detection_url = env_url

        env_timeout = os.environ.get("IPDRVIZ_DETECTION_TIMEOUT")
        if env_timeout:
            config.detection_timeout = float(env_timeout)

        env_port = os.environ.get("IPDRVIZ_WEB_PORT")
        if env_port:
            config.web_port = int(env_port)

        env_limit = os.environ.get("IPDRVIZ_HISTORY_LIMIT")
        if env_limit:
            config.history_limit = int(env_limit)

        env_seed = os.environ.get("IPDRVIZ_FALLBACK_SEED")
        if env_seed:
            config.fallback_seed = env_seed

        return config

    def _apply_file(self, path: Path) -> None:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must be a mapping: {path}")

        detection = data.get("detection", {}) or {}
        if "url" in detection:
            self.detection_url = str(detection["url"])
        if "timeout" in detection:
            self.detection_timeout = float(detection["timeout"])
        if "fallback_seed" in detection:
            self.fallback_seed = str(detection["fallback_seed"])
        delay = detection.get("fallback_delay")
        if isinstance(delay, (int, float)):
            self.fallback_delay = (float(delay), float(delay))
        elif isinstance(delay, list) and len(delay) == 2:
            self.fallback_delay = (float(delay[0]), float(delay[1]))

        if "history_limit" in data:
            self.history_limit = int(data["history_limit"])
        if "web_port" in data:
            self.web_port = int(data["web_port"])
        if "data_dir" in data:
            self.data_dir = Path(data["data_dir"]).expanduser()

        logger.debug("Loaded config file %s", path)
