"""
Run configuration and JSON settings files.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, asdict, field, fields
from typing import List

from .content_extractor import DEFAULT_CONTENT_SELECTORS, DEFAULT_DOCUMENT_TITLE
from .errors import ConfigError
from .fetcher import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT


logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_NAME = ".offline_sync.json"


@dataclass
class SyncConfig:
    request_timeout: float = DEFAULT_TIMEOUT
    concurrency: int = 1
    user_agent: str = DEFAULT_USER_AGENT
    document_title: str = DEFAULT_DOCUMENT_TITLE
    content_selectors: List[str] = field(default_factory=lambda: list(DEFAULT_CONTENT_SELECTORS))
    log_dir: str = "logs"
    log_level: str = "INFO"

    def validate(self) -> "SyncConfig":
        if not isinstance(self.concurrency, int) or isinstance(self.concurrency, bool) or self.concurrency < 1:
            raise ConfigError(f"concurrency must be a positive integer, got {self.concurrency!r}")
        if not isinstance(self.request_timeout, (int, float)) or self.request_timeout <= 0:
            raise ConfigError(f"request_timeout must be positive, got {self.request_timeout!r}")
        if not isinstance(self.content_selectors, list) or not all(
                isinstance(s, str) and s.strip() for s in self.content_selectors):
            raise ConfigError("content_selectors must be a list of non-empty strings")
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ConfigError(f"Unknown log level: {self.log_level!r}")
        return self


def load_config(path: str) -> SyncConfig:
    """
    Load settings from a JSON file.

    Args:
        path: Settings file path; a missing file yields the defaults

    Returns:
        Validated SyncConfig
    """
    if not os.path.exists(path):
        return SyncConfig()

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to read settings file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must contain a JSON object")

    known = {f.name for f in fields(SyncConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning(f"Ignoring unknown settings in {path}: {', '.join(unknown)}")

    config = SyncConfig(**{k: v for k, v in data.items() if k in known})
    return config.validate()


def save_config(config: SyncConfig, path: str) -> None:
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(asdict(config), f, ensure_ascii=False, indent=2)
