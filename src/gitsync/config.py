"""Stored settings and credentials.

The engine never reads this; the CLI loads a :class:`ConfigStore` and
passes plain values in.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from .exceptions import ConfigError
from .paths import clean_token
from .plan import DEFAULT_BRANCH, SyncOptions

log = logging.getLogger(__name__)

CONFIG_ENV = "GITSYNC_CONFIG"


def default_config_path() -> Path:
    env = os.environ.get(CONFIG_ENV)
    if env:
        return Path(env)
    base = os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config"
    return Path(base) / "gitsync" / "config.json"


@dataclass
class SyncConfig:
    """Everything a sync needs besides the files."""
    token: str = ""
    repo: str = ""
    branch: str = DEFAULT_BRANCH
    target_path: str = ""
    delete_missing: bool = False
    auto_commit_message: bool = True

    def options(self, *, message: str | None = None) -> SyncOptions:
        return SyncOptions(
            branch=self.branch,
            target_path=self.target_path,
            delete_missing=self.delete_missing,
            auto_commit_message=self.auto_commit_message,
            message=message,
        )


_FIELDS = {f.name for f in fields(SyncConfig)}


class ConfigStore:
    """JSON file holding a :class:`SyncConfig`.

    Keys this version does not know are preserved on save.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path is not None else default_config_path()
        self._extra: dict[str, Any] = {}

    def __repr__(self) -> str:
        return f"ConfigStore({str(self.path)!r})"

    def load(self) -> SyncConfig:
        """Read the file; a missing file gives the defaults."""
        if not self.path.exists():
            return SyncConfig()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ConfigError(f"Cannot read config {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Config {self.path} is not a JSON object")
        self._extra = {k: v for k, v in data.items() if k not in _FIELDS}
        config = SyncConfig(**{k: v for k, v in data.items() if k in _FIELDS})
        config.token = clean_token(config.token)
        log.debug("config loaded from %s", self.path)
        return config

    def save(self, config: SyncConfig) -> None:
        data = dict(self._extra)
        for f in fields(SyncConfig):
            data[f.name] = getattr(config, f.name)
        data["token"] = clean_token(data["token"])
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        try:
            os.chmod(self.path, 0o600)
        except OSError as exc:
            log.warning("could not restrict permissions on %s: %s", self.path, exc)
        log.debug("config saved to %s", self.path)

    def clear_credentials(self) -> SyncConfig:
        """Forget the token and repository, keep the other settings."""
        config = self.load()
        config.token = ""
        config.repo = ""
        self.save(config)
        return config
