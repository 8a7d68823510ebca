from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from hotrun.core.errors import ConfigError
from hotrun.shared.config import HotrunConfig
from hotrun.shared.paths import project_config_path

log = logging.getLogger(__name__)


class ConfigStore:
    """Read-only access to the optional per-project `.hotrun.json`."""

    def __init__(self, root: Path) -> None:
        self._path = project_config_path(Path(root))

    def read_overrides(self) -> dict:
        if not self._path.exists():
            return {}

        try:
            raw = self._path.read_text(encoding="utf-8")
            data: Any = json.loads(raw)
        except (OSError, ValueError) as e:
            log.warning("Ignoring unreadable project file %s: %s", self._path, e)
            return {}
        if not isinstance(data, dict):
            log.warning("Ignoring project file %s: top level is not an object", self._path)
            return {}
        return data

    def load(self, **overrides: Any) -> HotrunConfig:
        """Project file values, then any non-None overrides on top."""
        data = self.read_overrides()
        data.update({k: v for k, v in overrides.items() if v is not None})
        data.setdefault("root_dir", str(self._path.parent))
        try:
            return HotrunConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"invalid configuration: {e}") from e
