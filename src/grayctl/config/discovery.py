"""Config file discovery and loading.

Walk-up finder locates grayctl.toml, similar to how git finds .git/.
Supports GRAYCTL_CONFIG env var and --config CLI flag overrides.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from grayctl.config.models import GrayConfig

CONFIG_FILENAME = "grayctl.toml"
CONFIG_ENV_VAR = "GRAYCTL_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for grayctl.toml.

    Returns the path to the config file, or None if not found.
    Checks GRAYCTL_CONFIG env var first.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    current = (start or Path.cwd()).resolve()
    for candidate_dir in (current, *current.parents):
        candidate = candidate_dir / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Path | None = None, cwd: Path | None = None) -> GrayConfig:
    """Load and validate config from a TOML file.

    Returns default GrayConfig if no file is found.
    """
    if path is None:
        path = find_config(cwd)
    if path is None:
        return GrayConfig()

    data: dict[str, Any] = tomllib.loads(path.read_text(encoding="utf-8"))
    return GrayConfig.model_validate(data)
