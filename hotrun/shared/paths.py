from __future__ import annotations

import os
from pathlib import Path

APP_NAME = "hotrun"
PROJECT_FILE = ".hotrun.json"

def app_data_dir() -> Path:
    base = os.environ.get("HOTRUN_HOME")
    if base:
        return Path(base)
    return Path.home() / f".{APP_NAME}"

def logs_dir() -> Path:
    return app_data_dir() / "logs"

def log_path() -> Path:
    return logs_dir() / "hotrun.log"

def project_config_path(root: Path) -> Path:
    return root / PROJECT_FILE

def ensure_app_dirs() -> None:
    app_data_dir().mkdir(parents=True, exist_ok=True)
    logs_dir().mkdir(parents=True, exist_ok=True)
