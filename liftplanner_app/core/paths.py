from __future__ import annotations
import hashlib
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

APP_NAME = "LiftPlannerPro"
DATA_DIR_ENV = "LIFTPLANNER_DATA_DIR"

def user_data_dir() -> Path:
    """
    Writable location for logs/runs/settings. Never the code folder.
    Override: $LIFTPLANNER_DATA_DIR
    Windows default: %LOCALAPPDATA%\\LiftPlannerPro\\
    """
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        p = Path(override)
    else:
        base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA") or str(Path.home())
        p = Path(base) / APP_NAME
    p.mkdir(parents=True, exist_ok=True)
    return p

def logs_dir() -> Path:
    p = user_data_dir() / "logs"
    p.mkdir(parents=True, exist_ok=True)
    return p

def settings_path() -> Path:
    return user_data_dir() / "settings.json"

def runs_root(tool_id: str) -> Path:
    return user_data_dir() / tool_id / "runs"

def create_run_dir(tool_id: str, input_hash: Optional[str] = None) -> Path:
    """Authoritative run directory creator.

    Location:
      <user_data_dir>/<tool_id>/runs/YYYYMMDD_HHMMSS_<short_hash>/

    Timestamp plus a short hash keeps concurrent runs of identical inputs apart.
    """
    root = runs_root(tool_id)
    root.mkdir(parents=True, exist_ok=True)

    ts = datetime.now().strftime("%Y%m%d_%H%M%S")

    seed = f"{ts}:{os.getpid()}:{time.time_ns()}"
    rand = hashlib.sha256(seed.encode("utf-8")).hexdigest()[:8]

    if input_hash:
        short = f"{str(input_hash)[:6]}{rand[:2]}"
    else:
        short = rand

    run_dir = root / f"{ts}_{short}"
    run_dir.mkdir(parents=True, exist_ok=False)
    return run_dir
