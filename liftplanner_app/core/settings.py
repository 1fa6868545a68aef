from __future__ import annotations

import json
from typing import Any, Dict, Type, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from liftplanner_app.core.paths import settings_path

M = TypeVar("M", bound=BaseModel)


def load_settings() -> Dict[str, Any]:
    p = settings_path()
    if not p.exists():
        return {}
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable settings file {p}: {e}")
        return {}
    return data if isinstance(data, dict) else {}


def save_settings(data: Dict[str, Any]) -> None:
    p = settings_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(data, indent=2), encoding="utf-8")


def load_section(dotted_key: str, model: Type[M]) -> M:
    """
    Validate one settings section (e.g. "route_hazard.scoring") against `model`.

    Missing sections give the model defaults. An invalid section is logged and
    replaced by the defaults so a bad hand edit never blocks a calculation.
    """
    node: Any = load_settings()
    for part in dotted_key.split("."):
        node = node.get(part, {}) if isinstance(node, dict) else {}
    try:
        return model.model_validate(node)
    except ValidationError as e:
        logger.warning(f"Invalid settings section '{dotted_key}', using defaults: {e}")
        return model()
