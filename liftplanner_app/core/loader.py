from __future__ import annotations
import importlib
import pkgutil
from typing import Dict, List
from loguru import logger
from .tool_base import ToolBase

TOOLS_PKG = "liftplanner_app.tools"

def discover_tools() -> List[ToolBase]:
    """
    Discovers tools under liftplanner_app.tools.* that expose `TOOL` at module level.
    Pattern:
      liftplanner_app/tools/my_tool/__init__.py makes TOOL = MyTool() importable
    """
    tools: List[ToolBase] = []
    pkg = importlib.import_module(TOOLS_PKG)
    for m in pkgutil.iter_modules(pkg.__path__):
        if not m.ispkg:
            continue
        mod_name = f"{TOOLS_PKG}.{m.name}"
        try:
            mod = importlib.import_module(mod_name)
            tool = getattr(mod, "TOOL", None)
            if tool is None:
                logger.warning(f"Module {mod_name} has no TOOL export; skipping.")
                continue
            tools.append(tool)
        except Exception as e:
            logger.exception(f"Failed loading tool {mod_name}: {e}")
    # stable ordering
    tools.sort(key=lambda t: (t.meta.category.lower(), t.meta.name.lower()))
    return tools

def tools_by_id() -> Dict[str, ToolBase]:
    return {t.meta.id: t for t in discover_tools()}
