from __future__ import annotations

import importlib
import sys
from pathlib import Path


def _check_import(label: str, module_name: str, attr: str | None = None) -> bool:
    try:
        mod = importlib.import_module(module_name)
        if attr:
            getattr(mod, attr)
        print(f"[OK] import {label}")
        return True
    except Exception as e:
        print(f"[WARN] import {label} failed: {e}")
        return False


def main() -> int:
    root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(root))
    ok = True

    ok &= _check_import("pydantic", "pydantic", "BaseModel")
    ok &= _check_import("loguru", "loguru", "logger")
    if not ok:
        return 2

    from liftplanner_app.core.loader import discover_tools
    from liftplanner_app.core.logging import configure_logging

    configure_logging()
    for tool in discover_tools():
        res = tool.run(tool.default_inputs())
        status = "OK" if res.get("ok") else "FAIL"
        print(f"[{status}] {tool.meta.id}: {res.get('run_dir')}")
        ok &= bool(res.get("ok"))

    return 0 if ok else 2


if __name__ == "__main__":
    raise SystemExit(main())
