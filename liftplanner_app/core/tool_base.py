from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Type

from pydantic import BaseModel

@dataclass(frozen=True)
class ToolMeta:
    id: str
    name: str
    category: str
    version: str
    description: str

class ToolBase(Protocol):
    """
    Tool contract.

    Tools declare an `InputModel` (Pydantic) for typed inputs so callers get
    user-friendly validation errors. run() is headless and returns a results dict
    with at least `ok`. Invalid inputs raise pydantic.ValidationError; calculation
    failures are reported in the dict.
    """
    meta: ToolMeta
    InputModel: Optional[Type[BaseModel]]

    def default_inputs(self) -> Dict[str, Any]:
        ...

    def run(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        ...
