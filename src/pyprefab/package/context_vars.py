from __future__ import annotations

from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pyprefab.package.generation_plan import GenerationPlan

current_generation_plan: ContextVar["GenerationPlan"] = ContextVar(
    "current_generation_plan")
