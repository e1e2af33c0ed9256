"""In-memory production scheduling board with an advisory copilot.

This package provides the board data model, a mutation engine that applies
optimizer and simulator proposals to it, and point-in-time undo for every
applied change.
"""

from .domain import (
    ActionType,
    Factory,
    Line,
    Operation,
    Strip,
)
from .engine import EngineOptions, MutationEngine, ReferencePolicy
from .services import BoardService, CardState

__all__ = [
    "ActionType",
    "Factory",
    "Line",
    "Operation",
    "Strip",
    "EngineOptions",
    "MutationEngine",
    "ReferencePolicy",
    "BoardService",
    "CardState",
]
