"""Mutation engine that derives the next board from an operation."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional

from .domain import (
    ActionType,
    Factory,
    Line,
    Operation,
    OrderDetails,
    Strip,
    StripLayout,
    same_id,
)
from .repository import RecordNotFoundError

logger = logging.getLogger(__name__)

SPLIT_CHILD_BUYER = "SPLIT-CHILD"
NUDGE_STEP = 5.0


class ReferencePolicy(str, Enum):
    """What to do when an operation names a strip or line that is missing."""

    SKIP = "skip"
    FAIL = "fail"


class ReferenceNotFoundError(RecordNotFoundError):
    """Raised under the fail policy when an operation reference does not resolve."""

    def __init__(self, kind: str, identifier: object, operation: Operation) -> None:
        super().__init__(
            f"{kind} {identifier!r} referenced by {operation.action_type!r} not found"
        )
        self.kind = kind
        self.identifier = identifier
        self.operation = operation


NudgeFunction = Callable[[Strip, Operation], float]


def alternating_nudge(strip: Strip, operation: Operation) -> float:
    """Shift even strip ids right and everything else left."""

    try:
        even = int(strip.strip_id) % 2 == 0
    except (TypeError, ValueError):
        even = False
    return NUDGE_STEP if even else -NUDGE_STEP


def no_nudge(strip: Strip, operation: Operation) -> float:
    return 0.0


@dataclass(slots=True)
class EngineOptions:
    """Tuning values for the mutation engine.

    Everything except ``missing_reference`` only affects how the strips are
    drawn, not the schedule itself.
    """

    missing_reference: ReferencePolicy = ReferencePolicy.SKIP
    split_width_factor: float = 0.6
    default_strip_width: float = 20.0
    default_offset: float = 10.0
    nudge: NudgeFunction = field(default=alternating_nudge)
    child_end_date: str = "2025-02-02T08:00:00"
    child_offset: float = 35.0
    child_width: float = 10.0
    child_bg_colour: str = "#dcfce7"
    child_border: str = "1px solid #86efac"
    child_buyer: str = SPLIT_CHILD_BUYER


class MutationEngine:
    """Applies operations to a factory without touching the input value."""

    def __init__(self, options: Optional[EngineOptions] = None) -> None:
        self.options = options or EngineOptions()

    def apply(self, factory: Factory, operation: Operation) -> Factory:
        """Return the factory that results from applying ``operation``.

        Unknown action types return an unchanged copy.
        """

        kind = operation.kind
        if kind is None:
            logger.debug("Ignoring unknown action type %r", operation.action_type)
            return copy.deepcopy(factory)

        board = copy.deepcopy(factory)
        if kind is ActionType.SPLIT_CHILD:
            self._split_child(board, operation)
            return board

        located = board.find_strip(operation.strip_id)
        if located is None:
            self._missing("Strip", operation.strip_id, operation)
            return board
        line, _, strip = located

        if kind in (ActionType.MOVE_ALONG_LINE, ActionType.MOVE_ACROSS_LINES):
            self._move(strip, operation)
            if kind is ActionType.MOVE_ACROSS_LINES:
                self._relocate(board, line, strip, operation)
        elif kind is ActionType.SPLIT_PARENT:
            self._split_parent(strip, operation)
            self._relocate(board, line, strip, operation)
        return board

    def apply_many(self, factory: Factory, operations: Iterable[Operation]) -> Factory:
        """Apply operations in the given order; later steps see earlier results."""

        board = factory
        for operation in operations:
            board = self.apply(board, operation)
        return board

    # ------------------------------------------------------------------
    # Individual steps
    # ------------------------------------------------------------------
    def _move(self, strip: Strip, operation: Operation) -> None:
        if operation.start_date_from:
            strip.start_date = operation.start_date_from
        if operation.start_date_to:
            strip.end_date = operation.start_date_to
        offset = strip.layout.offset or self.options.default_offset
        strip.layout.offset = offset + self.options.nudge(strip, operation)

    def _split_parent(self, strip: Strip, operation: Operation) -> None:
        if operation.quantity_to is not None:
            strip.quantity = operation.quantity_to
        width = strip.layout.width or self.options.default_strip_width
        strip.layout.width = width * self.options.split_width_factor

    def _relocate(self, board: Factory, source: Line, strip: Strip, operation: Operation) -> None:
        target_id = operation.line_id_to
        if target_id is None or same_id(target_id, source.line_id):
            return
        destination = board.find_line(target_id)
        if destination is None:
            # Strip stays on its current line.
            self._missing("Line", target_id, operation)
            return
        source.orders.pop(source.index_of(strip.strip_id))
        destination.orders.append(strip)
        logger.debug(
            "Moved strip %s from line %s to line %s",
            strip.strip_id,
            source.line_id,
            destination.line_id,
        )

    def _split_child(self, board: Factory, operation: Operation) -> None:
        target = board.find_line(operation.new_line_id)
        if target is None:
            self._missing("Line", operation.new_line_id, operation)
            return
        options = self.options
        parent_label = operation.parent_strip_id if operation.parent_strip_id is not None else "?"
        child = Strip(
            strip_id=board.next_temporary_id(),
            start_date=operation.new_start_date,
            end_date=options.child_end_date,
            quantity=operation.new_quantity or 0,
            layout=StripLayout(
                offset=options.child_offset,
                width=options.child_width,
                bg_colour=options.child_bg_colour,
                border=options.child_border,
            ),
            order_details=OrderDetails(
                buyer_short_name=options.child_buyer,
                order_reference_number=f"Child of #{parent_label}",
                pic_file_name="",
            ),
            parent_strip_id=operation.parent_strip_id,
        )
        target.orders.append(child)
        logger.debug("Created split child %s on line %s", child.strip_id, target.line_id)

    def _missing(self, kind: str, identifier: object, operation: Operation) -> None:
        if self.options.missing_reference is ReferencePolicy.FAIL:
            raise ReferenceNotFoundError(kind, identifier, operation)
        logger.debug(
            "Skipping %s step: %s %r not found", operation.action_type, kind.lower(), identifier
        )


__all__ = [
    "EngineOptions",
    "MutationEngine",
    "ReferenceNotFoundError",
    "ReferencePolicy",
    "alternating_nudge",
    "no_nudge",
]
