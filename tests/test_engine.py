"""Tests for the mutation engine."""

import copy

import pytest

from production_board.domain import Operation
from production_board.engine import (
    EngineOptions,
    MutationEngine,
    ReferenceNotFoundError,
    ReferencePolicy,
    alternating_nudge,
)


def op(**fields):
    return Operation.from_payload(fields)


def strip_ids(factory, line_id):
    return [strip.strip_id for strip in factory.find_line(line_id).orders]


class TestMoveAlongLine:
    """move_along_line updates the window and nudges the strip."""

    def test_updates_dates(self, factory, engine):
        result = engine.apply(
            factory,
            op(
                actionType="move_along_line",
                stripId=7,
                startDateFrom="2025-02-03T08:00:00",
                startDateTo="2025-02-06T17:00:00",
            ),
        )
        strip = result.find_strip(7)[2]
        assert strip.start_date == "2025-02-03T08:00:00"
        assert strip.end_date == "2025-02-06T17:00:00"

    def test_missing_dates_left_alone(self, factory, engine):
        result = engine.apply(factory, op(actionType="move_along_line", stripId=7))
        strip = result.find_strip(7)[2]
        assert strip.start_date == "2025-01-27T08:00:00"
        assert strip.end_date == "2025-01-30T17:00:00"

    def test_does_not_change_line(self, factory, engine):
        result = engine.apply(
            factory, op(actionType="move_along_line", stripId=7, lineIdTo="L2")
        )
        assert strip_ids(result, "L1") == [7, 8]
        assert strip_ids(result, "L2") == [12]

    def test_input_factory_untouched(self, factory, engine):
        before = copy.deepcopy(factory)
        engine.apply(
            factory, op(actionType="move_along_line", stripId=7, startDateFrom="2025-03-01")
        )
        assert factory == before

    def test_default_nudge_is_deterministic(self, factory):
        engine = MutationEngine()
        operation = op(actionType="move_along_line", stripId=7)
        first = engine.apply(factory, operation)
        second = engine.apply(factory, operation)
        assert first == second
        assert first.find_strip(7)[2].layout.offset == 5

    def test_nudge_uses_default_offset(self, factory):
        engine = MutationEngine()
        result = engine.apply(factory, op(actionType="move_along_line", stripId=8))
        # strip 8 has no offset; default 10, even id shifts right
        assert result.find_strip(8)[2].layout.offset == 15

    def test_no_nudge_keeps_offset(self, factory, engine):
        result = engine.apply(factory, op(actionType="move_along_line", stripId=12))
        assert result.find_strip(12)[2].layout.offset == 40


def test_alternating_nudge(factory):
    operation = op(actionType="move_along_line")
    assert alternating_nudge(factory.find_strip(12)[2], operation) == 5
    assert alternating_nudge(factory.find_strip(7)[2], operation) == -5


class TestMoveAcrossLines:
    """move_across_lines transfers ownership of the strip."""

    def test_moves_strip_to_destination(self, factory, engine):
        result = engine.apply(
            factory, op(actionType="move_across_lines", stripId=7, lineIdTo="L2")
        )
        assert strip_ids(result, "L1") == [8]
        assert strip_ids(result, "L2") == [12, 7]
        assert result.find_strip(7)[0].line_id == "L2"

    def test_strip_keeps_identity_and_payload(self, factory, engine):
        original = factory.find_strip(7)[2]
        result = engine.apply(
            factory, op(actionType="move_across_lines", stripId=7, lineIdTo="L2")
        )
        moved = result.find_strip(7)[2]
        assert moved.strip_id == 7
        assert moved.quantity == original.quantity
        assert moved.order_details == original.order_details

    def test_applies_date_changes_too(self, factory, engine):
        result = engine.apply(
            factory,
            op(
                actionType="move_across_lines",
                stripId=8,
                lineIdTo="L2",
                startDateFrom="2025-02-10T08:00:00",
            ),
        )
        assert result.find_strip(8)[2].start_date == "2025-02-10T08:00:00"

    def test_missing_destination_keeps_strip_in_place(self, factory, engine):
        result = engine.apply(
            factory,
            op(
                actionType="move_across_lines",
                stripId=7,
                lineIdTo="L9",
                startDateFrom="2025-02-10T08:00:00",
            ),
        )
        assert strip_ids(result, "L1") == [7, 8]
        assert result.find_strip(7)[2].start_date == "2025-02-10T08:00:00"

    def test_same_line_is_not_reordered(self, factory, engine):
        result = engine.apply(
            factory, op(actionType="move_across_lines", stripId=7, lineIdTo="L1")
        )
        assert strip_ids(result, "L1") == [7, 8]

    def test_loose_id_matching(self, factory, engine):
        result = engine.apply(
            factory, op(actionType="move_across_lines", stripId="8", lineIdTo="L2")
        )
        assert strip_ids(result, "L2") == [12, 8]

    def test_placeholder_line_is_a_valid_target(self, factory, engine):
        result = engine.apply(
            factory, op(actionType="move_across_lines", stripId=8, lineIdTo="L0")
        )
        assert strip_ids(result, "L0") == [8]


class TestSplitParent:
    """split_parent shrinks the parent strip."""

    def test_updates_quantity_and_nested_copies(self, factory, engine):
        result = engine.apply(
            factory, op(actionType="split_parent", stripId=7, quantityTo=40)
        )
        strip = result.find_strip(7)[2]
        encoded = strip.to_payload()
        assert strip.quantity == 40
        assert encoded["orderDetails"]["quantity"] == 40
        assert encoded["orderDetails"]["ocDetails"]["units"] == 40

    def test_width_shrinks_by_fixed_factor(self, factory, engine):
        result = engine.apply(
            factory, op(actionType="split_parent", stripId=7, quantityTo=40)
        )
        assert result.find_strip(7)[2].layout.width == pytest.approx(15.0)

    def test_width_defaults_before_shrinking(self, factory, engine):
        result = engine.apply(
            factory, op(actionType="split_parent", stripId=8, quantityTo=10)
        )
        assert result.find_strip(8)[2].layout.width == pytest.approx(12.0)

    def test_zero_quantity_is_applied(self, factory, engine):
        result = engine.apply(factory, op(actionType="split_parent", stripId=7, quantityTo=0))
        assert result.find_strip(7)[2].quantity == 0

    def test_relocates_when_line_given(self, factory, engine):
        result = engine.apply(
            factory,
            op(actionType="split_parent", stripId=7, quantityTo=40, lineIdTo="L2"),
        )
        assert strip_ids(result, "L1") == [8]
        assert strip_ids(result, "L2") == [12, 7]


class TestSplitChild:
    """split_child creates a new temporary strip."""

    def test_creates_child_on_target_line(self, factory, engine):
        result = engine.apply(
            factory,
            op(
                actionType="split_child",
                newLineId="L2",
                newQuantity=60,
                parentStripId=7,
                newStartDate="2025-02-01T08:00:00",
            ),
        )
        line = result.find_line("L2")
        child = line.orders[-1]
        assert len(line.orders) == 2
        assert child.strip_id < 0
        assert child.is_temporary
        assert child.quantity == 60
        assert child.start_date == "2025-02-01T08:00:00"
        assert child.end_date == "2025-02-02T08:00:00"
        assert child.parent_strip_id == 7
        assert child.order_details.buyer_short_name == "SPLIT-CHILD"
        assert child.order_details.order_reference_number == "Child of #7"
        assert child.layout.bg_colour == "#dcfce7"
        assert child.layout.width == 10
        assert child.to_payload()["orderDetails"]["ocDetails"]["units"] == 60

    def test_parent_is_not_adjusted(self, factory, engine):
        result = engine.apply(
            factory,
            op(actionType="split_child", newLineId="L2", newQuantity=60, parentStripId=7),
        )
        assert result.find_strip(7)[2].quantity == 100

    def test_unknown_parent_label(self, factory, engine):
        result = engine.apply(
            factory, op(actionType="split_child", newLineId="L1", newQuantity=5)
        )
        child = result.find_line("L1").orders[-1]
        assert child.order_details.order_reference_number == "Child of #?"
        assert child.parent_strip_id is None

    def test_each_child_gets_a_fresh_id(self, factory, engine):
        operation = op(actionType="split_child", newLineId="L1", newQuantity=5)
        result = engine.apply_many(factory, [operation, operation])
        children = [strip.strip_id for strip in result.find_line("L1").orders[2:]]
        assert children == [-1, -2]

    def test_missing_line_is_a_no_op(self, factory, engine):
        result = engine.apply(
            factory, op(actionType="split_child", newLineId="L9", newQuantity=5)
        )
        assert result == factory

    def test_missing_quantity_means_zero(self, factory, engine):
        result = engine.apply(factory, op(actionType="split_child", newLineId="L1"))
        assert result.find_line("L1").orders[-1].quantity == 0


class TestMissingReferences:
    """Reference handling for both policies."""

    def test_missing_strip_returns_unchanged_board(self, factory, engine):
        result = engine.apply(
            factory, op(actionType="move_across_lines", stripId=999, lineIdTo="L2")
        )
        assert result == factory

    def test_unknown_action_type_is_a_no_op(self, factory, engine):
        result = engine.apply(factory, op(actionType="teleport", stripId=7))
        assert result == factory

    def test_fail_policy_raises_for_missing_strip(self, factory):
        engine = MutationEngine(EngineOptions(missing_reference=ReferencePolicy.FAIL))
        with pytest.raises(ReferenceNotFoundError) as excinfo:
            engine.apply(factory, op(actionType="split_parent", stripId=999, quantityTo=1))
        assert excinfo.value.kind == "Strip"
        assert excinfo.value.identifier == 999

    def test_fail_policy_raises_for_missing_line(self, factory):
        before = copy.deepcopy(factory)
        engine = MutationEngine(EngineOptions(missing_reference=ReferencePolicy.FAIL))
        with pytest.raises(ReferenceNotFoundError):
            engine.apply(
                factory,
                op(
                    actionType="move_across_lines",
                    stripId=7,
                    lineIdTo="L9",
                    startDateFrom="2025-02-10",
                ),
            )
        assert factory == before


class TestApplyMany:
    """Ordered batches."""

    def test_split_then_child_in_order(self, factory, engine):
        result = engine.apply_many(
            factory,
            [
                op(actionType="split_parent", stripId=12, quantityTo=200),
                op(actionType="split_child", newLineId="L1", newQuantity=100, parentStripId=12),
                op(actionType="move_across_lines", stripId=-1, lineIdTo="L2"),
            ],
        )
        assert result.find_strip(12)[2].quantity == 200
        assert strip_ids(result, "L2") == [12, -1]
        assert result.find_strip(-1)[2].parent_strip_id == 12

    def test_positive_ids_stay_unique(self, factory, engine):
        result = engine.apply_many(
            factory,
            [
                op(actionType="move_across_lines", stripId=7, lineIdTo="L2"),
                op(actionType="move_across_lines", stripId=12, lineIdTo="L1"),
                op(actionType="split_parent", stripId=8, quantityTo=20, lineIdTo="L0"),
                op(actionType="split_child", newLineId="L1", newQuantity=30, parentStripId=8),
                op(actionType="move_across_lines", stripId=7, lineIdTo="L1"),
            ],
        )
        assert result.duplicate_strip_ids() == []
        assert sorted(result.strip_ids()) == [-1, 7, 8, 12]
