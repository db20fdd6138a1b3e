from __future__ import annotations

import pytest

from tabi.services.ordering import (
    OrderAssignment,
    OrderingError,
    Position,
    apply_assignments,
    diff_assignments,
    insert_at,
    is_dense,
    move_activity,
    remove_item,
)


def test_move_within_day_shifts_items_between():
    result = move_activity({"d": ["a", "b", "c"]}, Position("d", 2), Position("d", 0))

    assert result.groups == {"d": ("c", "a", "b")}
    assert result.moved_id == "c"
    assert set(result.changes) == {
        OrderAssignment("c", "d", 0),
        OrderAssignment("a", "d", 1),
        OrderAssignment("b", "d", 2),
    }


def test_move_across_days_only_reports_changed_rows():
    groups = {"d1": ["a", "b", "c"], "d2": ["x", "y"]}
    result = move_activity(groups, Position("d1", 0), Position("d2", 1))

    assert result.groups == {"d1": ("b", "c"), "d2": ("x", "a", "y")}
    assert set(result.changes) == {
        OrderAssignment("b", "d1", 0),
        OrderAssignment("c", "d1", 1),
        OrderAssignment("a", "d2", 1),
        OrderAssignment("y", "d2", 2),
    }


def test_move_into_empty_day_and_clamped_index():
    result = move_activity({"d1": ["a"], "d2": []}, Position("d1", 0), Position("d2", 9))
    assert result.groups == {"d1": (), "d2": ("a",)}
    assert result.changes == (OrderAssignment("a", "d2", 0),)


def test_move_to_same_slot_is_noop():
    result = move_activity({"d": ["a", "b"]}, Position("d", 1), Position("d", 1))
    assert result.is_noop
    assert result.groups == {"d": ("a", "b")}


def test_move_does_not_mutate_input():
    groups = {"d": ["a", "b", "c"]}
    move_activity(groups, Position("d", 0), Position("d", 2))
    assert groups == {"d": ["a", "b", "c"]}


@pytest.mark.parametrize(
    ("source", "destination"),
    [
        (Position("missing", 0), Position("d", 0)),
        (Position("d", 0), Position("missing", 0)),
        (Position("d", 3), Position("d", 0)),
        (Position("d", -1), Position("d", 0)),
    ],
)
def test_move_rejects_unknown_positions(source, destination):
    with pytest.raises(OrderingError):
        move_activity({"d": ["a", "b", "c"]}, source, destination)


def test_insert_and_remove_helpers():
    assert insert_at(["a", "b"], "x", None) == ["a", "b", "x"]
    assert insert_at(["a", "b"], "x", 0) == ["x", "a", "b"]
    assert insert_at(["a", "b", "x"], "x", 0) == ["x", "a", "b"]
    assert insert_at(["a"], "x", -4) == ["x", "a"]
    assert remove_item(["a", "b", "c"], "b") == ["a", "c"]


def test_is_dense():
    assert is_dense([])
    assert is_dense([2, 0, 1])
    assert not is_dense([0, 2])
    assert not is_dense([1, 1])


def test_diff_assignments_reports_moved_rows():
    changes = diff_assignments({"d": ["a", "b"]}, {"d": ["b", "a"]})
    assert changes == [OrderAssignment("b", "d", 0), OrderAssignment("a", "d", 1)]


def test_apply_assignments_keeps_unnamed_items_in_place():
    groups = {"d1": ["a", "b", "c"], "d2": ["x"]}
    result = apply_assignments(
        groups,
        [
            OrderAssignment("c", "d1", 1),
            OrderAssignment("b", "d2", 1),
        ],
    )
    assert result == {"d1": ("a", "c"), "d2": ("x", "b")}


def test_apply_assignments_rejects_collisions_and_gaps():
    with pytest.raises(OrderingError):
        apply_assignments({"d": ["a", "b"]}, [OrderAssignment("a", "d", 1)])
    with pytest.raises(OrderingError):
        apply_assignments({"d": ["a", "b"]}, [OrderAssignment("b", "d", 3)])


def test_apply_assignments_accepts_every_move_result():
    groups = {"d1": ["a", "b", "c"], "d2": ["x", "y"]}
    for src_day, src_len in (("d1", 3), ("d2", 2)):
        for src_idx in range(src_len):
            for dest_day in ("d1", "d2"):
                for dest_idx in range(4):
                    move = move_activity(
                        groups,
                        Position(src_day, src_idx),
                        Position(dest_day, dest_idx),
                    )
                    assert apply_assignments(groups, move.changes) == move.groups


def test_assignment_payload_uses_wire_names():
    assert OrderAssignment("a", "d", 2).as_payload() == {
        "id": "a",
        "dayId": "d",
        "order": 2,
    }
