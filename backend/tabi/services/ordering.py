"""Pure transforms for the per-day activity ordering.

Every day holds its activities as a dense, zero-based sequence. The helpers in
this module never touch the database or any UI toolkit: they take the grouped
sequences as plain data (``day_id -> [activity_id, ...]`` in display order)
and return new sequences together with the ``(id, day_id, order)`` triples a
reorder batch needs to persist. Both the API services and the client board
use them, so the server and the optimistic view agree on what a move means.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence


class OrderingError(ValueError):
    """Raised when a move references a day or index that does not exist."""


@dataclass(frozen=True, slots=True)
class Position:
    day_id: str
    index: int


@dataclass(frozen=True, slots=True)
class OrderAssignment:
    id: str
    day_id: str
    order: int

    def as_payload(self) -> dict[str, object]:
        return {"id": self.id, "dayId": self.day_id, "order": self.order}


@dataclass(frozen=True, slots=True)
class MoveResult:
    groups: dict[str, tuple[str, ...]]
    changes: tuple[OrderAssignment, ...]
    moved_id: str

    @property
    def is_noop(self) -> bool:
        return not self.changes


def clamp_index(index: int, length: int) -> int:
    """Clamp an insertion index into ``[0, length]``."""

    return max(0, min(index, length))


def append_position(existing_count: int) -> int:
    return existing_count


def is_dense(orders: Iterable[int]) -> bool:
    values = sorted(orders)
    return values == list(range(len(values)))


def insert_at(ids: Sequence[str], item_id: str, index: int | None) -> list[str]:
    """Insert ``item_id`` at ``index`` (append when ``None``), clamped."""

    result = [existing for existing in ids if existing != item_id]
    target = len(result) if index is None else clamp_index(index, len(result))
    result.insert(target, item_id)
    return result


def remove_item(ids: Sequence[str], item_id: str) -> list[str]:
    return [existing for existing in ids if existing != item_id]


def diff_assignments(
    before: Mapping[str, Sequence[str]],
    after: Mapping[str, Sequence[str]],
) -> list[OrderAssignment]:
    """Return the triples whose day or index differs between two groupings."""

    previous: dict[str, tuple[str, int]] = {}
    for day_id, ids in before.items():
        for idx, item_id in enumerate(ids):
            previous[item_id] = (day_id, idx)

    changes: list[OrderAssignment] = []
    for day_id, ids in after.items():
        for idx, item_id in enumerate(ids):
            if previous.get(item_id) != (day_id, idx):
                changes.append(OrderAssignment(id=item_id, day_id=day_id, order=idx))
    return changes


def move_activity(
    groups: Mapping[str, Sequence[str]],
    source: Position,
    destination: Position,
) -> MoveResult:
    """Move one activity between (or within) days, remove-then-insert.

    Within a day every item between the old and new index shifts by one.
    Across days the source closes its gap and the destination opens one at
    ``destination.index``. The destination index is clamped to the target
    length; the source index must point at an existing item.
    """

    if source.day_id not in groups:
        raise OrderingError(f"unknown source day {source.day_id!r}")
    if destination.day_id not in groups:
        raise OrderingError(f"unknown destination day {destination.day_id!r}")
    source_ids = list(groups[source.day_id])
    if not 0 <= source.index < len(source_ids):
        raise OrderingError(
            f"source index {source.index} out of range for day {source.day_id!r}"
        )

    next_groups: dict[str, list[str]] = {
        day_id: list(ids) for day_id, ids in groups.items()
    }
    moved_id = next_groups[source.day_id].pop(source.index)
    target = next_groups[destination.day_id]
    target.insert(clamp_index(destination.index, len(target)), moved_id)

    frozen = {day_id: tuple(ids) for day_id, ids in next_groups.items()}
    changes = diff_assignments(groups, frozen)
    return MoveResult(groups=frozen, changes=tuple(changes), moved_id=moved_id)


def apply_assignments(
    groups: Mapping[str, Sequence[str]],
    assignments: Iterable[OrderAssignment],
) -> dict[str, tuple[str, ...]]:
    """Overlay a reorder batch on grouped sequences.

    Items named in the batch take their new ``(day_id, order)``; items not
    named keep their current index. Raises :class:`OrderingError` when the
    result is not dense for every day, which is exactly the check the reorder
    transaction runs after writing.
    """

    placed: dict[str, dict[int, str]] = {day_id: {} for day_id in groups}
    batch = {assignment.id: assignment for assignment in assignments}
    for day_id, ids in groups.items():
        for idx, item_id in enumerate(ids):
            if item_id in batch:
                continue
            placed[day_id][idx] = item_id
    for assignment in batch.values():
        bucket = placed.setdefault(assignment.day_id, {})
        if assignment.order in bucket:
            raise OrderingError(
                f"order {assignment.order} taken twice in day {assignment.day_id!r}"
            )
        bucket[assignment.order] = assignment.id

    result: dict[str, tuple[str, ...]] = {}
    for day_id, slots in placed.items():
        if not is_dense(slots):
            raise OrderingError(f"day {day_id!r} is not densely ordered")
        result[day_id] = tuple(slots[idx] for idx in range(len(slots)))
    return result


__all__ = [
    "MoveResult",
    "OrderAssignment",
    "OrderingError",
    "Position",
    "append_position",
    "apply_assignments",
    "clamp_index",
    "diff_assignments",
    "insert_at",
    "is_dense",
    "move_activity",
    "remove_item",
]
