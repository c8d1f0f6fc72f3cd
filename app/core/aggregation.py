"""
Row Aggregation
===============

Turns flat outer-join rows into nested parent -> children views.

A query such as ``habits LEFT JOIN habit_tags LEFT JOIN tags`` yields one
row per (habit, tag) pair, with ``None`` in the tag slot for a habit that
has no tags. ``aggregate_children`` folds those rows back into one
``Aggregate`` per habit:

    rows                          aggregates
    (H1, T1)                      H1 -> [T1, T2]
    (H1, T2)             ==>      H2 -> []
    (H2, None)

Parents keep their first-seen order, children are appended in row order
and de-duplicated by their own primary key. Construction is O(rows).
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Hashable, Iterable, Optional, TypeVar

from sqlalchemy import inspect

P = TypeVar("P")
C = TypeVar("C")

KeyFunc = Callable[[Any], Hashable]


def entity_key(obj: Any) -> Hashable:
    """
    Primary key of a row object.

    ORM instances are keyed by their identity, or by their mapped primary
    key columns before they are flushed; mappings by ``"id"``; anything else
    by an ``id`` attribute.

    Raises:
        ValueError: an ORM instance has no primary key value yet.
    """
    state = inspect(obj, raiseerr=False)
    if state is not None and hasattr(state, "mapper"):
        key = state.identity
        if key is None:
            key = tuple(state.mapper.primary_key_from_instance(obj))
            if any(value is None for value in key):
                raise ValueError(
                    f"{type(obj).__name__} has no primary key yet; flush before aggregating"
                )
        return key[0] if len(key) == 1 else key
    if isinstance(obj, dict):
        return obj["id"]
    return obj.id


@dataclass
class Aggregate(Generic[P, C]):
    """One parent with every distinct child that joined to it."""

    parent: P
    children: list[C] = field(default_factory=list)


def _group(
    rows: Iterable[tuple[P, Optional[C]]],
    parent_key: KeyFunc,
    child_key: KeyFunc,
) -> dict[Hashable, Aggregate[P, C]]:
    grouped: dict[Hashable, Aggregate[P, C]] = {}
    seen_children: dict[Hashable, set[Hashable]] = {}

    for parent, child in rows:
        pkey = parent_key(parent)
        aggregate = grouped.get(pkey)
        if aggregate is None:
            aggregate = grouped[pkey] = Aggregate(parent=parent)
            seen_children[pkey] = set()

        if child is None:
            continue

        ckey = child_key(child)
        if ckey in seen_children[pkey]:
            continue
        seen_children[pkey].add(ckey)
        aggregate.children.append(child)

    return grouped


def aggregate_children(
    rows: Iterable[tuple[P, Optional[C]]],
    parent_key: KeyFunc = entity_key,
    child_key: KeyFunc = entity_key,
) -> list[Aggregate[P, C]]:
    """Fold (parent, child | None) rows into parents in first-seen order."""
    return list(_group(rows, parent_key, child_key).values())


def aggregate_one(
    rows: Iterable[tuple[P, Optional[C]]],
    parent_id: Hashable,
    parent_key: KeyFunc = entity_key,
    child_key: KeyFunc = entity_key,
) -> Optional[Aggregate[P, C]]:
    """
    The aggregate for ``parent_id``, or ``None`` when no row carried it.

    ``None`` means "no such parent"; an aggregate with an empty
    ``children`` list means "found, zero children".
    """
    return _group(rows, parent_key, child_key).get(parent_id)


def attach_single(
    rows: Iterable[tuple[P, Optional[C]]],
    parent_key: KeyFunc = entity_key,
) -> list[tuple[P, Optional[C]]]:
    """
    One (parent, child | None) pair per distinct parent, first-seen order.

    Used for to-one views such as a tag with its creator, where the join
    contributes at most one child per parent.
    """
    pairs: dict[Hashable, tuple[P, Optional[C]]] = {}
    for parent, child in rows:
        pkey = parent_key(parent)
        if pkey not in pairs:
            pairs[pkey] = (parent, child)
        elif pairs[pkey][1] is None and child is not None:
            pairs[pkey] = (parent, child)
    return list(pairs.values())
