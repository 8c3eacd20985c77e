"""
Segment Map
===========
Associative container keyed by disjoint half-open segments.

Usage:
    sm = SegmentMap()
    sm.insert(Segment(0, 6), "a")
    sm.insert(Segment(6, 12), "b")
    sm.get(3)                           # "a"
    sm.remove(Segment(3, 9))            # [0,3)->a  [9,12)->b
    sm.update(Segment(0, 12), lambda old: old or "gap")

Semantics:
  - insert() is strict: an overlapping segment raises OverlapError and
    leaves the map unchanged.
  - remove() / update() / update_entry() accept any segment. Stored
    segments straddling its bounds are split; the pieces outside keep
    their value, the pieces inside are rewritten.
  - update callables use None as "no value". Returning None leaves that
    sub-range empty; receiving None means the sub-range was a gap.
  - Neighbouring entries are never coalesced, even with equal values.

Concurrency: none. Wrap a map in an external lock if it is shared.
"""

import logging
import os
from typing import Any, Callable, Iterable, Iterator, List, Optional, Tuple

from segmap.segment import Segment
from segmap import node as tree
from segmap.node import OverlapError, SegmentNode

logger = logging.getLogger(__name__)
logger.setLevel(os.getenv("SEGMAP_LOG_LEVEL", logging.WARNING))

Entry = Tuple[Segment, Any]


class EntryRef:
    """
    Live handle to one stored entry, yielded by SegmentMap.entries().
    The segment is read-only; assigning `value` rewrites the stored value.
    """
    __slots__ = ('_node',)

    def __init__(self, node: SegmentNode):
        self._node = node

    @property
    def segment(self) -> Segment:
        return self._node.segment

    @property
    def value(self) -> Any:
        return self._node.value

    @value.setter
    def value(self, value: Any) -> None:
        self._node.value = value

    def __repr__(self) -> str:
        return f"EntryRef({self.segment!r}, {self.value!r})"


class SegmentMap:
    """
    Map from non-overlapping segments to values.

    The map owns at most one root node; every operation is delegated to
    the tree engine in segmap.node.
    """

    def __init__(self, pairs: Optional[Iterable[Entry]] = None):
        self._root: Optional[SegmentNode] = None
        if pairs is not None:
            self.extend(pairs)

    # ─── Size ───────────────────────────────────────────────────────

    def is_empty(self) -> bool:
        return self._root is None

    def __bool__(self) -> bool:
        return self._root is not None

    def __len__(self) -> int:
        """Number of stored entries. Walks the whole tree."""
        return sum(1 for _ in tree.iter_nodes(self._root))

    def clear(self) -> None:
        logger.debug("Clearing segment map")
        self._root = None

    # ─── Lookup ─────────────────────────────────────────────────────

    def get(self, key: Any, default: Any = None) -> Any:
        """Value of the segment containing `key`, or `default`."""
        found = tree.lookup(self._root, key)
        return default if found is None else found.value

    def get_entry(self, key: Any) -> Optional[Entry]:
        """(segment, value) containing `key`, or None."""
        found = tree.lookup(self._root, key)
        return None if found is None else (found.segment, found.value)

    def contains_key(self, key: Any) -> bool:
        return tree.lookup(self._root, key) is not None

    def __contains__(self, key: Any) -> bool:
        return self.contains_key(key)

    def span(self) -> Optional[Segment]:
        """Smallest segment covering every entry, gaps included."""
        return tree.span_of(self._root)

    # ─── Insert ─────────────────────────────────────────────────────

    def insert(self, segment: Segment, value: Any) -> None:
        """
        Store a new entry. Raises OverlapError if `segment` overlaps any
        stored segment; the map is unchanged in that case.
        """
        try:
            self._root = tree.insert(self._root, segment, value)
        except OverlapError as e:
            logger.debug("Rejected insert: %s", e)
            raise

    def extend(self, pairs: Iterable[Entry]) -> None:
        """
        Insert every (segment, value) pair in order.
        Stops at the first overlap; pairs inserted before it remain.
        """
        count = 0
        for segment, value in pairs:
            self.insert(segment, value)
            count += 1
        logger.debug("Bulk loaded %d entries", count)

    # ─── Remove / Update ────────────────────────────────────────────

    def remove(self, segment: Segment) -> None:
        """Delete every stored key inside `segment`, splitting at its bounds."""
        self._transform(segment, lambda _sub, _old: None)

    def update(self, segment: Segment,
               fn: Callable[[Optional[Any]], Optional[Any]]) -> None:
        """
        Rewrite `segment` with fn(old_value). Gaps are offered as fn(None).
        """
        self._transform(segment, lambda _sub, old: fn(old))

    def update_entry(self, segment: Segment,
                     fn: Callable[[Segment, Optional[Any]], Optional[Any]]) -> None:
        """
        Like update(), but fn also receives the exact sub-segment being
        rewritten: fn(sub_segment, old_value).
        """
        self._transform(segment, fn)

    def _transform(self, segment: Segment, fn: tree.TransformFn) -> None:
        # The new root is only installed once the whole rewrite succeeded,
        # so an exception from `fn` leaves the map as it was.
        self._root = tree.transform(self._root, segment, fn, segment)

    # ─── Iteration ──────────────────────────────────────────────────

    def __iter__(self) -> Iterator[Entry]:
        return self.items()

    def items(self) -> Iterator[Entry]:
        """(segment, value) pairs in ascending order."""
        for n in tree.iter_nodes(self._root):
            yield n.segment, n.value

    def segments(self) -> Iterator[Segment]:
        for n in tree.iter_nodes(self._root):
            yield n.segment

    def values(self) -> Iterator[Any]:
        for n in tree.iter_nodes(self._root):
            yield n.value

    def entries(self) -> Iterator[EntryRef]:
        """Handles whose `value` can be reassigned in place."""
        for n in tree.iter_nodes(self._root):
            yield EntryRef(n)

    def drain(self) -> Iterator[Entry]:
        """
        Detach the whole tree and yield its pairs in order.
        The map is empty as soon as drain() is called.
        """
        root, self._root = self._root, None
        logger.debug("Draining segment map")
        return ((n.segment, n.value) for n in tree.iter_nodes(root))

    # ─── Copy / Compare ─────────────────────────────────────────────

    def copy(self) -> 'SegmentMap':
        """New map with the same entries. Values are shared, nodes are not."""
        clone = SegmentMap()
        clone._root = _copy_tree(self._root)
        return clone

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SegmentMap):
            return NotImplemented
        return list(self.items()) == list(other.items())

    def __repr__(self) -> str:
        body = ", ".join(f"{s!r}: {v!r}" for s, v in self.items())
        return f"SegmentMap({{{body}}})"

    # ─── Debug / Verification ───────────────────────────────────────

    @property
    def height(self) -> int:
        return tree.tree_height(self._root)

    def verify_structure(self) -> List[str]:
        """
        Verify ordering and non-overlap of the stored tree.
        Returns list of issues found (empty = healthy).
        """
        return tree.verify_tree(self._root)


def _copy_tree(root: Optional[SegmentNode]) -> Optional[SegmentNode]:
    if root is None:
        return None
    # Iterative pre-order copy; (source, copy) pairs still to wire up.
    copied = SegmentNode(root.segment, root.value)
    stack = [(root, copied)]
    while stack:
        source, target = stack.pop()
        if source.left is not None:
            target.left = SegmentNode(source.left.segment, source.left.value)
            stack.append((source.left, target.left))
        if source.right is not None:
            target.right = SegmentNode(source.right.segment, source.right.value)
            stack.append((source.right, target.right))
    return copied
