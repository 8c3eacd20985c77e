"""
Segment Tree Engine
===================
Unbalanced binary search tree of (Segment, value) nodes plus the
algorithms that run over an optional root: lookup, strict insert,
transform (split / rewrite / gap fill) and join.

Node ordering:
  - every segment in the left subtree precedes node.segment
  - every segment in the right subtree follows node.segment
  - an in-order walk therefore yields pairwise non-overlapping segments
    in ascending order, point markers sitting between a segment ending
    and a segment starting at the same key.

Mutation model:
  - insert() attaches one new leaf in place.
  - transform() and join() never modify an existing node. The visited
    path is rebuilt out of fresh nodes and untouched subtrees are shared,
    so a caller keeps the old root intact until it swaps the new one in.

Shape is a byproduct of operation order. No rebalancing is done; depth
is bounded only by the number of stored segments. Every walk keeps an
explicit stack, so depth never meets the interpreter recursion limit.

Concurrency: single-threaded, no locking.
"""

from typing import Any, Callable, Iterator, List, Optional

from segmap.segment import Segment, earlier, later


# fn(sub_segment, old_value or None) -> new value, or None for "no entry"
TransformFn = Callable[[Segment, Optional[Any]], Optional[Any]]


class OverlapError(Exception):
    """Raised when a strict insert would collide with a stored segment."""

    def __init__(self, segment: Segment, existing: Optional[Segment]):
        if existing is None:
            message = f"{segment!r} cannot be ordered against stored segments"
        else:
            message = f"{segment!r} overlaps stored {existing!r}"
        super().__init__(message)
        self.segment = segment
        self.existing = existing


class SegmentNode:
    """One stored (segment, value) pair with its two owned subtrees."""
    __slots__ = ('segment', 'value', 'left', 'right')

    def __init__(self, segment: Segment, value: Any,
                 left: Optional['SegmentNode'] = None,
                 right: Optional['SegmentNode'] = None):
        self.segment = segment
        self.value = value
        self.left = left
        self.right = right

    def __repr__(self) -> str:
        return f"SegmentNode({self.segment!r}, {self.value!r})"


# ─── Lookup ────────────────────────────────────────────────────────────────

def lookup(root: Optional[SegmentNode], key: Any) -> Optional[SegmentNode]:
    """
    Find the node whose segment contains `key`.
    Point markers contain no key and are never returned.
    """
    node = root
    while node is not None:
        segment = node.segment
        if segment.contains(key):
            return node
        if key < segment.start:
            node = node.left
        elif segment.end <= key:
            node = node.right
        else:
            # Incomparable key
            return None
    return None


# ─── Strict Insert ─────────────────────────────────────────────────────────

def insert(root: Optional[SegmentNode], segment: Segment,
           value: Any) -> SegmentNode:
    """
    Attach a new leaf for (segment, value) and return the root.
    Raises OverlapError before touching the tree if the segment collides
    with (or cannot be ordered against) a stored segment.
    """
    leaf = SegmentNode(segment, value)
    if root is None:
        return leaf

    node = root
    while True:
        if segment.precedes(node.segment):
            if node.left is None:
                node.left = leaf
                return root
            node = node.left
        elif node.segment.precedes(segment):
            if node.right is None:
                node.right = leaf
                return root
            node = node.right
        elif segment.overlaps(node.segment):
            raise OverlapError(segment, node.segment)
        else:
            raise OverlapError(segment, None)


# ─── Transform ─────────────────────────────────────────────────────────────

# Frame stages
_CLASSIFY = 0      # not yet compared against the target
_SPLIT = 1         # left side rebuilt, pieces not cut yet
_REBUILD = 2       # the one child that could change has been rebuilt
_ASSEMBLE = 3      # both sides and the pieces are ready


class _Frame:
    """One pending subtree of an in-progress transform."""
    __slots__ = ('node', 'window', 'side', 'stage', 'left', 'right', 'pieces')

    def __init__(self, node: Optional[SegmentNode], window: Optional[Segment],
                 side: Optional[str]):
        self.node = node
        self.window = window
        self.side = side           # parent slot the result goes to
        self.stage = _CLASSIFY
        self.left = node.left if node is not None else None
        self.right = node.right if node is not None else None
        self.pieces: List[SegmentNode] = []


def transform(root: Optional[SegmentNode], target: Segment, fn: TransformFn,
              window: Optional[Segment]) -> Optional[SegmentNode]:
    """
    Rewrite every part of `target` in the tree and return the rebuilt root.

    Each stored segment that overlaps `target` is split into
      [start, target.start)           kept with its old value
      segment ∩ target                replaced by fn(sub_segment, old)
      [target.end, end)               kept with its old value
    and each uncovered part of `window` becomes fn(gap, None).

    A frame's `window` is the part of `target` that falls between its
    subtree's ancestors, i.e. the only place a gap entry may be created
    there. It is None when nothing is left to fill (markers may still need
    visiting). Pass window=target at the root.

    The walk keeps its own stack, so a degenerate tree of any depth is
    fine. fn is called in ascending order of sub-segment.
    """
    stack = [_Frame(root, window, None)]
    result: Optional[SegmentNode] = None

    while stack:
        frame = stack[-1]
        node = frame.node

        if node is None:
            result = None
            if frame.window is not None:
                value = fn(frame.window, None)
                if value is not None:
                    result = SegmentNode(frame.window, value)

        elif frame.stage == _CLASSIFY:
            segment = node.segment
            if segment.precedes(target):
                frame.stage = _REBUILD
                stack.append(_Frame(node.right, frame.window, 'right'))
                continue
            if target.precedes(segment):
                frame.stage = _REBUILD
                stack.append(_Frame(node.left, frame.window, 'left'))
                continue
            if not segment.overlaps(target):
                # Incomparable bounds: leave the whole subtree alone.
                result = node
            else:
                frame.stage = _SPLIT
                if target.start < segment.start:
                    left_window = None
                    if frame.window is not None and frame.window.start < segment.start:
                        left_window = Segment(frame.window.start,
                                              earlier(frame.window.end, segment.start))
                    stack.append(_Frame(node.left, left_window, 'left'))
                continue

        elif frame.stage == _SPLIT:
            segment = node.segment
            if segment.start < target.start:
                frame.pieces.append(
                    SegmentNode(Segment(segment.start, target.start), node.value))
            middle = segment.intersection(target)
            value = fn(middle, node.value)
            if value is not None:
                frame.pieces.append(SegmentNode(middle, value))
            if target.end < segment.end:
                frame.pieces.append(
                    SegmentNode(Segment(target.end, segment.end), node.value))

            frame.stage = _ASSEMBLE
            if segment.end < target.end:
                right_window = None
                if frame.window is not None and segment.end < frame.window.end:
                    right_window = Segment(later(frame.window.start, segment.end),
                                           frame.window.end)
                stack.append(_Frame(node.right, right_window, 'right'))
            continue

        elif frame.stage == _REBUILD:
            result = _rebuilt(node, frame.left, frame.right)

        else:
            result = _assemble(frame.left, frame.pieces, frame.right)

        stack.pop()
        if stack:
            setattr(stack[-1], frame.side, result)

    return result


def _rebuilt(node: SegmentNode, left: Optional[SegmentNode],
             right: Optional[SegmentNode]) -> SegmentNode:
    """Return `node` if its children are unchanged, else a fresh copy."""
    if left is node.left and right is node.right:
        return node
    return SegmentNode(node.segment, node.value, left, right)


def _assemble(left: Optional[SegmentNode], pieces: List[SegmentNode],
              right: Optional[SegmentNode]) -> Optional[SegmentNode]:
    """
    Put up to three fresh, ordered pieces between two subtrees.
    The pieces are chained down a right spine:

        pieces[0]
         /    \\
      left   pieces[1]
                  \\
                 pieces[2]
                     \\
                    right
    """
    if not pieces:
        return join(left, right)
    pieces[0].left = left
    for current, following in zip(pieces, pieces[1:]):
        current.right = following
    pieces[-1].right = right
    return pieces[0]


# ─── Join ──────────────────────────────────────────────────────────────────

def join(left: Optional[SegmentNode],
         right: Optional[SegmentNode]) -> Optional[SegmentNode]:
    """
    Combine two subtrees where everything in `left` precedes everything
    in `right`. `right` hangs off the end of left's right spine; the
    spine is copied so neither input is modified.
    """
    if left is None:
        return right
    if right is None:
        return left

    spine: List[SegmentNode] = []
    node = left
    while node is not None:
        spine.append(node)
        node = node.right

    joined = right
    for node in reversed(spine):
        joined = SegmentNode(node.segment, node.value, node.left, joined)
    return joined


# ─── Traversal ─────────────────────────────────────────────────────────────

def iter_nodes(root: Optional[SegmentNode]) -> Iterator[SegmentNode]:
    """In-order walk, ascending by segment."""
    stack: List[SegmentNode] = []
    node = root
    while stack or node is not None:
        while node is not None:
            stack.append(node)
            node = node.left
        node = stack.pop()
        yield node
        node = node.right


def span_of(root: Optional[SegmentNode]) -> Optional[Segment]:
    """[start of leftmost, end of rightmost), gaps included."""
    if root is None:
        return None
    first = root
    while first.left is not None:
        first = first.left
    last = root
    while last.right is not None:
        last = last.right
    return Segment(first.segment.start, last.segment.end)


# ─── Debug / Verification ──────────────────────────────────────────────────

def tree_height(root: Optional[SegmentNode]) -> int:
    """Number of nodes on the longest root-to-leaf path (0 when empty)."""
    height = 0
    stack = [(root, 1)] if root is not None else []
    while stack:
        node, depth = stack.pop()
        height = max(height, depth)
        if node.left is not None:
            stack.append((node.left, depth + 1))
        if node.right is not None:
            stack.append((node.right, depth + 1))
    return height


def verify_tree(root: Optional[SegmentNode]) -> List[str]:
    """
    Verify structural integrity.
    Returns list of issues found (empty = healthy).
    """
    issues: List[str] = []
    visited = set()
    stack = [root] if root is not None else []
    while stack:
        node = stack.pop()
        if id(node) in visited:
            issues.append(f"Node {node.segment!r} reachable twice")
            return issues
        visited.add(id(node))
        if not isinstance(node.segment, Segment):
            issues.append(f"Node holds a non-segment key {node.segment!r}")
        if node.left is not None:
            stack.append(node.left)
        if node.right is not None:
            stack.append(node.right)
    if issues:
        return issues

    previous: Optional[SegmentNode] = None
    for node in iter_nodes(root):
        if previous is not None and not previous.segment.precedes(node.segment):
            if previous.segment.overlaps(node.segment):
                issues.append(
                    f"{previous.segment!r} overlaps {node.segment!r}")
            else:
                issues.append(
                    f"{previous.segment!r} out of order before {node.segment!r}")
        previous = node
    return issues
