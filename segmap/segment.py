"""
Segment Value Type
==================
Immutable half-open range [start, end) over any partially ordered key type.

Point markers:
  A segment with start == end holds no keys. It still has a position: a
  marker at p sorts after every segment ending at p and before every
  segment starting at p. Two markers at the same position collide.

Ordering contract (for totally ordered keys):
  Exactly one of  a.precedes(b),  b.precedes(a),  a.overlaps(b)  holds.

Incomparable keys (e.g. float NaN) make all three predicates False. Callers
treat that as "no relation" and never place or split on it.
"""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Segment:
    """Half-open key range [start, end)."""
    start: Any
    end: Any

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(
                f"Segment end precedes start: [{self.start!r}, {self.end!r})")

    def __repr__(self) -> str:
        return f"Segment[{self.start!r}, {self.end!r})"

    def is_empty(self) -> bool:
        """True for a zero-width point marker."""
        return self.start == self.end

    def contains(self, key: Any) -> bool:
        return self.start <= key < self.end

    def precedes(self, other: "Segment") -> bool:
        """True if this segment lies entirely before `other`."""
        if not self.end <= other.start:
            return False
        # Two markers at one position are the same position, not ordered.
        return not (self.is_empty() and other.is_empty()
                    and self.start == other.start)

    def overlaps(self, other: "Segment") -> bool:
        """True if the two segments intersect (point-marker aware)."""
        if self.is_empty() and other.is_empty():
            return self.start == other.start
        if self.is_empty():
            return other.start < self.start < other.end
        if other.is_empty():
            return self.start < other.start < self.end
        return self.start < other.end and other.start < self.end

    def intersection(self, other: "Segment") -> Optional["Segment"]:
        """The overlapping sub-segment, or None when they do not overlap."""
        if not self.overlaps(other):
            return None
        return Segment(later(self.start, other.start),
                       earlier(self.end, other.end))


# ─── Bound helpers ─────────────────────────────────────────────────────────
# max()/min() with only `<` required of the key type.

def later(a: Any, b: Any) -> Any:
    return b if a < b else a


def earlier(a: Any, b: Any) -> Any:
    return b if b < a else a
