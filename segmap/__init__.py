"""
segmap
======
Interval-keyed map: disjoint half-open segments of an ordered key space
mapped to values, with point lookup, strict insert, and range remove /
update that split partially covered entries at the range bounds.

Components:
  - segment: Segment value type and interval predicates
  - node: unbalanced search tree engine (lookup, insert, transform, join)
  - segment_map: SegmentMap container and iteration views

Usage:
    from segmap import Segment, SegmentMap, OverlapError
"""

from segmap.segment import Segment
from segmap.node import OverlapError
from segmap.segment_map import EntryRef, SegmentMap

__all__ = [
    "Segment",
    "SegmentMap", "EntryRef",
    "OverlapError",
]
