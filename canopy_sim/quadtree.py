"""Region quadtree over crown bounding boxes.

Used to prefilter candidate pairs for the exact circle-overlap test. Each
node stores the objects whose box does not fit wholly inside one of its
quadrants; everything else is pushed down when the node splits. An object is
therefore stored in exactly one node, and a query box only needs to visit the
nodes whose region it touches.

Coincident or heavily clustered crowns degrade toward a linear scan at the
node that holds them; results stay correct.

Quadrant order (index):

    0 | 1
    --+--
    2 | 3
"""

from __future__ import annotations

import math
from typing import Iterator, List, Optional

from canopy_sim.types import EPSILON, Bounds, Tree

# Tree.intersects accepts crowns up to sqrt(EPSILON) apart, so query boxes
# are padded by that much
QUERY_MARGIN = math.sqrt(EPSILON)


class QuadTree:
    """One quadtree node; the root is constructed over the arena bounds.

    Args:
        bounds: Region covered by this node.
        max_objects: Objects a node may hold before it splits.
        max_levels: Deepest level a node may split to (root is level 0).
        level: Depth of this node.
    """

    def __init__(
        self,
        bounds: Bounds,
        max_objects: int = 10,
        max_levels: int = 6,
        level: int = 0,
    ):
        self.bounds = bounds
        self.max_objects = max_objects
        self.max_levels = max_levels
        self.level = level
        self.objects: List[Tree] = []
        self.nodes: List[QuadTree] = []

    # ── structure ────────────────────────────────────────────────────

    def split(self) -> None:
        """Create the four child quadrants."""
        half_w = self.bounds.width / 2.0
        half_h = self.bounds.height / 2.0
        x, y = self.bounds.x, self.bounds.y
        quads = [
            Bounds(x, y, half_w, half_h),
            Bounds(x + half_w, y, half_w, half_h),
            Bounds(x, y + half_h, half_w, half_h),
            Bounds(x + half_w, y + half_h, half_w, half_h),
        ]
        self.nodes = [
            QuadTree(q, self.max_objects, self.max_levels, self.level + 1)
            for q in quads
        ]

    def _fitting_child(self, box: Bounds) -> Optional['QuadTree']:
        """Child whose region wholly contains box, or None if it straddles."""
        for node in self.nodes:
            if node.bounds.contains(box):
                return node
        return None

    # ── public API ───────────────────────────────────────────────────

    def insert(self, tree: Tree) -> None:
        """Store a tree keyed by its current bounding box."""
        box = tree.bbox
        if self.nodes:
            child = self._fitting_child(box)
            if child is not None:
                child.insert(tree)
                return

        self.objects.append(tree)

        if len(self.objects) > self.max_objects and self.level < self.max_levels:
            if not self.nodes:
                self.split()
            kept = []
            for obj in self.objects:
                child = self._fitting_child(obj.bbox)
                if child is not None:
                    child.insert(obj)
                else:
                    kept.append(obj)
            self.objects = kept

    def retrieve(self, tree: Tree) -> List[Tree]:
        """Candidates whose node region touches the tree's bounding box.

        The result includes the query tree itself if it was inserted; the
        caller applies the exact overlap test.
        """
        box = tree.bbox.expanded(QUERY_MARGIN)
        found: List[Tree] = []
        self._collect(box, found)
        return found

    def _collect(self, box: Bounds, found: List[Tree]) -> None:
        found.extend(self.objects)
        for node in self.nodes:
            if node.bounds.intersects(box):
                node._collect(box, found)

    def clear(self) -> None:
        """Drop every object and child; bounds and limits are kept."""
        self.objects = []
        self.nodes = []

    # ── introspection ────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self.objects) + sum(len(n) for n in self.nodes)

    def __iter__(self) -> Iterator[Tree]:
        yield from self.objects
        for node in self.nodes:
            yield from node

    def depth(self) -> int:
        """Number of levels below this node (0 for a leaf)."""
        if not self.nodes:
            return 0
        return 1 + max(n.depth() for n in self.nodes)
