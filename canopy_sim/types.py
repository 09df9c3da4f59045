"""Core data types for canopy_sim.

This module is the SINGLE SOURCE OF TRUTH for:
  - Bounds: axis-aligned rectangles (arena, quadtree regions, crown boxes)
  - SpeciesDescriptor: immutable per-species growth/survival parameters
  - DefaultSpecies: ids of the built-in species table
  - Tree: the mutable agent
  - TreeView / SNAPSHOT_DTYPE: read-only views handed to renderers

All modules import these types from here.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import List, Tuple

import numpy as np


# ═══════════════════════════════════════════════════════════════════════
# CONSTANTS
# ═══════════════════════════════════════════════════════════════════════

EPSILON = 1e-6          # Tangency tolerance for overlap tests and timers
INITIAL_RADIUS = 1.0    # Radius of every newly created tree


def lerp(a: float, b: float, t: float) -> float:
    """Linear interpolation between a (t=0) and b (t=1)."""
    return a * (1.0 - t) + b * t


# ═══════════════════════════════════════════════════════════════════════
# GEOMETRY
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Bounds:
    """Axis-aligned rectangle anchored at its top-left corner (x, y)."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def half_diagonal(self) -> float:
        return 0.5 * math.hypot(self.width, self.height)

    def expanded(self, margin: float) -> 'Bounds':
        """Same centre, grown by margin on every side."""
        return Bounds(self.x - margin, self.y - margin,
                      self.width + 2.0 * margin, self.height + 2.0 * margin)

    def contains_point(self, px: float, py: float) -> bool:
        """Closed containment: points on the edge are inside."""
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def contains(self, other: 'Bounds') -> bool:
        """True if other lies entirely inside this rectangle."""
        return (other.x >= self.x and other.right <= self.right
                and other.y >= self.y and other.bottom <= self.bottom)

    def intersects(self, other: 'Bounds') -> bool:
        """True if the rectangles overlap or touch."""
        return not (other.x > self.right or other.right < self.x
                    or other.y > self.bottom or other.bottom < self.y)


# ═══════════════════════════════════════════════════════════════════════
# SPECIES
# ═══════════════════════════════════════════════════════════════════════

class DefaultSpecies(IntEnum):
    """Ids of the built-in species, in table order."""
    ELM  = 0   # Slow grower, shade tolerant, long lived
    PALM = 1   # Fast grower, shade intolerant
    BUSH = 2   # Small, short lived, prolific


@dataclass(frozen=True)
class SpeciesDescriptor:
    """Immutable growth and survival parameters shared by one species.

    Raises:
        ValueError: If a probability lies outside [0, 1] or growth/max size
            is not positive.
    """
    name: str
    growth_per_year: float          # Radius increment per growing year
    shade_survival: float           # P(survive a year while dominated)
    oldage_survival: float          # P(survive a year at max size)
    max_size: float                 # Radius at which old age begins
    offspring_probability: float    # P(one offspring in a growing year)

    def __post_init__(self):
        for attr in ('shade_survival', 'oldage_survival', 'offspring_probability'):
            value = getattr(self, attr)
            if not (0.0 <= value <= 1.0):
                raise ValueError(
                    f"species '{self.name}': {attr} must be in [0, 1], got {value}"
                )
        if self.growth_per_year <= 0:
            raise ValueError(
                f"species '{self.name}': growth_per_year must be positive, "
                f"got {self.growth_per_year}"
            )
        if self.max_size <= 0:
            raise ValueError(
                f"species '{self.name}': max_size must be positive, "
                f"got {self.max_size}"
            )


# ═══════════════════════════════════════════════════════════════════════
# TREE — the agent
# ═══════════════════════════════════════════════════════════════════════

@dataclass(eq=False)
class Tree:
    """A circular crown at a fixed position.

    Equality is identity: two trees are the same only if they are the same
    object, so trees can live in sets and quadtree nodes safely.
    """
    species: SpeciesDescriptor
    species_id: int
    x: float
    y: float
    uid: int = 0
    radius: float = INITIAL_RADIUS
    dominated: bool = False

    @property
    def is_old(self) -> bool:
        return self.radius >= self.species.max_size

    @property
    def bbox(self) -> Bounds:
        r = self.radius
        return Bounds(self.x - r, self.y - r, 2.0 * r, 2.0 * r)

    def grow(self) -> None:
        """Add one year of growth, frozen once max size is reached."""
        if self.radius < self.species.max_size:
            self.radius += self.species.growth_per_year

    def intersects(self, other: 'Tree') -> bool:
        """True if the crowns overlap or touch (within EPSILON)."""
        dx = self.x - other.x
        dy = self.y - other.y
        reach = self.radius + other.radius
        return dx * dx + dy * dy - reach * reach < EPSILON

    def random_offspring_point(
        self,
        rng: np.random.Generator,
        arena: Bounds,
        min_factor: float = 3.0,
        max_factor: float = 4.0,
        max_attempts: int = 1000,
    ) -> Tuple[float, float]:
        """Draw an in-arena point in the ring [min_factor·r, max_factor·r].

        Distance is interpolated uniformly between the ring radii and the
        direction is uniform. Out-of-arena candidates are redrawn up to
        max_attempts times; after that the direction is drawn directly from
        the arcs of the circle that lie inside the arena.

        Raises:
            RuntimeError: If no part of the ring lies inside the arena, which
                validated configurations rule out for in-arena parents.
        """
        for _ in range(max_attempts):
            u, theta = rng.random(2)
            dist = lerp(min_factor * self.radius, max_factor * self.radius, u)
            angle = 2.0 * math.pi * theta
            px = self.x + dist * math.cos(angle)
            py = self.y + dist * math.sin(angle)
            if arena.contains_point(px, py):
                return px, py

        # Ring distances beyond the farthest corner cannot meet the arena
        inner = min_factor * self.radius
        outer = min(max_factor * self.radius, _farthest_corner(self.x, self.y, arena))
        if inner <= outer:
            u, t = rng.random(2)
            dist = lerp(inner, outer, u)
            arcs = _arcs_inside(self.x, self.y, dist, arena)
            total = sum(hi - lo for lo, hi in arcs)
            if arcs:
                angle = _angle_at(arcs, t * total)
                px = self.x + dist * math.cos(angle)
                py = self.y + dist * math.sin(angle)
                # Arc endpoints sit on the boundary; absorb rounding
                return (min(max(px, arena.x), arena.right),
                        min(max(py, arena.y), arena.bottom))
        raise RuntimeError(
            f"No in-arena offspring point for tree {self.uid} at "
            f"({self.x:.3f}, {self.y:.3f}) r={self.radius:.3f} "
            f"after {max_attempts} attempts"
        )


def _farthest_corner(cx: float, cy: float, arena: Bounds) -> float:
    return max(math.hypot(x - cx, y - cy)
               for x in (arena.x, arena.right) for y in (arena.y, arena.bottom))


def _arcs_inside(cx: float, cy: float, dist: float,
                 arena: Bounds) -> List[Tuple[float, float]]:
    """Angle intervals in [0, 2π] where the circle of radius dist lies in the arena."""
    if dist <= 0.0:
        return [(0.0, 2.0 * math.pi)] if arena.contains_point(cx, cy) else []

    # Each edge cuts away an arc centred on its outward normal
    excluded = []
    for slack, normal in ((arena.right - cx, 0.0),
                          (arena.bottom - cy, 0.5 * math.pi),
                          (cx - arena.x, math.pi),
                          (cy - arena.y, 1.5 * math.pi)):
        if slack >= dist:
            continue
        if slack <= -dist:
            return []
        half = math.acos(slack / dist)
        lo, hi = normal - half, normal + half
        if lo < 0.0:
            excluded += [(0.0, hi), (lo + 2.0 * math.pi, 2.0 * math.pi)]
        elif hi > 2.0 * math.pi:
            excluded += [(lo, 2.0 * math.pi), (0.0, hi - 2.0 * math.pi)]
        else:
            excluded.append((lo, hi))

    arcs = []
    start = 0.0
    for lo, hi in sorted(excluded):
        if lo > start:
            arcs.append((start, lo))
        start = max(start, hi)
    if start < 2.0 * math.pi:
        arcs.append((start, 2.0 * math.pi))
    return arcs


def _angle_at(arcs: List[Tuple[float, float]], offset: float) -> float:
    """Angle reached after walking offset radians along the arcs."""
    for lo, hi in arcs:
        if offset <= hi - lo:
            return lo + offset
        offset -= hi - lo
    return arcs[-1][1]


# ═══════════════════════════════════════════════════════════════════════
# READ-ONLY VIEWS
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TreeView:
    """Immutable copy of the fields a renderer needs."""
    uid: int
    x: float
    y: float
    radius: float
    species_id: int
    species_name: str

    @classmethod
    def of(cls, tree: Tree) -> 'TreeView':
        return cls(
            uid=tree.uid,
            x=tree.x,
            y=tree.y,
            radius=tree.radius,
            species_id=tree.species_id,
            species_name=tree.species.name,
        )


SNAPSHOT_DTYPE = np.dtype([
    ('uid',        np.int64),     # creation number
    ('x',          np.float64),   # crown centre X
    ('y',          np.float64),   # crown centre Y
    ('radius',     np.float64),   # crown radius
    ('species_id', np.int16),     # index into the species table
    ('dominated',  np.bool_),     # dominance flag from the last step
])


def trees_to_array(trees) -> np.ndarray:
    """Pack trees into a read-only SNAPSHOT_DTYPE array."""
    trees = list(trees)
    arr = np.zeros(len(trees), dtype=SNAPSHOT_DTYPE)
    for i, t in enumerate(trees):
        arr[i] = (t.uid, t.x, t.y, t.radius, t.species_id, t.dominated)
    arr.flags.writeable = False
    return arr
