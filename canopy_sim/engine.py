"""Forest simulator: one generation per step().

Step pipeline:
  0. Clear every tree's dominated flag
  1. Dominance (read-only over start-of-step radii): for each overlapping
     pair, the smaller crown is dominated; on equal radii the younger tree
     (larger uid) is dominated
  2. Production rules, three fresh uniform draws per tree
     (shade, oldage, offspring), first match wins:
       SHADE_PERSIST   dominated, shade draw succeeds  → unchanged
       SHADE_DEATH     dominated                       → removed
       OLDAGE_PERSIST  at max size, oldage draw succeeds → unchanged
       OLDAGE_DEATH    at max size                     → removed
       GROW            otherwise → grow; offspring draw succeeds → one
                       offspring in the ring around the parent
  3. Commit: survivors + offspring become the new generation and a fresh
     quadtree is built over them

All randomness of step 2 (draws and offspring positions) is consumed before
any tree is mutated, so a failing step leaves the previous generation intact.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from canopy_sim.config import SimulationConfig, default_config, validate_config
from canopy_sim.perf import PerfMonitor
from canopy_sim.quadtree import QuadTree
from canopy_sim.rng import create_rng_streams
from canopy_sim.types import (
    EPSILON,
    INITIAL_RADIUS,
    Tree,
    TreeView,
    trees_to_array,
)


class Production(IntEnum):
    """Mutually exclusive yearly outcomes, in evaluation priority order."""
    SHADE_PERSIST  = 1
    SHADE_DEATH    = 2
    OLDAGE_PERSIST = 3
    OLDAGE_DEATH   = 4
    GROW           = 5


@dataclass
class StepReport:
    """Tally of one step."""
    generation: int = 0          # Generation number after the step
    population_before: int = 0
    population_after: int = 0
    dominated: int = 0
    shade_persisted: int = 0
    shade_deaths: int = 0
    oldage_persisted: int = 0
    oldage_deaths: int = 0
    grown: int = 0
    births: int = 0

    @property
    def deaths(self) -> int:
        return self.shade_deaths + self.oldage_deaths


def classify(tree: Tree, shade_draw: float, oldage_draw: float) -> Production:
    """Production rule for a tree given its shade and oldage draws."""
    sp = tree.species
    if tree.dominated:
        if shade_draw < sp.shade_survival:
            return Production.SHADE_PERSIST
        return Production.SHADE_DEATH
    if tree.is_old:
        if oldage_draw < sp.oldage_survival:
            return Production.OLDAGE_PERSIST
        return Production.OLDAGE_DEATH
    return Production.GROW


def dominance_loser(a: Tree, b: Tree) -> Tree:
    """The tree dominated by an overlap between a and b."""
    if a.radius < b.radius:
        return a
    if b.radius < a.radius:
        return b
    return a if a.uid > b.uid else b


class ForestSimulator:
    """Owns the current generation of trees and its quadtree.

    Args:
        config: Validated on construction; defaults to default_config().
        rngs: Named RNG streams (see canopy_sim.rng); created from
            config.simulation.seed when omitted.
        perf: Optional PerfMonitor receiving 'dominance', 'production'
            and 'index' timings.

    Raises:
        ValueError: If the configuration is invalid.
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        rngs: Optional[Dict[str, np.random.Generator]] = None,
        perf: Optional[PerfMonitor] = None,
    ):
        if config is None:
            config = default_config()
        else:
            validate_config(config)
        self.config = config
        self.species = config.species_table()
        self.arena = config.arena.bounds()
        self.rngs = rngs if rngs is not None else create_rng_streams(config.simulation.seed)
        self.perf = perf if perf is not None else PerfMonitor(enabled=False)

        self.generation = 0
        self._next_uid = 0
        self._trees: List[Tree] = []
        self.index = self._new_index()
        self.reset()

    # ── population management ────────────────────────────────────────

    def _new_index(self) -> QuadTree:
        return QuadTree(
            self.arena,
            max_objects=self.config.index.max_objects,
            max_levels=self.config.index.max_levels,
        )

    def _make_tree(self, species_id: int, x: float, y: float,
                   radius: float = INITIAL_RADIUS) -> Tree:
        tree = Tree(
            species=self.species[species_id],
            species_id=int(species_id),
            x=float(x),
            y=float(y),
            uid=self._next_uid,
            radius=float(radius),
        )
        self._next_uid += 1
        return tree

    def reset(self) -> None:
        """Reseed initial_trees trees with uniform species and positions."""
        self.generation = 0
        self._next_uid = 0
        self._trees = []
        self.index.clear()

        rng = self.rngs['seeding']
        n = self.config.simulation.initial_trees
        for _ in range(n):
            sid = self.species.random_id(rng)
            x = rng.uniform(0.0, self.arena.width)
            y = rng.uniform(0.0, self.arena.height)
            tree = self._make_tree(sid, x, y)
            self._trees.append(tree)
            self.index.insert(tree)

    def clear(self) -> None:
        """Remove every tree (generation counter is kept)."""
        self._trees = []
        self.index.clear()

    def add_tree(self, species_id: int, x: float, y: float,
                 radius: float = INITIAL_RADIUS) -> Tree:
        """Place a tree by hand (scenarios, tests).

        Raises:
            KeyError: If species_id is not in the species table.
            ValueError: If the position is outside the arena or the radius
                is not positive.
        """
        if not self.arena.contains_point(x, y):
            raise ValueError(f"position ({x}, {y}) is outside the arena {self.arena}")
        if radius <= 0:
            raise ValueError(f"radius must be positive, got {radius}")
        tree = self._make_tree(species_id, x, y, radius)
        self._trees.append(tree)
        self.index.insert(tree)
        return tree

    # ── read-only views ──────────────────────────────────────────────

    @property
    def trees(self) -> Tuple[Tree, ...]:
        return tuple(self._trees)

    def __len__(self) -> int:
        return len(self._trees)

    def iter_views(self) -> Iterator[TreeView]:
        """Immutable per-tree records for renderers."""
        for tree in self._trees:
            yield TreeView.of(tree)

    def snapshot(self) -> np.ndarray:
        """Read-only SNAPSHOT_DTYPE array of the current generation."""
        return trees_to_array(self._trees)

    def population_by_species(self) -> np.ndarray:
        """Tree count per species id."""
        ids = np.fromiter((t.species_id for t in self._trees), dtype=np.int64,
                          count=len(self._trees))
        return np.bincount(ids, minlength=len(self.species))

    # ── phase 1: dominance ───────────────────────────────────────────

    def resolve_dominance(self) -> int:
        """Clear and recompute every dominated flag; returns how many are set."""
        for tree in self._trees:
            tree.dominated = False
        with self.perf.track('dominance'):
            if self.config.simulation.neighbor_search == 'brute_force':
                self._dominance_brute_force()
            else:
                self._dominance_quadtree()
        return sum(1 for t in self._trees if t.dominated)

    def _dominance_quadtree(self) -> None:
        for t1 in self._trees:
            for t2 in self.index.retrieve(t1):
                if t2 is not t1 and t1.intersects(t2):
                    dominance_loser(t1, t2).dominated = True

    def _dominance_brute_force(self) -> None:
        n = len(self._trees)
        if n < 2:
            return
        x = np.array([t.x for t in self._trees])
        y = np.array([t.y for t in self._trees])
        r = np.array([t.radius for t in self._trees])
        uid = np.array([t.uid for t in self._trees])

        dx = x[:, None] - x[None, :]
        dy = y[:, None] - y[None, :]
        reach = r[:, None] + r[None, :]
        overlap = dx * dx + dy * dy - reach * reach < EPSILON
        ii, jj = np.nonzero(np.triu(overlap, k=1))

        i_loses = (r[ii] < r[jj]) | ((r[ii] == r[jj]) & (uid[ii] > uid[jj]))
        for k in np.where(i_loses, ii, jj):
            self._trees[k].dominated = True

    # ── phase 2 + 3: production rules and commit ─────────────────────

    def step(self) -> StepReport:
        """Advance one generation."""
        report = StepReport(population_before=len(self._trees))
        report.dominated = self.resolve_dominance()

        off = self.config.offspring
        survivors: List[Tree] = []
        growers: List[Tree] = []
        births: List[Tuple[Tree, float, float]] = []

        with self.perf.track('production'):
            draws = self.rngs['rules'].random((len(self._trees), 3))
            dispersal = self.rngs['dispersal']
            for tree, (shade_u, oldage_u, offspring_u) in zip(self._trees, draws):
                rule = classify(tree, shade_u, oldage_u)
                if rule == Production.SHADE_PERSIST:
                    report.shade_persisted += 1
                    survivors.append(tree)
                elif rule == Production.SHADE_DEATH:
                    report.shade_deaths += 1
                elif rule == Production.OLDAGE_PERSIST:
                    report.oldage_persisted += 1
                    survivors.append(tree)
                elif rule == Production.OLDAGE_DEATH:
                    report.oldage_deaths += 1
                else:
                    report.grown += 1
                    survivors.append(tree)
                    growers.append(tree)
                    if offspring_u < tree.species.offspring_probability:
                        # Ring uses the start-of-step radius
                        px, py = tree.random_offspring_point(
                            dispersal,
                            self.arena,
                            off.min_distance_factor,
                            off.max_distance_factor,
                            off.max_attempts,
                        )
                        births.append((tree, px, py))

        # Commit
        for tree in growers:
            tree.grow()
        offspring = [self._make_tree(parent.species_id, px, py)
                     for parent, px, py in births]
        next_trees = survivors + offspring

        with self.perf.track('index'):
            next_index = self._new_index()
            for tree in next_trees:
                next_index.insert(tree)

        self._trees = next_trees
        self.index = next_index
        self.generation += 1

        report.births = len(offspring)
        report.generation = self.generation
        report.population_after = len(next_trees)
        return report
