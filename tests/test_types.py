"""Tests for canopy_sim.types — geometry, species descriptors, trees, views."""

import dataclasses
import math

import numpy as np
import pytest

from canopy_sim.types import (
    EPSILON,
    INITIAL_RADIUS,
    SNAPSHOT_DTYPE,
    Bounds,
    DefaultSpecies,
    SpeciesDescriptor,
    Tree,
    TreeView,
    lerp,
    trees_to_array,
)


def make_species(**overrides) -> SpeciesDescriptor:
    params = dict(name='oak', growth_per_year=1.0, shade_survival=0.5,
                  oldage_survival=0.5, max_size=15.0, offspring_probability=0.5)
    params.update(overrides)
    return SpeciesDescriptor(**params)


# ── Bounds ────────────────────────────────────────────────────────────

class TestBounds:
    def test_edges(self):
        b = Bounds(10, 20, 30, 40)
        assert b.right == 40
        assert b.bottom == 60

    def test_half_diagonal(self):
        assert Bounds(0, 0, 6, 8).half_diagonal == pytest.approx(5.0)

    def test_contains_point_closed(self):
        b = Bounds(0, 0, 10, 10)
        assert b.contains_point(0, 0)
        assert b.contains_point(10, 10)
        assert not b.contains_point(10.0001, 5)
        assert not b.contains_point(-0.0001, 5)

    def test_contains_rect(self):
        b = Bounds(0, 0, 10, 10)
        assert b.contains(Bounds(1, 1, 2, 2))
        assert b.contains(Bounds(0, 0, 10, 10))
        assert not b.contains(Bounds(9, 9, 2, 2))

    def test_intersects(self):
        b = Bounds(0, 0, 10, 10)
        assert b.intersects(Bounds(5, 5, 10, 10))
        assert b.intersects(Bounds(10, 10, 1, 1))   # touching corner
        assert not b.intersects(Bounds(11, 0, 1, 1))
        assert not b.intersects(Bounds(0, -5, 1, 4))


def test_lerp():
    assert lerp(3.0, 4.0, 0.0) == 3.0
    assert lerp(3.0, 4.0, 1.0) == 4.0
    assert lerp(3.0, 4.0, 0.5) == pytest.approx(3.5)


# ── SpeciesDescriptor ────────────────────────────────────────────────

class TestSpeciesDescriptor:
    def test_valid(self):
        sp = make_species()
        assert sp.max_size == 15.0

    def test_immutable(self):
        sp = make_species()
        with pytest.raises(dataclasses.FrozenInstanceError):
            sp.growth_per_year = 2.0

    @pytest.mark.parametrize('attr', ['shade_survival', 'oldage_survival',
                                      'offspring_probability'])
    @pytest.mark.parametrize('value', [-0.01, 1.01])
    def test_probability_out_of_range(self, attr, value):
        with pytest.raises(ValueError, match=attr):
            make_species(**{attr: value})

    def test_probability_bounds_inclusive(self):
        make_species(shade_survival=0.0, oldage_survival=1.0,
                     offspring_probability=0.0)

    @pytest.mark.parametrize('attr', ['growth_per_year', 'max_size'])
    def test_non_positive_sizes(self, attr):
        with pytest.raises(ValueError, match=attr):
            make_species(**{attr: 0.0})


class TestDefaultSpecies:
    def test_values(self):
        assert DefaultSpecies.ELM == 0
        assert DefaultSpecies.PALM == 1
        assert DefaultSpecies.BUSH == 2
        assert len(DefaultSpecies) == 3


# ── Tree ──────────────────────────────────────────────────────────────

class TestTree:
    def test_defaults(self):
        t = Tree(species=make_species(), species_id=0, x=5.0, y=6.0)
        assert t.radius == INITIAL_RADIUS
        assert not t.dominated
        assert not t.is_old

    def test_identity_equality(self):
        sp = make_species()
        a = Tree(species=sp, species_id=0, x=1.0, y=1.0)
        b = Tree(species=sp, species_id=0, x=1.0, y=1.0)
        assert a != b
        assert len({a, b}) == 2

    def test_bbox(self):
        t = Tree(species=make_species(), species_id=0, x=10.0, y=20.0, radius=2.0)
        assert t.bbox == Bounds(8.0, 18.0, 4.0, 4.0)

    def test_grow_adds_increment(self):
        t = Tree(species=make_species(growth_per_year=0.75), species_id=0, x=0, y=0)
        t.grow()
        assert t.radius == pytest.approx(1.75)

    def test_grow_caps_at_max_size(self):
        """Once old, growth stops; radius never increases again."""
        t = Tree(species=make_species(growth_per_year=1.0, max_size=15.0),
                 species_id=0, x=0, y=0)
        for _ in range(14):
            t.grow()
        assert t.radius == 15.0
        assert t.is_old
        for _ in range(5):
            t.grow()
        assert t.radius == 15.0

    def test_grow_last_increment_may_pass_max(self):
        """A tree just below max size takes one full increment."""
        t = Tree(species=make_species(growth_per_year=0.75, max_size=3.0),
                 species_id=0, x=0, y=0, radius=2.5)
        t.grow()
        assert t.radius == pytest.approx(3.25)
        t.grow()
        assert t.radius == pytest.approx(3.25)

    def test_is_old_at_exact_max(self):
        t = Tree(species=make_species(max_size=3.0), species_id=0, x=0, y=0, radius=3.0)
        assert t.is_old


class TestIntersects:
    def setup_method(self):
        self.sp = make_species()

    def tree(self, x, y, r=1.0):
        return Tree(species=self.sp, species_id=0, x=x, y=y, radius=r)

    def test_overlap(self):
        assert self.tree(0, 0).intersects(self.tree(0.5, 0))

    def test_tangent_counts(self):
        assert self.tree(0, 0).intersects(self.tree(2.0, 0))

    def test_apart(self):
        assert not self.tree(0, 0).intersects(self.tree(2.001, 0))

    def test_symmetric(self):
        a, b = self.tree(0, 0, 3.0), self.tree(3.5, 2.0, 1.0)
        assert a.intersects(b) == b.intersects(a)

    def test_contained_circle(self):
        assert self.tree(0, 0, 10.0).intersects(self.tree(1, 1, 1.0))

    def test_epsilon_absorbs_rounding(self):
        # 0.1 + 0.2 style rounding at exact tangency
        a = self.tree(0.1, 0.0, 0.1)
        b = self.tree(0.4, 0.0, 0.2)
        assert abs(0.3 - (b.x - a.x)) < EPSILON
        assert a.intersects(b)


class TestRandomOffspringPoint:
    def test_ring_and_bounds(self):
        rng = np.random.default_rng(1)
        arena = Bounds(0, 0, 500, 500)
        parent = Tree(species=make_species(), species_id=0, x=250.0, y=250.0, radius=2.0)
        for _ in range(500):
            px, py = parent.random_offspring_point(rng, arena)
            d = math.hypot(px - parent.x, py - parent.y)
            assert 6.0 - 1e-9 <= d <= 8.0 + 1e-9
            assert arena.contains_point(px, py)

    def test_custom_factors(self):
        rng = np.random.default_rng(2)
        arena = Bounds(0, 0, 500, 500)
        parent = Tree(species=make_species(), species_id=0, x=250.0, y=250.0)
        for _ in range(200):
            px, py = parent.random_offspring_point(rng, arena, 2.0, 4.0)
            d = math.hypot(px - parent.x, py - parent.y)
            assert 2.0 - 1e-9 <= d <= 4.0 + 1e-9

    def test_corner_parent_stays_in_arena(self):
        rng = np.random.default_rng(3)
        arena = Bounds(0, 0, 500, 500)
        parent = Tree(species=make_species(), species_id=0, x=0.5, y=0.5)
        for _ in range(200):
            px, py = parent.random_offspring_point(rng, arena)
            assert arena.contains_point(px, py)

    def test_unreachable_arena_raises(self):
        rng = np.random.default_rng(4)
        arena = Bounds(0, 0, 500, 500)
        parent = Tree(species=make_species(), species_id=0, x=-100.0, y=-100.0)
        with pytest.raises(RuntimeError, match="after 50 attempts"):
            parent.random_offspring_point(rng, arena, max_attempts=50)

    def test_exhausted_rejection_falls_back_to_arcs(self):
        rng = np.random.default_rng(5)
        arena = Bounds(0, 0, 500, 500)
        parent = Tree(species=make_species(), species_id=0, x=3.0, y=497.0, radius=2.0)
        for _ in range(300):
            px, py = parent.random_offspring_point(rng, arena, max_attempts=0)
            d = math.hypot(px - parent.x, py - parent.y)
            assert 6.0 - 1e-9 <= d <= 8.0 + 1e-9
            assert arena.contains_point(px, py)

    def test_near_tangent_ring_always_placed(self):
        """Ring radius just below the half diagonal reaches only the corners."""
        rng = np.random.default_rng(6)
        arena = Bounds(0, 0, 100, 100)
        parent = Tree(species=make_species(max_size=7.0), species_id=0,
                      x=50.0, y=50.0, radius=6.999)
        ring = 10.1 * 6.999
        assert ring < arena.half_diagonal
        for _ in range(100):
            px, py = parent.random_offspring_point(rng, arena, 10.1, 10.1,
                                                   max_attempts=20)
            assert arena.contains_point(px, py)
            assert math.hypot(px - 50.0, py - 50.0) == pytest.approx(ring)
            # only the corner regions are reachable
            assert min(px, 100.0 - px) < 1.0 and min(py, 100.0 - py) < 1.0

    def test_ring_beyond_farthest_corner_raises(self):
        rng = np.random.default_rng(7)
        arena = Bounds(0, 0, 10, 10)
        parent = Tree(species=make_species(), species_id=0, x=5.0, y=5.0)
        with pytest.raises(RuntimeError):
            parent.random_offspring_point(rng, arena, 20.0, 30.0, max_attempts=5)


# ── Views ─────────────────────────────────────────────────────────────

class TestViews:
    def test_tree_view_is_frozen_copy(self):
        t = Tree(species=make_species(name='ash'), species_id=2, x=1.0, y=2.0, uid=7)
        v = TreeView.of(t)
        assert (v.uid, v.x, v.y, v.radius, v.species_id, v.species_name) == \
            (7, 1.0, 2.0, 1.0, 2, 'ash')
        with pytest.raises(dataclasses.FrozenInstanceError):
            v.radius = 5.0
        t.radius = 3.0
        assert v.radius == 1.0

    def test_trees_to_array(self):
        sp = make_species()
        trees = [Tree(species=sp, species_id=i, x=float(i), y=0.0, uid=i) for i in range(3)]
        trees[1].dominated = True
        arr = trees_to_array(trees)
        assert arr.dtype == SNAPSHOT_DTYPE
        np.testing.assert_array_equal(arr['uid'], [0, 1, 2])
        np.testing.assert_array_equal(arr['dominated'], [False, True, False])
        with pytest.raises(ValueError):
            arr['radius'][0] = 9.0

    def test_empty_array(self):
        arr = trees_to_array([])
        assert len(arr) == 0
        assert arr.dtype == SNAPSHOT_DTYPE


def test_bounds_expanded():
    assert Bounds(1, 2, 3, 4).expanded(0.5) == Bounds(0.5, 1.5, 4.0, 5.0)
