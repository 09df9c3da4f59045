"""Tests for canopy_sim.species — the closed species table."""

import numpy as np
import pytest

from canopy_sim.species import DEFAULT_SPECIES_PARAMS, SpeciesTable
from canopy_sim.types import DefaultSpecies, SpeciesDescriptor


class TestDefaultTable:
    def test_ids_match_enum(self):
        table = SpeciesTable.default()
        assert table[DefaultSpecies.ELM].name == 'elm'
        assert table[DefaultSpecies.PALM].name == 'palm'
        assert table[DefaultSpecies.BUSH].name == 'bush'

    def test_parameters(self):
        table = SpeciesTable.default()
        bush = table[DefaultSpecies.BUSH]
        assert bush.growth_per_year == 0.75
        assert bush.max_size == 3.0
        assert bush.shade_survival == 0.8
        assert bush.oldage_survival == 0.4
        assert bush.offspring_probability == 0.8

    def test_length_and_names(self):
        table = SpeciesTable.default()
        assert len(table) == len(DEFAULT_SPECIES_PARAMS)
        assert table.names == ('elm', 'palm', 'bush')


class TestLookup:
    def test_id_of(self):
        table = SpeciesTable.default()
        assert table.id_of('palm') == 1

    def test_unknown_name(self):
        with pytest.raises(KeyError, match="Unknown species"):
            SpeciesTable.default().id_of('baobab')

    @pytest.mark.parametrize('bad_id', [-1, 3, 99])
    def test_unknown_id(self, bad_id):
        with pytest.raises(KeyError):
            SpeciesTable.default()[bad_id]

    def test_iteration_order(self):
        table = SpeciesTable.default()
        assert [d.name for d in table] == ['elm', 'palm', 'bush']


class TestConstruction:
    def test_empty_rejected(self):
        with pytest.raises(ValueError, match="at least one"):
            SpeciesTable([])

    def test_duplicate_names_rejected(self):
        sp = SpeciesDescriptor('elm', 0.2, 0.7, 0.96, 7.0, 0.4)
        with pytest.raises(ValueError, match="duplicate"):
            SpeciesTable([sp, sp])

    def test_from_params_validates(self):
        with pytest.raises(ValueError):
            SpeciesTable.from_params({'x': dict(
                growth_per_year=1.0, max_size=2.0, shade_survival=2.0,
                oldage_survival=0.5, offspring_probability=0.5)})


class TestRandomId:
    def test_uniform_over_table(self):
        table = SpeciesTable.default()
        rng = np.random.default_rng(0)
        ids = np.array([table.random_id(rng) for _ in range(3000)])
        counts = np.bincount(ids, minlength=3)
        assert ids.min() >= 0 and ids.max() <= 2
        # each species near 1000 of 3000
        assert np.all(np.abs(counts - 1000) < 150)
