"""Species registry.

The table is closed once built: ids are the positions 0..n-1 in insertion
order and descriptors are immutable. Trees keep the descriptor reference and
the id, so no lookup by name happens during a step.

Default parameters (radius units, per year):

    species  growth  max_size  shade  oldage  offspring
    elm       0.20     7.0     0.70    0.96     0.40
    palm      0.60     7.0     0.40    0.80     0.50
    bush      0.75     3.0     0.80    0.40     0.80
"""

from __future__ import annotations

from typing import Dict, Iterator, Mapping, Sequence, Tuple

import numpy as np

from canopy_sim.types import DefaultSpecies, SpeciesDescriptor


DEFAULT_SPECIES_PARAMS: Dict[str, Dict[str, float]] = {
    'elm': dict(growth_per_year=0.2, max_size=7.0, shade_survival=0.7,
                oldage_survival=0.96, offspring_probability=0.4),
    'palm': dict(growth_per_year=0.6, max_size=7.0, shade_survival=0.4,
                 oldage_survival=0.8, offspring_probability=0.5),
    'bush': dict(growth_per_year=0.75, max_size=3.0, shade_survival=0.8,
                 oldage_survival=0.4, offspring_probability=0.8),
}


class SpeciesTable:
    """Immutable, ordered registry of SpeciesDescriptor records."""

    def __init__(self, descriptors: Sequence[SpeciesDescriptor]):
        if len(descriptors) == 0:
            raise ValueError("species table must contain at least one species")
        names = [d.name for d in descriptors]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate species names in {names}")
        self._descriptors: Tuple[SpeciesDescriptor, ...] = tuple(descriptors)
        self._ids: Dict[str, int] = {d.name: i for i, d in enumerate(descriptors)}

    @classmethod
    def from_params(cls, params: Mapping[str, Mapping[str, float]]) -> 'SpeciesTable':
        """Build a table from {name: {field: value}} in mapping order."""
        return cls([SpeciesDescriptor(name=name, **dict(p)) for name, p in params.items()])

    @classmethod
    def default(cls) -> 'SpeciesTable':
        """The built-in elm/palm/bush table, ids matching DefaultSpecies."""
        return cls.from_params(
            {s.name.lower(): DEFAULT_SPECIES_PARAMS[s.name.lower()] for s in DefaultSpecies}
        )

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self) -> Iterator[SpeciesDescriptor]:
        return iter(self._descriptors)

    def __getitem__(self, species_id: int) -> SpeciesDescriptor:
        """Descriptor for an id.

        Raises:
            KeyError: If the id is not in the table.
        """
        if not (0 <= int(species_id) < len(self._descriptors)):
            raise KeyError(
                f"No species with id {species_id}. "
                f"Valid ids: 0–{len(self._descriptors) - 1}"
            )
        return self._descriptors[int(species_id)]

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(d.name for d in self._descriptors)

    def id_of(self, name: str) -> int:
        """Id for a species name.

        Raises:
            KeyError: If the name is not registered.
        """
        if name not in self._ids:
            raise KeyError(f"Unknown species '{name}'. Known: {list(self._ids)}")
        return self._ids[name]

    def random_id(self, rng: np.random.Generator) -> int:
        """Species id drawn uniformly from the table."""
        return int(rng.integers(0, len(self._descriptors)))
