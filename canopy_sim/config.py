"""Configuration system for canopy_sim.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → sweep overrides

The species table is configuration like everything else: a mapping
``species: {name: {growth_per_year, max_size, ...}}``. It is read once when
the simulator is constructed and never mutated afterwards.
"""

from __future__ import annotations

import copy
import dataclasses
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from canopy_sim.species import SpeciesTable
from canopy_sim.types import Bounds, INITIAL_RADIUS


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationSection:
    """Run control."""
    seed: Optional[int] = 42         # None = unseeded (OS entropy)
    n_steps: int = 200               # Generations for batch runs
    initial_trees: int = 50          # Trees created by reset()
    step_interval: float = 0.01      # Seconds per generation when playing
    neighbor_search: str = 'quadtree'  # 'quadtree' or 'brute_force'


@dataclass
class ArenaSection:
    """Arena extent; the origin is (0, 0)."""
    width: float = 800.0
    height: float = 800.0

    def bounds(self) -> Bounds:
        return Bounds(0.0, 0.0, self.width, self.height)


@dataclass
class IndexSection:
    """Quadtree limits."""
    max_objects: int = 10    # Objects per node before splitting
    max_levels: int = 6      # Maximum split depth


@dataclass
class OffspringSection:
    """Offspring placement ring, in multiples of the parent radius."""
    min_distance_factor: float = 3.0
    max_distance_factor: float = 4.0
    max_attempts: int = 1000   # Rejection-sampling draws before exact arc sampling


@dataclass
class SpeciesSection:
    """Parameters for one species (see SpeciesDescriptor)."""
    growth_per_year: float = 0.2
    max_size: float = 7.0
    shade_survival: float = 0.7
    oldage_survival: float = 0.96
    offspring_probability: float = 0.4


@dataclass
class OutputSection:
    """Batch-run recording."""
    record_snapshots: bool = False
    snapshot_interval: int = 10      # Generations between snapshots
    output_dir: str = 'results'


def _default_species() -> Dict[str, SpeciesSection]:
    """Sections for the built-in table, in DefaultSpecies id order."""
    return {
        d.name: SpeciesSection(
            growth_per_year=d.growth_per_year,
            max_size=d.max_size,
            shade_survival=d.shade_survival,
            oldage_survival=d.oldage_survival,
            offspring_probability=d.offspring_probability,
        )
        for d in SpeciesTable.default()
    }


@dataclass
class SimulationConfig:
    """Complete configuration for one simulator."""
    simulation: SimulationSection = field(default_factory=SimulationSection)
    arena: ArenaSection = field(default_factory=ArenaSection)
    index: IndexSection = field(default_factory=IndexSection)
    offspring: OffspringSection = field(default_factory=OffspringSection)
    species: Dict[str, SpeciesSection] = field(default_factory=_default_species)
    output: OutputSection = field(default_factory=OutputSection)

    def species_table(self) -> SpeciesTable:
        """Build the immutable species table (ids follow mapping order)."""
        return SpeciesTable.from_params(
            {name: dataclasses.asdict(s) for name, s in self.species.items()}
        )


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base (mutates base).

    Nested dicts are merged; everything else is replaced.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    unknown = set(data) - valid_fields
    if unknown:
        warnings.warn(
            f"Ignoring unknown {section_cls.__name__} keys: {sorted(unknown)}",
            UserWarning,
            stacklevel=3,
        )
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


def config_to_dict(config: SimulationConfig) -> Dict:
    """Plain-dict form of a config (the inverse of _yaml_to_config)."""
    return dataclasses.asdict(config)


def _yaml_to_config(data: Dict) -> SimulationConfig:
    """Convert a merged YAML dict to a SimulationConfig."""
    sections = {}
    section_map = {
        'simulation': SimulationSection,
        'arena': ArenaSection,
        'index': IndexSection,
        'offspring': OffspringSection,
        'output': OutputSection,
    }
    for key, cls in section_map.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()

    if 'species' in data:
        if not isinstance(data['species'], dict):
            raise ValueError("species must be a mapping of name -> parameters")
        sections['species'] = {
            str(name): _dict_to_section(SpeciesSection, params or {})
            for name, params in data['species'].items()
        }

    return SimulationConfig(**sections)


# ═══════════════════════════════════════════════════════════════════════
# VALIDATION
# ═══════════════════════════════════════════════════════════════════════

def validate_config(config: SimulationConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure.

    Checks:
      - Run control and arena are positive / well-formed
      - Quadtree limits are usable
      - Offspring ring is well-formed and every species can place offspring
        inside the arena from any in-arena parent
      - Every species has probabilities in [0, 1] and positive sizes
    """
    sim = config.simulation
    if sim.seed is not None and sim.seed < 0:
        raise ValueError("simulation.seed must be non-negative")
    if sim.n_steps < 0:
        raise ValueError(f"simulation.n_steps must be >= 0, got {sim.n_steps}")
    if sim.initial_trees < 0:
        raise ValueError(
            f"simulation.initial_trees must be >= 0, got {sim.initial_trees}"
        )
    if sim.step_interval <= 0:
        raise ValueError(
            f"simulation.step_interval must be positive, got {sim.step_interval}"
        )
    valid_searches = {'quadtree', 'brute_force'}
    if sim.neighbor_search not in valid_searches:
        raise ValueError(
            f"simulation.neighbor_search must be one of {valid_searches}, "
            f"got '{sim.neighbor_search}'"
        )

    if config.arena.width <= 0 or config.arena.height <= 0:
        raise ValueError(
            f"arena must have positive area, got "
            f"{config.arena.width}x{config.arena.height}"
        )

    if config.index.max_objects < 1:
        raise ValueError(
            f"index.max_objects must be >= 1, got {config.index.max_objects}"
        )
    if config.index.max_levels < 0:
        raise ValueError(
            f"index.max_levels must be >= 0, got {config.index.max_levels}"
        )

    off = config.offspring
    if not (0 < off.min_distance_factor <= off.max_distance_factor):
        raise ValueError(
            f"offspring distance factors must satisfy 0 < min <= max, got "
            f"min={off.min_distance_factor}, max={off.max_distance_factor}"
        )
    if off.max_attempts < 1:
        raise ValueError(
            f"offspring.max_attempts must be >= 1, got {off.max_attempts}"
        )

    if config.output.snapshot_interval < 1:
        raise ValueError(
            f"output.snapshot_interval must be >= 1, "
            f"got {config.output.snapshot_interval}"
        )

    # Descriptor construction checks ranges
    table = config.species_table()

    # A parent reproduces only below max_size, so the inner ring radius stays
    # below min_factor * max_size. The parent with the nearest farthest-corner
    # sits at the arena centre, half a diagonal from every corner.
    reach = config.arena.bounds().half_diagonal
    for desc in table:
        inner = off.min_distance_factor * desc.max_size
        if inner >= reach:
            raise ValueError(
                f"species '{desc.name}': offspring ring inner radius "
                f"{inner:g} (min_distance_factor x max_size) reaches beyond "
                f"the arena (half diagonal {reach:g}); offspring could never "
                f"be placed"
            )
        if desc.max_size <= INITIAL_RADIUS:
            warnings.warn(
                f"species '{desc.name}': max_size {desc.max_size:g} <= initial "
                f"radius {INITIAL_RADIUS:g}; its trees are born old and never grow",
                UserWarning,
                stacklevel=2,
            )


# ═══════════════════════════════════════════════════════════════════════
# ENTRY POINTS
# ═══════════════════════════════════════════════════════════════════════

def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    sweep_overrides: Optional[Dict] = None,
) -> SimulationConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → scenario → sweep overrides. Each layer overrides
    only the fields it specifies.

    Args:
        base_path: Path to base configuration YAML.
        scenario_path: Optional scenario override YAML.
        sweep_overrides: Optional dict of parameter overrides.

    Returns:
        Validated SimulationConfig.

    Raises:
        FileNotFoundError: If base_path or scenario_path doesn't exist.
        ValueError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if scenario_path is not None:
        scenario_path = Path(scenario_path)
        if not scenario_path.exists():
            raise FileNotFoundError(f"Scenario file not found: {scenario_path}")
        with open(scenario_path) as f:
            scenario = yaml.safe_load(f) or {}
        deep_merge(config_dict, scenario)

    if sweep_overrides is not None:
        deep_merge(config_dict, copy.deepcopy(sweep_overrides))

    config = _yaml_to_config(config_dict)
    validate_config(config)
    return config


def default_config() -> SimulationConfig:
    """Return a SimulationConfig with all default values."""
    config = SimulationConfig()
    validate_config(config)
    return config
