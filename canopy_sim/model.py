"""Batch runs: drive a ForestSimulator for n steps and collect timeseries.

Per-generation timeseries (index 0 is the seeded population, index k is the
population after step k):
  - population per species
  - mean crown radius
  - fraction of the arena covered by crowns (sum of areas, overlaps counted
    twice, capped at 1)
Per-step timeseries (length n_steps): births, shade deaths, old-age deaths,
dominated trees.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from canopy_sim.config import SimulationConfig, default_config
from canopy_sim.engine import ForestSimulator
from canopy_sim.perf import PerfMonitor
from canopy_sim.rng import create_rng_streams
from canopy_sim.snapshots import SnapshotRecorder


@dataclass
class ForestSimResult:
    """Results from a batch forest simulation."""
    n_steps: int = 0
    species_names: Optional[List[str]] = None

    # Generation timeseries (length n_steps + 1)
    population: Optional[np.ndarray] = None          # (n_steps+1, n_species)
    mean_radius: Optional[np.ndarray] = None         # (n_steps+1,)
    crown_cover: Optional[np.ndarray] = None         # (n_steps+1,)

    # Step timeseries (length n_steps)
    births: Optional[np.ndarray] = None
    shade_deaths: Optional[np.ndarray] = None
    oldage_deaths: Optional[np.ndarray] = None
    dominated: Optional[np.ndarray] = None

    # Summary
    initial_pop: int = 0
    final_pop: int = 0
    peak_pop: int = 0
    peak_pop_step: int = 0
    extinct_step: Optional[int] = None   # First generation with no trees
    total_births: int = 0
    total_deaths: int = 0

    # Snapshots (None unless recording was requested)
    recorder: Optional[SnapshotRecorder] = None

    @property
    def total_population(self) -> np.ndarray:
        return self.population.sum(axis=1)

    def summary(self) -> dict:
        """JSON-friendly summary fields."""
        final = self.population[-1] if self.population is not None else []
        return {
            'n_steps': self.n_steps,
            'initial_pop': self.initial_pop,
            'final_pop': self.final_pop,
            'peak_pop': self.peak_pop,
            'peak_pop_step': self.peak_pop_step,
            'extinct_step': self.extinct_step,
            'total_births': self.total_births,
            'total_deaths': self.total_deaths,
            'final_by_species': {
                name: int(n) for name, n in zip(self.species_names or [], final)
            },
        }


def _crown_cover(sim: ForestSimulator) -> float:
    area = sim.arena.width * sim.arena.height
    covered = sum(np.pi * t.radius ** 2 for t in sim.trees)
    return min(1.0, covered / area)


def _mean_radius(sim: ForestSimulator) -> float:
    if len(sim) == 0:
        return 0.0
    return float(np.mean([t.radius for t in sim.trees]))


def run_simulation(
    config: Optional[SimulationConfig] = None,
    n_steps: Optional[int] = None,
    seed: Optional[int] = None,
    perf: Optional[PerfMonitor] = None,
    recorder: Optional[SnapshotRecorder] = None,
) -> ForestSimResult:
    """Seed a forest and run it for n_steps generations.

    Args:
        config: Simulation configuration; default_config() if None.
        n_steps: Generations to run; config.simulation.n_steps if None.
        seed: Overrides config.simulation.seed when given.
        perf: Optional PerfMonitor passed to the simulator.
        recorder: Optional SnapshotRecorder; when None and
            config.output.record_snapshots is set, one is created with
            config.output.snapshot_interval.

    Returns:
        ForestSimResult with generation and step timeseries.
    """
    if config is None:
        config = default_config()
    if n_steps is None:
        n_steps = config.simulation.n_steps
    if n_steps < 0:
        raise ValueError(f"n_steps must be >= 0, got {n_steps}")
    if seed is None:
        seed = config.simulation.seed
    if recorder is None and config.output.record_snapshots:
        recorder = SnapshotRecorder(enabled=True,
                                    interval=config.output.snapshot_interval)

    sim = ForestSimulator(config, rngs=create_rng_streams(seed), perf=perf)
    n_species = len(sim.species)

    population = np.zeros((n_steps + 1, n_species), dtype=np.int64)
    mean_radius = np.zeros(n_steps + 1, dtype=np.float64)
    crown_cover = np.zeros(n_steps + 1, dtype=np.float64)
    births = np.zeros(n_steps, dtype=np.int64)
    shade_deaths = np.zeros(n_steps, dtype=np.int64)
    oldage_deaths = np.zeros(n_steps, dtype=np.int64)
    dominated = np.zeros(n_steps, dtype=np.int64)

    def record(k: int) -> None:
        population[k] = sim.population_by_species()
        mean_radius[k] = _mean_radius(sim)
        crown_cover[k] = _crown_cover(sim)
        if recorder is not None:
            recorder.capture(sim.generation, sim)

    record(0)
    for k in range(n_steps):
        report = sim.step()
        births[k] = report.births
        shade_deaths[k] = report.shade_deaths
        oldage_deaths[k] = report.oldage_deaths
        dominated[k] = report.dominated
        record(k + 1)

    totals = population.sum(axis=1)
    empty = np.nonzero(totals == 0)[0]
    result = ForestSimResult(
        n_steps=n_steps,
        species_names=list(sim.species.names),
        population=population,
        mean_radius=mean_radius,
        crown_cover=crown_cover,
        births=births,
        shade_deaths=shade_deaths,
        oldage_deaths=oldage_deaths,
        dominated=dominated,
        initial_pop=int(totals[0]),
        final_pop=int(totals[-1]),
        peak_pop=int(totals.max()),
        peak_pop_step=int(totals.argmax()),
        extinct_step=int(empty[0]) if len(empty) else None,
        total_births=int(births.sum()),
        total_deaths=int(shade_deaths.sum() + oldage_deaths.sum()),
        recorder=recorder,
    )
    return result
