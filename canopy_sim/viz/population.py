"""Population plots for canopy_sim batch results.

Every function:
  - Accepts a ForestSimResult (or a GenerationSnapshot for radius plots)
  - Returns a matplotlib Figure
  - Saves a PNG when ``save_path`` is given

matplotlib backend is forced to Agg (no display) on import.
"""

from __future__ import annotations

import matplotlib
matplotlib.use('Agg')

from typing import TYPE_CHECKING, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np

from canopy_sim.viz.style import (
    OUTCOME_COLORS,
    dark_figure,
    legend,
    save_figure,
    series_color,
)

if TYPE_CHECKING:
    from canopy_sim.model import ForestSimResult
    from canopy_sim.snapshots import GenerationSnapshot


def plot_population_trajectory(
    result: 'ForestSimResult',
    stacked: bool = False,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Trees per species over generations, plus the total.

    Args:
        result: ForestSimResult with population.
        stacked: Draw a stacked area chart instead of lines.
        save_path: Optional path to save the figure.
    """
    gens = np.arange(result.n_steps + 1)
    names = result.species_names or [str(i) for i in range(result.population.shape[1])]
    fig, ax = dark_figure()

    if stacked:
        ax.stackplot(gens, *result.population.T, labels=names,
                     colors=[series_color(i) for i in range(len(names))],
                     alpha=0.85)
    else:
        for i, name in enumerate(names):
            ax.plot(gens, result.population[:, i], color=series_color(i),
                    linewidth=2, label=name)
        ax.plot(gens, result.total_population, color='white', linewidth=1.5,
                linestyle='--', alpha=0.7, label='total')

    ax.set_xlabel('Generation', fontsize=12)
    ax.set_ylabel('Trees', fontsize=12)
    ax.set_title('Population Trajectory', fontsize=14, fontweight='bold')
    legend(ax, fontsize=10)
    ax.set_xlim(0, max(result.n_steps, 1))
    ax.set_ylim(bottom=0)

    if save_path:
        save_figure(fig, save_path)
    return fig


def plot_births_and_deaths(
    result: 'ForestSimResult',
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Births against shade and old-age deaths per step."""
    steps = np.arange(1, result.n_steps + 1)
    fig, ax = dark_figure()

    ax.plot(steps, result.births, color=OUTCOME_COLORS['births'],
            linewidth=2, label='births')
    ax.plot(steps, result.shade_deaths, color=OUTCOME_COLORS['shade_deaths'],
            linewidth=2, label='shade deaths')
    ax.plot(steps, result.oldage_deaths, color=OUTCOME_COLORS['oldage_deaths'],
            linewidth=2, label='old-age deaths')

    ax.set_xlabel('Step', fontsize=12)
    ax.set_ylabel('Trees per step', fontsize=12)
    ax.set_title('Births and Deaths', fontsize=14, fontweight='bold')
    legend(ax, fontsize=10)
    ax.set_ylim(bottom=0)

    if save_path:
        save_figure(fig, save_path)
    return fig


def plot_radius_distribution(
    snapshot: 'GenerationSnapshot',
    species_names: Sequence[str],
    bins: int = 20,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Histogram of crown radii per species at one generation."""
    fig, ax = dark_figure()
    trees = snapshot.trees
    hi = float(trees['radius'].max()) if len(trees) else 1.0
    edges = np.linspace(0.0, hi, bins + 1)

    for i, name in enumerate(species_names):
        radii = trees['radius'][trees['species_id'] == i]
        if len(radii):
            ax.hist(radii, bins=edges, color=series_color(i), alpha=0.6,
                    label=f'{name} (n={len(radii)})')

    ax.set_xlabel('Crown radius', fontsize=12)
    ax.set_ylabel('Trees', fontsize=12)
    ax.set_title(f'Radius Distribution, generation {snapshot.generation}',
                 fontsize=14, fontweight='bold')
    if len(trees):
        legend(ax, fontsize=10)

    if save_path:
        save_figure(fig, save_path)
    return fig
