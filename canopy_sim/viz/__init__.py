"""canopy_sim plotting.

Modules:
  - style: Dark theme colours and helpers
  - population: Population trajectories, births/deaths, radius histograms
"""

from canopy_sim.viz.style import (  # noqa: F401
    DARK_BG,
    DARK_PANEL,
    GRID_COLOR,
    OUTCOME_COLORS,
    SERIES_COLORS,
    TEXT_COLOR,
    apply_dark_theme,
    dark_figure,
    save_figure,
    series_color,
)

from canopy_sim.viz.population import (  # noqa: F401
    plot_births_and_deaths,
    plot_population_trajectory,
    plot_radius_distribution,
)
