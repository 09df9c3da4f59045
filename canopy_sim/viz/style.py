"""Dark theme styling for canopy_sim plots.

Shared colours and helpers so every figure has the same look.
"""

import matplotlib.pyplot as plt
import numpy as np

DARK_BG = '#14201a'
DARK_PANEL = '#1b2b22'
TEXT_COLOR = '#e0e0e0'
GRID_COLOR = '#2d4436'

# Line colours, assigned to species ids in order
SERIES_COLORS = [
    '#7bc96f',  # leaf green
    '#f39c12',  # amber
    '#e94560',  # crimson
    '#48c9b0',  # teal
    '#3498db',  # sky blue
    '#c39bd3',  # lilac
]

OUTCOME_COLORS = {
    'births':        '#7bc96f',
    'shade_deaths':  '#5d6d7e',
    'oldage_deaths': '#a04000',
}


def series_color(i: int) -> str:
    return SERIES_COLORS[i % len(SERIES_COLORS)]


def apply_dark_theme(fig=None, ax=None):
    """Apply dark theme to a matplotlib Figure and/or Axes."""
    if fig is not None:
        fig.patch.set_facecolor(DARK_BG)
    if ax is not None:
        ax.set_facecolor(DARK_PANEL)
        ax.tick_params(colors=TEXT_COLOR)
        ax.xaxis.label.set_color(TEXT_COLOR)
        ax.yaxis.label.set_color(TEXT_COLOR)
        ax.title.set_color(TEXT_COLOR)
        for spine in ax.spines.values():
            spine.set_color(GRID_COLOR)
        ax.grid(True, color=GRID_COLOR, alpha=0.3, linewidth=0.5)


def dark_figure(nrows=1, ncols=1, figsize=None, **kwargs):
    """Create (fig, axes) with the dark theme applied to every Axes."""
    if figsize is None:
        figsize = (10, 6) if (nrows == 1 and ncols == 1) else (14, 5 * nrows)
    fig, axes = plt.subplots(nrows, ncols, figsize=figsize, **kwargs)
    apply_dark_theme(fig=fig)
    for a in np.atleast_1d(axes).flat:
        apply_dark_theme(ax=a)
    return fig, axes


def legend(ax, **kwargs):
    return ax.legend(facecolor=DARK_PANEL, edgecolor=GRID_COLOR,
                     labelcolor=TEXT_COLOR, **kwargs)


def save_figure(fig, save_path, dpi=150):
    """Save with tight layout and the dark background, then close."""
    fig.tight_layout()
    fig.savefig(save_path, dpi=dpi, facecolor=fig.get_facecolor(),
                edgecolor='none', bbox_inches='tight')
    plt.close(fig)
