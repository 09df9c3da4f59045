"""canopy_sim: individual-based forest competition model.

A bounded 2D arena holds circular trees that:
  - Grow a fixed radius increment per year until reaching max size
  - Shade each other (the smaller of two overlapping crowns is dominated)
  - Die from shading or old age with per-species survival probabilities
  - Disperse one offspring per successful year into a ring around the parent

Overlap detection runs through a quadtree rebuilt every generation.
"""

__version__ = "0.1.0"
