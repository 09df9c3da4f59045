"""Optional generation snapshot recording.

Records (uid, x, y, radius, species_id, dominated) for every tree at a
configurable generation interval, for replaying a run or plotting crowns
after the fact. Snapshots are held in memory only.

Usage:
    recorder = SnapshotRecorder(enabled=True, interval=5)

    # In simulation loop:
    recorder.capture(sim.generation, sim)

    # After simulation:
    snap = recorder.get(10)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional

import numpy as np

if TYPE_CHECKING:
    from canopy_sim.engine import ForestSimulator


@dataclass
class GenerationSnapshot:
    """All trees of one generation."""
    generation: int
    trees: np.ndarray     # read-only SNAPSHOT_DTYPE array

    @property
    def n_trees(self) -> int:
        return len(self.trees)


class SnapshotRecorder:
    """Keeps GenerationSnapshots keyed by generation number.

    When enabled=False, all methods are no-ops.
    """

    def __init__(
        self,
        enabled: bool = False,
        interval: int = 1,
        start: int = 0,
        end: Optional[int] = None,
    ):
        """
        Args:
            enabled: Master switch.
            interval: Capture every N generations.
            start: First generation to record.
            end: Last generation to record (None = no limit).
        """
        if interval < 1:
            raise ValueError(f"interval must be >= 1, got {interval}")
        self.enabled = enabled
        self.interval = interval
        self.start = start
        self.end = end
        self.snapshots: Dict[int, GenerationSnapshot] = {}

    def should_capture(self, generation: int) -> bool:
        if not self.enabled:
            return False
        if generation < self.start:
            return False
        if self.end is not None and generation > self.end:
            return False
        return (generation - self.start) % self.interval == 0

    def capture(self, generation: int, sim: 'ForestSimulator') -> bool:
        """Record the simulator's current generation if due. Returns True if recorded."""
        if not self.should_capture(generation):
            return False
        self.snapshots[generation] = GenerationSnapshot(
            generation=generation,
            trees=sim.snapshot(),
        )
        return True

    def generations(self) -> List[int]:
        return sorted(self.snapshots)

    def get(self, generation: int) -> Optional[GenerationSnapshot]:
        return self.snapshots.get(generation)

    def memory_estimate_mb(self) -> float:
        total = sum(s.trees.nbytes for s in self.snapshots.values())
        return total / (1024 * 1024)
