"""Real-time stepping for interactive front ends.

The simulator itself has no clock. A front end owns a StepDriver, feeds it
frame times with advance(dt), and wires its buttons to toggle(),
request_step() and reset(). While playing, one generation is advanced each
time the accumulated time reaches step_interval seconds; the accumulator
then restarts from zero.
"""

from __future__ import annotations

from typing import Optional

from canopy_sim.engine import ForestSimulator, StepReport
from canopy_sim.types import EPSILON


class StepDriver:
    """Play/pause state and elapsed-time accumulator around a simulator."""

    def __init__(self, simulator: ForestSimulator, step_interval: Optional[float] = None):
        if step_interval is None:
            step_interval = simulator.config.simulation.step_interval
        if step_interval <= 0:
            raise ValueError(f"step_interval must be positive, got {step_interval}")
        self.simulator = simulator
        self.step_interval = step_interval
        self.playing = False
        self.elapsed = 0.0
        self.last_report: Optional[StepReport] = None

    def play(self) -> None:
        self.playing = True

    def pause(self) -> None:
        self.playing = False

    def toggle(self) -> bool:
        """Flip play/pause; returns the new playing state."""
        self.playing = not self.playing
        return self.playing

    def request_step(self) -> StepReport:
        """Manual single step, independent of play state."""
        self.last_report = self.simulator.step()
        return self.last_report

    def reset(self) -> None:
        """Reseed the simulator and clear the time accumulator."""
        self.simulator.reset()
        self.elapsed = 0.0
        self.last_report = None

    def advance(self, dt: float) -> Optional[StepReport]:
        """Account for dt seconds of wall time.

        Returns the StepReport if a step ran, otherwise None. At most one
        step runs per call.
        """
        if dt < 0:
            raise ValueError(f"dt must be non-negative, got {dt}")
        if not self.playing:
            return None
        self.elapsed += dt
        if self.step_interval - self.elapsed < EPSILON:
            self.elapsed = 0.0
            return self.request_step()
        return None
