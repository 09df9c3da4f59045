"""Per-phase timing for simulator steps.

Zero overhead when disabled: ``track()`` yields immediately.

Usage:
    perf = PerfMonitor(enabled=True)
    sim = ForestSimulator(config, perf=perf)
    for _ in range(100):
        sim.step()
    print(perf.report())
"""

import time
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict


@dataclass
class PhaseTiming:
    """Accumulated wall-clock time for one named phase."""
    total: float = 0.0
    calls: int = 0
    worst: float = 0.0

    @property
    def mean(self) -> float:
        return self.total / self.calls if self.calls else 0.0

    def add(self, elapsed: float) -> None:
        self.total += elapsed
        self.calls += 1
        if elapsed > self.worst:
            self.worst = elapsed


class PerfMonitor:
    """Collects PhaseTiming per phase name ('dominance', 'production', ...)."""

    def __init__(self, enabled: bool = False):
        self.enabled = enabled
        self._phases: Dict[str, PhaseTiming] = defaultdict(PhaseTiming)

    @contextmanager
    def track(self, phase: str):
        if not self.enabled:
            yield
            return
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self._phases[phase].add(time.perf_counter() - t0)

    def timings(self) -> Dict[str, PhaseTiming]:
        return dict(self._phases)

    def summary(self) -> dict:
        """JSON-friendly {phase: {total_s, calls, mean_ms, worst_ms, pct}}."""
        grand = sum(p.total for p in self._phases.values())
        out = {}
        for name, p in sorted(self._phases.items(), key=lambda kv: -kv[1].total):
            out[name] = {
                'total_s': round(p.total, 4),
                'calls': p.calls,
                'mean_ms': round(p.mean * 1000, 3),
                'worst_ms': round(p.worst * 1000, 3),
                'pct': round(100.0 * p.total / grand, 1) if grand > 0 else 0.0,
            }
        return out

    def report(self, title: str = "Step timing") -> str:
        """Fixed-width table of the summary."""
        rows = self.summary()
        lines = [
            title,
            f"{'phase':<14} {'total (s)':>10} {'calls':>7} {'mean (ms)':>10} {'%':>6}",
        ]
        for name, r in rows.items():
            lines.append(
                f"{name:<14} {r['total_s']:>10.4f} {r['calls']:>7} "
                f"{r['mean_ms']:>10.3f} {r['pct']:>5.1f}%"
            )
        return '\n'.join(lines)

    def reset(self) -> None:
        self._phases.clear()
