#!/usr/bin/env python3
"""Run a batch forest simulation from YAML configuration.

Loads a base config (plus optional scenario override), runs the simulator
for n steps, prints a summary and step timing, and writes a JSON summary
and PNG figures to the output directory.

Usage:
    python scripts/run_forest.py
    python scripts/run_forest.py -c configs/default.yaml -s configs/dense_bush.yaml
    python scripts/run_forest.py --steps 500 --seed 7 --no-plots
    python scripts/run_forest.py --set simulation.neighbor_search=brute_force
"""

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Dict, List

import yaml

# ── Project imports ──────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from canopy_sim.config import load_config
from canopy_sim.model import run_simulation
from canopy_sim.perf import PerfMonitor
from canopy_sim.snapshots import SnapshotRecorder


def parse_overrides(items: List[str]) -> Dict:
    """Turn ['a.b=1', 'c=x'] into {'a': {'b': 1}, 'c': 'x'} (values parsed as YAML)."""
    overrides: Dict = {}
    for item in items:
        if '=' not in item:
            raise ValueError(f"--set expects key=value, got '{item}'")
        key, raw = item.split('=', 1)
        node = overrides
        parts = key.split('.')
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = yaml.safe_load(raw)
    return overrides


def main():
    parser = argparse.ArgumentParser(
        description="Run a canopy_sim forest competition simulation",
    )
    parser.add_argument(
        '-c', '--config', default=str(PROJECT_ROOT / 'configs' / 'default.yaml'),
        help="Base YAML configuration (default: configs/default.yaml)",
    )
    parser.add_argument(
        '-s', '--scenario', default=None,
        help="Scenario YAML merged over the base configuration",
    )
    parser.add_argument(
        '--set', dest='overrides', action='append', default=[],
        metavar='KEY=VALUE',
        help="Override a config value, e.g. --set arena.width=400 (repeatable)",
    )
    parser.add_argument('--steps', type=int, default=None,
                        help="Generations to run (default: simulation.n_steps)")
    parser.add_argument('--seed', type=int, default=None,
                        help="Master seed (default: simulation.seed)")
    parser.add_argument('-o', '--output-dir', default=None,
                        help="Output directory (default: output.output_dir)")
    parser.add_argument('--no-plots', action='store_true',
                        help="Skip PNG figures")
    parser.add_argument('--timing', action='store_true',
                        help="Print per-phase step timing")
    args = parser.parse_args()

    config = load_config(args.config, args.scenario,
                         sweep_overrides=parse_overrides(args.overrides) or None)
    out_dir = Path(args.output_dir or config.output.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    perf = PerfMonitor(enabled=args.timing)
    recorder = SnapshotRecorder(
        enabled=not args.no_plots or config.output.record_snapshots,
        interval=config.output.snapshot_interval,
    )

    print(f"Arena {config.arena.width:g}x{config.arena.height:g}, "
          f"{config.simulation.initial_trees} trees, "
          f"species: {', '.join(config.species)}")
    t0 = time.perf_counter()
    result = run_simulation(config, n_steps=args.steps, seed=args.seed,
                            perf=perf, recorder=recorder)
    runtime = time.perf_counter() - t0

    summary = result.summary()
    summary['runtime_s'] = round(runtime, 3)
    if args.timing:
        summary['timing'] = perf.summary()

    print(f"Ran {result.n_steps} generations in {runtime:.2f}s")
    print(f"  Population: {result.initial_pop} → {result.final_pop} "
          f"(peak {result.peak_pop} at generation {result.peak_pop_step})")
    print(f"  Births: {result.total_births}  Deaths: {result.total_deaths}")
    for name, n in summary['final_by_species'].items():
        print(f"    {name:<10} {n}")
    if result.extinct_step is not None:
        print(f"  Forest went extinct at generation {result.extinct_step}")
    if args.timing:
        print(perf.report())

    summary_path = out_dir / 'summary.json'
    with open(summary_path, 'w') as f:
        json.dump(summary, f, indent=2)
    print(f"Summary written to {summary_path}")

    if not args.no_plots:
        from canopy_sim.viz import (
            plot_births_and_deaths,
            plot_population_trajectory,
            plot_radius_distribution,
        )
        plot_population_trajectory(result, save_path=str(out_dir / 'population.png'))
        plot_births_and_deaths(result, save_path=str(out_dir / 'births_deaths.png'))
        gens = recorder.generations()
        if gens:
            plot_radius_distribution(
                recorder.get(gens[-1]), result.species_names,
                save_path=str(out_dir / 'radius_distribution.png'),
            )
        print(f"Figures written to {out_dir}")


if __name__ == '__main__':
    main()
