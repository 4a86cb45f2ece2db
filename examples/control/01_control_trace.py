#!/usr/bin/env python3
"""
Control Core Trace.

Runs the cycle-accurate reference model of the control core (arbiter plus
phase controller) and prints what happens on every cycle:

1. Bus Arbitration
   - Which core holds the shared bus, the burst length and beat address
   - Other cores can be made to compete with --ext-req

2. Phase Sequence
   - RESET -> LOAD -> DISTRIBUTE -> COMPUTE -> CLEANUP -> UNLOAD -> RESET

3. Wavefront
   - During DISTRIBUTE, the PE grid is drawn with enabled elements marked,
     one anti-diagonal group added per cycle

Usage:
    python 01_control_trace.py [--size N] [--cores C] [--ext-req MASK] [--cycles K]
"""

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

# Add src to path when running from a checkout
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from osarray.config import CoreConfig  # noqa: E402
from osarray.model import CoreSim  # noqa: E402
from osarray.util import Phase  # noqa: E402


class Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"


PHASE_COLORS = {
    Phase.RESET: Colors.DIM,
    Phase.LOAD: Colors.CYAN,
    Phase.DISTRIBUTE: Colors.YELLOW,
    Phase.COMPUTE: Colors.GREEN,
    Phase.CLEANUP: Colors.GREEN,
    Phase.UNLOAD: Colors.CYAN,
}


def color(text, code, enabled):
    return f"{code}{text}{Colors.RESET}" if enabled else text


def wavefront(config: CoreConfig, enabled_pes) -> np.ndarray:
    """Grid of 0/1 flags, row-major, one per PE."""
    grid = np.zeros(config.pe_count, dtype=np.int8)
    grid[list(enabled_pes)] = 1
    return grid.reshape(config.grid_size, config.grid_size)


def format_record(record, config: CoreConfig, use_color: bool) -> str:
    phase = color(f"{record.phase.name:<10}", PHASE_COLORS[record.phase], use_color)
    if record.grant:
        core = record.grant.bit_length() - 1
        bus = f"core {core} len={record.burst_len} addr={record.burst_addr}"
        if core == config.controller_core:
            bus = color(bus, Colors.BOLD, use_color)
    else:
        bus = "-"
    line = f"{record.cycle:4d}  {phase}  count={record.count:<3d} bus: {bus}"
    if record.arb_error:
        line += "  " + color(f"violation={record.violation.name}", Colors.RED, use_color)
    return line


def print_wavefront(grid: np.ndarray, use_color: bool) -> None:
    for row in grid:
        cells = [color("#", Colors.YELLOW, use_color) if v else "." for v in row]
        print("            " + " ".join(cells))


def main():
    parser = argparse.ArgumentParser(description="Trace the control core cycle by cycle")
    parser.add_argument("--size", type=int, default=4, help="PE grid side length (default: 4)")
    parser.add_argument("--cores", type=int, default=4, help="Cores sharing the bus (default: 4)")
    parser.add_argument(
        "--ext-req",
        type=lambda s: int(s, 0),
        default=0,
        help="Request mask of the other cores, e.g. 0b0110 (default: 0)",
    )
    parser.add_argument("--cycles", type=int, default=40, help="Cycles to simulate (default: 40)")
    parser.add_argument("--no-wavefront", action="store_true", help="Skip the PE grid drawing")
    parser.add_argument("--no-color", action="store_true", help="Disable ANSI colors")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log model transitions")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = CoreConfig(num_cores=args.cores, grid_size=args.size)
    sim = CoreSim(config)
    use_color = not args.no_color and sys.stdout.isatty()

    print(f"Control core: {config.num_cores} cores, {config.grid_size}x{config.grid_size} grid")
    print(
        f"  load burst {config.load_burst_length}, unload burst {config.unload_burst_length}, "
        f"compute {config.compute_cycles}, cleanup {config.cleanup_cycles}"
    )
    print()

    phase_cycles = dict.fromkeys(Phase, 0)
    for record in sim.run(args.cycles, ext_req=args.ext_req):
        phase_cycles[record.phase] += 1
        print(format_record(record, config, use_color))
        if record.phase == Phase.DISTRIBUTE and not args.no_wavefront:
            print_wavefront(wavefront(config, record.outputs.enabled_pes), use_color)

    print()
    print("Cycles per phase:")
    for phase, cycles in phase_cycles.items():
        print(f"  {phase.name:<10} {cycles}")


if __name__ == "__main__":
    main()
