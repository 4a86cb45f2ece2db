#!/usr/bin/env python3
"""Generate Controller Verilog from osarray."""

import argparse
import sys
from pathlib import Path

# Add src to path if running from scripts/
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from amaranth.back import verilog  # noqa: E402

from osarray.controller import Controller  # noqa: E402
from osarray.config import CoreConfig, load_parameters  # noqa: E402


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--params",
        type=Path,
        default=project_root / "parameters.json",
        help="parameters.json to build from (default config if missing)",
    )
    parser.add_argument(
        "-o", "--output", type=Path, default=project_root / "gen" / "controller.v", help="Verilog file"
    )
    args = parser.parse_args()

    config = load_parameters(args.params) if args.params.exists() else CoreConfig()
    dut = Controller(config)

    args.output.parent.mkdir(parents=True, exist_ok=True)
    with open(args.output, "w") as f:
        f.write(verilog.convert(dut, name="Controller"))

    print(f"Generated {args.output}")


if __name__ == "__main__":
    main()
