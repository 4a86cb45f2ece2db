"""
osarray verification - pytest configuration for the cocotb testbenches.

The testbenches themselves run under ``make`` (see the Makefile next to this
file); this module only makes ``osarray`` importable and registers the
simulator markers used when collecting them through pytest.
"""

import os
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))
sys.path.insert(0, str(PROJECT_ROOT / "verif" / "cocotb"))

from osarray.config import CoreConfig, load_parameters  # noqa: E402

SIMULATORS = ("icarus", "verilator")


def pytest_configure(config):
    """Register one marker per supported simulator."""
    for name in SIMULATORS:
        config.addinivalue_line("markers", f"{name}: marks tests requiring the {name} simulator")
    config.addinivalue_line("markers", "slow: marks tests as slow")


def pytest_collection_modifyitems(config, items):  # noqa: ARG001
    """Skip tests bound to a simulator other than $SIM."""
    sim = os.environ.get("SIM", "icarus").lower()

    for item in items:
        for name in SIMULATORS:
            if name in item.keywords and sim != name:
                item.add_marker(pytest.mark.skip(reason=f"Requires {name} simulator"))


@pytest.fixture(scope="session")
def project_root() -> Path:
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def gen_dir(project_root) -> Path:
    """Directory the scripts/gen_*.py generators write Verilog into."""
    return project_root / "gen"


@pytest.fixture(scope="session")
def core_config() -> CoreConfig:
    """Configuration the generated RTL was built with."""
    params = PROJECT_ROOT / "parameters.json"
    if params.exists():
        return load_parameters(params)
    return CoreConfig()


@pytest.fixture(scope="session")
def sim_name() -> str:
    return os.environ.get("SIM", "icarus").lower()
