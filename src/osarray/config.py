"""
osarray Configuration Module

This module defines the configuration dataclass for the output-stationary
control core. All parameters are fixed for a run and propagate through the
arbiter, the controller and the Python reference models.

Parameters can also be read from the ``parameters.json`` file shared with the
RTL testbenches; see :func:`load_parameters`.
"""

import json
from dataclasses import dataclass
from pathlib import Path


class ConfigurationError(ValueError):
    """Raised when a configuration is internally inconsistent."""


# parameters.json key -> CoreConfig field
PARAMETER_KEYS = {
    "OUT_ARB_NUM_CORES": "num_cores",
    "OUT_CTL_NUM_MEMS": "grid_size",
    "OUT_CTL_NUM_PES": "num_pes",
    "OUT_ARB_BURST_WIDTH": "burst_width",
    "OUT_ARB_FIXED_BURST_WRITE": "load_burst_length",
    "OUT_ARB_FIXED_BURST_READ": "unload_burst_length",
    "OUT_MEM_NUM_ROWS": "mem_depth",
    "OUT_GLB_NUM_ROWS": "glb_depth",
    "OUT_CTL_COMPUTE_CYCLES": "compute_cycles",
    "OUT_CTL_CLEANUP_CYCLES": "cleanup_cycles",
    "OUT_CTL_CORE": "controller_core",
    "COCOTB_CLOCK_NS": "clock_period_ns",
}


@dataclass
class CoreConfig:
    """
    Configuration for the arbiter/controller core.

    Example:
        >>> config = CoreConfig(grid_size=4, num_cores=4)
        >>> config.num_pes
        16
        >>> config.distribute_cycles
        7
    """

    # =========================================================================
    # Bus Arbitration
    # =========================================================================
    num_cores: int = 4
    """Number of cores competing for the shared memory bus."""

    burst_width: int = 8
    """Bit width of the burst length field."""

    load_burst_length: int = 3
    """Fixed burst length granted to a core that has not been loaded yet."""

    unload_burst_length: int = 4
    """Fixed burst length granted to a loaded core (result unload)."""

    controller_core: int = 0
    """Arbiter slot the modelled controller requests on."""

    # =========================================================================
    # PE Grid
    # =========================================================================
    grid_size: int = 4
    """Side length S of the square PE grid (one memory bank per row)."""

    num_pes: int | None = None
    """Expected PE count. When given it must equal grid_size ** 2."""

    compute_cycles: int = 4
    """COMPUTE duration in cycles (the reduction dimension)."""

    cleanup_cycles: int = 2
    """CLEANUP duration in cycles (PE pipeline depth)."""

    # =========================================================================
    # Storage
    # =========================================================================
    mem_depth: int = 64
    """Rows per memory bank."""

    glb_depth: int = 64
    """Rows per global buffer bank."""

    # =========================================================================
    # Simulation
    # =========================================================================
    clock_period_ns: int = 10
    """Clock period used by the RTL testbenches."""

    # =========================================================================
    # Computed Properties
    # =========================================================================
    @property
    def pe_count(self) -> int:
        """Total number of processing elements (S * S)."""
        return self.grid_size * self.grid_size

    @property
    def num_groups(self) -> int:
        """Number of wavefront delay groups (2S - 1)."""
        return 2 * self.grid_size - 1

    @property
    def distribute_cycles(self) -> int:
        """DISTRIBUTE duration: one cycle per delay group."""
        return self.num_groups

    @property
    def max_burst_length(self) -> int:
        """Largest burst length representable in burst_width bits."""
        return (1 << self.burst_width) - 1

    @property
    def mem_addr_bits(self) -> int:
        """Bits needed to address one memory bank."""
        return max(1, (self.mem_depth - 1).bit_length())

    @property
    def glb_addr_bits(self) -> int:
        """Bits needed to address one global buffer bank."""
        return max(1, (self.glb_depth - 1).bit_length())

    @property
    def counter_limit(self) -> int:
        """Largest value the controller's phase counter has to hold."""
        return max(
            self.max_burst_length,
            self.distribute_cycles,
            self.compute_cycles,
            self.cleanup_cycles,
        )

    @property
    def controller_mask(self) -> int:
        """One-hot bit of the controller's arbiter slot."""
        return 1 << self.controller_core

    def __post_init__(self):
        """Validate configuration parameters."""
        for name in (
            "num_cores",
            "grid_size",
            "burst_width",
            "mem_depth",
            "glb_depth",
            "compute_cycles",
            "cleanup_cycles",
            "clock_period_ns",
        ):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)}")

        if self.num_pes is not None and self.num_pes != self.pe_count:
            raise ConfigurationError(
                f"grid side {self.grid_size} implies {self.pe_count} PEs, "
                f"but num_pes is {self.num_pes}"
            )

        for name in ("load_burst_length", "unload_burst_length"):
            length = getattr(self, name)
            if not 1 <= length <= self.max_burst_length:
                raise ConfigurationError(
                    f"{name}={length} does not fit a {self.burst_width}-bit burst field"
                )

        if self.load_burst_length > self.mem_depth:
            raise ConfigurationError(
                f"load burst of {self.load_burst_length} exceeds mem_depth={self.mem_depth}"
            )
        if self.unload_burst_length > self.glb_depth:
            raise ConfigurationError(
                f"unload burst of {self.unload_burst_length} exceeds glb_depth={self.glb_depth}"
            )
        # DISTRIBUTE reads addresses 0..S-2 from every bank
        if self.grid_size - 1 > self.mem_depth:
            raise ConfigurationError(
                f"mem_depth={self.mem_depth} is too shallow for a {self.grid_size}-wide grid"
            )

        if not 0 <= self.controller_core < self.num_cores:
            raise ConfigurationError(
                f"controller_core={self.controller_core} outside 0..{self.num_cores - 1}"
            )

    @classmethod
    def from_parameters(cls, params: dict, **overrides) -> "CoreConfig":
        """
        Build a configuration from a ``parameters.json`` style mapping.

        Unknown keys are ignored so one file can carry parameters for other
        dataflows. Keyword overrides win over file values.
        """
        kwargs = {field: params[key] for key, field in PARAMETER_KEYS.items() if key in params}
        kwargs.update(overrides)
        return cls(**kwargs)

    def to_parameters(self) -> dict:
        """Inverse of :meth:`from_parameters`."""
        params = {}
        for key, field in PARAMETER_KEYS.items():
            value = getattr(self, field)
            if value is not None:
                params[key] = value
        return params


def load_parameters(path: str | Path = "parameters.json", **overrides) -> CoreConfig:
    """Read a ``parameters.json`` file into a :class:`CoreConfig`."""
    with open(path) as f:
        params = json.load(f)
    if not isinstance(params, dict):
        raise ConfigurationError(f"{path} must hold a JSON object, got {type(params).__name__}")
    return CoreConfig.from_parameters(params, **overrides)


# Pre-defined configurations
DEFAULT_CONFIG = CoreConfig()
"""Default configuration: 4 cores sharing the bus, 4x4 grid."""

SMALL_CONFIG = CoreConfig(
    num_cores=2,
    grid_size=2,
    load_burst_length=2,
    unload_burst_length=2,
    compute_cycles=2,
    cleanup_cycles=1,
    mem_depth=16,
    glb_depth=16,
)
"""Small configuration for fast simulation."""

REFERENCE_CONFIG = CoreConfig(
    num_cores=4,
    grid_size=4,
    num_pes=16,
    burst_width=8,
    load_burst_length=3,
    unload_burst_length=4,
    mem_depth=64,
    glb_depth=64,
    clock_period_ns=10,
)
"""Matches the 4x4 reference testbench parameters."""
