"""
Phase and violation codes shared by the RTL and the Python models.

Phase encoding (3 bits, matches the controller's state register):
    0  RESET       idle, requesting the bus
    1  LOAD        burst into the memory banks
    2  DISTRIBUTE  wavefront injection into the PE grid
    3  COMPUTE     PEs accumulate
    4  CLEANUP     PE pipeline drains
    5  UNLOAD      burst results out through the global buffer

Violation encoding (3 bits, the arbiter's ``violation`` output):
    0  NONE
    1  GRANT_WITHDRAWN     granted core dropped its acknowledge mid-burst
    2  REQUEST_WITHDRAWN   granted core dropped its request mid-burst
    3  ILLEGAL_CONFIG      load and unload enable requested together
    4  PHASE_SEQUENCE      controller phase does not match the burst
"""

from enum import IntEnum

PHASE_BITS = 3
VIOLATION_BITS = 3


class Phase(IntEnum):
    """Controller phases, in execution order."""

    RESET = 0
    LOAD = 1
    DISTRIBUTE = 2
    COMPUTE = 3
    CLEANUP = 4
    UNLOAD = 5


class Violation(IntEnum):
    """Protocol violation kinds reported by the arbiter."""

    NONE = 0
    GRANT_WITHDRAWN = 1
    REQUEST_WITHDRAWN = 2
    ILLEGAL_CONFIG = 3
    PHASE_SEQUENCE = 4


# Phases during which the owning core may hold a bus burst
LOAD_PHASES = (Phase.RESET, Phase.LOAD)
UNLOAD_PHASES = (Phase.UNLOAD,)


def phase_allows(phase: Phase, load_enable: bool, unload_enable: bool) -> bool:
    """
    Whether a burst with the given enables may be active in ``phase``.

    RESET is legal for loads because the controller only leaves RESET on the
    tick after it observes its grant.
    """
    if phase in LOAD_PHASES:
        return not unload_enable
    if phase in UNLOAD_PHASES:
        return not load_enable
    return False
