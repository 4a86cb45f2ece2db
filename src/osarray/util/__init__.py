"""Utility modules for the osarray control core."""

from .bits import (
    bit,
    check_width,
    from_bits,
    is_one_hot,
    mask,
    one_hot,
    rotate_scan,
    set_bit,
    to_bits,
)
from .codes import (
    LOAD_PHASES,
    PHASE_BITS,
    UNLOAD_PHASES,
    VIOLATION_BITS,
    Phase,
    Violation,
    phase_allows,
)

__all__ = [
    # Phase / violation codes
    "Phase",
    "Violation",
    "PHASE_BITS",
    "VIOLATION_BITS",
    "LOAD_PHASES",
    "UNLOAD_PHASES",
    "phase_allows",
    # Bitset helpers
    "bit",
    "check_width",
    "from_bits",
    "is_one_hot",
    "mask",
    "one_hot",
    "rotate_scan",
    "set_bit",
    "to_bits",
]
