"""
osarray - Control core of an output-stationary systolic array.

This package provides the bus arbiter and phase controller as Amaranth HDL
components, together with cycle-accurate Python reference models of both.
"""

from .config import CoreConfig
from .util.codes import Phase, Violation

__version__ = "0.1.0"
__all__ = ["CoreConfig", "Phase", "Violation", "__version__"]
