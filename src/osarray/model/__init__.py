"""
Cycle-accurate Python models of the control core and its collaborators.

The models follow the RTL tick for tick and are used as golden references by
the co-simulation tests.
"""

from .arbiter import ArbiterInputs, ArbiterModel, ArbiterState, BurstConfig
from .burst import BurstTracker, BurstTransfer
from .controller import ControllerInputs, ControllerModel, ControllerOutputs, ControllerState
from .core_sim import CoreSim, TickRecord
from .datapath import GlobalBuffer, MemoryBank, PEDatapath
from .ports import IDLE_BANK, IDLE_PE, STALLED_BANK, BankPort, PEPort, bank_vectors, pe_vectors

__all__ = [
    # Arbiter
    "ArbiterInputs",
    "ArbiterModel",
    "ArbiterState",
    "BurstConfig",
    "BurstTracker",
    "BurstTransfer",
    # Controller
    "ControllerInputs",
    "ControllerModel",
    "ControllerOutputs",
    "ControllerState",
    # Integration
    "CoreSim",
    "TickRecord",
    # Datapath collaborators
    "GlobalBuffer",
    "MemoryBank",
    "PEDatapath",
    # Ports
    "BankPort",
    "PEPort",
    "IDLE_BANK",
    "IDLE_PE",
    "STALLED_BANK",
    "bank_vectors",
    "pe_vectors",
]
