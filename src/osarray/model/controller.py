"""
Cycle-accurate reference model of the phase controller.

:class:`ControllerModel` mirrors :class:`osarray.controller.Controller`.
:meth:`ControllerModel.outputs` returns what the controller drives during the
current cycle given that cycle's inputs; :meth:`ControllerModel.evaluate`
returns the state after the next clock edge. :meth:`ControllerModel.step`
does both and commits.
"""

import logging
from dataclasses import dataclass, replace

from ..config import CoreConfig
from ..schedule import DelayGroupTable
from ..util.bits import mask
from ..util.codes import Phase
from .ports import IDLE_BANK, IDLE_PE, STALLED_BANK, BankPort, PEPort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ControllerInputs:
    """Values on the controller's input ports during one cycle."""

    ready: bool = True
    grant: bool = False
    burst: int = 0
    arb_error: bool = False
    clear: bool = False


@dataclass(frozen=True)
class ControllerState:
    """
    Registered controller state.

    Attributes:
        phase: Current phase
        cycle_in_phase: Counter within the phase (beats in LOAD/UNLOAD)
        active_burst: Burst length latched from the arbiter
        captured: UNLOAD has latched its burst
        error: Sticky error, the FSM is frozen
    """

    phase: Phase = Phase.RESET
    cycle_in_phase: int = 0
    active_burst: int = 0
    captured: bool = False
    error: bool = False


@dataclass(frozen=True)
class ControllerOutputs:
    """Everything the controller drives in one cycle."""

    req: bool
    ack: bool
    mem: tuple[BankPort, ...]
    glb: tuple[BankPort, ...]
    pe: tuple[PEPort, ...]

    @property
    def enabled_pes(self) -> frozenset[int]:
        """Row-major indices of the PEs with ready set."""
        return frozenset(idx for idx, port in enumerate(self.pe) if port.ready)

    @property
    def active_banks(self) -> dict[int, int]:
        """Memory bank -> address for every bank accessed this cycle."""
        return {j: port.address for j, port in enumerate(self.mem) if port.active}


class ControllerModel:
    """
    Output-stationary phase controller.

    Example:
        >>> ctl = ControllerModel(CoreConfig(grid_size=2))
        >>> ctl.step(ControllerInputs(grant=True, burst=3)).req
        True
        >>> ctl.phase
        <Phase.LOAD: 1>
    """

    def __init__(self, config: CoreConfig):
        self.config = config
        self.groups = DelayGroupTable(config.grid_size)
        self.state = ControllerState()

    def reset(self) -> None:
        self.state = ControllerState()

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def error(self) -> bool:
        return self.state.error

    # =========================================================================
    # Output Logic
    # =========================================================================

    def _idle(self, req=False, ack=False, glb=None, pe=None) -> ControllerOutputs:
        s = self.config.grid_size
        return ControllerOutputs(
            req=req,
            ack=ack,
            mem=(IDLE_BANK,) * s,
            glb=glb if glb is not None else (IDLE_BANK,) * s,
            pe=pe if pe is not None else (IDLE_PE,) * self.config.pe_count,
        )

    def outputs(self, inputs: ControllerInputs) -> ControllerOutputs:
        """Ports driven during the current cycle."""
        cfg = self.config
        st = self.state
        s = cfg.grid_size
        count = st.cycle_in_phase

        if st.error or (inputs.arb_error and st.phase != Phase.RESET):
            return self._idle()

        if st.phase == Phase.RESET:
            return self._idle(req=inputs.ready, ack=inputs.ready)

        if st.phase == Phase.LOAD:
            out = self._idle(req=inputs.grant, ack=True)
            if count < st.active_burst:
                address = count & mask(cfg.mem_addr_bits)
                port = BankPort(ready=True, rw=1, address=address)
                out = replace(out, mem=(port,) * s)
            return out

        if st.phase == Phase.DISTRIBUTE:
            mem = []
            for j in range(s):
                if j <= count < j + s - 1:
                    mem.append(BankPort(ready=True, rw=0, address=count - j))
                else:
                    mem.append(IDLE_BANK)
            pe = tuple(
                PEPort(ready=True, rw=1, stream=0)
                if self.groups.group_of_index(idx) <= count
                else IDLE_PE
                for idx in range(cfg.pe_count)
            )
            return ControllerOutputs(
                req=False,
                ack=False,
                mem=tuple(mem),
                glb=(STALLED_BANK,) * s,
                pe=pe,
            )

        if st.phase == Phase.COMPUTE:
            return self._idle(pe=(PEPort(ready=True, rw=1, stream=0),) * cfg.pe_count)

        if st.phase == Phase.CLEANUP:
            return self._idle(pe=(PEPort(ready=True, rw=0, stream=0),) * cfg.pe_count)

        if st.phase == Phase.UNLOAD:
            req = (not st.captured) or inputs.grant
            if st.captured and count < st.active_burst:
                address = count & mask(cfg.glb_addr_bits)
                return self._idle(
                    req=req,
                    ack=True,
                    glb=(BankPort(ready=True, rw=1, address=address),) * s,
                    pe=(PEPort(ready=True, rw=0, stream=1),) * cfg.pe_count,
                )
            return self._idle(
                req=req,
                ack=True,
                pe=(PEPort(ready=True, rw=0, stream=0),) * cfg.pe_count,
            )

        raise AssertionError(f"unreachable phase {st.phase!r}")

    # =========================================================================
    # Next-State Logic
    # =========================================================================

    def evaluate(self, inputs: ControllerInputs) -> ControllerState:
        """State after the next clock edge."""
        cfg = self.config
        st = self.state
        count = st.cycle_in_phase

        if inputs.clear:
            return ControllerState()

        if st.error:
            return st

        if inputs.arb_error and st.phase != Phase.RESET:
            logger.warning("arbiter error observed in %s; controller halted", st.phase.name)
            return replace(st, error=True)

        if st.phase == Phase.RESET:
            if inputs.ready and inputs.grant:
                return ControllerState(Phase.LOAD, 0, inputs.burst)
            return st

        if st.phase == Phase.LOAD:
            if not inputs.grant:
                return replace(st, phase=Phase.DISTRIBUTE, cycle_in_phase=0)
            if count < st.active_burst:
                return replace(st, cycle_in_phase=count + 1)
            return st

        if st.phase == Phase.DISTRIBUTE:
            if count == cfg.distribute_cycles - 1:
                return replace(st, phase=Phase.COMPUTE, cycle_in_phase=0)
            return replace(st, cycle_in_phase=count + 1)

        if st.phase == Phase.COMPUTE:
            if count == cfg.compute_cycles - 1:
                return replace(st, phase=Phase.CLEANUP, cycle_in_phase=0)
            return replace(st, cycle_in_phase=count + 1)

        if st.phase == Phase.CLEANUP:
            if count == cfg.cleanup_cycles - 1:
                return replace(st, phase=Phase.UNLOAD, cycle_in_phase=0, captured=False)
            return replace(st, cycle_in_phase=count + 1)

        # UNLOAD
        if not st.captured:
            if inputs.grant:
                return replace(st, captured=True, active_burst=inputs.burst, cycle_in_phase=0)
            return st
        if not inputs.grant:
            return replace(st, phase=Phase.RESET, cycle_in_phase=0, captured=False)
        if count < st.active_burst:
            return replace(st, cycle_in_phase=count + 1)
        return st

    def commit(self, state: ControllerState) -> None:
        if state.phase != self.state.phase:
            logger.debug("%s -> %s", self.state.phase.name, state.phase.name)
        self.state = state

    def step(self, inputs: ControllerInputs) -> ControllerOutputs:
        """Drive the current cycle and advance one clock edge."""
        out = self.outputs(inputs)
        self.commit(self.evaluate(inputs))
        return out
