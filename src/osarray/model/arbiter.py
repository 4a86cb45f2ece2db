"""
Cycle-accurate reference model of the bus arbiter.

The model mirrors :class:`osarray.arbiter.Arbiter` tick for tick. Each call
to :meth:`ArbiterModel.step` evaluates the next state from the current state
and the inputs applied during the current cycle, then commits it; the
outputs read afterwards are the ones visible in the following cycle.

Outputs that only exist during a burst (length, direction, address) read
``None`` while the bus is idle.
"""

import logging
from dataclasses import dataclass, replace

from ..config import CoreConfig
from ..util.bits import check_width, mask, rotate_scan, set_bit
from ..util.codes import Phase, Violation, phase_allows
from .burst import BurstTracker, BurstTransfer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BurstConfig:
    """Burst override applied on the granting cycle (``cfg_*`` ports)."""

    length: int = 0
    rw: int = 0
    load_enable: bool = False
    unload_enable: bool = False


@dataclass(frozen=True)
class ArbiterInputs:
    """
    Values on the arbiter's input ports during one cycle.

    Attributes:
        req: Request vector
        ack: Acknowledge vector (None = every core acknowledges)
        phase: Phase of the granted core's controller (None = not reported)
        config: Burst override (None = derive from the membership bitmap)
        clear: Synchronous reset
    """

    req: int = 0
    ack: int | None = None
    phase: Phase | None = None
    config: BurstConfig | None = None
    clear: bool = False


@dataclass(frozen=True)
class ArbiterState:
    """Registered arbiter state."""

    pending: int = 0
    pointer: int = 0
    tracker: BurstTracker | None = None
    loaded: int = 0
    error: bool = False
    violation: Violation = Violation.NONE

    @property
    def transfer(self) -> BurstTransfer | None:
        return self.tracker.transfer if self.tracker is not None else None

    @property
    def grant(self) -> int:
        if self.tracker is None:
            return 0
        return 1 << self.tracker.transfer.core_id


class ArbiterModel:
    """
    Round-robin burst arbiter.

    Example:
        >>> arb = ArbiterModel(CoreConfig(num_cores=4))
        >>> arb.step(ArbiterInputs(req=0b0110))
        >>> arb.grant
        2
        >>> arb.burst_addr
        0
    """

    def __init__(self, config: CoreConfig):
        self.config = config
        self.state = ArbiterState()

    def reset(self) -> None:
        self.state = ArbiterState()

    # =========================================================================
    # Outputs
    # =========================================================================

    @property
    def grant(self) -> int:
        return self.state.grant

    @property
    def busy(self) -> bool:
        return self.state.tracker is not None

    @property
    def pointer(self) -> int:
        return self.state.pointer

    @property
    def loaded(self) -> int:
        return self.state.loaded

    @property
    def error(self) -> bool:
        return self.state.error

    @property
    def violation(self) -> Violation:
        return self.state.violation

    @property
    def burst_len(self) -> int | None:
        transfer = self.state.transfer
        return transfer.length if transfer is not None else None

    @property
    def burst_rw(self) -> int | None:
        transfer = self.state.transfer
        return transfer.rw if transfer is not None else None

    @property
    def burst_load(self) -> bool | None:
        transfer = self.state.transfer
        return transfer.load_enable if transfer is not None else None

    @property
    def burst_unload(self) -> bool | None:
        transfer = self.state.transfer
        return transfer.unload_enable if transfer is not None else None

    @property
    def burst_addr(self) -> int | None:
        tracker = self.state.tracker
        return tracker.address if tracker is not None else None

    @property
    def burst_remaining(self) -> int | None:
        tracker = self.state.tracker
        return tracker.remaining if tracker is not None else None

    # =========================================================================
    # Next-State Logic
    # =========================================================================

    def default_burst(self, core: int, loaded: int) -> BurstConfig:
        """Burst configuration a core receives without an override."""
        cfg = self.config
        if (loaded >> core) & 1:
            return BurstConfig(cfg.unload_burst_length, 0, False, True)
        return BurstConfig(cfg.load_burst_length, 1, True, False)

    def burst_depth(self, burst: BurstConfig) -> int:
        """
        Longest burst the target banks can take without reusing an address.

        Loads land in the memory banks and unloads in the global buffer. A
        burst with neither enable may be taken in either phase, so it has
        to fit both.
        """
        cfg = self.config
        if burst.unload_enable:
            return cfg.glb_depth
        if burst.load_enable:
            return cfg.mem_depth
        return min(cfg.mem_depth, cfg.glb_depth)

    def _check(self, state: ArbiterState, req: int, ack: int, phase: Phase | None) -> Violation:
        grant = state.grant
        if not ack & grant:
            return Violation.GRANT_WITHDRAWN
        if not req & grant:
            return Violation.REQUEST_WITHDRAWN
        transfer = state.transfer
        if phase is not None and not phase_allows(
            phase, transfer.load_enable, transfer.unload_enable
        ):
            return Violation.PHASE_SEQUENCE
        return Violation.NONE

    def evaluate(self, inputs: ArbiterInputs) -> ArbiterState:
        """Compute the state after the next clock edge without committing it."""
        n = self.config.num_cores

        if inputs.clear:
            return ArbiterState()

        req = check_width(inputs.req, n, "req")
        ack = mask(n) if inputs.ack is None else check_width(inputs.ack, n, "ack")
        state = replace(self.state, pending=req)

        if state.tracker is not None:
            transfer = state.tracker.transfer
            fault = self._check(state, req, ack, inputs.phase)
            if fault != Violation.NONE:
                logger.warning(
                    "core %d: %s during burst (%d of %d done)",
                    transfer.core_id,
                    fault.name,
                    state.tracker.offset,
                    transfer.length,
                )
                return replace(state, tracker=None, error=True, violation=fault)

            tracker = state.tracker.advance()
            if tracker is not None:
                return replace(state, tracker=tracker)

            loaded = state.loaded
            if transfer.load_enable:
                loaded = set_bit(loaded, transfer.core_id, True)
            elif transfer.unload_enable:
                loaded = set_bit(loaded, transfer.core_id, False)
            logger.debug("core %d: burst of %d complete", transfer.core_id, transfer.length)
            return replace(state, tracker=None, loaded=loaded)

        if state.error:
            return state

        override = inputs.config
        if override is not None and override.load_enable and override.unload_enable:
            logger.warning("burst override requests both load and unload")
            return replace(state, error=True, violation=Violation.ILLEGAL_CONFIG)

        pick = rotate_scan(req, state.pointer, n)
        if pick is None:
            return state

        default = self.default_burst(pick, state.loaded)
        if override is None:
            chosen = default
        else:
            check_width(override.length, self.config.burst_width, "cfg_len")
            chosen = replace(override, length=override.length or default.length)
            depth = self.burst_depth(chosen)
            if chosen.length > depth:
                logger.warning(
                    "core %d: burst of %d exceeds bank depth %d", pick, chosen.length, depth
                )
                return replace(state, error=True, violation=Violation.ILLEGAL_CONFIG)

        transfer = BurstTransfer(
            core_id=pick,
            length=chosen.length,
            rw=chosen.rw,
            load_enable=chosen.load_enable,
            unload_enable=chosen.unload_enable,
        )
        logger.debug(
            "grant core %d: length=%d rw=%d load=%d unload=%d",
            pick,
            transfer.length,
            transfer.rw,
            transfer.load_enable,
            transfer.unload_enable,
        )
        return replace(state, pointer=(pick + 1) % n, tracker=BurstTracker.start(transfer))

    def commit(self, state: ArbiterState) -> None:
        self.state = state

    def step(self, inputs: ArbiterInputs) -> None:
        """Advance one clock cycle."""
        self.commit(self.evaluate(inputs))

