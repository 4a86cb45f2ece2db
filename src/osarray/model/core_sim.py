"""
CoreSim - Arbiter and controller models wired as in ControlCore.

The controller sits on arbiter slot ``config.controller_core``; the other
slots are driven through ``ext_req``/``ext_ack``. Within a cycle the
controller's outputs are computed first from the arbiter's registered grant,
then merged into the arbiter's request vector, and finally both models clock.

Example:
    >>> sim = CoreSim(CoreConfig(grid_size=4, load_burst_length=3))
    >>> records = sim.run_until(lambda r: r.phase == Phase.COMPUTE)
    >>> [r.cycle for r in records if r.phase == Phase.DISTRIBUTE]
    [5, 6, 7, 8, 9, 10, 11]
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..config import CoreConfig
from ..util.bits import check_width, mask, set_bit
from ..util.codes import Phase, Violation
from .arbiter import ArbiterInputs, ArbiterModel, BurstConfig
from .controller import ControllerInputs, ControllerModel, ControllerOutputs

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickRecord:
    """Observable values of one cycle, taken before the clock edge."""

    cycle: int
    phase: Phase
    count: int
    grant: int
    burst_len: int | None
    burst_addr: int | None
    loaded: int
    arb_error: bool
    violation: Violation
    error: bool
    outputs: ControllerOutputs

    @property
    def req(self) -> bool:
        return self.outputs.req


class CoreSim:
    """
    Cycle-level simulation of one controller sharing the bus.

    Attributes:
        config: Shared configuration
        arbiter: Arbiter model
        controller: Controller model
        cycle: Cycles simulated since construction or the last reset
    """

    def __init__(self, config: CoreConfig):
        self.config = config
        self.arbiter = ArbiterModel(config)
        self.controller = ControllerModel(config)
        self.cycle = 0

    def reset(self) -> None:
        self.arbiter.reset()
        self.controller.reset()
        self.cycle = 0

    @property
    def phase(self) -> Phase:
        return self.controller.phase

    def step(
        self,
        ready: bool = True,
        ext_req: int = 0,
        ext_ack: int | None = None,
        burst_config: BurstConfig | None = None,
        reset: bool = False,
    ) -> TickRecord:
        """Simulate one cycle and return what was visible during it."""
        cfg = self.config
        n = cfg.num_cores
        core = cfg.controller_core

        check_width(ext_req, n, "ext_req")
        if ext_ack is None:
            ext_ack = mask(n)
        check_width(ext_ack, n, "ext_ack")

        arb = self.arbiter
        ctl = self.controller
        own_grant = bool((arb.grant >> core) & 1)

        ctl_inputs = ControllerInputs(
            ready=ready,
            grant=own_grant,
            burst=arb.burst_len or 0,
            arb_error=arb.error,
            clear=reset,
        )
        outputs = ctl.outputs(ctl_inputs)

        record = TickRecord(
            cycle=self.cycle,
            phase=ctl.phase,
            count=ctl.state.cycle_in_phase,
            grant=arb.grant,
            burst_len=arb.burst_len,
            burst_addr=arb.burst_addr,
            loaded=arb.loaded,
            arb_error=arb.error,
            violation=arb.violation,
            error=ctl.error,
            outputs=outputs,
        )

        arb_inputs = ArbiterInputs(
            req=set_bit(ext_req, core, outputs.req),
            ack=set_bit(ext_ack, core, outputs.ack),
            phase=ctl.phase if own_grant else None,
            config=burst_config,
            clear=reset,
        )

        next_arb = arb.evaluate(arb_inputs)
        next_ctl = ctl.evaluate(ctl_inputs)

        if next_arb.grant and next_arb.grant != arb.grant:
            logger.debug("cycle %d: grant -> %#x", self.cycle, next_arb.grant)

        arb.commit(next_arb)
        ctl.commit(next_ctl)
        self.cycle = 0 if reset else self.cycle + 1
        return record

    def run(self, cycles: int, **kwargs) -> list[TickRecord]:
        """Step ``cycles`` times with the same inputs."""
        return [self.step(**kwargs) for _ in range(cycles)]

    def run_until(
        self,
        predicate: Callable[[TickRecord], bool],
        max_cycles: int = 1000,
        **kwargs,
    ) -> list[TickRecord]:
        """
        Step until ``predicate`` holds for a record.

        The matching record is included. Raises RuntimeError if it never
        matches within ``max_cycles``.
        """
        records = []
        for _ in range(max_cycles):
            record = self.step(**kwargs)
            records.append(record)
            if predicate(record):
                return records
        raise RuntimeError(f"condition not reached within {max_cycles} cycles")
