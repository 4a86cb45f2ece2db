"""
ControlCore - Top-level integration of the arbiter and one controller.

The controller occupies arbiter slot ``config.controller_core``. The other
request and acknowledge lines come from outside (``ext_req``/``ext_ack``) and
stand in for the remaining cores sharing the bus; the corresponding bits of
the external vectors at the controller's slot are ignored.

Wiring:
    arbiter.req[core]   <- controller.req
    arbiter.ack[core]   <- controller.ack
    arbiter.phase       <- controller.phase (checked while core is granted)
    controller.grant    <- arbiter.grant[core]
    controller.burst    <- arbiter.burst_len
    controller.arb_error <- arbiter.error
    clear               -> both
"""

from amaranth import Cat, Module
from amaranth.lib.wiring import Component, In, Out

from .arbiter import Arbiter
from .config import CoreConfig
from .controller import Controller
from .util.codes import PHASE_BITS, VIOLATION_BITS


class ControlCore(Component):
    """
    Arbiter plus controller for one core of the output-stationary array.

    Ports:
        Bus Interface:
            ext_req: Requests of the other cores
            ext_ack: Acknowledges of the other cores
            cfg_valid, cfg_len, cfg_rw, cfg_load, cfg_unload: Burst override
            grant: Arbiter grant vector
            busy, burst_len, burst_rw, burst_load, burst_unload, burst_addr:
                Current burst
            pointer, loaded, arb_error, violation: Arbiter status

        Controller Interface:
            ready: Core ready
            req, ack: Controller's own request and acknowledge
            phase, count, active_burst, error: Controller status
            mem_*, glb_*, pe_*: Downstream ports (see Controller)

        clear: Synchronous reset of arbiter and controller

    Parameters:
        config: CoreConfig shared by both blocks
    """

    def __init__(self, config: CoreConfig):
        self.config = config

        n = config.num_cores
        bw = config.burst_width
        s = config.grid_size
        n_pe = config.pe_count

        ports = {
            # Bus interface
            "ext_req": In(n),
            "ext_ack": In(n),
            "cfg_valid": In(1),
            "cfg_len": In(bw),
            "cfg_rw": In(1),
            "cfg_load": In(1),
            "cfg_unload": In(1),
            "grant": Out(n),
            "busy": Out(1),
            "burst_len": Out(bw),
            "burst_rw": Out(1),
            "burst_load": Out(1),
            "burst_unload": Out(1),
            "burst_addr": Out(bw),
            "pointer": Out(range(max(n, 2))),
            "loaded": Out(n),
            "arb_error": Out(1),
            "violation": Out(VIOLATION_BITS),
            # Controller interface
            "ready": In(1),
            "req": Out(1),
            "ack": Out(1),
            "phase": Out(PHASE_BITS),
            "count": Out(range(config.counter_limit + 1)),
            "active_burst": Out(bw),
            "error": Out(1),
            "mem_ready": Out(s),
            "mem_rw": Out(s),
            "mem_drive": Out(s),
            "glb_ready": Out(s),
            "glb_rw": Out(s),
            "glb_drive": Out(s),
            "pe_ready": Out(n_pe),
            "pe_rw": Out(n_pe),
            "pe_stream": Out(n_pe),
            # Control
            "clear": In(1),
        }
        for j in range(s):
            ports[f"mem_addr_{j}"] = Out(config.mem_addr_bits)
            ports[f"glb_addr_{j}"] = Out(config.glb_addr_bits)

        super().__init__(ports)

    def elaborate(self, _platform):
        m = Module()
        cfg = self.config
        n = cfg.num_cores
        core = cfg.controller_core

        m.submodules.arbiter = arbiter = Arbiter(cfg)
        m.submodules.controller = controller = Controller(cfg)

        # =====================================================================
        # Request / Acknowledge Merge
        # =====================================================================

        req_bits = [controller.req if i == core else self.ext_req[i] for i in range(n)]
        ack_bits = [controller.ack if i == core else self.ext_ack[i] for i in range(n)]

        m.d.comb += [
            arbiter.req.eq(Cat(*req_bits)),
            arbiter.ack.eq(Cat(*ack_bits)),
            arbiter.phase.eq(controller.phase),
            arbiter.phase_valid.eq(arbiter.grant[core]),
            arbiter.cfg_valid.eq(self.cfg_valid),
            arbiter.cfg_len.eq(self.cfg_len),
            arbiter.cfg_rw.eq(self.cfg_rw),
            arbiter.cfg_load.eq(self.cfg_load),
            arbiter.cfg_unload.eq(self.cfg_unload),
            arbiter.clear.eq(self.clear),
        ]

        m.d.comb += [
            controller.ready.eq(self.ready),
            controller.grant.eq(arbiter.grant[core]),
            controller.burst.eq(arbiter.burst_len),
            controller.arb_error.eq(arbiter.error),
            controller.clear.eq(self.clear),
        ]

        # =====================================================================
        # Outputs
        # =====================================================================

        m.d.comb += [
            self.grant.eq(arbiter.grant),
            self.busy.eq(arbiter.busy),
            self.burst_len.eq(arbiter.burst_len),
            self.burst_rw.eq(arbiter.burst_rw),
            self.burst_load.eq(arbiter.burst_load),
            self.burst_unload.eq(arbiter.burst_unload),
            self.burst_addr.eq(arbiter.burst_addr),
            self.pointer.eq(arbiter.pointer),
            self.loaded.eq(arbiter.loaded),
            self.arb_error.eq(arbiter.error),
            self.violation.eq(arbiter.violation),
        ]

        for name in (
            "req",
            "ack",
            "phase",
            "count",
            "active_burst",
            "error",
            "mem_ready",
            "mem_rw",
            "mem_drive",
            "glb_ready",
            "glb_rw",
            "glb_drive",
            "pe_ready",
            "pe_rw",
            "pe_stream",
        ):
            m.d.comb += getattr(self, name).eq(getattr(controller, name))

        for j in range(cfg.grid_size):
            m.d.comb += [
                getattr(self, f"mem_addr_{j}").eq(getattr(controller, f"mem_addr_{j}")),
                getattr(self, f"glb_addr_{j}").eq(getattr(controller, f"glb_addr_{j}")),
            ]

        return m
