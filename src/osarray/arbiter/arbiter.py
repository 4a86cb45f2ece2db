"""
Arbiter - Round-robin burst arbitration of the shared memory bus.

Each core raises a request bit. When the bus is idle the arbiter scans the
request vector starting at ``pointer`` (one past the last granted core),
wrapping around, and grants the first requester. The grant is one-hot and
holds for the whole burst; the pointer moves one past the granted core on
every grant, so continuously requesting cores are served in rotation.

Burst configuration:
    By default the arbiter decides from its ``loaded`` membership bitmap:
    a core that is not loaded gets a load burst (write, load_enable,
    ``load_burst_length`` beats); a loaded core gets an unload burst
    (read, unload_enable, ``unload_burst_length`` beats). Completing a load
    sets the core's bit, completing an unload clears it.

    Asserting ``cfg_valid`` on the granting cycle overrides the configuration
    with ``cfg_len``/``cfg_rw``/``cfg_load``/``cfg_unload``. A zero
    ``cfg_len`` keeps the default length.

Protocol violations (sticky ``error``, burst aborted, ``violation`` code):
    - granted core's ``ack`` low during the burst
    - granted core's ``req`` low during the burst
    - override with both load and unload enable, flagged on any idle cycle
      whether or not a core is requesting (no grant is issued)
    - override longer than the target banks: ``mem_depth`` for loads,
      ``glb_depth`` for unloads, the smaller of the two otherwise (no grant)
    - ``phase_valid`` with a phase that may not overlap this burst

While ``error`` is set no new grant is issued. ``clear`` returns every
register to its reset value on the next clock edge.

Timing (one core, burst length 3):
    cycle 0: req=0001                      grant=0000
    cycle 1: req=0001 burst_addr=0         grant=0001 busy=1
    cycle 2: req=0001 burst_addr=1         grant=0001
    cycle 3: req=0001 burst_addr=2         grant=0001 (last)
    cycle 4:                               grant=0000 loaded=0001
"""

from amaranth import Module, Mux, ResetInserter, Signal
from amaranth.lib.wiring import Component, In, Out

from ..config import CoreConfig
from ..util.codes import PHASE_BITS, VIOLATION_BITS, Phase, Violation
from .burst import BurstTracker


class Arbiter(Component):
    """
    Shared-bus arbiter with rotating priority and burst transfers.

    Ports:
        Request Interface:
            req: Request bit per core
            ack: Grant acknowledge per core (must stay high while granted)
            phase: Controller phase of the granted core
            phase_valid: ``phase`` belongs to the granted core

        Configuration Override:
            cfg_valid: Use the fields below for the next grant
            cfg_len: Burst length (0 = default for the core)
            cfg_rw: Direction (1 = write into the core's memory)
            cfg_load: Burst loads the core
            cfg_unload: Burst unloads the core

        Grant Interface:
            grant: One-hot grant
            busy: A burst is in flight
            burst_len: Length of the current burst
            burst_rw: Direction of the current burst
            burst_load: Current burst loads the core
            burst_unload: Current burst unloads the core
            burst_addr: Current bus address
            burst_remaining: Cycles left in the current burst

        Status:
            pointer: Core scanned first on the next arbitration
            loaded: Membership bitmap of loaded cores
            error: Sticky protocol violation flag
            violation: Violation code (see util.codes.Violation)

        clear: Synchronous reset of all arbiter state

    Parameters:
        config: CoreConfig with core count and burst settings
    """

    def __init__(self, config: CoreConfig):
        self.config = config

        n = config.num_cores
        bw = config.burst_width

        super().__init__(
            {
                # Request interface
                "req": In(n),
                "ack": In(n),
                "phase": In(PHASE_BITS),
                "phase_valid": In(1),
                # Configuration override
                "cfg_valid": In(1),
                "cfg_len": In(bw),
                "cfg_rw": In(1),
                "cfg_load": In(1),
                "cfg_unload": In(1),
                # Grant interface
                "grant": Out(n),
                "busy": Out(1),
                "burst_len": Out(bw),
                "burst_rw": Out(1),
                "burst_load": Out(1),
                "burst_unload": Out(1),
                "burst_addr": Out(bw),
                "burst_remaining": Out(bw),
                # Status
                "pointer": Out(range(max(n, 2))),
                "loaded": Out(n),
                "error": Out(1),
                "violation": Out(VIOLATION_BITS),
                # Control
                "clear": In(1),
            }
        )

    def elaborate(self, _platform):
        m = Module()
        cfg = self.config
        n = cfg.num_cores
        bw = cfg.burst_width

        m.submodules.tracker = tracker = BurstTracker(bw)

        # =================================================================
        # Registers
        # =================================================================

        grant = Signal(n)
        pointer = Signal(range(max(n, 2)))
        loaded = Signal(n)
        error = Signal()
        violation = Signal(VIOLATION_BITS)

        # Latched burst configuration
        len_reg = Signal(bw)
        rw_reg = Signal()
        load_reg = Signal()
        unload_reg = Signal()

        # =================================================================
        # Outputs
        # =================================================================

        m.d.comb += [
            self.grant.eq(grant),
            self.busy.eq(tracker.active),
            self.pointer.eq(pointer),
            self.loaded.eq(loaded),
            self.error.eq(error),
            self.violation.eq(violation),
        ]

        with m.If(tracker.active):
            m.d.comb += [
                self.burst_len.eq(len_reg),
                self.burst_rw.eq(rw_reg),
                self.burst_load.eq(load_reg),
                self.burst_unload.eq(unload_reg),
                self.burst_addr.eq(tracker.addr),
                self.burst_remaining.eq(tracker.remaining),
            ]

        m.d.comb += [
            tracker.start.eq(0),
            tracker.length.eq(0),
            tracker.abort.eq(self.clear),
        ]

        # =================================================================
        # Round-Robin Scan
        # =================================================================

        found = Signal()
        pick = Signal(range(max(n, 2)))

        with m.Switch(pointer):
            for p in range(n):
                with m.Case(p):
                    # Walk from the farthest candidate back to the pointer;
                    # the last matching assignment (lowest offset) wins.
                    for offset in reversed(range(n)):
                        core = (p + offset) % n
                        with m.If(self.req[core]):
                            m.d.comb += [
                                found.eq(1),
                                pick.eq(core),
                            ]

        # =================================================================
        # Burst Configuration for the Picked Core
        # =================================================================

        pick_loaded = Signal()
        default_len = Signal(bw)
        next_len = Signal(bw)
        next_rw = Signal()
        next_load = Signal()
        next_unload = Signal()

        m.d.comb += [
            pick_loaded.eq(loaded.bit_select(pick, 1)),
            default_len.eq(Mux(pick_loaded, cfg.unload_burst_length, cfg.load_burst_length)),
        ]

        with m.If(self.cfg_valid):
            m.d.comb += [
                next_len.eq(Mux(self.cfg_len == 0, default_len, self.cfg_len)),
                next_rw.eq(self.cfg_rw),
                next_load.eq(self.cfg_load),
                next_unload.eq(self.cfg_unload),
            ]
        with m.Else():
            m.d.comb += [
                next_len.eq(default_len),
                next_rw.eq(~pick_loaded),
                next_load.eq(~pick_loaded),
                next_unload.eq(pick_loaded),
            ]

        # Override bursts must fit the banks they target
        depth_limit = Signal(range(max(cfg.mem_depth, cfg.glb_depth) + 1))
        with m.If(self.cfg_unload):
            m.d.comb += depth_limit.eq(cfg.glb_depth)
        with m.Elif(self.cfg_load):
            m.d.comb += depth_limit.eq(cfg.mem_depth)
        with m.Else():
            m.d.comb += depth_limit.eq(min(cfg.mem_depth, cfg.glb_depth))

        # =================================================================
        # Protocol Checks on the Granted Core
        # =================================================================

        granted_req = Signal()
        granted_ack = Signal()
        phase_ok = Signal()
        fault = Signal()
        fault_kind = Signal(VIOLATION_BITS)

        m.d.comb += [
            granted_req.eq((self.req & grant).any()),
            granted_ack.eq((self.ack & grant).any()),
        ]

        with m.Switch(self.phase):
            with m.Case(Phase.RESET, Phase.LOAD):
                m.d.comb += phase_ok.eq(~unload_reg)
            with m.Case(Phase.UNLOAD):
                m.d.comb += phase_ok.eq(~load_reg)
            with m.Default():
                m.d.comb += phase_ok.eq(0)

        with m.If(~granted_ack):
            m.d.comb += [fault.eq(1), fault_kind.eq(Violation.GRANT_WITHDRAWN)]
        with m.Elif(~granted_req):
            m.d.comb += [fault.eq(1), fault_kind.eq(Violation.REQUEST_WITHDRAWN)]
        with m.Elif(self.phase_valid & ~phase_ok):
            m.d.comb += [fault.eq(1), fault_kind.eq(Violation.PHASE_SEQUENCE)]

        # =================================================================
        # Grant State Machine
        # =================================================================

        with m.If(tracker.active):
            with m.If(fault):
                m.d.comb += tracker.abort.eq(1)
                m.d.sync += [
                    grant.eq(0),
                    error.eq(1),
                    violation.eq(fault_kind),
                ]
            with m.Elif(tracker.last):
                m.d.sync += grant.eq(0)
                with m.If(load_reg):
                    m.d.sync += loaded.eq(loaded | grant)
                with m.Elif(unload_reg):
                    m.d.sync += loaded.eq(loaded & ~grant)

        with m.Elif(~error):
            with m.If(self.cfg_valid & self.cfg_load & self.cfg_unload):
                m.d.sync += [
                    error.eq(1),
                    violation.eq(Violation.ILLEGAL_CONFIG),
                ]
            with m.Elif(found & self.cfg_valid & (next_len > depth_limit)):
                m.d.sync += [
                    error.eq(1),
                    violation.eq(Violation.ILLEGAL_CONFIG),
                ]
            with m.Elif(found):
                m.d.comb += [
                    tracker.start.eq(1),
                    tracker.length.eq(next_len),
                ]
                m.d.sync += [
                    len_reg.eq(next_len),
                    rw_reg.eq(next_rw),
                    load_reg.eq(next_load),
                    unload_reg.eq(next_unload),
                ]
                for i in range(n):
                    m.d.sync += grant[i].eq(pick == i)
                with m.If(pick == n - 1):
                    m.d.sync += pointer.eq(0)
                with m.Else():
                    m.d.sync += pointer.eq(pick + 1)

        return ResetInserter(self.clear)(m)
