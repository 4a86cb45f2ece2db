"""
Controller - Phase sequencer for one output-stationary core.

The controller owns one arbiter slot and walks a fixed phase sequence:

    RESET -> LOAD -> DISTRIBUTE -> COMPUTE -> CLEANUP -> UNLOAD -> RESET

RESET:
    Requests the bus and acknowledges while ``ready`` is high, so a core
    that is held not ready is never granted. Seeing ``ready`` and ``grant``
    together latches the arbiter's burst length and enters LOAD.

LOAD:
    While ``count < active_burst`` every memory bank is written at address
    ``count``. The request is held for as long as the grant; one cycle after
    the grant drops the controller enters DISTRIBUTE.

DISTRIBUTE (2S - 1 cycles):
    Operands are injected as a wavefront. Bank j reads address ``count - j``
    while ``j <= count < j + S - 1``. Delay group g is enabled from cycle g
    to the end of the phase. The global buffer is stalled (ready, not
    driving).

COMPUTE / CLEANUP:
    Every PE is enabled for ``compute_cycles`` cycles with ``rw=1`` and then
    for ``cleanup_cycles`` cycles with ``rw=0`` while the pipeline drains.

UNLOAD:
    Requests the bus until granted, latches the new burst length, then for
    ``active_burst`` cycles writes the global buffer at address ``count``
    while the PEs stream results. One cycle after the grant drops the
    controller returns to RESET.

An arbiter error seen outside RESET latches the controller's own ``error``.
The phase register then freezes and every request, acknowledge and port
output reads zero until ``clear``.

Wavefront for S = 3 (bank reads, address in brackets):
    count:   0    1    2    3    4
    bank 0: [0]  [1]   -    -    -
    bank 1:  -   [0]  [1]   -    -
    bank 2:  -    -   [0]  [1]   -
    groups: 0    0-1  0-2  0-3  0-4
"""

from amaranth import Module, ResetInserter, Signal
from amaranth.lib.wiring import Component, In, Out

from ..config import CoreConfig
from ..schedule import DelayGroupTable
from ..util.codes import PHASE_BITS, Phase


class Controller(Component):
    """
    Output-stationary phase controller.

    Ports:
        Arbiter Interface:
            ready: Core is ready to take a burst
            grant: This core's grant bit
            burst: Burst length granted by the arbiter
            arb_error: Arbiter error flag
            req: Bus request
            ack: Grant acknowledge

        Memory Banks (one per grid row):
            mem_ready: Bank enable
            mem_rw: 1 = write, 0 = read (valid only where mem_drive is set)
            mem_drive: Controller drives rw/address of the bank
            mem_addr_{j}: Address for bank j

        Global Buffer Banks (one per grid row):
            glb_ready, glb_rw, glb_drive, glb_addr_{j}: As for the memory banks

        PE Grid (row-major index):
            pe_ready: PE enable
            pe_rw: 1 = accumulate new operands
            pe_stream: 1 = shift results toward the global buffer

        Status:
            phase: Current phase (util.codes.Phase)
            count: Cycle counter within the phase
            active_burst: Burst length latched for LOAD/UNLOAD
            error: Sticky error flag

        clear: Synchronous reset of the controller

    Parameters:
        config: CoreConfig with grid size and phase lengths
    """

    def __init__(self, config: CoreConfig):
        self.config = config
        self.groups = DelayGroupTable(config.grid_size)

        s = config.grid_size
        n_pe = config.pe_count

        ports = {
            # Arbiter interface
            "ready": In(1),
            "grant": In(1),
            "burst": In(config.burst_width),
            "arb_error": In(1),
            "req": Out(1),
            "ack": Out(1),
            # Memory banks
            "mem_ready": Out(s),
            "mem_rw": Out(s),
            "mem_drive": Out(s),
            # Global buffer
            "glb_ready": Out(s),
            "glb_rw": Out(s),
            "glb_drive": Out(s),
            # PE grid
            "pe_ready": Out(n_pe),
            "pe_rw": Out(n_pe),
            "pe_stream": Out(n_pe),
            # Status
            "phase": Out(PHASE_BITS),
            "count": Out(range(config.counter_limit + 1)),
            "active_burst": Out(config.burst_width),
            "error": Out(1),
            # Control
            "clear": In(1),
        }

        # Per-bank address ports
        for j in range(s):
            ports[f"mem_addr_{j}"] = Out(config.mem_addr_bits)
            ports[f"glb_addr_{j}"] = Out(config.glb_addr_bits)

        super().__init__(ports)

    def elaborate(self, _platform):
        m = Module()
        cfg = self.config
        s = cfg.grid_size
        n_pe = cfg.pe_count
        last_distribute = cfg.distribute_cycles - 1

        all_banks = (1 << s) - 1
        all_pes = (1 << n_pe) - 1

        # =================================================================
        # Registers
        # =================================================================

        phase = Signal(PHASE_BITS, init=Phase.RESET)
        count = Signal(range(cfg.counter_limit + 1))
        active_burst = Signal(cfg.burst_width)
        captured = Signal()
        error = Signal()

        m.d.comb += [
            self.phase.eq(phase),
            self.count.eq(count),
            self.active_burst.eq(active_burst),
            self.error.eq(error),
        ]

        mem_addr = [getattr(self, f"mem_addr_{j}") for j in range(s)]
        glb_addr = [getattr(self, f"glb_addr_{j}") for j in range(s)]

        # =================================================================
        # Error Latch
        # =================================================================

        fault = Signal()
        m.d.comb += fault.eq(~error & self.arb_error & (phase != Phase.RESET))

        with m.If(fault):
            m.d.sync += error.eq(1)

        # =================================================================
        # Phase Sequencer
        # =================================================================

        # Halted: phase and count freeze, outputs keep their zero defaults
        with m.If(~error & ~fault):
            with m.Switch(phase):
                with m.Case(Phase.RESET):
                    m.d.comb += [
                        self.req.eq(self.ready),
                        self.ack.eq(self.ready),
                    ]
                    with m.If(self.ready & self.grant):
                        m.d.sync += [
                            phase.eq(Phase.LOAD),
                            active_burst.eq(self.burst),
                            count.eq(0),
                        ]

                with m.Case(Phase.LOAD):
                    m.d.comb += [
                        self.req.eq(self.grant),
                        self.ack.eq(1),
                    ]
                    with m.If(count < active_burst):
                        m.d.comb += [
                            self.mem_ready.eq(all_banks),
                            self.mem_rw.eq(all_banks),
                            self.mem_drive.eq(all_banks),
                        ]
                        m.d.comb += [addr.eq(count) for addr in mem_addr]
                        m.d.sync += count.eq(count + 1)

                    with m.If(~self.grant):
                        m.d.sync += [
                            phase.eq(Phase.DISTRIBUTE),
                            count.eq(0),
                        ]

                with m.Case(Phase.DISTRIBUTE):
                    # Global buffer stalled
                    m.d.comb += self.glb_ready.eq(all_banks)

                    for j in range(s):
                        with m.If((count >= j) & (count < j + s - 1)):
                            m.d.comb += [
                                self.mem_ready[j].eq(1),
                                self.mem_drive[j].eq(1),
                                mem_addr[j].eq(count - j),
                            ]

                    for idx in range(n_pe):
                        enabled = count >= self.groups.group_of_index(idx)
                        m.d.comb += [
                            self.pe_ready[idx].eq(enabled),
                            self.pe_rw[idx].eq(enabled),
                        ]

                    with m.If(count == last_distribute):
                        m.d.sync += [
                            phase.eq(Phase.COMPUTE),
                            count.eq(0),
                        ]
                    with m.Else():
                        m.d.sync += count.eq(count + 1)

                with m.Case(Phase.COMPUTE):
                    m.d.comb += [
                        self.pe_ready.eq(all_pes),
                        self.pe_rw.eq(all_pes),
                    ]
                    with m.If(count == cfg.compute_cycles - 1):
                        m.d.sync += [
                            phase.eq(Phase.CLEANUP),
                            count.eq(0),
                        ]
                    with m.Else():
                        m.d.sync += count.eq(count + 1)

                with m.Case(Phase.CLEANUP):
                    m.d.comb += self.pe_ready.eq(all_pes)
                    with m.If(count == cfg.cleanup_cycles - 1):
                        m.d.sync += [
                            phase.eq(Phase.UNLOAD),
                            count.eq(0),
                            captured.eq(0),
                        ]
                    with m.Else():
                        m.d.sync += count.eq(count + 1)

                with m.Case(Phase.UNLOAD):
                    m.d.comb += [
                        self.req.eq(~captured | self.grant),
                        self.ack.eq(1),
                        self.pe_ready.eq(all_pes),
                    ]

                    with m.If(~captured):
                        with m.If(self.grant):
                            m.d.sync += [
                                captured.eq(1),
                                active_burst.eq(self.burst),
                                count.eq(0),
                            ]
                    with m.Else():
                        with m.If(count < active_burst):
                            m.d.comb += [
                                self.glb_ready.eq(all_banks),
                                self.glb_rw.eq(all_banks),
                                self.glb_drive.eq(all_banks),
                                self.pe_stream.eq(all_pes),
                            ]
                            m.d.comb += [addr.eq(count) for addr in glb_addr]
                            m.d.sync += count.eq(count + 1)

                        with m.If(~self.grant):
                            m.d.sync += [
                                phase.eq(Phase.RESET),
                                count.eq(0),
                                captured.eq(0),
                            ]

                with m.Default():
                    m.d.sync += phase.eq(Phase.RESET)

        return ResetInserter(self.clear)(m)
