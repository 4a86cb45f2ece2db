"""
BurstTracker - Length and address bookkeeping for one in-flight burst.

A burst of length L keeps ``active`` high for exactly L cycles. The address
starts at 0 and advances by one per active cycle, so the bus sees addresses
0..L-1. ``last`` flags the final active cycle; the tracker goes idle on the
following clock edge.

Timing (L = 3):
    edge 0: start=1, length=3
    cycle 1: active=1 remaining=3 addr=0
    cycle 2: active=1 remaining=2 addr=1
    cycle 3: active=1 remaining=1 addr=2 last=1
    cycle 4: active=0
"""

from amaranth import Module, Signal
from amaranth.lib.wiring import Component, In, Out


class BurstTracker(Component):
    """
    Burst countdown for the currently granted core.

    Ports:
        start: Load ``length`` and begin a burst (ignored when ``abort`` is high)
        length: Burst length sampled on ``start``
        abort: Drop the current burst immediately

        active: A burst is in flight
        remaining: Cycles left including the current one
        addr: Current burst address
        last: Final cycle of the burst

    Parameters:
        length_width: Width of the length/remaining fields
        addr_width: Width of the address output (defaults to length_width)
    """

    def __init__(self, length_width: int, addr_width: int | None = None):
        self.length_width = length_width
        self.addr_width = addr_width or length_width

        super().__init__(
            {
                "start": In(1),
                "length": In(length_width),
                "abort": In(1),
                "active": Out(1),
                "remaining": Out(length_width),
                "addr": Out(self.addr_width),
                "last": Out(1),
            }
        )

    def elaborate(self, _platform):
        m = Module()

        active = Signal()
        remaining = Signal(self.length_width)
        addr = Signal(self.addr_width)

        m.d.comb += [
            self.active.eq(active),
            self.remaining.eq(remaining),
            self.addr.eq(addr),
            self.last.eq(active & (remaining == 1)),
        ]

        with m.If(self.abort):
            m.d.sync += [
                active.eq(0),
                remaining.eq(0),
            ]
        with m.Elif(self.start):
            m.d.sync += [
                active.eq(self.length != 0),
                remaining.eq(self.length),
                addr.eq(0),
            ]
        with m.Elif(active):
            with m.If(remaining == 1):
                m.d.sync += [
                    active.eq(0),
                    remaining.eq(0),
                ]
            with m.Else():
                m.d.sync += [
                    remaining.eq(remaining - 1),
                    addr.eq(addr + 1),
                ]

        return m
