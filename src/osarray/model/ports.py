"""
Port values driven by the controller model.

A port that is not driven carries ``None`` in its ``rw``/``address`` (or
``rw``/``stream``) fields. The RTL represents the same condition with an
explicit drive bit and zeroed fields; :func:`bank_vectors` and
:func:`pe_vectors` convert model ports to that packed form.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class BankPort:
    """Control lines of one memory or global buffer bank."""

    ready: bool = False
    rw: int | None = None
    address: int | None = None

    @property
    def driving(self) -> bool:
        """The controller drives rw/address."""
        return self.rw is not None

    @property
    def active(self) -> bool:
        """The bank performs an access this cycle."""
        return self.ready and self.driving


@dataclass(frozen=True)
class PEPort:
    """Control lines of one processing element."""

    ready: bool = False
    rw: int | None = None
    stream: int | None = None


IDLE_BANK = BankPort()
"""Bank disabled, nothing driven."""

STALLED_BANK = BankPort(ready=True)
"""Bank enabled but rw/address not driven; holds its state."""

IDLE_PE = PEPort()


def bank_vectors(ports) -> tuple[int, int, int, list[int]]:
    """
    Pack bank ports into (ready, rw, drive) bitmasks and an address list.

    Undriven fields pack as 0.
    """
    ready = rw = drive = 0
    addresses = []
    for j, port in enumerate(ports):
        if port.ready:
            ready |= 1 << j
        if port.driving:
            drive |= 1 << j
            if port.rw:
                rw |= 1 << j
        addresses.append(port.address if port.address is not None else 0)
    return ready, rw, drive, addresses


def pe_vectors(ports) -> tuple[int, int, int]:
    """Pack PE ports into (ready, rw, stream) bitmasks."""
    ready = rw = stream = 0
    for idx, port in enumerate(ports):
        if port.ready:
            ready |= 1 << idx
        if port.rw:
            rw |= 1 << idx
        if port.stream:
            stream |= 1 << idx
    return ready, rw, stream
