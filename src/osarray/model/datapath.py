"""
Reference models of the blocks the controller drives.

These are the collaborators on the far side of the controller's ports:

- MemoryBank: one operand bank per grid row
- GlobalBuffer: one result bank per grid row
- PEDatapath: the multiply-accumulate element at each grid position

All three follow the same cycle convention as the control models: ``step``
returns the value on the block's output during the current cycle and then
advances one clock edge. ``None`` means the output is not driven.
"""

from dataclasses import dataclass, field

import numpy as np

from .ports import BankPort, PEPort


@dataclass
class MemoryBank:
    """
    Single-port bank with registered read data.

    ``rw=1`` stores ``data_in`` at ``address``. ``rw=0`` places the stored
    word on the output one cycle later. A bank that is not ready, or whose
    rw/address are not driven, leaves its output undriven.
    """

    depth: int
    storage: np.ndarray = field(init=False)
    data_out: int | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        if self.depth < 1:
            raise ValueError(f"depth must be positive, got {self.depth}")
        self.storage = np.zeros(self.depth, dtype=np.int64)

    def reset(self) -> None:
        self.storage.fill(0)
        self.data_out = None

    def _check_address(self, address: int) -> int:
        if not 0 <= address < self.depth:
            raise ValueError(f"address {address} outside 0..{self.depth - 1}")
        return address

    def step(self, port: BankPort, data_in: int | None = None) -> int | None:
        """Apply one cycle of ``port``; return the output seen this cycle."""
        out = self.data_out

        if not port.active:
            self.data_out = None
        elif port.rw:
            if data_in is None:
                raise ValueError("write without data")
            self.storage[self._check_address(port.address)] = data_in
            self.data_out = None
        else:
            self.data_out = int(self.storage[self._check_address(port.address)])

        return out

    def load(self, values, offset: int = 0) -> None:
        """Preload ``values`` starting at ``offset``."""
        values = np.asarray(values, dtype=np.int64)
        self._check_address(offset + len(values) - 1)
        self.storage[offset : offset + len(values)] = values

    def dump(self, count: int | None = None) -> list[int]:
        """First ``count`` words (all by default)."""
        return [int(v) for v in self.storage[: count if count is not None else self.depth]]


class GlobalBuffer(MemoryBank):
    """Result bank; written while the PE grid streams during UNLOAD."""


@dataclass
class PEDatapath:
    """
    Output-stationary multiply-accumulate element.

    Operands are registered every cycle. With ``ready`` and ``rw=1`` the
    product of the registered operands is added to ``scratch`` on the next
    edge. With ``stream=1`` the element shows its forward register and
    captures ``fwd_in``, so a column of elements forms a shift chain.

    Output during a cycle:
        ready=0            -> None
        stream=1           -> fwd
        rw=1, stream=0     -> None (accumulating)
        rw=0, stream=0     -> scratch
    """

    weight_reg: int = 0
    input_reg: int = 0
    scratch: int = 0
    fwd: int = 0

    @property
    def pipeline(self) -> int:
        """Product of the registered operands."""
        return self.weight_reg * self.input_reg

    def reset(self) -> None:
        self.weight_reg = 0
        self.input_reg = 0
        self.scratch = 0
        self.fwd = 0

    def output(self, port: PEPort) -> int | None:
        if not port.ready:
            return None
        if port.stream:
            return self.fwd
        if port.rw:
            return None
        return self.scratch

    def step(
        self,
        port: PEPort,
        weight: int | None = None,
        input: int | None = None,
        fwd_in: int | None = None,
    ) -> int | None:
        """Apply one cycle of ``port``; return the output seen this cycle."""
        out = self.output(port)

        if port.ready and port.rw:
            self.scratch += self.pipeline
        if port.ready and port.stream:
            self.fwd = fwd_in if fwd_in is not None else 0

        self.weight_reg = weight if weight is not None else 0
        self.input_reg = input if input is not None else 0
        return out
