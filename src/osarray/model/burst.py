"""
Burst transfer records for the arbiter model.
"""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class BurstTransfer:
    """
    One granted bus transfer.

    Attributes:
        core_id: Core holding the grant
        length: Number of bus cycles
        rw: 1 = write into the core's memory, 0 = read out
        load_enable: Completion marks the core loaded
        unload_enable: Completion marks the core unloaded
        base_address: First bus address
    """

    core_id: int
    length: int
    rw: int
    load_enable: bool = False
    unload_enable: bool = False
    base_address: int = 0

    def __post_init__(self):
        if self.length < 1:
            raise ValueError(f"burst length must be positive, got {self.length}")
        if self.load_enable and self.unload_enable:
            raise ValueError("a burst cannot both load and unload")


@dataclass(frozen=True)
class BurstTracker:
    """
    Progress of the in-flight transfer.

    ``remaining`` counts the current cycle, so the final cycle has
    ``remaining == 1``. :meth:`advance` returns None once the burst is done.
    """

    transfer: BurstTransfer
    remaining: int
    address: int

    @classmethod
    def start(cls, transfer: BurstTransfer) -> "BurstTracker":
        return cls(transfer, transfer.length, transfer.base_address)

    @property
    def offset(self) -> int:
        """Cycles already completed."""
        return self.transfer.length - self.remaining

    @property
    def last(self) -> bool:
        return self.remaining == 1

    def advance(self) -> "BurstTracker | None":
        if self.remaining <= 1:
            return None
        return replace(self, remaining=self.remaining - 1, address=self.address + 1)
