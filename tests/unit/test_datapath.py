"""
Unit tests for the memory bank, global buffer and PE reference models.
"""

import numpy as np
import pytest

from osarray.model import IDLE_BANK, STALLED_BANK, BankPort, GlobalBuffer, MemoryBank, PEDatapath, PEPort


class TestMemoryBank:
    """Registered single-port bank."""

    @pytest.fixture
    def bank(self):
        return MemoryBank(depth=64)

    def test_reset_state(self, bank):
        assert bank.step(IDLE_BANK) is None
        assert np.all(bank.storage == 0)

    def test_write_then_read(self, bank):
        data = {0x0: 0xAA, 0x1F: 0x55, 0x3F: 0xFF}
        for address, value in data.items():
            out = bank.step(BankPort(ready=True, rw=1, address=address), data_in=value)
            assert out is None

        reads = [bank.step(BankPort(ready=True, rw=0, address=a)) for a in data]
        reads.append(bank.step(IDLE_BANK))
        # one cycle of read latency
        assert reads == [None, 0xAA, 0x55, 0xFF]

    def test_stalled_port_not_driving(self, bank):
        bank.load([1, 2, 3])
        bank.step(BankPort(ready=True, rw=0, address=1))
        assert bank.step(STALLED_BANK) == 2
        assert bank.step(STALLED_BANK) is None

    def test_write_requires_data(self, bank):
        with pytest.raises(ValueError):
            bank.step(BankPort(ready=True, rw=1, address=0))

    def test_address_range(self, bank):
        with pytest.raises(ValueError):
            bank.step(BankPort(ready=True, rw=0, address=64))

    def test_load_and_dump(self, bank):
        bank.load([7, 8, 9], offset=2)
        assert bank.dump(5) == [0, 0, 7, 8, 9]
        bank.reset()
        assert bank.dump(5) == [0] * 5

    def test_global_buffer_contract(self):
        glb = GlobalBuffer(depth=4)
        glb.step(BankPort(ready=True, rw=1, address=3), data_in=42)
        glb.step(BankPort(ready=True, rw=0, address=3))
        assert glb.data_out == 42


class TestPEDatapath:
    """Multiply-accumulate element."""

    def test_not_ready_not_driving(self):
        pe = PEDatapath()
        assert pe.step(PEPort(), weight=5, input=3) is None
        assert pe.scratch == 0

    def test_mac_accumulates_registered_operands(self):
        pe = PEDatapath()
        pe.step(PEPort(), weight=5, input=3)
        assert pe.pipeline == 15
        assert pe.step(PEPort(ready=True, rw=1, stream=0), weight=2, input=2) is None
        assert pe.scratch == 15
        pe.step(PEPort(ready=True, rw=1, stream=0))
        assert pe.scratch == 19

    def test_zero_operand_contributes_nothing(self):
        pe = PEDatapath()
        pe.step(PEPort(), weight=0, input=9)
        pe.step(PEPort(ready=True, rw=1, stream=0))
        assert pe.scratch == 0

    def test_output_scratch_when_idle(self):
        pe = PEDatapath(scratch=11)
        assert pe.step(PEPort(ready=True, rw=0, stream=0)) == 11

    def test_stream_forwards(self):
        pe = PEDatapath(fwd=3)
        assert pe.step(PEPort(ready=True, rw=0, stream=1), fwd_in=42) == 3
        assert pe.fwd == 42
        assert pe.step(PEPort(ready=True, rw=0, stream=1), fwd_in=7) == 42

    def test_reset(self):
        pe = PEDatapath(weight_reg=1, input_reg=2, scratch=3, fwd=4)
        pe.reset()
        assert (pe.weight_reg, pe.input_reg, pe.scratch, pe.fwd) == (0, 0, 0, 0)
