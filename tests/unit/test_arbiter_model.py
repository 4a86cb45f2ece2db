"""
Unit tests for the Python arbiter model.
"""

import logging

import pytest

from osarray.config import CoreConfig
from osarray.model import ArbiterInputs, ArbiterModel, BurstConfig, BurstTracker, BurstTransfer
from osarray.util import Phase, Violation, is_one_hot


@pytest.fixture
def config():
    return CoreConfig(num_cores=4, load_burst_length=3, unload_burst_length=2)


@pytest.fixture
def arb(config):
    return ArbiterModel(config)


def run(arb, inputs, cycles):
    """Step ``cycles`` times and return the grant seen after each edge."""
    trace = []
    for _ in range(cycles):
        arb.step(inputs)
        trace.append(arb.grant)
    return trace


class TestBurstRecords:
    """BurstTransfer / BurstTracker."""

    def test_transfer_rejects_both_enables(self):
        with pytest.raises(ValueError):
            BurstTransfer(core_id=0, length=2, rw=1, load_enable=True, unload_enable=True)

    def test_transfer_rejects_empty(self):
        with pytest.raises(ValueError):
            BurstTransfer(core_id=0, length=0, rw=1)

    def test_tracker_counts_down(self):
        tracker = BurstTracker.start(BurstTransfer(core_id=1, length=3, rw=0, base_address=8))
        seen = []
        while tracker is not None:
            seen.append((tracker.address, tracker.remaining, tracker.last))
            tracker = tracker.advance()
        assert seen == [(8, 3, False), (9, 2, False), (10, 1, True)]


class TestArbiterModel:
    """Grant rule and burst accounting."""

    def test_idle(self, arb):
        assert run(arb, ArbiterInputs(req=0), 3) == [0, 0, 0]
        assert arb.burst_len is None
        assert arb.burst_addr is None
        assert not arb.busy

    def test_single_burst(self, arb):
        arb.step(ArbiterInputs(req=0b0001))
        beats = []
        while arb.busy:
            beats.append((arb.grant, arb.burst_addr, arb.burst_len, arb.burst_rw))
            arb.step(ArbiterInputs(req=0b0001))
        assert beats == [(1, 0, 3, 1), (1, 1, 3, 1), (1, 2, 3, 1)]
        assert arb.loaded == 0b0001
        assert arb.pointer == 1

    def test_fairness(self, arb):
        trace = run(arb, ArbiterInputs(req=0b1111), 16)
        firsts = [g for i, g in enumerate(trace) if g and (i == 0 or trace[i - 1] != g)]
        assert firsts == [0b0001, 0b0010, 0b0100, 0b1000]

    def test_grant_one_hot_for_any_request(self, config):
        for req in range(1, 16):
            arb = ArbiterModel(config)
            for grant in run(arb, ArbiterInputs(req=req), 12):
                assert grant == 0 or (is_one_hot(grant) and grant & req)

    def test_rotation_past_last_granted(self, arb):
        run(arb, ArbiterInputs(req=0b0010), 4)
        assert arb.pointer == 2
        arb.step(ArbiterInputs(req=0b0011))
        assert arb.grant == 0b0001

    def test_unload_after_load(self, arb):
        run(arb, ArbiterInputs(req=0b0100), 5)
        assert arb.grant == 0b0100
        assert arb.burst_unload
        assert arb.burst_len == 2
        assert arb.burst_rw == 0
        run(arb, ArbiterInputs(req=0b0100), 2)
        assert arb.loaded == 0

    def test_override(self, arb):
        arb.step(ArbiterInputs(req=0b1000, config=BurstConfig(length=5, rw=1)))
        assert arb.burst_len == 5
        assert not arb.burst_load
        assert run(arb, ArbiterInputs(req=0b1000), 5)[:4] == [0b1000] * 4

    def test_override_zero_length(self, arb):
        arb.step(ArbiterInputs(req=0b0001, config=BurstConfig(length=0, rw=1, load_enable=True)))
        assert arb.burst_len == 3

    def test_override_too_wide(self, arb):
        with pytest.raises(ValueError):
            arb.step(ArbiterInputs(req=0b0001, config=BurstConfig(length=256)))

    def test_request_too_wide(self, arb):
        with pytest.raises(ValueError):
            arb.step(ArbiterInputs(req=0b10000))


class TestArbiterModelViolations:
    """Protocol violations."""

    def test_grant_withdrawn(self, arb, caplog):
        arb.step(ArbiterInputs(req=0b0001))
        with caplog.at_level(logging.WARNING, logger="osarray.model.arbiter"):
            arb.step(ArbiterInputs(req=0b0001, ack=0))
        assert arb.error
        assert arb.violation == Violation.GRANT_WITHDRAWN
        assert arb.grant == 0
        assert "GRANT_WITHDRAWN" in caplog.text

        # sticky, and no further grants
        assert run(arb, ArbiterInputs(req=0b1111), 5) == [0] * 5
        assert arb.error

    def test_request_withdrawn(self, arb):
        arb.step(ArbiterInputs(req=0b0010))
        arb.step(ArbiterInputs(req=0))
        assert arb.violation == Violation.REQUEST_WITHDRAWN

    def test_illegal_config(self, arb):
        arb.step(
            ArbiterInputs(req=0b0001, config=BurstConfig(load_enable=True, unload_enable=True))
        )
        assert arb.error
        assert arb.violation == Violation.ILLEGAL_CONFIG
        assert arb.grant == 0
        assert arb.pointer == 0

    def test_illegal_config_without_requests(self, arb):
        arb.step(ArbiterInputs(config=BurstConfig(load_enable=True, unload_enable=True)))
        assert arb.error
        assert arb.violation == Violation.ILLEGAL_CONFIG

    @pytest.mark.parametrize(
        "burst, illegal",
        [
            (BurstConfig(length=4, rw=1, load_enable=True), False),
            (BurstConfig(length=6, rw=1, load_enable=True), True),
            (BurstConfig(length=2, unload_enable=True), False),
            (BurstConfig(length=3, unload_enable=True), True),
            (BurstConfig(length=3, rw=1), True),
        ],
    )
    def test_override_must_fit_banks(self, burst, illegal, caplog):
        config = CoreConfig(
            num_cores=2, load_burst_length=2, unload_burst_length=2, mem_depth=4, glb_depth=2
        )
        arb = ArbiterModel(config)
        with caplog.at_level(logging.WARNING, logger="osarray.model.arbiter"):
            arb.step(ArbiterInputs(req=0b01, config=burst))
        assert arb.error == illegal
        if illegal:
            assert arb.grant == 0
            assert arb.violation == Violation.ILLEGAL_CONFIG
            assert "exceeds bank depth" in caplog.text
        else:
            assert arb.grant == 0b01

    def test_burst_address_stays_inside_bank(self):
        config = CoreConfig(num_cores=2, grid_size=2, mem_depth=4, glb_depth=4)
        arb = ArbiterModel(config)
        burst = BurstConfig(length=4, rw=1, load_enable=True)
        arb.step(ArbiterInputs(req=0b01, config=burst))
        addresses = []
        while arb.busy:
            addresses.append(arb.burst_addr)
            arb.step(ArbiterInputs(req=0b01))
        assert addresses == [0, 1, 2, 3]
        assert not arb.error

    def test_phase_sequence(self, arb):
        arb.step(ArbiterInputs(req=0b0001))
        arb.step(ArbiterInputs(req=0b0001, phase=Phase.COMPUTE))
        assert arb.violation == Violation.PHASE_SEQUENCE

    def test_load_phase_accepted(self, arb):
        arb.step(ArbiterInputs(req=0b0001))
        run(arb, ArbiterInputs(req=0b0001, phase=Phase.LOAD), 3)
        assert not arb.error
        assert arb.loaded == 0b0001

    def test_clear(self, arb):
        arb.step(ArbiterInputs(req=0b0001))
        arb.step(ArbiterInputs(req=0))
        assert arb.error
        arb.step(ArbiterInputs(clear=True))
        assert not arb.error
        assert arb.violation == Violation.NONE
        assert arb.pointer == 0

    def test_clear_idempotent(self, arb):
        run(arb, ArbiterInputs(req=0b0110), 7)
        arb.step(ArbiterInputs(clear=True))
        first = arb.state
        arb.step(ArbiterInputs(clear=True))
        assert arb.state == first

    def test_evaluate_does_not_commit(self, arb):
        state = arb.evaluate(ArbiterInputs(req=0b0001))
        assert arb.grant == 0
        assert state.grant == 0b0001
        arb.commit(state)
        assert arb.grant == 0b0001
