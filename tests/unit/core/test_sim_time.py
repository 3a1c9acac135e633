"""Tests for the simulation clock and quarter helpers."""

import pytest

from basalgate.core.time import Quarter, SimTime, quarter_set
from basalgate.errors import ConfigurationError


class TestQuarterSet:
    def test_accepts_ints_and_quarters(self):
        assert quarter_set([1, Quarter.Q4]) == frozenset({Quarter.Q2, Quarter.Q4})

    def test_rejects_out_of_range(self):
        with pytest.raises(ConfigurationError):
            quarter_set([4])


class TestSimTime:
    def test_rejects_zero_cycles_per_quarter(self):
        with pytest.raises(ConfigurationError):
            SimTime(cycles_per_quarter=0)

    def test_cycle_inc_advances_all_counters(self):
        time = SimTime(cycles_per_quarter=5)
        time.cycle_inc()
        time.cycle_inc()
        assert time.cycle == 2
        assert time.quarter_cycle == 2
        assert time.total_cycles == 2

    def test_quarter_inc_resets_quarter_cycle(self):
        time = SimTime(cycles_per_quarter=5)
        for _ in range(5):
            time.cycle_inc()
        time.quarter_inc()
        assert time.quarter == Quarter.Q2
        assert time.quarter_cycle == 0
        assert time.cycle == 5

    def test_quarter_inc_wraps_into_new_trial(self):
        time = SimTime(cycles_per_quarter=2)
        for _ in range(4):
            time.cycle_inc()
            time.cycle_inc()
            time.quarter_inc()
        assert time.trial == 1
        assert time.quarter == Quarter.Q1
        assert time.cycle == 0
        assert time.total_cycles == 8

    def test_cycles_per_trial(self):
        assert SimTime(cycles_per_quarter=25).cycles_per_trial == 100
