"""
Simulation clock: cycles grouped into quarters grouped into trials.

One trial ("alpha cycle") is four quarters of ``cycles_per_quarter`` cycles.
Gating transitions, neuromodulatory broadcasts and learning are all keyed to
this clock, so every hook receives the same ``SimTime`` instance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import FrozenSet, Iterable

from basalgate.errors import ConfigurationError


class Quarter(IntEnum):
    """The four fixed phases of a trial (0-based)."""

    Q1 = 0
    Q2 = 1
    Q3 = 2
    Q4 = 3


def quarter_set(quarters: Iterable[int]) -> FrozenSet[Quarter]:
    """Normalise an iterable of ints / Quarters into a frozen set of Quarters.

    Raises:
        ConfigurationError: If a value is not a valid quarter index
    """
    result = set()
    for q in quarters:
        try:
            result.add(Quarter(int(q)))
        except ValueError as e:
            raise ConfigurationError(f"Invalid quarter {q!r}, must be 0-3") from e
    return frozenset(result)


@dataclass
class SimTime:
    """Mutable simulation clock shared by all layers of a network.

    Attributes:
        cycles_per_quarter: Number of cycles in each quarter
        cycle: Cycle index within the current trial (0 .. 4*cycles_per_quarter-1)
        quarter: Current quarter
        total_cycles: Cycles since the clock was created
        trial: Trial counter
    """

    cycles_per_quarter: int = 25
    cycle: int = 0
    quarter: Quarter = Quarter.Q1
    total_cycles: int = 0
    trial: int = 0
    _quarter_cycle: int = field(default=0, repr=False)

    def __post_init__(self) -> None:
        if self.cycles_per_quarter < 1:
            raise ConfigurationError(
                f"cycles_per_quarter must be >= 1, got {self.cycles_per_quarter}"
            )

    @property
    def quarter_cycle(self) -> int:
        """Cycle index within the current quarter."""
        return self._quarter_cycle

    @property
    def cycles_per_trial(self) -> int:
        return 4 * self.cycles_per_quarter

    def alpha_cyc_start(self) -> None:
        """Reset counters at the start of a new trial."""
        self.cycle = 0
        self.quarter = Quarter.Q1
        self._quarter_cycle = 0

    def cycle_inc(self) -> None:
        """Advance one cycle within the current quarter."""
        self.cycle += 1
        self.total_cycles += 1
        self._quarter_cycle += 1

    def quarter_inc(self) -> None:
        """Advance to the next quarter; wraps into a new trial after Q4."""
        self._quarter_cycle = 0
        if self.quarter == Quarter.Q4:
            self.trial += 1
            self.alpha_cyc_start()
        else:
            self.quarter = Quarter(self.quarter + 1)
