"""
Deterministic PFC maintenance dynamics.

When a PFC deep layer has more unit rows than its super layer, each extra
block of rows follows its own time course after gating, selected by index
into a dynamics table. Row ``uy`` of a deep pool uses dynamics type
``uy // super_rows``, evaluated at ``t = cnt - 1`` (gate-quarters since the
maintenance snapshot was taken).

Example:
    >>> dyns = PFCDynTable.full_dyn(tau=10.0)
    >>> len(dyns)
    4
    >>> dyns.value(0, 5.0)  # flat maintenance
    1.0
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterator, List, Protocol, runtime_checkable

from basalgate.errors import ConfigurationError

VALUE_MIN = 0.001
"""Floor on dynamics values, so maintained content never fully vanishes."""


@runtime_checkable
class MaintDynamics(Protocol):
    """Anything that maps (dynamics type, time since gating) to a gain."""

    def value(self, dyn_type: int, t: float) -> float: ...

    def __len__(self) -> int: ...


@dataclass
class PFCDyn:
    """One maintenance time course.

    With both time constants set the value rises linearly from ``init`` to 1
    over ``rise_tau`` steps, then decays exponentially with ``decay_tau``.
    With only one set, it is a pure exponential rise or decay.
    """

    init: float = 1.0
    """Value at (and before) time 0."""

    rise_tau: float = 0.0
    """Rise time constant (0 = no rise)."""

    decay_tau: float = 0.0
    """Decay time constant (0 = no decay)."""

    desc: str = ""

    def __post_init__(self) -> None:
        if self.rise_tau < 0 or self.decay_tau < 0:
            raise ConfigurationError(
                f"PFCDyn time constants must be >= 0, got rise_tau={self.rise_tau}, "
                f"decay_tau={self.decay_tau}"
            )

    def value(self, t: float) -> float:
        val = self.init
        if t <= 0:
            return val
        if self.rise_tau > 0 and self.decay_tau > 0:
            if t < self.rise_tau:
                val = self.init + (1.0 - self.init) * (t / self.rise_tau)
            else:
                val = math.exp(-(t - self.rise_tau) / self.decay_tau)
        elif self.rise_tau > 0:
            val = self.init + (1.0 - self.init) * (1.0 - math.exp(-t / self.rise_tau))
        elif self.decay_tau > 0:
            val = self.init * math.exp(-t / self.decay_tau)
        return min(1.0, max(VALUE_MIN, val))


@dataclass
class PFCDynTable:
    """Ordered table of ``PFCDyn`` entries, indexed by dynamics type."""

    dyns: List[PFCDyn] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.dyns)

    def __iter__(self) -> Iterator[PFCDyn]:
        return iter(self.dyns)

    def __getitem__(self, dyn_type: int) -> PFCDyn:
        return self.dyns[dyn_type]

    def value(self, dyn_type: int, t: float) -> float:
        """Value of dynamics type ``dyn_type`` at time ``t``.

        Raises:
            ConfigurationError: If ``dyn_type`` is not in the table
        """
        if not (0 <= dyn_type < len(self.dyns)):
            raise ConfigurationError(
                f"dynamics type {dyn_type} out of range for table of {len(self.dyns)}"
            )
        return self.dyns[dyn_type].value(t)

    def set_dyn(self, dyn_type: int, init: float, rise_tau: float, decay_tau: float, desc: str = "") -> None:
        """Set entry ``dyn_type``, growing the table if needed."""
        while len(self.dyns) <= dyn_type:
            self.dyns.append(PFCDyn())
        self.dyns[dyn_type] = PFCDyn(init=init, rise_tau=rise_tau, decay_tau=decay_tau, desc=desc)

    @classmethod
    def maint_only(cls) -> "PFCDynTable":
        """Single flat maintenance entry."""
        table = cls()
        table.set_dyn(0, 1.0, 0.0, 0.0, "maintained: flat")
        return table

    @classmethod
    def full_dyn(cls, tau: float) -> "PFCDynTable":
        """Standard four-way set: flat, phasic, ramp up, ramp down."""
        table = cls()
        table.set_dyn(0, 1.0, 0.0, 0.0, "maintained: flat")
        table.set_dyn(1, 1.0, 0.0, 1.0, "phasic: immediate decay")
        table.set_dyn(2, 0.1, tau, 0.0, "ramp up: rises over tau")
        table.set_dyn(3, 1.0, 0.0, tau, "ramp down: decays over tau")
        return table


__all__ = [
    "MaintDynamics",
    "PFCDyn",
    "PFCDynTable",
]
