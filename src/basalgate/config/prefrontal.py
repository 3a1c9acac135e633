"""Configuration classes for BG-gated PFC working-memory layers."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, FrozenSet, Optional

from basalgate.config.base import LayerConfig
from basalgate.constants import GateType
from basalgate.core.time import Quarter, quarter_set
from basalgate.errors import ConfigurationError

if TYPE_CHECKING:
    from basalgate.regions.dynamics import MaintDynamics


@dataclass
class PFCGateParams:
    """Parameters for PFC gating."""

    gate_qtr: FrozenSet[Quarter] = field(
        default_factory=lambda: frozenset({Quarter.Q2, Quarter.Q4})
    )
    """Quarter(s) in which gating updates Deep from Super.

    Typically one quarter after the VThal gate quarter.
    """

    out_gate: bool = False
    """If True, this is an output-gate layer with only transient activation."""

    out_q1_only: bool = True
    """For output gates, only compute gating in the first quarter.

    Gate quarters are then restricted to Q1 and max maintenance to 1, so the
    output gating signal can influence performance within a single trial.
    """

    def __post_init__(self) -> None:
        self.gate_qtr = quarter_set(self.gate_qtr)

    @property
    def gate_type(self) -> GateType:
        return GateType.OUT if self.out_gate else GateType.MAINT


@dataclass
class PFCMaintParams:
    """Parameters for PFC maintenance."""

    use_dyn: Optional[bool] = None
    """Use deterministic dynamics for maintenance drive.

    None = enabled iff a dynamics table is configured.
    """

    maint_gain: float = 0.8
    """Multiplier on the maintenance current."""

    out_clear_maint: bool = False
    """On output gating, clear the corresponding maintenance pool.

    Theoretically this should be on, but it works better off in most cases.
    """

    clear: float = 0.0
    """How much to decay super activations when a stripe gates, in [0, 1]."""

    max_maint: int = 100
    """Maximum maintenance duration, after which the stripe is auto-cleared."""

    def __post_init__(self) -> None:
        if self.maint_gain < 0:
            raise ConfigurationError(f"maint_gain must be >= 0, got {self.maint_gain}")
        if not (0.0 <= self.clear <= 1.0):
            raise ConfigurationError(f"clear must be in [0, 1], got {self.clear}")
        if self.max_maint < 1:
            raise ConfigurationError(f"max_maint must be >= 1, got {self.max_maint}")


@dataclass
class PFCDeepConfig(LayerConfig):
    """Configuration for a PFC deep (maintenance or output) layer.

    Layer naming convention: the super layer is this layer's name without the
    trailing "D" (``PFCmntD`` -> ``PFCmnt``), and an output layer's maintenance
    partner replaces the trailing "outD" with "mntD". Either can be overridden.
    """

    gate: PFCGateParams = field(default_factory=PFCGateParams)
    maint: PFCMaintParams = field(default_factory=PFCMaintParams)

    dyns: Optional["MaintDynamics"] = None
    """Deterministic maintenance dynamics; one entry per block of super rows."""

    super_layer: Optional[str] = None
    """Explicit super layer name (None = naming convention)."""

    maint_layer: Optional[str] = None
    """Explicit maintenance-layer partner for output gates (None = naming convention)."""

    def __post_init__(self) -> None:
        super().__post_init__()
        # Own copies: the defaults below must not leak into shared params
        self.gate = replace(self.gate)
        self.maint = replace(self.maint)
        if self.gate.out_gate and self.gate.out_q1_only:
            self.maint.max_maint = 1
            self.gate.gate_qtr = frozenset({Quarter.Q1})
        has_dyns = self.dyns is not None and len(self.dyns) > 0
        if self.maint.use_dyn is None:
            self.maint.use_dyn = has_dyns
        elif self.maint.use_dyn and not has_dyns:
            raise ConfigurationError("maint.use_dyn is True but no dynamics table is configured")

    @property
    def gate_type(self) -> GateType:
        return self.gate.gate_type


__all__ = [
    "PFCGateParams",
    "PFCMaintParams",
    "PFCDeepConfig",
]
