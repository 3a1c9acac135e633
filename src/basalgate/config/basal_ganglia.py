"""Configuration classes for basal ganglia gating layers (Matrix, VThal)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet

from basalgate.config.base import LayerConfig
from basalgate.config.learning import LearnParams, MomentumParams, NormParams, ProjectionConfig
from basalgate.constants import DaReceptor
from basalgate.core.time import Quarter, quarter_set
from basalgate.errors import ConfigurationError
from basalgate.typing import LayerNames


@dataclass
class MatrixParams:
    """Parameters for dorsal striatum Matrix computation.

    Matrix units are the Go / NoGo gating units that drive updating of PFC
    working memory.
    """

    thal_lay: str = "VThal"
    """Name of the VThal layer whose per-pool peak activation signals gating."""

    thal_thr: float = 0.25
    """Threshold on thal pool peak activation for a stripe to count as gated."""

    deriv: bool = True
    """Use the sigmoid derivative 2*a*(1-a) of alpha-max as the learning factor.

    Otherwise the alpha-max activation is used directly. The derivative keeps
    weights from growing further once activations are already strong.
    """

    burst_gain: float = 1.0
    """Gain on positive (burst) dopamine. D2R reversal happens after gain."""

    dip_gain: float = 1.0
    """Gain on negative (dip) dopamine. D2R reversal happens after gain."""

    def __post_init__(self) -> None:
        if self.thal_thr < 0:
            raise ConfigurationError(f"thal_thr must be >= 0, got {self.thal_thr}")
        if self.burst_gain < 0:
            raise ConfigurationError(f"burst_gain must be >= 0, got {self.burst_gain}")
        if self.dip_gain < 0:
            raise ConfigurationError(f"dip_gain must be >= 0, got {self.dip_gain}")


@dataclass
class MatrixTraceParams:
    """Parameters for trace-based learning in Matrix projections.

    A trace of synaptic co-activity is formed and then modulated by dopamine
    whenever it occurs, bridging the gap between gating and later reward.
    The trace is reset at reward time according to the CIN ACh level.
    """

    cur_trl_da: bool = True
    """If True, current-trial DA drives learning (trace updated before dwt).

    Otherwise DA is applied to the existing trace before it is updated, so at
    least one trial must separate gating activity from the DA that uses it.
    """

    decay: float = 2.0
    """Multiplier on ACh for decaying prior traces; the decay never exceeds 1."""

    def __post_init__(self) -> None:
        if self.decay < 0:
            raise ConfigurationError(f"decay must be >= 0, got {self.decay}")

    def ach_decay(self, ach: float) -> float:
        """Fraction of trace removed for a given ACh level, clamped to [0, 1]."""
        return min(1.0, max(0.0, ach * self.decay))


@dataclass
class MatrixConfig(LayerConfig):
    """Configuration for a Matrix (striatal MSN) layer."""

    da_r: DaReceptor = DaReceptor.D1R
    """Dominant dopamine receptor: D1R for Go, D2R for NoGo."""

    matrix: MatrixParams = field(default_factory=MatrixParams)

    init_decay: float = 0.0

    def __post_init__(self) -> None:
        super().__post_init__()
        self.da_r = DaReceptor(self.da_r)


def _matrix_learn_defaults() -> LearnParams:
    return LearnParams(norm=NormParams(on=False), momentum=MomentumParams(on=False))


@dataclass
class MatrixProjectionConfig(ProjectionConfig):
    """Configuration for a dopamine-modulated trace-learning projection."""

    learn: LearnParams = field(default_factory=_matrix_learn_defaults)
    trace: MatrixTraceParams = field(default_factory=MatrixTraceParams)


@dataclass
class VThalConfig(LayerConfig):
    """Configuration for the ventral thalamus gate-signal layer.

    Each pool of VThal corresponds to one PFC stripe. At ``gate_cycle`` of each
    gate quarter, VThal writes a gate event for every pool into each receiver.
    """

    gate_quarters: FrozenSet[Quarter] = field(
        default_factory=lambda: frozenset({Quarter.Q1, Quarter.Q3})
    )
    """Quarters in which VThal sends gate events."""

    gate_cycle: int = 18
    """Cycle within the gate quarter at which gate events are sent."""

    gate_thr: float = 0.2
    """Pool peak activation above which a stripe gates."""

    gate_receivers: LayerNames = field(default_factory=list)
    """Names of gate layers (PFC deep) receiving gate events."""

    def __post_init__(self) -> None:
        super().__post_init__()
        self.gate_quarters = quarter_set(self.gate_quarters)
        if self.gate_cycle < 0:
            raise ConfigurationError(f"gate_cycle must be >= 0, got {self.gate_cycle}")
        if self.gate_thr < 0:
            raise ConfigurationError(f"gate_thr must be >= 0, got {self.gate_thr}")


__all__ = [
    "MatrixParams",
    "MatrixTraceParams",
    "MatrixConfig",
    "MatrixProjectionConfig",
    "VThalConfig",
]
