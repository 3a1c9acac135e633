"""
Learning configuration: generic weight-update primitives for projections.

The trace learning rule computes a raw per-synapse ``dwt``; the primitives in
this module turn it into the accumulated weight change:

- ``NormParams``: divides dwt by a running maximum of |dwt| tracked per
  sending unit, so each sender's updates are normalised to its own scale.
- ``MomentumParams``: leaky integration of successive dwt values.

Both operate in place on per-synapse tensors owned by the projection.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import torch

from basalgate.config.base import BaseConfig
from basalgate.constants import (
    DEFAULT_MOMENTUM_TAU,
    DEFAULT_NORM_DECAY_TAU,
    DEFAULT_NORM_MIN,
)
from basalgate.errors import ConfigurationError


@dataclass
class NormParams:
    """Running-max |dwt| normalisation."""

    on: bool = True
    """Whether normalisation is applied."""

    decay_tau: float = DEFAULT_NORM_DECAY_TAU
    """Decay time constant of the running max (in learning steps)."""

    norm_min: float = DEFAULT_NORM_MIN
    """Floor on the running max, bounding the normalisation factor."""

    def __post_init__(self) -> None:
        if self.decay_tau < 1:
            raise ConfigurationError(f"decay_tau must be >= 1, got {self.decay_tau}")
        if self.norm_min <= 0:
            raise ConfigurationError(f"norm_min must be > 0, got {self.norm_min}")

    @property
    def decay_dt_c(self) -> float:
        return 1.0 - 1.0 / self.decay_tau

    def norm_from_abs_dwt(self, norm: torch.Tensor, abs_dwt: torch.Tensor) -> torch.Tensor:
        """Update running max ``norm`` in place and return the normalisation factor.

        Args:
            norm: Running max |dwt| per synapse (modified in place)
            abs_dwt: Current |dwt| per synapse, same shape as ``norm``

        Returns:
            Factor ``1 / max(norm, norm_min)``, or 1 where ``norm`` is zero
        """
        norm.copy_(torch.maximum(norm * self.decay_dt_c, abs_dwt))
        factor = 1.0 / norm.clamp(min=self.norm_min)
        return torch.where(norm == 0, torch.ones_like(factor), factor)


@dataclass
class MomentumParams:
    """Leaky momentum over successive weight changes."""

    on: bool = True
    """Whether momentum is applied."""

    m_tau: float = DEFAULT_MOMENTUM_TAU
    """Time constant of momentum integration (in learning steps)."""

    lr_comp: float = 0.1
    """Learning-rate compensation applied when momentum is on."""

    def __post_init__(self) -> None:
        if self.m_tau < 1:
            raise ConfigurationError(f"m_tau must be >= 1, got {self.m_tau}")

    @property
    def m_dt_c(self) -> float:
        return 1.0 - 1.0 / self.m_tau

    def moment_from_dwt(self, moment: torch.Tensor, dwt: torch.Tensor) -> torch.Tensor:
        """Integrate ``dwt`` into ``moment`` in place and return the new moment."""
        moment.mul_(self.m_dt_c).add_(dwt)
        return moment


@dataclass
class LearnParams:
    """Per-projection learning switches and rate."""

    learn: bool = True
    """Whether the projection learns at all. False is a no-op fast path."""

    lrate: float = 0.04
    """Learning rate applied to the final dwt."""

    norm: NormParams = field(default_factory=NormParams)
    momentum: MomentumParams = field(default_factory=MomentumParams)

    def __post_init__(self) -> None:
        if self.lrate < 0:
            raise ConfigurationError(f"lrate must be >= 0, got {self.lrate}")

    @property
    def effective_lrate(self) -> float:
        """Learning rate including momentum compensation."""
        if self.momentum.on:
            return self.lrate * self.momentum.lr_comp
        return self.lrate


@dataclass
class ProjectionConfig(BaseConfig):
    """Configuration for a weighted projection between two layers."""

    learn: LearnParams = field(default_factory=LearnParams)

    wt_scale: float = 1.0
    """Absolute scaling of the conductance this projection sends."""

    wt_init_mean: float = 0.5
    """Mean of the initial weight distribution."""

    wt_init_var: float = 0.25
    """Width of the uniform initial weight distribution around the mean."""

    w_min: float = 0.0
    """Minimum synaptic weight."""

    w_max: float = 1.0
    """Maximum synaptic weight."""

    connectivity: float = 1.0
    """Connection probability; 1.0 = fully connected."""

    def __post_init__(self) -> None:
        if self.wt_scale < 0:
            raise ConfigurationError(f"wt_scale must be >= 0, got {self.wt_scale}")
        if self.wt_init_var < 0:
            raise ConfigurationError(f"wt_init_var must be >= 0, got {self.wt_init_var}")
        if self.w_min > self.w_max:
            raise ConfigurationError(f"w_min ({self.w_min}) must be <= w_max ({self.w_max})")
        if not (0.0 < self.connectivity <= 1.0):
            raise ConfigurationError(
                f"connectivity must be in (0, 1], got {self.connectivity}"
            )


__all__ = [
    "NormParams",
    "MomentumParams",
    "LearnParams",
    "ProjectionConfig",
]
