"""Configuration classes for neuromodulatory broadcast layers."""

from __future__ import annotations

from dataclasses import dataclass, field

from basalgate.config.base import LayerConfig
from basalgate.core.time import Quarter
from basalgate.errors import ConfigurationError
from basalgate.typing import LayerNames


@dataclass
class PVConfig(LayerConfig):
    """Primary Value input layer.

    Sends activation directly to receiver layers, bypassing weighted synapses.
    """

    send_pv_quarter: Quarter = Quarter.Q4
    """Quarter during which PV activation is copied to receivers."""

    pv_receivers: LayerNames = field(default_factory=list)
    """Receiver layer names; each must have the same shape as this layer."""

    def __post_init__(self) -> None:
        super().__post_init__()
        self.send_pv_quarter = Quarter(int(self.send_pv_quarter))


@dataclass
class DASrcConfig(LayerConfig):
    """Dopamine source layer (VTA / SNc) broadcasting a scalar DA value."""

    da_receivers: LayerNames = field(default_factory=list)
    """Names of layers whose ``da`` is set from this layer every cycle."""

    baseline: float = 0.0
    """Tonic activation subtracted from the mean layer activation to get DA."""


@dataclass
class CINConfig(LayerConfig):
    """Cholinergic interneurons: ACh from the absolute value of reward signals."""

    rew_thr: float = 0.1
    """Reward magnitude above which ACh is driven to 1. 0 disables thresholding."""

    rew_layers: LayerNames = field(default_factory=list)
    """Reward layers whose max |act| drives ACh."""

    ach_receivers: LayerNames = field(default_factory=list)
    """Names of layers whose ``ach`` is set from this layer every cycle."""

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.rew_thr < 0:
            raise ConfigurationError(f"rew_thr must be >= 0, got {self.rew_thr}")


__all__ = [
    "PVConfig",
    "DASrcConfig",
    "CINConfig",
]
