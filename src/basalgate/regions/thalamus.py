"""
Ventral thalamus (VThal): per-stripe gating signal.

VThal pools mirror the PFC stripes. Their peak activation over the trial
(alpha-max) tells Matrix layers which stripes fired, and at a fixed cycle of
each gate quarter VThal delivers gate events to its receiver gate layers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

import torch

from basalgate.config.basal_ganglia import VThalConfig
from basalgate.core.layer import Layer
from basalgate.core.time import SimTime
from basalgate.errors import ConfigurationError, validate_pool_count
from basalgate.regions.gate import GateLayer
from basalgate.typing import LayerNames, PoolValues

if TYPE_CHECKING:
    from basalgate.core.network import Network

logger = logging.getLogger(__name__)


class VThalLayer(Layer):
    """Thalamic gate-signal source, one pool per stripe."""

    CYCLE_POST_STAGE = 1

    def __init__(self, name: str = "VThal", config: Optional[VThalConfig] = None):
        super().__init__(name, config or VThalConfig())
        self.config: VThalConfig
        self.gate_receivers: LayerNames = list(self.config.gate_receivers)
        self._receivers: List[GateLayer] = []

    def add_gate_receiver(self, layer_name: str) -> None:
        if layer_name not in self.gate_receivers:
            self.gate_receivers.append(layer_name)

    def build(self, network: "Network") -> None:
        super().build(network)
        self._receivers = []
        for layer_name in self.gate_receivers:
            gly = self.resolve_partner(layer_name, "gate receiver")
            if gly is None:
                continue
            if not isinstance(gly, GateLayer):
                raise ConfigurationError(
                    f"VThal {self.name}: gate receiver '{layer_name}' is not a gate layer"
                )
            validate_pool_count(self.name, self.n_pools, gly.name, gly.n_pools)
            self._receivers.append(gly)

    def gate_acts(self) -> PoolValues:
        """Per-pool gating drive: pool peak act where above threshold, else 0."""
        acts = self.pool_act_max()
        return torch.where(acts > self.config.gate_thr, acts, torch.zeros_like(acts))

    def send_gate_states(self) -> None:
        acts = self.gate_acts()
        for gly in self._receivers:
            gly.set_gate(acts)
        logger.debug("%s: gate event, %d/%d pools gated", self.name, int((acts > 0).sum()), self.n_pools)

    def cycle_post(self, time: SimTime) -> None:
        if time.quarter in self.config.gate_quarters and time.quarter_cycle == self.config.gate_cycle:
            self.send_gate_states()
