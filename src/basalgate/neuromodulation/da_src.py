"""
Dopamine source layer (VTA / SNc).

Broadcasts a scalar dopamine value into the ``da`` of every receiver layer on
each cycle, during the broadcast stage. The value is the layer's mean
activation minus a tonic baseline, so a clamped input of 1.0 is a full burst
and an activation below baseline is a dip.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from basalgate.config.neuromodulation import DASrcConfig
from basalgate.core.layer import Layer
from basalgate.core.time import SimTime
from basalgate.errors import ConfigurationError
from basalgate.neuromodulation.receiver import NeuromodulatorReceiverMixin

if TYPE_CHECKING:
    from basalgate.core.network import Network


class DASrcLayer(Layer):
    """Sends its dopamine level to all registered DA receivers."""

    CYCLE_POST_STAGE = 0

    def __init__(self, name: str, config: Optional[DASrcConfig] = None):
        super().__init__(name, config or DASrcConfig())
        self.config: DASrcConfig
        self.da_receivers: List[str] = list(self.config.da_receivers)
        self._receivers: List[NeuromodulatorReceiverMixin] = []
        self.da = 0.0

    def add_da_receiver(self, layer_name: str) -> None:
        if layer_name not in self.da_receivers:
            self.da_receivers.append(layer_name)

    def build(self, network: "Network") -> None:
        super().build(network)
        self._receivers = []
        for layer_name in self.da_receivers:
            rly = self.resolve_partner(layer_name, "DA receiver")
            if rly is None:
                continue
            if not isinstance(rly, NeuromodulatorReceiverMixin):
                raise ConfigurationError(
                    f"DASrcLayer {self.name}: receiver '{layer_name}' cannot receive dopamine"
                )
            self._receivers.append(rly)

    def send_da(self) -> None:
        for rly in self._receivers:
            rly.set_dopamine(self.da)

    def cycle_post(self, time: SimTime) -> None:
        self.da = float(self.act.mean().item()) - self.config.baseline
        self.send_da()
