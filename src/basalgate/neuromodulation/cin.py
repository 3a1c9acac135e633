"""
Cholinergic interneurons (CINs) of the striatum.

CINs report the absolute value of reward (or reward-predicting) signals as an
acetylcholine level. In Matrix learning, ACh sets how strongly the eligibility
trace is reset after it has been used by dopamine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from basalgate.config.neuromodulation import CINConfig
from basalgate.core.layer import Layer
from basalgate.core.time import SimTime
from basalgate.errors import ConfigurationError
from basalgate.neuromodulation.receiver import NeuromodulatorReceiverMixin

if TYPE_CHECKING:
    from basalgate.core.network import Network


class CINLayer(Layer):
    """Computes ACh from reward layers and sends it to ACh receivers.

    ``ach = max |act|`` over all units of all reward layers. With
    ``rew_thr > 0`` any value above threshold drives ACh to 1.
    """

    CYCLE_POST_STAGE = 0

    def __init__(self, name: str, config: Optional[CINConfig] = None):
        super().__init__(name, config or CINConfig())
        self.config: CINConfig
        self.rew_layers: List[str] = list(self.config.rew_layers)
        self.ach_receivers: List[str] = list(self.config.ach_receivers)
        self._rew: List[Layer] = []
        self._receivers: List[NeuromodulatorReceiverMixin] = []
        self.ach = 0.0

    def build(self, network: "Network") -> None:
        super().build(network)
        self._rew = [
            lay for lay in (self.resolve_partner(nm, "reward") for nm in self.rew_layers)
            if lay is not None
        ]
        self._receivers = []
        for layer_name in self.ach_receivers:
            rly = self.resolve_partner(layer_name, "ACh receiver")
            if rly is None:
                continue
            if not isinstance(rly, NeuromodulatorReceiverMixin):
                raise ConfigurationError(
                    f"CINLayer {self.name}: receiver '{layer_name}' cannot receive acetylcholine"
                )
            self._receivers.append(rly)

    def max_abs_rew(self) -> float:
        """Maximum absolute activation across all reward layers."""
        ract = 0.0
        for lay in self._rew:
            ract = max(ract, float(lay.act.abs().max().item()))
        return ract

    def send_ach(self) -> None:
        for rly in self._receivers:
            rly.set_acetylcholine(self.ach)

    def cycle_post(self, time: SimTime) -> None:
        ract = self.max_abs_rew()
        if self.config.rew_thr > 0 and ract > self.config.rew_thr:
            ract = 1.0
        self.ach = ract
        self.send_ach()
