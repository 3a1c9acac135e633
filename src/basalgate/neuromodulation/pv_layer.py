"""
Primary Value (PV) broadcast layer.

A PV layer sends its activation directly into the ``pv_act`` of receiver
layers, bypassing weighted synapses. Sending happens on every cycle of the
configured ``send_pv_quarter`` (Q4 by default, when the outcome is known),
during the broadcast stage so that receivers read it in the same cycle.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

import torch

from basalgate.config.neuromodulation import PVConfig
from basalgate.core.layer import Layer
from basalgate.core.time import SimTime
from basalgate.errors import ConfigurationError, UnknownVariableError, validate_same_shape
from basalgate.neuromodulation.receiver import NeuromodulatorReceiverMixin

if TYPE_CHECKING:
    from basalgate.core.network import Network

logger = logging.getLogger(__name__)


class PVLayer(Layer):
    """Primary Value input layer broadcasting ``max(act, ext)`` to receivers.

    Receivers must have exactly this layer's shape; this is checked when the
    network is built.
    """

    CYCLE_POST_STAGE = 0

    MONITOR_VARS = ("TotalAct", "Act", "PoolActAvg", "PoolActMax")

    def __init__(self, name: str, config: Optional[PVConfig] = None):
        super().__init__(name, config or PVConfig())
        self.config: PVConfig
        self.pv_receivers: List[str] = list(self.config.pv_receivers)
        self._receivers: List[NeuromodulatorReceiverMixin] = []

    @property
    def send_pv_quarter(self):
        return self.config.send_pv_quarter

    def add_pv_receiver(self, layer_name: str) -> None:
        """Register ``layer_name`` as a PV receiver (resolved at build)."""
        if layer_name not in self.pv_receivers:
            self.pv_receivers.append(layer_name)
        if self.network is not None:
            self._attach_receiver(layer_name)

    def build(self, network: "Network") -> None:
        super().build(network)
        self._receivers = []
        for layer_name in self.pv_receivers:
            self._attach_receiver(layer_name)

    def _attach_receiver(self, layer_name: str) -> None:
        rly = self.resolve_partner(layer_name, "PV receiver")
        if rly is None:
            return
        if not isinstance(rly, NeuromodulatorReceiverMixin):
            raise ConfigurationError(
                f"PVLayer {self.name}: receiver '{layer_name}' ({type(rly).__name__}) "
                f"cannot receive neuromodulators"
            )
        validate_same_shape(self.name, self.shape, rly.name, rly.shape)
        rly.is_pv_receiver = True
        if rly not in self._receivers:
            self._receivers.append(rly)

    def send_pv_act(self) -> None:
        """Copy ``max(act, ext)`` of each unit into every receiver's ``pv_act``."""
        pv = torch.maximum(self.act, self.ext)
        for rly in self._receivers:
            rly.pv_act.copy_(pv)

    def cycle_post(self, time: SimTime) -> None:
        if time.quarter == self.send_pv_quarter:
            self.send_pv_act()

    def monitor_value(self, var_name: str, index: int = 0) -> float:
        """Summary value for monitoring.

        Args:
            var_name: One of ``TotalAct``, ``Act`` (unit ``index``),
                ``PoolActAvg`` / ``PoolActMax`` (pool ``index``, scaled by pool size)
            index: Unit or pool index

        Raises:
            UnknownVariableError: If ``var_name`` is not a monitor variable
        """
        if var_name == "TotalAct":
            return float(self.act.sum().item())
        if var_name == "Act":
            return self.unit_value("Act", index)
        if var_name == "PoolActAvg":
            return float(self.pool_act_avg()[index].item() * self.pool_size)
        if var_name == "PoolActMax":
            return float(self.pool_act_max()[index].item() * self.pool_size)
        raise UnknownVariableError(self.name, var_name, self.MONITOR_VARS)
