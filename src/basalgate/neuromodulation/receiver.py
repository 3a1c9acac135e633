"""
Neuromodulator Receiver Mixin for layers.

Layers that consume dopamine, acetylcholine or a directly broadcast primary
value (PV) inherit this mixin. The values are written by sender layers
(``DASrcLayer``, ``CINLayer``, ``PVLayer``) during the broadcast stage of
each cycle, and read by the receiving layer in later stages.

Usage Example:
==============
    class MyLayer(NeuromodulatorReceiverMixin, Layer):
        def __init__(self, name, config=None):
            super().__init__(name, config)
            self._init_neuromodulators()

        def cycle_post(self, time):
            lrn = self.da * 2.0
"""

from __future__ import annotations

from typing import ClassVar, Dict, Optional

import torch

from basalgate.config.base import LayerConfig
from basalgate.core.layer import Layer


class NeuromodulatorReceiverMixin:
    """Per-layer dopamine / acetylcholine levels and per-unit PV activation.

    Attributes:
        da: Raw dopamine level received this cycle
        ach: Acetylcholine level received this cycle
        pv_act: Per-unit primary value activation [n_units]
        is_pv_receiver: True once registered with a PVLayer
    """

    # Provided by Layer
    n_units: int
    act: torch.Tensor

    def _init_neuromodulators(self) -> None:
        self.da = 0.0
        self.ach = 0.0
        self.is_pv_receiver = False
        self.register_buffer("pv_act", torch.zeros_like(self.act))  # type: ignore[attr-defined]

    def set_dopamine(self, da: float) -> None:
        self.da = float(da)

    def set_acetylcholine(self, ach: float) -> None:
        self.ach = float(ach)

    def init_neuromodulators(self) -> None:
        """Reset received neuromodulator values."""
        self.da = 0.0
        self.ach = 0.0
        self.pv_act.zero_()


class ModLayer(NeuromodulatorReceiverMixin, Layer):
    """Plain layer that can receive PV, DA and ACh broadcasts."""

    UNIT_VAR_ATTRS: ClassVar[Dict[str, str]] = {
        **Layer.UNIT_VAR_ATTRS,
        "PVAct": "pv_act",
        "DA": "da",
        "ACh": "ach",
    }

    def __init__(self, name: str, config: Optional[LayerConfig] = None):
        super().__init__(name, config)
        self._init_neuromodulators()

    def init_acts(self) -> None:
        super().init_acts()
        self.init_neuromodulators()
