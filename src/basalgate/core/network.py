"""
Network container: layer registry and two-phase stepped simulation.

Each cycle runs as two phases separated by a barrier:

1. every layer receives conductance and settles its activation, then
2. every layer runs its ``cycle_post`` hook, in ascending
   ``CYCLE_POST_STAGE`` order (broadcasts, then signal derivation and gate
   senders, then gate consumers).

Post-cycle hooks therefore always read fully settled activations of other
layers, never a partially updated one.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Type, Union

import torch
import torch.nn as nn

from basalgate.config.learning import ProjectionConfig
from basalgate.constants import DEFAULT_CYCLES_PER_QUARTER
from basalgate.core.layer import Layer
from basalgate.core.projection import Projection
from basalgate.core.time import Quarter, SimTime
from basalgate.errors import ComponentError, ConfigurationError
from basalgate.typing import LayerInputs

logger = logging.getLogger(__name__)


class Network(nn.Module):
    """A registry of named layers and the projections between them.

    Args:
        name: Network name (for logging and errors)
        cycles_per_quarter: Quarter length of the simulation clock

    Example:
        >>> net = Network()
        >>> pv = net.add_layer(PVLayer("PV", PVConfig(shape=(1, 1))))
        >>> mtx = net.add_layer(MatrixLayer("MtxGo", MatrixConfig(shape=(1, 1))))
        >>> net.build()
        >>> acts = net.run_trial({"PV": torch.tensor([1.0])})
    """

    def __init__(self, name: str = "net", cycles_per_quarter: int = DEFAULT_CYCLES_PER_QUARTER):
        super().__init__()
        self.name = name
        self.layers = nn.ModuleDict()
        self.projections = nn.ModuleList()
        self.time = SimTime(cycles_per_quarter=cycles_per_quarter)
        self.built = False
        self._post_order: List[str] = []

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    def add_layer(self, layer: Layer) -> Layer:
        """Register ``layer`` under its name and return it.

        Raises:
            ConfigurationError: If a layer with the same name already exists
        """
        if layer.name in self.layers:
            raise ConfigurationError(f"Network {self.name}: layer '{layer.name}' already exists")
        self.layers[layer.name] = layer
        self.built = False
        return layer

    def connect(
        self,
        send: Union[str, Layer],
        recv: Union[str, Layer],
        projection_cls: Type[Projection] = Projection,
        config: Optional[ProjectionConfig] = None,
    ) -> Projection:
        """Create a projection from ``send`` to ``recv`` and register it."""
        send_layer = self._as_layer(send)
        recv_layer = self._as_layer(recv)
        prj = projection_cls(send_layer, recv_layer, config)
        self.projections.append(prj)
        self.built = False
        return prj

    def _as_layer(self, layer: Union[str, Layer]) -> Layer:
        if isinstance(layer, Layer):
            return layer
        found = self.layer_by_name(layer)
        if found is None:
            raise ConfigurationError(f"Network {self.name}: no layer named '{layer}'")
        return found

    def layer_by_name(self, name: str) -> Optional[Layer]:
        """Layer registered as ``name``, or None."""
        if name in self.layers:
            return self.layers[name]
        return None

    def projections_into(self, layer: Union[str, Layer]) -> List[Projection]:
        target = self._as_layer(layer)
        return [prj for prj in self.projections if prj.recv is target]

    def build(self) -> None:
        """Resolve all cross-layer references and validate structure.

        Raises:
            ConfigurationError: On structural mismatches between paired layers
        """
        for layer in self.layers.values():
            layer.build(self)
        for prj in self.projections:
            prj.build()
        ordered = sorted(
            enumerate(self.layers.values()),
            key=lambda item: (item[1].CYCLE_POST_STAGE, item[0]),
        )
        self._post_order = [layer.name for _, layer in ordered]
        self.built = True
        logger.info(
            "Built network %s: %d layers, %d projections",
            self.name, len(self.layers), len(self.projections),
        )

    def _check_built(self) -> None:
        if not self.built:
            raise ComponentError(self.name, "network must be built before stepping")

    # =========================================================================
    # INIT
    # =========================================================================

    def init_weights(self) -> None:
        for prj in self.projections:
            prj.init_weights()

    def init_acts(self) -> None:
        for layer in self.layers.values():
            layer.init_acts()

    def alpha_cyc_init(self) -> None:
        """Start-of-trial initialisation of every layer."""
        for layer in self.layers.values():
            layer.alpha_cyc_init()

    # =========================================================================
    # STEPPING
    # =========================================================================

    def cycle(self, time: Optional[SimTime] = None) -> None:
        """Advance one cycle: send, settle all layers, then post-cycle hooks."""
        self._check_built()
        time = time or self.time
        with torch.no_grad():
            for layer in self.layers.values():
                layer.init_ge_raw()
            for prj in self.projections:
                prj.send_ge()

            for layer in self.layers.values():
                layer.gfm_inc(time)
                layer.act_from_g(time)

            for name in self._post_order:
                self.layers[name].cycle_post(time)

    def quarter_final(self, time: Optional[SimTime] = None) -> None:
        """End-of-quarter updates for every layer."""
        self._check_built()
        time = time or self.time
        with torch.no_grad():
            for layer in self.layers.values():
                layer.quarter_final(time)

    def dwt(self) -> None:
        """Compute pending weight changes on every projection."""
        self._check_built()
        with torch.no_grad():
            for prj in self.projections:
                prj.dwt()

    def wt_from_dwt(self) -> None:
        """Apply pending weight changes on every projection."""
        self._check_built()
        with torch.no_grad():
            for prj in self.projections:
                prj.wt_from_dwt()

    def run_trial(
        self,
        inputs: Optional[LayerInputs] = None,
        learn: bool = True,
    ) -> Dict[str, torch.Tensor]:
        """Run one full trial (four quarters) on ``self.time``.

        Args:
            inputs: Layer name -> external input [n_units], clamped for the trial
            learn: Whether to compute and apply weight changes at trial end

        Returns:
            Layer name -> final activation [n_units]
        """
        self._check_built()
        time = self.time
        time.alpha_cyc_start()
        self.alpha_cyc_init()
        for name, values in (inputs or {}).items():
            self._as_layer(name).apply_ext(values)

        for _ in range(4):
            for _ in range(time.cycles_per_quarter):
                self.cycle(time)
                time.cycle_inc()
            self.quarter_final(time)
            if learn and time.quarter == Quarter.Q2:
                self.quarter2_dwt()
            if time.quarter == Quarter.Q4 and learn:
                self.dwt()
                self.wt_from_dwt()
            time.quarter_inc()

        for name in (inputs or {}):
            self._as_layer(name).clear_ext()
        return {name: layer.act.clone() for name, layer in self.layers.items()}

    def quarter2_dwt(self) -> None:
        """Learn mid-trial on the sending projections of layers that ask for it.

        Only projections whose sender's ``do_quarter2_dwt()`` is true are
        updated; every other projection learns once, at the end of the trial.
        """
        self._check_built()
        with torch.no_grad():
            for prj in self.projections:
                if prj.send.do_quarter2_dwt():
                    prj.dwt()
                    prj.wt_from_dwt()

    def __repr__(self) -> str:
        names = ", ".join(self.layers.keys())
        return f"Network({self.name}: {names})"
