"""
GateRecorder: per-trial record of gating and learning state.

The recorder never drives the simulation. Call ``record(net)`` once per
trial from whatever loop you own:

    recorder = GateRecorder()

    for trial in range(n_trials):
        net.run_trial(inputs[trial])
        recorder.record(net)

    arrays = recorder.to_arrays()
    arrays["PFCmntD/gate_cnt"]  # [n_trials, n_pools]

Recorded per layer type:
- ``PFCDeepLayer``: ``gate_cnt`` and pool-mean ``maint`` [n_pools]
- ``MatrixLayer``: scalar ``da_lrn`` and ``ach``
- any layer: pool-mean ``act`` [n_pools]
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from basalgate.regions.matrix import MatrixLayer
from basalgate.regions.pfc_deep import PFCDeepLayer

if TYPE_CHECKING:
    from basalgate.core.layer import Layer
    from basalgate.core.network import Network


def layer_diagnostics(layer: "Layer") -> Dict[str, Any]:
    """Summary scalars for one layer."""
    diag: Dict[str, Any] = {
        "act_mean": float(layer.act.mean().item()),
        "act_max": float(layer.act.max().item()),
        "alpha_max_mean": float(layer.alpha_max.mean().item()),
    }
    if isinstance(layer, PFCDeepLayer):
        cnt = layer.gate_cnt
        diag["n_gated"] = int((cnt >= 0).sum().item())
        diag["maint_mean"] = float(layer.maint.mean().item())
        diag["maint_ge_mean"] = float(layer.maint_ge.mean().item())
    if isinstance(layer, MatrixLayer):
        diag["da"] = layer.da
        diag["da_lrn"] = layer.da_lrn
        diag["ach"] = layer.ach
    return diag


class GateRecorder:
    """Accumulates per-trial snapshots into numpy arrays.

    Args:
        layers: Names of layers to record (None = every layer of the network)
    """

    def __init__(self, layers: Optional[Sequence[str]] = None):
        self.layers = list(layers) if layers is not None else None
        self.n_trials = 0
        self._records: Dict[str, List[NDArray[np.float64]]] = defaultdict(list)

    def record(self, net: "Network") -> None:
        names = self.layers if self.layers is not None else list(net.layers.keys())
        for name in names:
            layer = net.layer_by_name(name)
            if layer is None:
                continue
            self._add(f"{name}/act", layer.pool_act_avg().cpu().numpy())
            if isinstance(layer, PFCDeepLayer):
                self._add(f"{name}/gate_cnt", layer.gate_cnt.cpu().numpy())
                self._add(f"{name}/maint", layer.pool_view(layer.maint).mean(dim=1).cpu().numpy())
            if isinstance(layer, MatrixLayer):
                self._add(f"{name}/da_lrn", np.array([layer.da_lrn]))
                self._add(f"{name}/ach", np.array([layer.ach]))
        self.n_trials += 1

    def _add(self, key: str, values: NDArray[Any]) -> None:
        self._records[key].append(np.asarray(values, dtype=np.float64))

    def keys(self) -> List[str]:
        return sorted(self._records)

    def to_arrays(self) -> Dict[str, NDArray[np.float64]]:
        """Stack recordings: key -> [n_trials, n_values]."""
        return {key: np.stack(vals) for key, vals in self._records.items()}

    def gate_occupancy(self, layer_name: str) -> NDArray[np.float64]:
        """Fraction of recorded trials each pool of ``layer_name`` was gated (cnt >= 0).

        Raises:
            KeyError: If no gate counters were recorded for ``layer_name``
        """
        key = f"{layer_name}/gate_cnt"
        if key not in self._records:
            raise KeyError(f"no gate counters recorded for layer '{layer_name}'")
        return (np.stack(self._records[key]) >= 0).mean(axis=0)

    def reset(self) -> None:
        self._records.clear()
        self.n_trials = 0
