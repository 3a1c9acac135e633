"""
Striatal Matrix layer and its dopamine-modulated trace projection.

Matrix (Go / NoGo) units learn which PFC stripes should gate. Learning has
two parts:

1. Signal derivation (``MatrixLayer``): raw dopamine is scaled by burst/dip
   gain and sign-flipped for D2R layers into ``da_lrn``; each unit's learning
   activation ``act_lrn`` is its alpha-max activation (or its derivative),
   signed by whether the corresponding VThal stripe actually gated.

2. Trace learning (``MatrixProjection``): a per-synapse eligibility trace of
   receiver x sender ``act_lrn`` is accumulated and converted into weight
   change whenever dopamine arrives. ACh from CINs resets the trace.

Biological Basis:
=================
- D1 (Go) MSNs potentiate on dopamine bursts after gating
- D2 (NoGo) MSNs show the opposite polarity
- Tonically active cholinergic interneurons pause at reward, marking the
  point at which eligibility should be consumed and cleared

References:
- Frank (2005): Dynamic dopamine modulation in the basal ganglia
- O'Reilly & Frank (2006): Making working memory work (PBWM)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar, Dict, Optional

import torch

from basalgate.config.basal_ganglia import MatrixConfig, MatrixProjectionConfig
from basalgate.constants import DaReceptor
from basalgate.core.layer import Layer
from basalgate.core.projection import Projection
from basalgate.core.time import SimTime
from basalgate.errors import ConfigurationError, validate_pool_count
from basalgate.neuromodulation.receiver import NeuromodulatorReceiverMixin

if TYPE_CHECKING:
    from basalgate.core.network import Network

logger = logging.getLogger(__name__)


class MatrixLayer(NeuromodulatorReceiverMixin, Layer):
    """Matrix MSN layer: derives ``da_lrn`` and signed ``act_lrn`` each cycle.

    Pools correspond one-to-one with the pools of the VThal layer named in
    ``config.matrix.thal_lay``.
    """

    UNIT_VAR_ATTRS: ClassVar[Dict[str, str]] = {
        **Layer.UNIT_VAR_ATTRS,
        "DA": "da",
        "DALrn": "da_lrn",
        "ACh": "ach",
    }

    CYCLE_POST_STAGE = 1

    def __init__(self, name: str, config: Optional[MatrixConfig] = None):
        super().__init__(name, config or MatrixConfig())
        self.config: MatrixConfig
        self._init_neuromodulators()
        self.da_lrn = 0.0
        self._thal: Optional[Layer] = None

    @property
    def da_r(self) -> DaReceptor:
        return self.config.da_r

    @property
    def thal_layer(self) -> Optional[Layer]:
        return self._thal

    def build(self, network: "Network") -> None:
        super().build(network)
        self._thal = self.resolve_partner(self.config.matrix.thal_lay, "thalamic")
        if self._thal is not None:
            validate_pool_count(self.name, self.n_pools, self._thal.name, self._thal.n_pools)

    # =========================================================================
    # LEARNING SIGNALS
    # =========================================================================

    def da_lrn_from_da(self) -> float:
        """Gain-scaled, receptor-signed dopamine used for learning."""
        mp = self.config.matrix
        da = self.da
        if da > 0:
            da *= mp.burst_gain
        else:
            da *= mp.dip_gain
        if self.da_r == DaReceptor.D2R:
            da = -da
        self.da_lrn = da
        return da

    def lrn_factor(self, act: torch.Tensor) -> torch.Tensor:
        if self.config.matrix.deriv:
            return 2.0 * act * (1.0 - act)
        return act

    def da_act_lrn(self, time: SimTime) -> None:
        """Update ``da_lrn``, and ``act_lrn`` once the alpha-max window has begun.

        ``act_lrn`` is positive for units in stripes whose thalamic pool peak
        exceeded ``thal_thr`` (the stripe gated), negative otherwise.
        """
        self.da_lrn_from_da()
        if time.cycle < self.config.alpha_max_cyc:
            return
        if self._thal is None:
            return
        amax = self.lrn_factor(self.alpha_max)
        gated = (self._thal.pool_alpha_max() > self.config.matrix.thal_thr)[self.pool_idx]
        self.act_lrn.copy_(torch.where(gated, amax, -amax))

    # =========================================================================
    # HOOKS
    # =========================================================================

    def cycle_post(self, time: SimTime) -> None:
        self.da_act_lrn(time)

    def init_acts(self) -> None:
        super().init_acts()
        self.init_neuromodulators()
        self.da_lrn = 0.0


class MatrixProjection(Projection):
    """Dopamine-modulated eligibility-trace projection into a ``MatrixLayer``.

    Per synapse, with ``ntr = recv.act_lrn * send.act_lrn``:

    - current-trial DA: ``tr += ntr``, then ``dwt = da_lrn * tr`` (if DA is
      nonzero), then ``tr -= ach_dk * tr``
    - delayed DA: ``dwt = da_lrn * tr`` on the existing trace, then decay,
      then ``tr += ntr``

    where ``ach_dk = min(1, ach * trace.decay)``.
    """

    SYN_VAR_ATTRS: ClassVar[Dict[str, str]] = {
        **Projection.SYN_VAR_ATTRS,
        "NTr": "ntr",
        "Tr": "tr",
    }

    def __init__(
        self,
        send: Layer,
        recv: Layer,
        config: Optional[MatrixProjectionConfig] = None,
    ):
        if not isinstance(recv, MatrixLayer):
            raise ConfigurationError(
                f"MatrixProjection {send.name}->{recv.name}: receiver must be a MatrixLayer"
            )
        super().__init__(send, recv, config or MatrixProjectionConfig())
        self.config: MatrixProjectionConfig
        self.register_buffer("tr", torch.zeros_like(self.dwt_buf))
        self.register_buffer("ntr", torch.zeros_like(self.dwt_buf))

    @property
    def recv(self) -> MatrixLayer:
        return self._layers[1]  # type: ignore[return-value]

    def clear_trace(self) -> None:
        self.tr.zero_()
        self.ntr.zero_()

    def init_weights(self) -> None:
        super().init_weights()
        # Called from the base constructor before the trace buffers exist
        if hasattr(self, "tr"):
            self.clear_trace()

    def dwt(self) -> None:
        """Accumulate dopamine x trace weight changes into ``dwt_buf``."""
        learn = self.config.learn
        if not learn.learn:
            return
        rlay = self.recv
        tp = self.config.trace
        da = rlay.da
        da_lrn = rlay.da_lrn
        ach_dk = tp.ach_decay(rlay.ach)

        ntr = torch.outer(rlay.act_lrn, self.send.act_lrn) * self.mask
        tr = self.tr.clone()
        dwt = torch.zeros_like(tr)

        if tp.cur_trl_da:
            tr += ntr
        if da != 0:
            dwt = da_lrn * tr
        tr -= ach_dk * tr
        if not tp.cur_trl_da:
            tr += ntr

        self.tr.copy_(tr)
        self.ntr.copy_(ntr)

        if learn.norm.on:
            norm_factor = learn.norm.norm_from_abs_dwt(self.norm, dwt.abs())
        else:
            norm_factor = torch.ones_like(dwt)
            self.norm.copy_(ntr)
        if learn.momentum.on:
            dwt = norm_factor * learn.momentum.moment_from_dwt(self.moment, dwt)
        else:
            dwt = norm_factor * dwt
            if not learn.norm.on:
                self.moment.copy_(tr)

        self.dwt_buf.add_(learn.effective_lrate * dwt * self.mask)

        if learn.norm.on:
            # Running max is shared across each sending unit's synapses
            send_max = self.norm.max(dim=0, keepdim=True).values
            self.norm.copy_(send_max.expand_as(self.norm))

    def __repr__(self) -> str:
        tp = self.config.trace
        return (
            f"MatrixProjection({self.send.name}->{self.recv.name}, "
            f"{self.n_send}->{self.n_recv}, cur_trl_da={tp.cur_trl_da})"
        )
