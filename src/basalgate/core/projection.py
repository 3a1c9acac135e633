"""
Weighted projections between layers.

Supports:
- Dense or sparse (masked) connectivity
- Conductance sending from sender activations to receiver ``ge_raw``
- Pending weight change (``dwt``) accumulation and bounded weight update
- Per-synapse normalisation and momentum state for learning rules

The base ``Projection`` has fixed weights: ``dwt()`` does nothing. Learning
projections override ``dwt()`` to accumulate into ``self.dwt_buf``.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, ClassVar, Dict, Optional, Tuple

import torch
import torch.nn as nn

from basalgate.config.learning import ProjectionConfig
from basalgate.errors import UnknownVariableError

if TYPE_CHECKING:
    from basalgate.core.layer import Layer


class Projection(nn.Module):
    """Weighted connections from a sending layer to a receiving layer.

    Weights are stored as ``[n_recv, n_send]``; a sending unit's synapses are
    the column ``weight[:, s]``.

    Args:
        send: Sending layer
        recv: Receiving layer
        config: Projection configuration

    Example:
        >>> prj = Projection(input_layer, matrix_layer)
        >>> prj.send_ge()  # adds wt_scale * W @ input.act into matrix.ge_raw
    """

    SYN_VAR_ATTRS: ClassVar[Dict[str, str]] = {
        "Wt": "weight",
        "DWt": "dwt_buf",
        "Norm": "norm",
        "Moment": "moment",
    }
    """Introspection name -> per-synapse tensor attribute."""

    def __init__(
        self,
        send: "Layer",
        recv: "Layer",
        config: Optional[ProjectionConfig] = None,
    ):
        super().__init__()
        # Plain tuple so the layers are not registered as submodules here
        self._layers: Tuple["Layer", "Layer"] = (send, recv)
        self.config = config or ProjectionConfig()
        self.n_send = send.n_units
        self.n_recv = recv.n_units

        device = self.config.get_torch_device()
        dtype = self.config.get_torch_dtype()
        shape = (self.n_recv, self.n_send)

        # Seeded draws come from a CPU generator, then move to the device
        self._rng: Optional[torch.Generator] = None
        if self.config.seed is not None:
            self._rng = torch.Generator()
            self._rng.manual_seed(self.config.seed)

        if self.config.connectivity < 1.0:
            mask = self._rand(shape).to(device) < self.config.connectivity
        else:
            mask = torch.ones(shape, device=device, dtype=torch.bool)
        self.register_buffer("mask", mask)

        self.weight = nn.Parameter(torch.zeros(shape, device=device, dtype=dtype), requires_grad=False)
        self.register_buffer("dwt_buf", torch.zeros(shape, device=device, dtype=dtype))
        self.register_buffer("norm", torch.zeros(shape, device=device, dtype=dtype))
        self.register_buffer("moment", torch.zeros(shape, device=device, dtype=dtype))
        self.init_weights()

    @property
    def send(self) -> "Layer":
        return self._layers[0]

    @property
    def recv(self) -> "Layer":
        return self._layers[1]

    @property
    def name(self) -> str:
        return f"{self.send.name}To{self.recv.name}"

    def build(self) -> None:
        """Build-time hook, run after all layers are built."""

    # =========================================================================
    # WEIGHTS
    # =========================================================================

    def init_weights(self) -> None:
        """Initialise weights uniformly around ``wt_init_mean`` and clear learning state."""
        cfg = self.config
        with torch.no_grad():
            noise = self._rand(self.weight.shape).to(self.weight)
            w = cfg.wt_init_mean + cfg.wt_init_var * (noise - 0.5)
            self.weight.copy_(w.clamp(cfg.w_min, cfg.w_max) * self.mask)
        self.dwt_buf.zero_()
        self.norm.zero_()
        self.moment.zero_()

    def _rand(self, shape) -> torch.Tensor:
        if self._rng is None:
            return torch.rand(shape)
        return torch.rand(shape, generator=self._rng)

    def send_ge(self) -> None:
        """Add this projection's conductance into the receiver's ``ge_raw``."""
        w = self.weight * self.mask
        self.recv.ge_raw.add_(self.config.wt_scale * torch.mv(w, self.send.act))

    def dwt(self) -> None:
        """Compute pending weight changes. Fixed-weight projections do nothing."""

    def wt_from_dwt(self) -> None:
        """Apply pending weight changes, bound weights, and clear ``dwt``."""
        if not self.config.learn.learn:
            return
        cfg = self.config
        with torch.no_grad():
            self.weight.add_(self.dwt_buf * self.mask)
            self.weight.clamp_(cfg.w_min, cfg.w_max)
        self.dwt_buf.zero_()

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    @classmethod
    def syn_var_names(cls) -> Tuple[str, ...]:
        return tuple(cls.SYN_VAR_ATTRS)

    def syn_var_index(self, var_name: str) -> int:
        """Index of ``var_name`` in ``syn_var_names()``.

        Raises:
            UnknownVariableError: If the variable does not exist on this projection
        """
        names = self.syn_var_names()
        try:
            return names.index(var_name)
        except ValueError:
            raise UnknownVariableError(self.name, var_name, names) from None

    def syn_values(self, var_name: str) -> torch.Tensor:
        """All values of ``var_name`` as a [n_recv, n_send] tensor."""
        self.syn_var_index(var_name)
        return getattr(self, self.SYN_VAR_ATTRS[var_name]).detach()

    def syn_value(self, var_name: str, recv_idx: int, send_idx: int) -> float:
        """Value of ``var_name`` on one synapse; NaN for invalid indices."""
        values = self.syn_values(var_name)
        if not (0 <= recv_idx < self.n_recv and 0 <= send_idx < self.n_send):
            return math.nan
        return float(values[recv_idx, send_idx].item())

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.send.name}->{self.recv.name}, "
            f"{self.n_send}->{self.n_recv}, conn={self.config.connectivity:.2f})"
        )
