"""
Rate-code layer: a pooled group of units with per-unit state tensors.

This is the generic substrate the gating and neuromodulatory layers build on.
It owns the per-unit activation state, knows how units are grouped into
pools (stripes), and provides the per-cycle and per-quarter hooks the
``Network`` calls in its two-phase step.
"""

from __future__ import annotations

import logging
import math
import weakref
from typing import TYPE_CHECKING, ClassVar, Dict, Optional, Tuple, Union

import torch
import torch.nn as nn

from basalgate.config.base import LayerConfig
from basalgate.core.time import SimTime
from basalgate.errors import UnknownVariableError
from basalgate.typing import LayerShape, PoolValues, UnitValues

if TYPE_CHECKING:
    from basalgate.core.network import Network

logger = logging.getLogger(__name__)


class Layer(nn.Module):
    """A layer of rate-coded units organised into pools.

    Units are stored in flat index order. For a 4D shape
    ``(pool_y, pool_x, unit_y, unit_x)`` unit ``i`` belongs to pool
    ``i // (unit_y * unit_x)``; a 2D shape ``(unit_y, unit_x)`` is a single
    pool covering the whole layer.

    Args:
        name: Layer name, unique within its network
        config: Layer configuration

    Example:
        >>> layer = Layer("Input", LayerConfig(shape=(1, 4, 1, 1)))
        >>> layer.n_pools, layer.pool_size
        (4, 1)
    """

    UNIT_VAR_ATTRS: ClassVar[Dict[str, str]] = {
        "Act": "act",
        "Ext": "ext",
        "Ge": "ge",
        "GeRaw": "ge_raw",
        "ActLrn": "act_lrn",
        "AlphaMax": "alpha_max",
    }
    """Introspection name -> attribute holding a per-unit tensor or layer scalar."""

    CYCLE_POST_STAGE: ClassVar[int] = 1
    """Order of this layer's ``cycle_post`` within a cycle (lower runs first)."""

    def __init__(self, name: str, config: Optional[LayerConfig] = None):
        super().__init__()
        self.name = name
        self.config = config or LayerConfig()

        shape = self.config.shape
        if len(shape) == 4:
            self.pool_y, self.pool_x, self.unit_y, self.unit_x = shape
        else:
            self.pool_y, self.pool_x = 1, 1
            self.unit_y, self.unit_x = shape
        self.shape: LayerShape = tuple(shape)
        self.n_pools = self.pool_y * self.pool_x
        self.pool_size = self.unit_y * self.unit_x
        self.n_units = self.n_pools * self.pool_size

        device = self.config.get_torch_device()
        dtype = self.config.get_torch_dtype()
        for buf in ("act", "ext", "ge_raw", "ge", "act_lrn", "alpha_max"):
            self.register_buffer(buf, torch.zeros(self.n_units, device=device, dtype=dtype))
        self.register_buffer("has_ext", torch.zeros(self.n_units, device=device, dtype=torch.bool))
        self.register_buffer(
            "pool_idx",
            torch.arange(self.n_units, device=device) // self.pool_size,
        )

        self._network_ref: Optional[weakref.ReferenceType] = None
        self.built = False

    # =========================================================================
    # BUILD
    # =========================================================================

    @property
    def network(self) -> Optional["Network"]:
        """Owning network (non-owning reference), or None before build."""
        return self._network_ref() if self._network_ref is not None else None

    def build(self, network: "Network") -> None:
        """Attach to ``network`` and resolve any named partner layers.

        Subclasses extend this to look up paired layers; unresolved names are
        logged and leave the dependent effect disabled.
        """
        self._network_ref = weakref.ref(network)
        self.built = True

    def layer_by_name(self, name: str) -> Optional["Layer"]:
        """Look up another layer of the same network, or None if absent."""
        net = self.network
        if net is None:
            return None
        return net.layer_by_name(name)

    def resolve_partner(self, name: str, role: str) -> Optional["Layer"]:
        """Resolve a named partner layer, logging a warning on a miss."""
        other = self.layer_by_name(name)
        if other is None:
            logger.warning(
                "Layer %s: %s layer '%s' not found, dependent updates are skipped",
                self.name, role, name,
            )
        return other

    # =========================================================================
    # POOLS
    # =========================================================================

    def pool_slice(self, pool: int) -> slice:
        """Flat unit index range of ``pool``."""
        return slice(pool * self.pool_size, (pool + 1) * self.pool_size)

    def pool_view(self, values: torch.Tensor) -> torch.Tensor:
        """View a per-unit tensor as [n_pools, pool_size]."""
        return values.view(self.n_pools, self.pool_size)

    def pool_act_max(self) -> PoolValues:
        return self.pool_view(self.act).max(dim=1).values

    def pool_act_avg(self) -> PoolValues:
        return self.pool_view(self.act).mean(dim=1)

    def pool_alpha_max(self) -> PoolValues:
        """Peak alpha-max activation per pool [n_pools]."""
        return self.pool_view(self.alpha_max).max(dim=1).values

    # =========================================================================
    # INIT / DECAY
    # =========================================================================

    def init_acts(self) -> None:
        """Reset all activation state to zero."""
        for buf in (self.act, self.ext, self.ge_raw, self.ge, self.act_lrn, self.alpha_max):
            buf.zero_()
        self.has_ext.zero_()

    def decay_state(self, decay: float) -> None:
        """Decay activation state of all units by fraction ``decay``."""
        for buf in (self.act, self.ge, self.act_lrn):
            buf.mul_(1.0 - decay)

    def decay_state_pool(self, pool: int, decay: float) -> None:
        """Decay activation state of one pool by fraction ``decay``."""
        sl = self.pool_slice(pool)
        for buf in (self.act, self.ge, self.act_lrn):
            buf[sl] *= 1.0 - decay

    def alpha_cyc_init(self) -> None:
        """Start-of-trial reset: decay state, clear alpha-max."""
        if self.config.init_decay > 0:
            self.decay_state(self.config.init_decay)
        self.alpha_max.zero_()

    # =========================================================================
    # EXTERNAL INPUT
    # =========================================================================

    def apply_ext(self, values: torch.Tensor) -> None:
        """Clamp external input [n_units] onto this layer."""
        self.ext.copy_(values.reshape(self.n_units))
        self.has_ext.fill_(True)

    def clear_ext(self) -> None:
        self.ext.zero_()
        self.has_ext.zero_()

    # =========================================================================
    # CYCLE
    # =========================================================================

    def init_ge_raw(self) -> None:
        """Clear raw conductance before projections send this cycle."""
        self.ge_raw.zero_()

    def gfm_inc(self, time: SimTime) -> None:
        """Integrate excitatory conductance from raw synaptic input."""
        self.ge.copy_(self.ge_raw)

    def act_from_g(self, time: SimTime) -> None:
        """Compute rate-code activation from conductance, then alpha-max."""
        cfg = self.config
        x = (self.ge - cfg.act_thr).clamp(min=0.0) * cfg.act_gain
        target = x / (x + 1.0)
        self.act.add_(cfg.act_dt * (target - self.act))
        if cfg.hard_clamp:
            self.act.copy_(torch.where(self.has_ext, self.ext, self.act))
        self.alpha_max_from_act(time)
        self.act_lrn.copy_(self.act)

    def alpha_max_from_act(self, time: SimTime) -> None:
        """Track peak activation once the integration window has started."""
        if time.cycle < self.config.alpha_max_cyc:
            return
        self.alpha_max.copy_(torch.maximum(self.alpha_max, self.act))

    def cycle_post(self, time: SimTime) -> None:
        """Post-settle hook, run after every layer has settled this cycle."""

    def quarter_final(self, time: SimTime) -> None:
        """End-of-quarter hook."""

    def do_quarter2_dwt(self) -> bool:
        """Whether this layer wants learning after the second quarter."""
        return False

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    @classmethod
    def unit_var_names(cls) -> Tuple[str, ...]:
        return tuple(cls.UNIT_VAR_ATTRS)

    def unit_var_index(self, var_name: str) -> int:
        """Index of ``var_name`` in ``unit_var_names()``.

        Raises:
            UnknownVariableError: If the variable does not exist on this layer
        """
        names = self.unit_var_names()
        try:
            return names.index(var_name)
        except ValueError:
            raise UnknownVariableError(self.name, var_name, names) from None

    def unit_values(self, var_name: str) -> UnitValues:
        """All per-unit values of ``var_name`` as a float tensor [n_units]."""
        self.unit_var_index(var_name)
        val: Union[torch.Tensor, float] = getattr(self, self.UNIT_VAR_ATTRS[var_name])
        if isinstance(val, torch.Tensor):
            return val.float()
        return torch.full((self.n_units,), float(val), device=self.act.device)

    def unit_value(self, var_name: str, index: int) -> float:
        """Value of ``var_name`` on unit ``index``; NaN for an invalid index."""
        values = self.unit_values(var_name)
        if index < 0 or index >= self.n_units:
            return math.nan
        return float(values[index].item())

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, shape={self.shape})"
