"""
Per-pool gate state for BG-gated layers.

Every pool (stripe) of a gated layer carries three values:

- ``now``: a gate decision is being delivered this cycle (set externally,
  consumed and cleared at the end of the layer's post-cycle hook)
- ``act``: gating drive magnitude, only meaningful when ``now`` is set
- ``cnt``: -1 = idle/cleared (more negative the longer it stays idle),
  0 = just gated, > 0 = gate-quarters elapsed since gating
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar, Dict, Optional

import torch

from basalgate.config.base import LayerConfig
from basalgate.constants import GateType
from basalgate.core.layer import Layer
from basalgate.core.time import SimTime
from basalgate.errors import ConfigurationError
from basalgate.typing import PoolValues


class GatePhase(StrEnum):
    """Phase of a stripe's gating lifecycle, derived from its counter."""

    IDLE = "idle"
    JUST_GATED = "just_gated"
    MAINTAINING = "maintaining"
    EXPIRED = "expired"


@dataclass(frozen=True)
class GateState:
    """Snapshot of one pool's gate state."""

    now: bool
    act: float
    cnt: int

    def phase(self, max_maint: int) -> GatePhase:
        if self.cnt < 0:
            return GatePhase.IDLE
        if self.cnt == 0:
            return GatePhase.JUST_GATED
        if self.cnt < max_maint:
            return GatePhase.MAINTAINING
        return GatePhase.EXPIRED


class GateLayer(Layer):
    """Layer whose pools receive gate events from a gating source (VThal)."""

    UNIT_VAR_ATTRS: ClassVar[Dict[str, str]] = {
        **Layer.UNIT_VAR_ATTRS,
        "GateAct": "unit_gate_act",
        "GateNow": "unit_gate_now",
        "GateCnt": "unit_gate_cnt",
    }

    def __init__(self, name: str, config: Optional[LayerConfig] = None):
        super().__init__(name, config)
        device = self.act.device
        self.register_buffer("gate_now", torch.zeros(self.n_pools, dtype=torch.bool, device=device))
        self.register_buffer("gate_act", torch.zeros(self.n_pools, dtype=self.act.dtype, device=device))
        self.register_buffer("gate_cnt", torch.full((self.n_pools,), -1, dtype=torch.long, device=device))

    @property
    def gate_type(self) -> GateType:
        return GateType.MAINT

    # =========================================================================
    # GATE EVENTS
    # =========================================================================

    def set_gate(self, pool_acts: PoolValues) -> None:
        """Deliver a gate event to every pool this cycle.

        Args:
            pool_acts: Gating drive per pool [n_pools]; pools with 0 are
                informed of the gating opportunity but do not gate

        Raises:
            ConfigurationError: If ``pool_acts`` does not have one value per pool
        """
        if pool_acts.numel() != self.n_pools:
            raise ConfigurationError(
                f"{self.name}: gate acts have {pool_acts.numel()} values, "
                f"layer has {self.n_pools} pools"
            )
        self.gate_now.fill_(True)
        self.gate_act.copy_(pool_acts.reshape(self.n_pools))

    def set_pool_gate(self, pool: int, act: float) -> None:
        """Deliver a gate event to a single pool this cycle."""
        self.gate_now[pool] = True
        self.gate_act[pool] = act

    def clear_gate_now(self) -> None:
        self.gate_now.zero_()
        self.gate_act.zero_()

    def gate_state(self, pool: int) -> GateState:
        return GateState(
            now=bool(self.gate_now[pool].item()),
            act=float(self.gate_act[pool].item()),
            cnt=int(self.gate_cnt[pool].item()),
        )

    # =========================================================================
    # PER-UNIT VIEWS
    # =========================================================================

    @property
    def unit_gate_act(self) -> torch.Tensor:
        return self.gate_act[self.pool_idx]

    @property
    def unit_gate_now(self) -> torch.Tensor:
        return self.gate_now[self.pool_idx]

    @property
    def unit_gate_cnt(self) -> torch.Tensor:
        return self.gate_cnt[self.pool_idx]

    # =========================================================================
    # HOOKS
    # =========================================================================

    def init_acts(self) -> None:
        super().init_acts()
        self.clear_gate_now()
        self.gate_cnt.fill_(-1)

    def cycle_post(self, time: SimTime) -> None:
        """Gate events last a single cycle."""
        self.clear_gate_now()
