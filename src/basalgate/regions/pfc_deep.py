"""
PFC deep layer: BG-gated working-memory maintenance and output.

Each pool (stripe) of a PFC deep layer is paired with the same pool of a
PFC super layer. When VThal delivers a gate event with positive drive, the
stripe's counter resets to 0; at the end of the next gate quarter the deep
layer snapshots ``maint_gain * super.act`` into ``maint`` and feeds it back
as excitatory drive (``maint_ge``) for as long as the stripe stays gated.

Gate Counter Lifecycle:
=======================
    cnt = -1      idle (more negative the longer it stays idle)
    gate event    cnt = 0 (just gated)
    gate quarter  cnt += 1, snapshot taken while cnt <= 1
    cnt >= max    forced back to -1 (maintenance expired)

Output gates (``gate.out_gate``) hold content only transiently; with
``maint.out_clear_maint`` an output-gate event also clears the maintained
content of the paired maintenance stripe.

Super / Deep Unit Mapping:
==========================
Deep pools may have ``len(dyns)`` times as many unit rows as super pools.
Row ``uy`` of a deep pool reads super row ``uy % super_rows`` and follows
dynamics type ``uy // super_rows``. Columns map one-to-one.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar, Dict, Optional

import torch

from basalgate.config.prefrontal import PFCDeepConfig
from basalgate.constants import GateType
from basalgate.core.layer import Layer
from basalgate.core.time import Quarter, SimTime
from basalgate.errors import ConfigurationError, validate_pool_count
from basalgate.regions.gate import GateLayer

if TYPE_CHECKING:
    from basalgate.core.network import Network

logger = logging.getLogger(__name__)


class PFCDeepLayer(GateLayer):
    """Gated maintenance (or output) layer paired with a PFC super layer.

    Args:
        name: Layer name; by convention ``<super name>D`` (e.g. ``PFCmntD``)
        config: Deep layer configuration

    Example:
        >>> deep = PFCDeepLayer("PFCmntD", PFCDeepConfig(shape=(1, 2, 2, 2)))
        >>> net.add_layer(deep)  # resolves "PFCmnt" as its super layer at build
    """

    UNIT_VAR_ATTRS: ClassVar[Dict[str, str]] = {
        **GateLayer.UNIT_VAR_ATTRS,
        "ActG": "act_g",
        "Maint": "maint",
        "MaintGe": "maint_ge",
    }

    CYCLE_POST_STAGE = 2

    def __init__(self, name: str, config: Optional[PFCDeepConfig] = None):
        super().__init__(name, config or PFCDeepConfig())
        self.config: PFCDeepConfig
        for buf in ("act_g", "maint", "maint_ge"):
            self.register_buffer(buf, torch.zeros_like(self.act))
        self.register_buffer("super_idx", torch.zeros_like(self.pool_idx))
        self.register_buffer("dyn_type", torch.zeros_like(self.pool_idx))
        self._super: Optional[Layer] = None
        self._maint_pfc: Optional[PFCDeepLayer] = None

    @property
    def gate_type(self) -> GateType:
        return self.config.gate_type

    @property
    def super_name(self) -> str:
        return self.config.super_layer or self.name[:-1]

    @property
    def maint_name(self) -> str:
        return self.config.maint_layer or self.name[:-4] + "mntD"

    @property
    def super_pfc(self) -> Optional[Layer]:
        return self._super

    @property
    def maint_pfc(self) -> Optional["PFCDeepLayer"]:
        return self._maint_pfc

    # =========================================================================
    # BUILD
    # =========================================================================

    def build(self, network: "Network") -> None:
        super().build(network)
        self._super = self.resolve_partner(self.super_name, "super")
        if self._super is not None:
            validate_pool_count(self.name, self.n_pools, self._super.name, self._super.n_pools)
            self._build_super_index(self._super)

        self._maint_pfc = None
        if self.config.gate.out_gate:
            mly = self.resolve_partner(self.maint_name, "maintenance")
            if mly is not None:
                if not isinstance(mly, PFCDeepLayer):
                    raise ConfigurationError(
                        f"{self.name}: maintenance layer '{mly.name}' is not a PFC deep layer"
                    )
                validate_pool_count(self.name, self.n_pools, mly.name, mly.n_pools)
                self._maint_pfc = mly

    def _build_super_index(self, super_lay: Layer) -> None:
        """Precompute deep unit -> super unit and deep unit -> dynamics type."""
        y_n, x_n = self.unit_y, self.unit_x
        sy_n, sx_n = super_lay.unit_y, super_lay.unit_x
        if sx_n != x_n:
            raise ConfigurationError(
                f"{self.name}: unit columns ({x_n}) must match super layer "
                f"{super_lay.name} ({sx_n})"
            )
        if y_n % sy_n != 0:
            raise ConfigurationError(
                f"{self.name}: unit rows ({y_n}) must be a multiple of super layer "
                f"{super_lay.name} rows ({sy_n})"
            )
        dper = y_n // sy_n
        if self.config.maint.use_dyn:
            n_dyns = len(self.config.dyns)
            if dper != n_dyns:
                raise ConfigurationError(
                    f"{self.name}: {dper} row blocks per super row block, but "
                    f"dynamics table has {n_dyns} entries"
                )
        elif dper != 1:
            raise ConfigurationError(
                f"{self.name}: has {dper}x the rows of {super_lay.name} but no dynamics table"
            )

        ni = torch.arange(self.n_units, device=self.pool_idx.device)
        ui = ni % self.pool_size
        pi = ni // self.pool_size
        uy = ui // x_n
        ux = ui % x_n
        sy = uy % sy_n
        self.super_idx.copy_(pi * (sy_n * sx_n) + sy * sx_n + ux)
        self.dyn_type.copy_(uy // sy_n)

    # =========================================================================
    # GATING
    # =========================================================================

    def gating(self, time: SimTime) -> None:
        """Apply gate events delivered this cycle and expire stale maintenance."""
        gcfg = self.config.gate
        mcfg = self.config.maint
        if gcfg.out_gate and gcfg.out_q1_only and time.quarter > Quarter.Q2:
            return

        gated = self.gate_now & (self.gate_act > 0)
        if bool(gated.any()):
            self.gate_cnt[gated] = 0
            for pool in gated.nonzero().flatten().tolist():
                if gcfg.out_gate:
                    if mcfg.out_clear_maint:
                        self.clear_maint(pool)
                elif self._super is not None:
                    self._super.decay_state_pool(pool, mcfg.clear)
            logger.debug(
                "%s: %d pool(s) gated at trial %d cycle %d",
                self.name, int(gated.sum()), time.trial, time.cycle,
            )

        expired = self.gate_cnt >= mcfg.max_maint
        if bool(expired.any()):
            self.gate_cnt[expired] = -1

    def clear_maint(self, pool: int) -> None:
        """Clear maintenance in ``pool`` of the paired maintenance layer."""
        pfcm = self._maint_pfc
        if pfcm is None:
            return
        if int(pfcm.gate_cnt[pool]) < 1:
            return
        pfcm.gate_cnt[pool] = -1
        sl = pfcm.pool_slice(pool)
        pfcm.maint[sl] = 0.0
        pfcm.maint_ge[sl] = 0.0
        if pfcm.super_pfc is not None:
            pfcm.super_pfc.decay_state_pool(pool, pfcm.config.maint.clear)

    def rec_gate_act(self) -> None:
        """Record current activation into ``act_g`` for pools gating this cycle."""
        if not bool(self.gate_now.any()):
            return
        self.act_g.copy_(torch.where(self.gate_now[self.pool_idx], self.act, self.act_g))

    # =========================================================================
    # MAINTENANCE
    # =========================================================================

    def update_gate_cnt(self, time: SimTime) -> None:
        if time.quarter not in self.config.gate.gate_qtr:
            return
        cnt = self.gate_cnt
        cnt.copy_(torch.where(cnt < 0, cnt - 1, cnt + 1))

    def deep_maint(self, time: SimTime) -> None:
        """Update ``maint`` / ``maint_ge`` from the super layer and gate counters."""
        if time.quarter not in self.config.gate.gate_qtr:
            return
        if self._super is None:
            return
        cnt = self.gate_cnt[self.pool_idx]
        idle = cnt < 0
        snapshot = (~idle) & (cnt <= 1)

        super_act = self._super.act[self.super_idx]
        maint = torch.where(snapshot, self.config.maint.maint_gain * super_act, self.maint)
        maint = torch.where(idle, torch.zeros_like(maint), maint)
        self.maint.copy_(maint)

        if self.config.maint.use_dyn:
            self.maint_ge.copy_(maint * self.dyn_values()[self.dyn_type, self.pool_idx])
        else:
            self.maint_ge.copy_(maint)

    def dyn_values(self) -> torch.Tensor:
        """Dynamics gain per (dynamics type, pool) at ``t = cnt - 1``."""
        dyns = self.config.dyns
        cnts = self.gate_cnt.tolist()
        vals = [[dyns.value(d, float(c - 1)) for c in cnts] for d in range(len(dyns))]
        return torch.tensor(vals, dtype=self.maint.dtype, device=self.maint.device)

    # =========================================================================
    # HOOKS
    # =========================================================================

    def gfm_inc(self, time: SimTime) -> None:
        self.ge.copy_(self.ge_raw + self.maint_ge)

    def cycle_post(self, time: SimTime) -> None:
        self.rec_gate_act()
        self.gating(time)
        super().cycle_post(time)

    def quarter_final(self, time: SimTime) -> None:
        super().quarter_final(time)
        self.update_gate_cnt(time)
        self.deep_maint(time)

    def do_quarter2_dwt(self) -> bool:
        return Quarter.Q2 in self.config.gate.gate_qtr

    def init_acts(self) -> None:
        super().init_acts()
        for buf in (self.act_g, self.maint, self.maint_ge):
            buf.zero_()

    def __repr__(self) -> str:
        return (
            f"PFCDeepLayer(name={self.name!r}, shape={self.shape}, "
            f"gate={self.gate_type.value}, max_maint={self.config.maint.max_maint})"
        )
