"""
Tests for the PFC deep gating state machine and deep maintenance.

Covers:
1. Gate onset, idle decrement and forced expiry of the per-stripe counter
2. Maintenance snapshot from the super layer and its sustained drive
3. Output-gate quarter restriction and clearing of paired maintenance
4. Deterministic dynamics rows and the deep -> super unit mapping
5. Build-time structural validation
"""

import logging
import math

import pytest
import torch

from basalgate.config.base import LayerConfig
from basalgate.config.prefrontal import PFCDeepConfig, PFCGateParams, PFCMaintParams
from basalgate.constants import GateType
from basalgate.core.layer import Layer
from basalgate.core.network import Network
from basalgate.core.time import Quarter
from basalgate.errors import ConfigurationError
from basalgate.regions.dynamics import PFCDyn, PFCDynTable
from basalgate.regions.gate import GatePhase
from basalgate.regions.pfc_deep import PFCDeepLayer


def gate_pool(deep, pool, time, act=1.0):
    """Deliver a gate event to one pool and run the post-cycle hook."""
    deep.set_pool_gate(pool, act)
    deep.cycle_post(time)


class TestGateCounter:
    def test_gate_event_resets_counter(self, pfc_pair, make_time):
        _, _, deep = pfc_pair()
        gate_pool(deep, 0, make_time(quarter=Quarter.Q1))
        assert deep.gate_cnt.tolist() == [0, -1]

    def test_zero_act_does_not_gate(self, pfc_pair, make_time):
        _, _, deep = pfc_pair()
        deep.set_gate(torch.tensor([0.0, 0.0]))
        deep.cycle_post(make_time(quarter=Quarter.Q1))
        assert deep.gate_cnt.tolist() == [-1, -1]

    def test_idle_counter_decrements_in_gate_quarters(self, pfc_pair, make_time):
        _, _, deep = pfc_pair()
        deep.quarter_final(make_time(quarter=Quarter.Q1))
        assert deep.gate_cnt.tolist() == [-1, -1]
        deep.quarter_final(make_time(quarter=Quarter.Q2))
        deep.quarter_final(make_time(quarter=Quarter.Q4))
        assert deep.gate_cnt.tolist() == [-3, -3]

    def test_counter_monotonic_while_gated(self, pfc_pair, make_time):
        _, _, deep = pfc_pair()
        gate_pool(deep, 1, make_time(quarter=Quarter.Q1))
        seen = []
        for q in (Quarter.Q2, Quarter.Q4, Quarter.Q2, Quarter.Q4):
            deep.quarter_final(make_time(quarter=q))
            seen.append(int(deep.gate_cnt[1]))
        assert seen == [1, 2, 3, 4]

    def test_forced_clear_at_max_maint(self, pfc_pair, make_time):
        _, sup, deep = pfc_pair(max_maint=3)
        sup.act.fill_(0.5)

        gate_pool(deep, 0, make_time(quarter=Quarter.Q1))
        assert deep.gate_state(0).phase(3) == GatePhase.JUST_GATED

        deep.quarter_final(make_time(quarter=Quarter.Q2))
        assert int(deep.gate_cnt[0]) == 1
        assert torch.allclose(deep.maint[:4], torch.full((4,), 0.4))

        deep.quarter_final(make_time(quarter=Quarter.Q4))
        deep.quarter_final(make_time(quarter=Quarter.Q2))
        assert int(deep.gate_cnt[0]) == 3
        assert deep.gate_state(0).phase(3) == GatePhase.EXPIRED

        # next gating opportunity without a new gate event
        deep.cycle_post(make_time(quarter=Quarter.Q3))
        assert int(deep.gate_cnt[0]) == -1

        deep.quarter_final(make_time(quarter=Quarter.Q4))
        assert int(deep.gate_cnt[0]) == -2
        assert torch.all(deep.maint == 0)
        assert torch.all(deep.maint_ge == 0)

    def test_regating_overrides_expiry(self, pfc_pair, make_time):
        _, _, deep = pfc_pair(max_maint=3)
        deep.gate_cnt[0] = 3
        gate_pool(deep, 0, make_time(quarter=Quarter.Q3))
        assert int(deep.gate_cnt[0]) == 0

    def test_now_flags_consumed(self, pfc_pair, make_time):
        _, _, deep = pfc_pair()
        gate_pool(deep, 0, make_time())
        assert not deep.gate_now.any()


class TestDeepMaint:
    def test_maintenance_gate_decays_super_pool(self, pfc_pair, make_time):
        _, sup, deep = pfc_pair(clear=0.5)
        sup.act.fill_(1.0)
        gate_pool(deep, 0, make_time(quarter=Quarter.Q1))
        assert torch.allclose(sup.act[:4], torch.full((4,), 0.5))
        assert torch.allclose(sup.act[4:], torch.ones(4))

    def test_snapshot_only_on_first_gate_quarter(self, pfc_pair, make_time):
        _, sup, deep = pfc_pair(maint_gain=0.5)
        sup.act.fill_(0.8)
        gate_pool(deep, 0, make_time(quarter=Quarter.Q1))
        deep.quarter_final(make_time(quarter=Quarter.Q2))
        sup.act.fill_(0.2)
        deep.quarter_final(make_time(quarter=Quarter.Q4))
        assert int(deep.gate_cnt[0]) == 2
        assert torch.allclose(deep.maint[:4], torch.full((4,), 0.4))
        assert torch.allclose(deep.maint_ge, deep.maint)

    def test_idle_pool_has_no_maintenance(self, pfc_pair, make_time):
        _, sup, deep = pfc_pair()
        sup.act.fill_(1.0)
        gate_pool(deep, 0, make_time(quarter=Quarter.Q1))
        deep.quarter_final(make_time(quarter=Quarter.Q2))
        assert torch.all(deep.maint[4:] == 0)
        assert torch.all(deep.maint_ge[4:] == 0)

    def test_no_update_outside_gate_quarters(self, pfc_pair, make_time):
        _, sup, deep = pfc_pair()
        sup.act.fill_(1.0)
        gate_pool(deep, 0, make_time(quarter=Quarter.Q1))
        deep.quarter_final(make_time(quarter=Quarter.Q3))
        assert int(deep.gate_cnt[0]) == 0
        assert torch.all(deep.maint == 0)

    def test_maint_ge_drives_conductance(self, pfc_pair, make_time):
        _, _, deep = pfc_pair()
        deep.maint_ge.fill_(0.3)
        deep.ge_raw.fill_(0.2)
        deep.gfm_inc(make_time())
        assert torch.allclose(deep.ge, torch.full((8,), 0.5))

    def test_rec_gate_act(self, pfc_pair, make_time):
        _, _, deep = pfc_pair()
        deep.act.copy_(torch.linspace(0.1, 0.8, 8))
        deep.set_pool_gate(1, 0.0)
        deep.cycle_post(make_time())
        assert torch.all(deep.act_g[:4] == 0)
        assert torch.allclose(deep.act_g[4:], deep.act[4:])

    def test_unit_variables(self, pfc_pair):
        _, _, deep = pfc_pair()
        deep.maint[5] = 0.25
        assert deep.unit_value("Maint", 5) == pytest.approx(0.25)
        assert deep.unit_value("MaintGe", 5) == 0.0
        assert deep.unit_value("ActG", 0) == 0.0
        assert math.isnan(deep.unit_value("Maint", 8))

    def test_init_acts_clears_maintenance(self, pfc_pair):
        _, _, deep = pfc_pair()
        deep.maint.fill_(1.0)
        deep.gate_cnt.fill_(2)
        deep.init_acts()
        assert torch.all(deep.maint == 0)
        assert torch.all(deep.gate_cnt == -1)


class TestOutputGate:
    @pytest.fixture
    def out_net(self):
        def _make(out_clear_maint=True, clear=0.0):
            net = Network()
            net.add_layer(Layer("PFCmnt", LayerConfig(shape=(1, 2, 1, 2))))
            mnt = net.add_layer(
                PFCDeepLayer(
                    "PFCmntD",
                    PFCDeepConfig(shape=(1, 2, 1, 2), maint=PFCMaintParams(clear=clear)),
                )
            )
            net.add_layer(Layer("PFCout", LayerConfig(shape=(1, 2, 1, 2))))
            out = net.add_layer(
                PFCDeepLayer(
                    "PFCoutD",
                    PFCDeepConfig(
                        shape=(1, 2, 1, 2),
                        gate=PFCGateParams(out_gate=True),
                        maint=PFCMaintParams(out_clear_maint=out_clear_maint),
                    ),
                )
            )
            net.build()
            return net, mnt, out

        return _make

    def test_resolves_maintenance_partner(self, out_net):
        _, mnt, out = out_net()
        assert out.gate_type == GateType.OUT
        assert out.maint_pfc is mnt
        assert mnt.maint_pfc is None

    def test_output_gate_clears_maintaining_pool(self, out_net, make_time):
        net, mnt, out = out_net(clear=1.0)
        mnt.gate_cnt.copy_(torch.tensor([2, 0]))
        mnt.maint.fill_(0.6)
        mnt.maint_ge.fill_(0.6)
        net.layers["PFCmnt"].act.fill_(1.0)

        out.set_gate(torch.tensor([1.0, 1.0]))
        out.cycle_post(make_time(quarter=Quarter.Q1))

        assert out.gate_cnt.tolist() == [0, 0]
        # pool 0 was maintaining and is cleared; pool 1 had just gated
        assert mnt.gate_cnt.tolist() == [-1, 0]
        assert torch.all(mnt.maint[:2] == 0)
        assert torch.all(mnt.maint_ge[:2] == 0)
        assert torch.allclose(mnt.maint[2:], torch.full((2,), 0.6))
        assert torch.all(net.layers["PFCmnt"].act[:2] == 0)
        assert torch.all(net.layers["PFCmnt"].act[2:] == 1.0)

    def test_clear_policy_off_by_default(self, out_net, make_time):
        _, mnt, out = out_net(out_clear_maint=False)
        mnt.gate_cnt.fill_(2)
        out.set_gate(torch.tensor([1.0, 1.0]))
        out.cycle_post(make_time(quarter=Quarter.Q1))
        assert mnt.gate_cnt.tolist() == [2, 2]

    def test_output_gate_does_not_decay_its_super(self, out_net, make_time):
        net, _, out = out_net()
        net.layers["PFCout"].act.fill_(1.0)
        gate_pool(out, 0, make_time(quarter=Quarter.Q1))
        assert torch.all(net.layers["PFCout"].act == 1.0)

    def test_gating_skipped_in_late_quarters(self, out_net, make_time):
        _, _, out = out_net()
        gate_pool(out, 0, make_time(quarter=Quarter.Q3))
        assert out.gate_cnt.tolist() == [-1, -1]
        gate_pool(out, 0, make_time(quarter=Quarter.Q2))
        assert out.gate_cnt.tolist() == [0, -1]

    def test_transient_maintenance(self, out_net, make_time):
        net, _, out = out_net()
        net.layers["PFCout"].act.fill_(1.0)
        gate_pool(out, 0, make_time(quarter=Quarter.Q1))
        out.quarter_final(make_time(quarter=Quarter.Q1))
        assert int(out.gate_cnt[0]) == 1
        assert torch.allclose(out.maint[:2], torch.full((2,), 0.8))
        # max_maint is 1: expires at the next gating pass
        out.cycle_post(make_time(quarter=Quarter.Q2))
        assert int(out.gate_cnt[0]) == -1

    def test_quarter2_learning_flag(self, out_net):
        _, mnt, out = out_net()
        assert mnt.do_quarter2_dwt()
        assert not out.do_quarter2_dwt()


class TestDynamics:
    @pytest.fixture
    def dyn_net(self):
        dyns = PFCDynTable([PFCDyn(desc="flat"), PFCDyn(init=1.0, decay_tau=1.0, desc="phasic")])
        net = Network()
        sup = net.add_layer(Layer("PFCmnt", LayerConfig(shape=(1, 2, 2, 2))))
        deep = net.add_layer(PFCDeepLayer("PFCmntD", PFCDeepConfig(shape=(1, 2, 4, 2), dyns=dyns)))
        net.build()
        return sup, deep

    def test_index_mapping(self, dyn_net):
        _, deep = dyn_net
        assert deep.super_idx.tolist() == [0, 1, 2, 3, 0, 1, 2, 3, 4, 5, 6, 7, 4, 5, 6, 7]
        assert deep.dyn_type.tolist() == [0, 0, 0, 0, 1, 1, 1, 1] * 2

    def test_snapshot_replicated_across_dynamics_rows(self, dyn_net, make_time):
        sup, deep = dyn_net
        sup.act.copy_(torch.arange(8, dtype=torch.float32) / 10)
        gate_pool(deep, 0, make_time(quarter=Quarter.Q1))
        deep.quarter_final(make_time(quarter=Quarter.Q2))
        block = 0.8 * torch.tensor([0.0, 0.1, 0.2, 0.3])
        expected = torch.cat([block, block, torch.zeros(8)])
        assert torch.allclose(deep.maint, expected)
        # t = cnt - 1 = 0: every dynamics type is at its initial value
        assert torch.allclose(deep.maint_ge, expected)

    def test_dynamics_shape_drive_over_time(self, dyn_net, make_time):
        sup, deep = dyn_net
        sup.act.fill_(1.0)
        gate_pool(deep, 0, make_time(quarter=Quarter.Q1))
        deep.quarter_final(make_time(quarter=Quarter.Q2))
        deep.quarter_final(make_time(quarter=Quarter.Q4))
        assert torch.allclose(deep.maint_ge[:4], torch.full((4,), 0.8))
        assert torch.allclose(deep.maint_ge[4:8], torch.full((4,), 0.8 * math.exp(-1.0)))


class TestBuildValidation:
    def test_dynamics_row_ratio_mismatch(self):
        net = Network()
        net.add_layer(Layer("PFCmnt", LayerConfig(shape=(1, 2, 2, 2))))
        net.add_layer(
            PFCDeepLayer("PFCmntD", PFCDeepConfig(shape=(1, 2, 4, 2), dyns=PFCDynTable.full_dyn(5.0)))
        )
        with pytest.raises(ConfigurationError, match="dynamics"):
            net.build()

    def test_extra_rows_without_dynamics(self):
        net = Network()
        net.add_layer(Layer("PFCmnt", LayerConfig(shape=(1, 2, 2, 2))))
        net.add_layer(PFCDeepLayer("PFCmntD", PFCDeepConfig(shape=(1, 2, 4, 2))))
        with pytest.raises(ConfigurationError):
            net.build()

    def test_column_mismatch(self):
        net = Network()
        net.add_layer(Layer("PFCmnt", LayerConfig(shape=(1, 2, 2, 3))))
        net.add_layer(PFCDeepLayer("PFCmntD", PFCDeepConfig(shape=(1, 2, 2, 2))))
        with pytest.raises(ConfigurationError, match="columns"):
            net.build()

    def test_pool_mismatch_with_super(self):
        net = Network()
        net.add_layer(Layer("PFCmnt", LayerConfig(shape=(1, 3, 2, 2))))
        net.add_layer(PFCDeepLayer("PFCmntD", PFCDeepConfig(shape=(1, 2, 2, 2))))
        with pytest.raises(ConfigurationError, match="pools"):
            net.build()

    def test_maint_partner_must_be_deep_layer(self):
        net = Network()
        net.add_layer(Layer("PFCmntD", LayerConfig(shape=(1, 2, 1, 1))))
        net.add_layer(
            PFCDeepLayer("PFCoutD", PFCDeepConfig(shape=(1, 2, 1, 1), gate=PFCGateParams(out_gate=True)))
        )
        with pytest.raises(ConfigurationError):
            net.build()

    def test_explicit_partner_names(self):
        net = Network()
        sup = net.add_layer(Layer("Super", LayerConfig(shape=(1, 2, 1, 1))))
        deep = net.add_layer(
            PFCDeepLayer("Deep", PFCDeepConfig(shape=(1, 2, 1, 1), super_layer="Super"))
        )
        net.build()
        assert deep.super_pfc is sup

    def test_missing_super_is_soft(self, caplog, make_time):
        net = Network()
        deep = net.add_layer(PFCDeepLayer("PFCmntD", PFCDeepConfig(shape=(1, 2, 1, 1))))
        with caplog.at_level(logging.WARNING):
            net.build()
        assert "PFCmnt" in caplog.text
        gate_pool(deep, 0, make_time(quarter=Quarter.Q1))
        deep.quarter_final(make_time(quarter=Quarter.Q2))
        assert int(deep.gate_cnt[0]) == 1
        assert torch.all(deep.maint == 0)
