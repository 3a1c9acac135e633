"""Tests for the direct PV broadcast into receiver layers."""

import logging
import math

import pytest
import torch

from basalgate.config.base import LayerConfig
from basalgate.config.neuromodulation import PVConfig
from basalgate.core.layer import Layer
from basalgate.core.network import Network
from basalgate.core.time import Quarter
from basalgate.errors import ConfigurationError, UnknownVariableError
from basalgate.neuromodulation.pv_layer import PVLayer
from basalgate.neuromodulation.receiver import ModLayer


@pytest.fixture
def pv_net():
    net = Network("pv")
    pv = net.add_layer(PVLayer("PVe", PVConfig(shape=(1, 2), pv_receivers=["Rcv"])))
    rcv = net.add_layer(ModLayer("Rcv", LayerConfig(shape=(1, 2))))
    net.build()
    return net, pv, rcv


class TestPVBroadcast:
    def test_receiver_flagged(self, pv_net):
        _, _, rcv = pv_net
        assert rcv.is_pv_receiver

    def test_sends_max_of_act_and_ext(self, pv_net, make_time):
        _, pv, rcv = pv_net
        pv.act.copy_(torch.tensor([0.2, 0.9]))
        pv.ext.copy_(torch.tensor([0.6, 0.1]))
        pv.cycle_post(make_time(quarter=Quarter.Q4))
        assert torch.allclose(rcv.pv_act, torch.tensor([0.6, 0.9]))

    def test_only_sends_in_configured_quarter(self, pv_net, make_time):
        _, pv, rcv = pv_net
        pv.act.fill_(1.0)
        for q in (Quarter.Q1, Quarter.Q2, Quarter.Q3):
            pv.cycle_post(make_time(quarter=q))
        assert torch.all(rcv.pv_act == 0)

    def test_reaches_receiver_within_same_cycle(self, pv_net):
        net, pv, rcv = pv_net
        net.time.quarter = Quarter.Q4
        pv.apply_ext(torch.tensor([1.0, 0.5]))
        net.cycle()
        assert torch.allclose(rcv.pv_act, torch.tensor([1.0, 0.5]))

    def test_full_trial_delivers_in_q4(self, pv_net):
        net, pv, rcv = pv_net
        net.run_trial({"PVe": torch.tensor([0.0, 1.0])})
        assert torch.allclose(rcv.pv_act, torch.tensor([0.0, 1.0]))

    def test_add_receiver_after_build(self):
        net = Network()
        pv = net.add_layer(PVLayer("PVe", PVConfig(shape=(1, 1))))
        rcv = net.add_layer(ModLayer("Late", LayerConfig(shape=(1, 1))))
        net.build()
        pv.add_pv_receiver("Late")
        assert rcv.is_pv_receiver
        assert "Late" in pv.pv_receivers


class TestPVBuildValidation:
    def test_shape_mismatch_raises(self):
        net = Network()
        net.add_layer(PVLayer("PVe", PVConfig(shape=(1, 2), pv_receivers=["Rcv"])))
        net.add_layer(ModLayer("Rcv", LayerConfig(shape=(2, 1))))
        with pytest.raises(ConfigurationError):
            net.build()

    def test_non_receiver_layer_raises(self):
        net = Network()
        net.add_layer(PVLayer("PVe", PVConfig(shape=(1, 2), pv_receivers=["Plain"])))
        net.add_layer(Layer("Plain", LayerConfig(shape=(1, 2))))
        with pytest.raises(ConfigurationError):
            net.build()

    def test_missing_receiver_is_soft(self, caplog):
        net = Network()
        net.add_layer(PVLayer("PVe", PVConfig(shape=(1, 2), pv_receivers=["Ghost"])))
        with caplog.at_level(logging.WARNING):
            net.build()
        assert "Ghost" in caplog.text
        net.cycle()


class TestPVMonitor:
    def test_monitor_values(self):
        pv = PVLayer("PVe", PVConfig(shape=(1, 2, 1, 2)))
        pv.act.copy_(torch.tensor([0.1, 0.3, 0.5, 0.5]))
        assert pv.monitor_value("TotalAct") == pytest.approx(1.4)
        assert pv.monitor_value("Act", 1) == pytest.approx(0.3)
        assert pv.monitor_value("PoolActAvg", 0) == pytest.approx(0.4)
        assert pv.monitor_value("PoolActMax", 1) == pytest.approx(1.0)
        assert math.isnan(pv.monitor_value("Act", 10))

    def test_unknown_monitor_var(self):
        with pytest.raises(UnknownVariableError):
            PVLayer("PVe").monitor_value("Bogus")
