"""Shared test fixtures and configuration."""

import pytest
import torch
import numpy as np

from basalgate.config.basal_ganglia import VThalConfig
from basalgate.config.base import LayerConfig
from basalgate.config.prefrontal import PFCDeepConfig, PFCGateParams, PFCMaintParams
from basalgate.core.layer import Layer
from basalgate.core.network import Network
from basalgate.core.time import Quarter, SimTime
from basalgate.regions.pfc_deep import PFCDeepLayer
from basalgate.regions.thalamus import VThalLayer


@pytest.fixture(autouse=True)
def set_random_seed():
    """Ensure reproducible tests by setting all random seeds."""
    torch.manual_seed(42)
    np.random.seed(42)
    if torch.cuda.is_available():
        torch.cuda.manual_seed_all(42)


@pytest.fixture
def make_time():
    """Factory for a clock positioned at a given quarter / cycle."""

    def _make(quarter=Quarter.Q1, cycle=0, quarter_cycle=0, cycles_per_quarter=25):
        time = SimTime(cycles_per_quarter=cycles_per_quarter)
        time.quarter = Quarter(quarter)
        time.cycle = cycle
        time._quarter_cycle = quarter_cycle
        return time

    return _make


@pytest.fixture
def pfc_pair():
    """Built network with a 2-stripe PFC super layer and its maintenance deep layer.

    Super pools are 2x2 units; deep pools match exactly (no dynamics rows).
    """

    def _make(max_maint=100, clear=0.0, maint_gain=0.8):
        net = Network("pfc")
        sup = net.add_layer(Layer("PFCmnt", LayerConfig(shape=(1, 2, 2, 2))))
        deep = net.add_layer(
            PFCDeepLayer(
                "PFCmntD",
                PFCDeepConfig(
                    shape=(1, 2, 2, 2),
                    maint=PFCMaintParams(max_maint=max_maint, clear=clear, maint_gain=maint_gain),
                ),
            )
        )
        net.build()
        return net, sup, deep

    return _make


@pytest.fixture
def gating_net():
    """Built network: VThal -> PFCmntD / PFCoutD, with their super layers.

    All layers have two stripes; VThal has one unit per stripe.
    """
    net = Network("gating", cycles_per_quarter=5)
    net.add_layer(
        VThalLayer(
            "VThal",
            VThalConfig(
                shape=(1, 2, 1, 1),
                gate_cycle=2,
                gate_receivers=["PFCmntD", "PFCoutD"],
                alpha_max_cyc=0,
            ),
        )
    )
    net.add_layer(Layer("PFCmnt", LayerConfig(shape=(1, 2, 2, 2))))
    net.add_layer(PFCDeepLayer("PFCmntD", PFCDeepConfig(shape=(1, 2, 2, 2))))
    net.add_layer(Layer("PFCout", LayerConfig(shape=(1, 2, 2, 2))))
    net.add_layer(
        PFCDeepLayer(
            "PFCoutD",
            PFCDeepConfig(shape=(1, 2, 2, 2), gate=PFCGateParams(out_gate=True)),
        )
    )
    net.build()
    return net
