"""
Neuromodulatory broadcast: PV, dopamine and acetylcholine senders and receivers.

All senders run in the first post-cycle stage, so every receiver reads the
current cycle's values.
"""

from basalgate.neuromodulation.receiver import ModLayer, NeuromodulatorReceiverMixin
from basalgate.neuromodulation.pv_layer import PVLayer
from basalgate.neuromodulation.da_src import DASrcLayer
from basalgate.neuromodulation.cin import CINLayer

__all__ = [
    "NeuromodulatorReceiverMixin",
    "ModLayer",
    "PVLayer",
    "DASrcLayer",
    "CINLayer",
]
