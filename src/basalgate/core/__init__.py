"""Generic simulation substrate: clock, layers, projections, network."""

from basalgate.core.time import Quarter, SimTime, quarter_set
from basalgate.core.layer import Layer
from basalgate.core.projection import Projection
from basalgate.core.network import Network

__all__ = [
    "Quarter",
    "SimTime",
    "quarter_set",
    "Layer",
    "Projection",
    "Network",
]
