"""
Gating regions: striatal Matrix, ventral thalamus and PFC deep layers.

Data flow within one cycle (post-cycle stages):

    stage 0  PV / DA / ACh broadcasts
    stage 1  MatrixLayer derives da_lrn and act_lrn from VThal alpha-max
             VThalLayer delivers gate events at its gate cycle
    stage 2  PFCDeepLayer consumes gate events and expires maintenance
"""

from basalgate.regions.gate import GateLayer, GatePhase, GateState
from basalgate.regions.dynamics import MaintDynamics, PFCDyn, PFCDynTable
from basalgate.regions.thalamus import VThalLayer
from basalgate.regions.matrix import MatrixLayer, MatrixProjection
from basalgate.regions.pfc_deep import PFCDeepLayer

__all__ = [
    "GateLayer",
    "GatePhase",
    "GateState",
    "MaintDynamics",
    "PFCDyn",
    "PFCDynTable",
    "VThalLayer",
    "MatrixLayer",
    "MatrixProjection",
    "PFCDeepLayer",
]
