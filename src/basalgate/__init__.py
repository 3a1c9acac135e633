"""
BASALGATE - Basal ganglia gated working memory

Dopamine-modulated trace learning in striatal Matrix layers, and the gating
state machine by which thalamic gate events update and clear PFC
working-memory stripes.

Quick Start:
============

    from basalgate import Network, PVLayer, MatrixLayer, VThalLayer, PFCDeepLayer

    net = Network()
    net.add_layer(VThalLayer("VThal", VThalConfig(shape=(1, 2, 1, 1))))
    net.add_layer(PFCDeepLayer("PFCmntD", PFCDeepConfig(shape=(1, 2, 2, 2))))
    net.build()
    net.run_trial({"VThal": torch.tensor([1.0, 0.0])})

Internal Development:
=====================

Internal code imports from submodules, never from this package or a
subpackage root:

    from basalgate.core.layer import Layer
    from basalgate.regions.pfc_deep import PFCDeepLayer
"""

__version__ = "0.1.0"

# ============================================================================
# PUBLIC API
# ============================================================================

# Core
from basalgate.core import Layer, Network, Projection, Quarter, SimTime, quarter_set

# Configuration
from basalgate.config import (
    CINConfig,
    DASrcConfig,
    LayerConfig,
    LearnParams,
    MatrixConfig,
    MatrixParams,
    MatrixProjectionConfig,
    MatrixTraceParams,
    MomentumParams,
    NormParams,
    PFCDeepConfig,
    PFCGateParams,
    PFCMaintParams,
    ProjectionConfig,
    PVConfig,
    VThalConfig,
)

# Neuromodulation
from basalgate.neuromodulation import CINLayer, DASrcLayer, ModLayer, PVLayer

# Gating regions
from basalgate.regions import (
    GateLayer,
    GatePhase,
    GateState,
    MatrixLayer,
    MatrixProjection,
    PFCDeepLayer,
    PFCDyn,
    PFCDynTable,
    VThalLayer,
)

# Diagnostics
from basalgate.diagnostics import GateRecorder, layer_diagnostics

# Enums and errors
from basalgate.constants import DaReceptor, GateType
from basalgate.errors import (
    BasalGateError,
    ComponentError,
    ConfigurationError,
    UnknownVariableError,
)

__all__ = [
    "__version__",
    # Core
    "Layer",
    "Network",
    "Projection",
    "Quarter",
    "SimTime",
    "quarter_set",
    # Configuration
    "CINConfig",
    "DASrcConfig",
    "LayerConfig",
    "LearnParams",
    "MatrixConfig",
    "MatrixParams",
    "MatrixProjectionConfig",
    "MatrixTraceParams",
    "MomentumParams",
    "NormParams",
    "PFCDeepConfig",
    "PFCGateParams",
    "PFCMaintParams",
    "ProjectionConfig",
    "PVConfig",
    "VThalConfig",
    # Neuromodulation
    "CINLayer",
    "DASrcLayer",
    "ModLayer",
    "PVLayer",
    # Gating regions
    "GateLayer",
    "GatePhase",
    "GateState",
    "MatrixLayer",
    "MatrixProjection",
    "PFCDeepLayer",
    "PFCDyn",
    "PFCDynTable",
    "VThalLayer",
    # Diagnostics
    "GateRecorder",
    "layer_diagnostics",
    # Enums and errors
    "DaReceptor",
    "GateType",
    "BasalGateError",
    "ComponentError",
    "ConfigurationError",
    "UnknownVariableError",
]
