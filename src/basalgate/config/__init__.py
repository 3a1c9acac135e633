"""
Configuration dataclasses for basalgate layers and projections.

All configs validate their values in ``__post_init__`` and raise
``ConfigurationError`` on invalid settings.
"""

from basalgate.config.base import BaseConfig, LayerConfig
from basalgate.config.learning import (
    LearnParams,
    MomentumParams,
    NormParams,
    ProjectionConfig,
)
from basalgate.config.basal_ganglia import (
    MatrixConfig,
    MatrixParams,
    MatrixProjectionConfig,
    MatrixTraceParams,
    VThalConfig,
)
from basalgate.config.neuromodulation import CINConfig, DASrcConfig, PVConfig
from basalgate.config.prefrontal import PFCDeepConfig, PFCGateParams, PFCMaintParams

__all__ = [
    # Base
    "BaseConfig",
    "LayerConfig",
    # Learning
    "LearnParams",
    "MomentumParams",
    "NormParams",
    "ProjectionConfig",
    # Basal ganglia
    "MatrixConfig",
    "MatrixParams",
    "MatrixProjectionConfig",
    "MatrixTraceParams",
    "VThalConfig",
    # Neuromodulation
    "CINConfig",
    "DASrcConfig",
    "PVConfig",
    # Prefrontal
    "PFCDeepConfig",
    "PFCGateParams",
    "PFCMaintParams",
]
