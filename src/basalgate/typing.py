"""
Type Aliases for basalgate

This module defines type aliases used throughout the codebase for clearer
type hints. Import them from here rather than defining them inline.

Example:
    from basalgate.typing import LayerName, LayerShape, LayerInputs
"""

from typing import Dict, List, Tuple

import torch

# ============================================================================
# Layer Organization
# ============================================================================

LayerName = str
"""Name of a layer, unique within a Network (e.g., "PFCmntD", "MtxGo")."""

LayerNames = List[LayerName]
"""Ordered list of layer names, e.g. PV receivers or ACh receivers."""

LayerShape = Tuple[int, ...]
"""Layer shape: (unit_y, unit_x) or (pool_y, pool_x, unit_y, unit_x)."""

# ============================================================================
# Per-step Inputs
# ============================================================================

LayerInputs = Dict[LayerName, torch.Tensor]
"""Maps layer names to external (clamped) input tensors [n_units].

Used by ``Network.run_trial`` to clamp input layers each cycle.
"""

PoolValues = torch.Tensor
"""Per-pool float tensor [n_pools], e.g. gate activations from VThal."""

UnitValues = torch.Tensor
"""Per-unit float tensor [n_units] in flat layer index order."""
