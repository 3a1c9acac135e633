"""
Base Configuration Classes.

This module provides base configuration classes with common fields shared by
every layer. All specific layer configs inherit from ``LayerConfig``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import torch

from basalgate.constants import DEFAULT_ALPHA_MAX_CYC
from basalgate.errors import ConfigurationError
from basalgate.typing import LayerShape


@dataclass
class BaseConfig:
    """Base configuration with common fields for all components.

    - device: Hardware device (cpu/cuda)
    - dtype: Tensor data type
    - seed: Random seed for reproducibility
    """

    device: str = "cpu"
    """Device to run on: 'cpu', 'cuda', 'cuda:0', etc."""

    dtype: str = "float32"
    """Data type for float state tensors: 'float32', 'float64'"""

    seed: Optional[int] = None
    """Random seed for reproducibility. None = no seeding."""

    def get_torch_device(self) -> torch.device:
        """Get PyTorch device object."""
        return torch.device(self.device)

    def get_torch_dtype(self) -> torch.dtype:
        """Get PyTorch dtype object."""
        dtype_map = {
            "float32": torch.float32,
            "float64": torch.float64,
            "float16": torch.float16,
            "bfloat16": torch.bfloat16,
        }
        if self.dtype not in dtype_map:
            raise ConfigurationError(
                f"Unknown dtype '{self.dtype}'. "
                f"Choose from: {list(dtype_map.keys())}"
            )
        return dtype_map[self.dtype]


@dataclass
class LayerConfig(BaseConfig):
    """Base config for layers.

    The activation function here is the generic rate-code substrate the
    gating and learning mechanisms sit on: a thresholded, saturating
    function of excitatory conductance integrated with rate ``act_dt``.
    """

    # =========================================================================
    # GEOMETRY
    # =========================================================================
    shape: LayerShape = (1, 1)
    """(unit_y, unit_x), or (pool_y, pool_x, unit_y, unit_x) for pooled layers."""

    # =========================================================================
    # ACTIVATION
    # =========================================================================
    act_gain: float = 40.0
    """Gain on above-threshold conductance in the saturating rate function."""

    act_thr: float = 0.5
    """Conductance threshold below which activation is zero."""

    act_dt: float = 0.3
    """Integration rate of activation toward its steady-state value per cycle."""

    hard_clamp: bool = True
    """If True, units with external input take that value directly as activation."""

    init_decay: float = 1.0
    """Fraction of activation state decayed at the start of each trial."""

    # =========================================================================
    # ALPHA-MAX
    # =========================================================================
    alpha_max_cyc: int = DEFAULT_ALPHA_MAX_CYC
    """Cycle within the trial from which peak activation (alpha-max) is tracked."""

    def __post_init__(self) -> None:
        """Validate config field values."""
        if len(self.shape) not in (2, 4):
            raise ConfigurationError(
                f"shape must have 2 or 4 dimensions, got {self.shape}"
            )
        if any(int(d) < 1 for d in self.shape):
            raise ConfigurationError(f"shape dimensions must be >= 1, got {self.shape}")
        self.shape = tuple(int(d) for d in self.shape)
        if self.act_gain <= 0:
            raise ConfigurationError(f"act_gain must be > 0, got {self.act_gain}")
        if not (0.0 < self.act_dt <= 1.0):
            raise ConfigurationError(f"act_dt must be in (0, 1], got {self.act_dt}")
        if not (0.0 <= self.init_decay <= 1.0):
            raise ConfigurationError(f"init_decay must be in [0, 1], got {self.init_decay}")
        if self.alpha_max_cyc < 0:
            raise ConfigurationError(f"alpha_max_cyc must be >= 0, got {self.alpha_max_cyc}")


__all__ = [
    "BaseConfig",
    "LayerConfig",
]
