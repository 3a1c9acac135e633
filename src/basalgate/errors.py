"""
Custom exception classes and validation utilities for basalgate.

This module provides:
1. Hierarchical exception classes for different error categories
2. Build-time validation helpers for paired-layer structure
3. Consistent error message formatting across components

Exception Hierarchy:
====================
BasalGateError (base)
├── ComponentError - Errors raised by a layer or projection at runtime
├── ConfigurationError - Invalid parameters or structural mismatches
└── UnknownVariableError - Unknown unit/synapse variable in introspection

Soft Failures:
==============
A paired layer that cannot be found by name is NOT an error: the dependent
gating or neuromodulatory effect is skipped and a warning is logged. Only
structural mismatches between layers that *were* found are raised, and they
are raised at ``Network.build()`` time, never mid-simulation.
"""

from __future__ import annotations

from typing import Sequence


# =============================================================================
# Exception Hierarchy
# =============================================================================


class BasalGateError(Exception):
    """Base exception for all basalgate-specific errors.

    All custom exceptions inherit from this class, enabling code to catch
    basalgate errors specifically:

        try:
            net.build()
        except BasalGateError as e:
            logger.error(f"Network build failed: {e}")
    """


class ComponentError(BasalGateError):
    """Error in a network component (layer or projection).

    Args:
        component_name: Name of the component (e.g., "PFCmntD", "MtxGo<-PFC")
        message: Description of the error

    Example:
        raise ComponentError("PFCmntD", "layer has not been built")
    """

    def __init__(self, component_name: str, message: str):
        super().__init__(f"[{component_name}] {message}")
        self.component_name = component_name


class ConfigurationError(BasalGateError):
    """Invalid configuration parameters or network structure.

    Raised when configuration values are out of valid range, or when paired
    layers disagree on pool count or shape at build time.

    Example:
        raise ConfigurationError("max_maint must be >= 1, got 0")
    """


class UnknownVariableError(BasalGateError, KeyError):
    """Unknown unit or synapse variable requested through introspection.

    Subclasses ``KeyError`` so callers doing dict-style lookups can catch it
    without importing basalgate.
    """

    def __init__(self, owner: str, var_name: str, available: Sequence[str]):
        super().__init__(
            f"{owner}: variable named '{var_name}' not found. "
            f"Available: {list(available)}"
        )
        self.owner = owner
        self.var_name = var_name

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0])


# =============================================================================
# Validation Utilities
# =============================================================================


def validate_pool_count(
    layer_name: str,
    n_pools: int,
    paired_name: str,
    paired_n_pools: int,
) -> None:
    """Validate that two paired layers have the same number of pools.

    Raises:
        ConfigurationError: If pool counts differ
    """
    if n_pools != paired_n_pools:
        raise ConfigurationError(
            f"{layer_name} has {n_pools} pools but paired layer {paired_name} "
            f"has {paired_n_pools}. Paired layers must match 1:1 by pool index."
        )


def validate_same_shape(
    layer_name: str,
    shape: Sequence[int],
    other_name: str,
    other_shape: Sequence[int],
) -> None:
    """Validate that two layers have identical unit-index shape.

    Raises:
        ConfigurationError: If shapes differ
    """
    if tuple(shape) != tuple(other_shape):
        raise ConfigurationError(
            f"{layer_name} shape {tuple(shape)} does not match "
            f"{other_name} shape {tuple(other_shape)}"
        )


__all__ = [
    "BasalGateError",
    "ComponentError",
    "ConfigurationError",
    "UnknownVariableError",
    "validate_pool_count",
    "validate_same_shape",
]
