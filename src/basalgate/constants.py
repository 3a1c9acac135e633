"""
Shared enumerations and default constants.

Receptor polarity and gate type are closed two-case variants: every branch on
them is exhaustive, so a new receptor or gate kind needs matching logic in
each component that switches on it.
"""

from __future__ import annotations

from enum import StrEnum


class DaReceptor(StrEnum):
    """Dominant dopamine receptor of a learning layer.

    D1R layers (striatal Go) learn in the direction of dopamine.
    D2R layers (striatal NoGo) learn in the opposite direction.
    """

    D1R = "d1r"
    D2R = "d2r"


class GateType(StrEnum):
    """Kind of working-memory gate a PFC stripe implements."""

    MAINT = "maint"  # Maintenance gate: stores and holds activity
    OUT = "out"      # Output gate: transient read-out of maintained content


# =============================================================================
# TIMING DEFAULTS
# =============================================================================

DEFAULT_CYCLES_PER_QUARTER = 25
"""Standard quarter length; a trial is 100 cycles."""

DEFAULT_ALPHA_MAX_CYC = 30
"""Cycle within the trial from which alpha-max integration starts."""

# =============================================================================
# LEARNING DEFAULTS
# =============================================================================

DEFAULT_NORM_DECAY_TAU = 1000.0
DEFAULT_NORM_MIN = 0.001
DEFAULT_MOMENTUM_TAU = 10.0


__all__ = [
    "DaReceptor",
    "GateType",
    "DEFAULT_CYCLES_PER_QUARTER",
    "DEFAULT_ALPHA_MAX_CYC",
    "DEFAULT_NORM_DECAY_TAU",
    "DEFAULT_NORM_MIN",
    "DEFAULT_MOMENTUM_TAU",
]
