"""
Custom exception classes and validation utilities for neurocable.

This module provides:
1. Hierarchical exception classes for the three failure categories of the
   cable integrator (configuration, numerical integrity, caller contract)
2. Validation utilities used at construction time and at the public API
3. Consistent error message formatting across both engines

Exception Hierarchy:
====================
NeuroCableError (base)
├── ConfigurationError - Invalid configuration parameters
│   └── MorphologyError - Malformed compartment tree or geometry
├── NumericalIntegrityError - Non-finite voltage or gating state
└── ContractViolationError - Caller passed an invalid argument
    └── CompartmentIndexError - Compartment index out of range

None of these are retryable. Integration is deterministic, so a fault
points at a parameter or topology problem that has to be fixed.

Usage Examples:
===============
    # Reject a malformed tree
    raise MorphologyError("compartment 4 references undefined parent 9")

    # Validate caller input
    validate_index(compartment, n_compartments, name="compartment")

Author: neurocable project
Date: March 2026
"""

from __future__ import annotations

import math
from typing import Any, Union


# =============================================================================
# Exception Hierarchy
# =============================================================================

class NeuroCableError(Exception):
    """Base exception for all neurocable-specific errors.

    Catching this lets a network layer separate simulator faults from
    everything else:

        try:
            neuron.step()
        except NeuroCableError as e:
            logger.error(f"Cable simulation failed: {e}")
    """


class ConfigurationError(NeuroCableError):
    """Invalid configuration parameters.

    Raised when configuration values are out of valid range or incompatible
    with each other.

    Example:
        raise ConfigurationError("dt_ms must be positive, got -0.025")
    """


class MorphologyError(ConfigurationError):
    """Structural configuration error in a compartment tree.

    Raised at construction when the tree has no root, more than one root,
    a parent that is not defined before its child, or a non-positive
    diameter or length. No simulation object is produced.
    """


class NumericalIntegrityError(NeuroCableError):
    """Non-finite voltage or gating value produced during stepping.

    Fatal to the run. The state is not clamped or repaired because any
    downstream physiological interpretation would be invalid.

    Args:
        message: Description of the fault
        step: Integration step at which the fault was detected (if known)
    """

    def __init__(self, message: str, step: Union[int, None] = None):
        if step is not None:
            message = f"step {step}: {message}"
        super().__init__(message)
        self.step = step


class ContractViolationError(NeuroCableError):
    """Caller passed an argument outside the documented contract.

    Example:
        raise ContractViolationError("unknown channel 'kdr'")
    """


class CompartmentIndexError(ContractViolationError, IndexError):
    """Compartment (or neuron) index outside ``[0, n)``.

    Also an :class:`IndexError`, so generic sequence-handling code that
    catches ``IndexError`` keeps working.
    """


# =============================================================================
# Validation Utilities
# =============================================================================

def validate_positive(value: float, name: str) -> None:
    """Raise ConfigurationError unless ``value`` is a finite number > 0."""
    if not (isinstance(value, (int, float)) and math.isfinite(value) and value > 0):
        raise ConfigurationError(f"{name} must be positive, got {value!r}")


def validate_non_negative(value: float, name: str) -> None:
    """Raise ConfigurationError unless ``value`` is a finite number >= 0."""
    if not (isinstance(value, (int, float)) and math.isfinite(value) and value >= 0):
        raise ConfigurationError(f"{name} must be non-negative, got {value!r}")


def validate_real(value: Any, name: str) -> float:
    """Return ``value`` as a float, or raise ContractViolationError.

    Caller inputs (currents, concentrations, densities) must be ints or
    floats; ``bool`` and strings are rejected instead of being coerced.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ContractViolationError(f"{name} must be a real number, got {value!r}")
    return float(value)


def validate_index(index: int, size: int, name: str = "compartment") -> int:
    """Check that ``index`` addresses one of ``size`` elements.

    Negative indices are rejected rather than wrapped: a caller asking for
    compartment -1 has a bug, not a request for the last compartment.

    Args:
        index: Index supplied by the caller
        size: Number of addressable elements
        name: Label used in the error message

    Returns:
        The index as a plain ``int``

    Raises:
        CompartmentIndexError: If the index is not an integer in ``[0, size)``
    """
    if isinstance(index, bool) or not isinstance(index, int):
        raise CompartmentIndexError(
            f"{name} index must be an int, got {type(index).__name__}"
        )
    if index < 0 or index >= size:
        raise CompartmentIndexError(
            f"{name} index {index} out of range for {size} {name}s"
        )
    return index


__all__ = [
    "NeuroCableError",
    "ConfigurationError",
    "MorphologyError",
    "NumericalIntegrityError",
    "ContractViolationError",
    "CompartmentIndexError",
    "validate_positive",
    "validate_non_negative",
    "validate_real",
    "validate_index",
]
