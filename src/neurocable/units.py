"""Unit types for dimensional analysis in cable computations.

Prevents mixing incompatible quantities (currents vs conductances vs voltages).
Uses Python's NewType for zero-runtime-cost type checking with mypy/pyright.

Unit system (chosen so that no conversion factors appear in the solver):
- Voltage: mV
- Current: pA
- Conductance: nS   (nS × mV = pA)
- Capacitance: pF   (pA / pF = mV/ms)
- Resistance: MΩ
- Time: ms          (pF / nS = ms)

Geometry is in µm; specific (per-area) quantities use the usual
electrophysiology units (µF/cm², mS/cm², Ω·cm) and are converted once at
construction with the helpers below.

Example usage:
    from neurocable.units import Conductance, Current, Voltage

    def ohmic_current(g: Conductance, v: Voltage, e: Voltage) -> Current:
        return Current(g * (v - e))
"""

from __future__ import annotations

import math
from typing import NewType

import torch

# =============================================================================
# ELECTRICAL UNITS
# =============================================================================

Voltage = NewType("Voltage", float)
"""Membrane or reversal potential in mV."""

Current = NewType("Current", float)
"""Membrane current in pA. Outward (hyperpolarizing for cations) is positive
for ionic currents; injected current is positive when depolarizing."""

Conductance = NewType("Conductance", float)
"""Absolute conductance in nS."""

Capacitance = NewType("Capacitance", float)
"""Absolute membrane capacitance in pF."""

Resistance = NewType("Resistance", float)
"""Axial resistance in MΩ."""

Concentration = NewType("Concentration", float)
"""Ion or ligand concentration in mM."""

# =============================================================================
# TENSOR TYPES (for the parallel engine)
# =============================================================================

VoltageTensor = NewType("VoltageTensor", torch.Tensor)
"""Tensor of voltages [n_neurons, n_compartments]."""

CurrentTensor = NewType("CurrentTensor", torch.Tensor)
"""Tensor of currents [n_neurons, n_compartments]."""

ConductanceTensor = NewType("ConductanceTensor", torch.Tensor)
"""Tensor of conductances, broadcastable to [n_neurons, n_compartments]."""

# =============================================================================
# TEMPORAL UNITS
# =============================================================================

TimeMS = NewType("TimeMS", float)
"""Time in milliseconds."""

# =============================================================================
# CONVERSION FUNCTIONS
# =============================================================================

UM2_TO_CM2 = 1e-8
"""Square micrometres to square centimetres."""


def cylinder_area(diameter_um: float, length_um: float) -> float:
    """Lateral surface area of a cylindrical compartment (µm²)."""
    return math.pi * diameter_um * length_um


def specific_to_capacitance(c_m_uf_per_cm2: float, area_um2: float) -> Capacitance:
    """Convert specific capacitance (µF/cm²) over an area (µm²) to pF.

    µF/cm² × µm² × 1e-8 cm²/µm² × 1e6 pF/µF = 0.01 × c_m × area
    """
    return Capacitance(c_m_uf_per_cm2 * area_um2 * UM2_TO_CM2 * 1e6)


def density_to_conductance(g_ms_per_cm2: float, area_um2: float) -> Conductance:
    """Convert a conductance density (mS/cm²) over an area (µm²) to nS.

    mS/cm² × µm² × 1e-8 cm²/µm² × 1e6 nS/mS = 0.01 × g × area
    """
    return Conductance(g_ms_per_cm2 * area_um2 * UM2_TO_CM2 * 1e6)


def axial_resistance(r_a_ohm_cm: float, diameter_um: float, length_um: float) -> Resistance:
    """Longitudinal resistance of a cylinder (MΩ).

    R = R_a · L / (π r²); Ω·cm × µm / µm² = 1e4 Ω, and 1 MΩ = 1e6 Ω.
    """
    radius = diameter_um / 2.0
    return Resistance(r_a_ohm_cm * length_um / (math.pi * radius * radius) * 1e-2)


def resistance_to_conductance(r_mohm: float) -> Conductance:
    """Convert MΩ to nS (1 / MΩ = 1 µS = 1000 nS)."""
    return Conductance(1e3 / r_mohm)


__all__ = [
    # Basic units
    "Voltage",
    "Current",
    "Conductance",
    "Capacitance",
    "Resistance",
    "Concentration",
    "TimeMS",
    # Tensor types
    "VoltageTensor",
    "CurrentTensor",
    "ConductanceTensor",
    # Conversions
    "UM2_TO_CM2",
    "cylinder_area",
    "specific_to_capacitance",
    "density_to_conductance",
    "axial_resistance",
    "resistance_to_conductance",
]
