"""
Standard biophysical parameter values used across neurocable.

This module defines the physical constants and channel parameters of the
cable model, eliminating magic numbers scattered through the engines. They
are only *defaults*: every value reaches the kinetics and the solvers
through :class:`neurocable.config.CableConfig` and the frozen channel
parameter objects built from it, never as a process-wide global.

Biological Basis:
=================

Passive Membrane:
-----------------
- Specific capacitance 1 µF/cm² (lipid bilayer, nearly universal)
- Axial resistivity 100 Ω·cm (cytoplasm)
- Leak density 0.3 mS/cm² (Hodgkin-Huxley squid axon value)

Reversal Potentials (mV):
-------------------------
- E_Na = +50, E_K = -77 (HH rates shifted to a -65 mV rest)
- E_Ca = +120 (Nernst for ~2 mM outside / 100 nM inside)
- E_NMDA = 0 (non-selective cation channel)

Temperature:
------------
The HH rate functions were fitted at 6.3 °C. Rates are scaled by
``q10 ** ((celsius - 6.3) / 10)``; the default temperature equals the
reference so that the textbook kinetics are reproduced exactly.

References:
-----------
- Hodgkin & Huxley (1952): J. Physiol. 117:500-544
- Jahr & Stevens (1990): Mg2+ block of NMDA channels
- Hines (1984): Efficient computation of branched nerve equations
- Dayan & Abbott (2001): Theoretical Neuroscience, Chapter 6

Usage:
======
    from neurocable.constants.biophysics import V_REST, E_NA, E_K

Author: neurocable project
Date: March 2026
"""

from __future__ import annotations

# =============================================================================
# PASSIVE MEMBRANE
# =============================================================================

SPECIFIC_CAPACITANCE = 1.0
"""Specific membrane capacitance (µF/cm²)."""

AXIAL_RESISTIVITY = 100.0
"""Cytoplasmic axial resistivity (Ω·cm)."""

LEAK_DENSITY = 0.3
"""Leak conductance density (mS/cm²)."""

V_REST = -65.0
"""Resting membrane potential (mV). Initial voltage of every compartment."""

E_LEAK = -54.4
"""Leak reversal (mV) used when leak balancing is disabled (HH value)."""

# =============================================================================
# REVERSAL POTENTIALS (mV)
# =============================================================================

E_NA = 50.0
"""Sodium reversal potential (mV)."""

E_K = -77.0
"""Potassium reversal potential (mV)."""

E_CA = 120.0
"""Calcium reversal potential (mV)."""

E_NMDA = 0.0
"""NMDA receptor reversal potential (mV)."""

# =============================================================================
# TEMPERATURE
# =============================================================================

CELSIUS = 6.3
"""Simulation temperature (°C)."""

HH_REFERENCE_CELSIUS = 6.3
"""Temperature at which the HH rate functions were measured (°C)."""

Q10 = 3.0
"""Rate multiplier per 10 °C."""

# =============================================================================
# NMDA RECEPTOR
# =============================================================================

MG_CONCENTRATION = 1.0
"""Extracellular Mg²⁺ concentration (mM)."""

MG_BLOCK_HALF = 3.57
"""Mg²⁺ block dissociation constant (mM), Jahr & Stevens (1990)."""

MG_BLOCK_SLOPE = 0.062
"""Voltage dependence of the Mg²⁺ block (1/mV)."""

NMDA_ALPHA = 0.5
"""Glutamate binding rate (1/(mM·ms))."""

NMDA_BETA = 0.05
"""Glutamate unbinding rate (1/ms)."""

# =============================================================================
# INTEGRATION AND SPIKE DETECTION
# =============================================================================

DT_MS = 0.025
"""Default integration step (ms)."""

SPIKE_THRESHOLD_MV = -20.0
"""Upward crossing of this voltage at the spike-initiation site is a spike."""

REFRACTORY_MS = 2.0
"""Minimum interval between two detected spikes (ms)."""

PARITY_TOLERANCE_MV = 1.0
"""Maximum per-step voltage difference tolerated between the two engines."""

SINGULARITY_EPS = 1e-6
"""Relative distance from a removable singularity at which the rate
functions switch to their analytic limit."""

EXP_OVERFLOW_ARG = 700.0
"""Largest argument passed to ``math.exp``/``math.expm1`` on the float path
(double precision overflows just above 709.78)."""

# =============================================================================
# CHANNEL DENSITIES (mS/cm²) PER COMPARTMENT TYPE
# =============================================================================

DEFAULT_CHANNEL_DENSITIES = {
    "soma": {"na": 120.0, "k": 36.0, "ca": 0.5},
    "axon_initial_segment": {"na": 120.0, "k": 36.0},
    "axon": {"na": 120.0, "k": 36.0},
    "apical_dendrite": {"ka": 2.0, "ca": 0.2, "nmda": 0.5},
    "basal_dendrite": {"ca": 0.2, "nmda": 0.5},
    "dendrite": {"nmda": 0.5},
}
"""Maximal conductance densities. Keys are ``CompartmentType`` values and
channel names registered in :mod:`neurocable.channels.library`."""
