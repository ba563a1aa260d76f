"""
Constants for neurocable.

Biophysical defaults live in :mod:`neurocable.constants.biophysics`,
template geometry in :mod:`neurocable.constants.morphology`.
"""

from neurocable.constants.biophysics import (
    AXIAL_RESISTIVITY,
    CELSIUS,
    DEFAULT_CHANNEL_DENSITIES,
    DT_MS,
    E_CA,
    E_K,
    E_LEAK,
    E_NA,
    E_NMDA,
    EXP_OVERFLOW_ARG,
    HH_REFERENCE_CELSIUS,
    LEAK_DENSITY,
    MG_BLOCK_HALF,
    MG_BLOCK_SLOPE,
    MG_CONCENTRATION,
    NMDA_ALPHA,
    NMDA_BETA,
    PARITY_TOLERANCE_MV,
    Q10,
    REFRACTORY_MS,
    SINGULARITY_EPS,
    SPECIFIC_CAPACITANCE,
    SPIKE_THRESHOLD_MV,
    V_REST,
)

__all__ = [
    "AXIAL_RESISTIVITY",
    "CELSIUS",
    "DEFAULT_CHANNEL_DENSITIES",
    "DT_MS",
    "E_CA",
    "E_K",
    "E_LEAK",
    "E_NA",
    "E_NMDA",
    "EXP_OVERFLOW_ARG",
    "HH_REFERENCE_CELSIUS",
    "LEAK_DENSITY",
    "MG_BLOCK_HALF",
    "MG_BLOCK_SLOPE",
    "MG_CONCENTRATION",
    "NMDA_ALPHA",
    "NMDA_BETA",
    "PARITY_TOLERANCE_MV",
    "Q10",
    "REFRACTORY_MS",
    "SINGULARITY_EPS",
    "SPECIFIC_CAPACITANCE",
    "SPIKE_THRESHOLD_MV",
    "V_REST",
]
