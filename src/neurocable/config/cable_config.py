"""
Cable model configuration.

One :class:`CableConfig` parameterizes both engines. The engines read it
once at construction and compile everything they need into their own
immutable tables, so mutating a config after an engine was built has no
effect on that engine.

Author: neurocable project
Date: March 2026
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any, Dict

from neurocable.config.base import BaseConfig
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
    HH_REFERENCE_CELSIUS,
    LEAK_DENSITY,
    MG_CONCENTRATION,
    PARITY_TOLERANCE_MV,
    Q10,
    REFRACTORY_MS,
    SPECIFIC_CAPACITANCE,
    SPIKE_THRESHOLD_MV,
    V_REST,
)
from neurocable.errors import (
    ConfigurationError,
    validate_non_negative,
    validate_positive,
)


def _default_densities() -> Dict[str, Dict[str, float]]:
    return copy.deepcopy(DEFAULT_CHANNEL_DENSITIES)


@dataclass
class CableConfig(BaseConfig):
    """Configuration for a multi-compartment cable neuron.

    Units follow :mod:`neurocable.units`: mV, ms, µm, and the usual
    specific quantities (µF/cm², mS/cm², Ω·cm).

    Attributes:
        dt_ms: Integration step. Fixed for the lifetime of an engine.

        v_rest: Initial voltage of every compartment. With
            ``balance_leak`` it is also the exact resting potential.

        spike_threshold_mv: A spike is an upward crossing of this voltage
            at the spike-initiation compartment.

        refractory_ms: Minimum interval between detected spikes. Mirrors the
            refractory period of the axon initial segment.

        celsius: Simulation temperature. Voltage-gated rates are scaled by
            ``q10 ** ((celsius - reference_celsius) / 10)``.

        specific_capacitance: Membrane capacitance per area (µF/cm²).

        axial_resistivity: Cytoplasmic resistivity (Ω·cm).

        leak_density: Leak conductance per area (mS/cm²).

        e_leak: Leak reversal used when ``balance_leak`` is False.

        balance_leak: Choose each compartment's leak reversal so that the
            total membrane current vanishes at ``v_rest`` with steady-state
            gates. The neuron then starts exactly at equilibrium.

        channel_densities: Maximal conductance density (mS/cm²) per
            compartment type value and channel name. Morphologies may
            override individual compartments.

        mg_concentration: Extracellular Mg²⁺ for the NMDA block (mM).

        parity_tolerance_mv: Largest per-step voltage difference accepted
            between the sequential and the parallel engine.
    """

    dt_ms: float = DT_MS
    v_rest: float = V_REST
    spike_threshold_mv: float = SPIKE_THRESHOLD_MV
    refractory_ms: float = REFRACTORY_MS

    celsius: float = CELSIUS
    reference_celsius: float = HH_REFERENCE_CELSIUS
    q10: float = Q10

    specific_capacitance: float = SPECIFIC_CAPACITANCE
    axial_resistivity: float = AXIAL_RESISTIVITY
    leak_density: float = LEAK_DENSITY
    e_leak: float = E_LEAK
    balance_leak: bool = True

    e_na: float = E_NA
    e_k: float = E_K
    e_ca: float = E_CA
    e_nmda: float = E_NMDA

    channel_densities: Dict[str, Dict[str, float]] = field(default_factory=_default_densities)
    mg_concentration: float = MG_CONCENTRATION

    parity_tolerance_mv: float = PARITY_TOLERANCE_MV

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.validate()

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigurationError: If any value is out of range
        """
        validate_positive(self.dt_ms, "dt_ms")
        validate_non_negative(self.refractory_ms, "refractory_ms")
        validate_positive(self.q10, "q10")
        validate_positive(self.specific_capacitance, "specific_capacitance")
        validate_positive(self.axial_resistivity, "axial_resistivity")
        validate_positive(self.leak_density, "leak_density")
        validate_non_negative(self.mg_concentration, "mg_concentration")
        validate_positive(self.parity_tolerance_mv, "parity_tolerance_mv")

        if self.spike_threshold_mv <= self.v_rest:
            raise ConfigurationError(
                f"spike_threshold_mv ({self.spike_threshold_mv}) must be above "
                f"v_rest ({self.v_rest})"
            )

        # Imported here: the channel library imports this module.
        from neurocable.channels.library import CHANNEL_REGISTRY

        for comp_type, densities in self.channel_densities.items():
            for name, density in densities.items():
                if name not in CHANNEL_REGISTRY:
                    raise ConfigurationError(
                        f"Unknown channel '{name}' for compartment type '{comp_type}'. "
                        f"Choose from: {sorted(CHANNEL_REGISTRY)}"
                    )
                validate_non_negative(density, f"channel_densities[{comp_type!r}][{name!r}]")

        # Resolves the dtype string or raises.
        self.get_torch_dtype()

    @property
    def rate_scale(self) -> float:
        """Q10 temperature factor applied to voltage-gated rates."""
        return float(self.q10 ** ((self.celsius - self.reference_celsius) / 10.0))

    def densities_for(self, compartment_type: str) -> Dict[str, float]:
        """Channel densities (mS/cm²) for a compartment type value."""
        return dict(self.channel_densities.get(compartment_type, {}))

    def with_overrides(self, **overrides: Any) -> "CableConfig":
        """Return a validated copy with some fields replaced.

        The copy owns its ``channel_densities``; editing one config never
        changes the other.
        """
        overrides.setdefault("channel_densities", self.channel_densities)
        overrides["channel_densities"] = copy.deepcopy(overrides["channel_densities"])
        return replace(self, **overrides)

    def summary(self) -> str:
        """Return a formatted summary of the cable configuration."""
        lines = [
            "=== Cable Configuration ===",
            f"  Device: {self.device} ({self.dtype})",
            f"  Timestep: {self.dt_ms} ms",
            f"  Rest / threshold: {self.v_rest} / {self.spike_threshold_mv} mV",
            f"  Refractory: {self.refractory_ms} ms",
            f"  Temperature: {self.celsius} °C (rate x{self.rate_scale:.3f})",
            f"  C_m={self.specific_capacitance} µF/cm², R_a={self.axial_resistivity} Ω·cm, "
            f"g_leak={self.leak_density} mS/cm²",
            "",
            "  Channel densities (mS/cm²):",
        ]
        for comp_type, densities in sorted(self.channel_densities.items()):
            entries = ", ".join(f"{k}={v:g}" for k, v in sorted(densities.items()))
            lines.append(f"    {comp_type:<22} {entries or '(passive)'}")
        return "\n".join(lines)


__all__ = ["CableConfig"]
