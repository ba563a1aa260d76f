"""Test utilities and common assertion helpers.

Reusable validation helpers for both cable engines.
"""

import math
from typing import Iterable, Sequence

import torch

from neurocable.components.multicompartment import MultiCompartmentNeuron


# =============================================================================
# ASSERTION HELPERS
# =============================================================================

def assert_gates_valid(values: Iterable[float], name: str = "gates") -> None:
    """Assert every gating value is finite and inside [0, 1]."""
    for x in values:
        assert math.isfinite(x), f"{name} contains non-finite value {x}"
        assert 0.0 <= x <= 1.0, f"{name} value {x} outside [0, 1]"


def assert_neuron_gates_valid(neuron: MultiCompartmentNeuron) -> None:
    """Assert the gating state of every channel in every compartment."""
    for comp in neuron.compartments:
        for ch in comp.channels.values():
            assert_gates_valid(ch.gates, name=f"compartment {comp.index} {ch.name}")


def assert_membrane_potential_valid(
    voltages: torch.Tensor,
    min_val: float = -120.0,
    max_val: float = 80.0,
    name: str = "voltages",
) -> None:
    """Assert voltages are finite and physiologically bounded (mV)."""
    assert torch.isfinite(voltages).all(), f"{name} contains NaN/Inf"
    assert voltages.min().item() >= min_val, f"{name} below {min_val} mV: {voltages.min().item()}"
    assert voltages.max().item() <= max_val, f"{name} above {max_val} mV: {voltages.max().item()}"


def inter_spike_intervals(spike_times: Sequence[float]) -> list:
    """Differences between consecutive spike times (ms)."""
    return [b - a for a, b in zip(spike_times[:-1], spike_times[1:])]
