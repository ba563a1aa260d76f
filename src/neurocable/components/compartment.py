"""
Compartment model: one electrical node of a multi-compartment neuron.

A :class:`Compartment` owns its membrane voltage, its channel population
(each :class:`ChannelInstance` with its own gating state), the current
injected by the caller and the local ligand concentration. It links to its
parent and children so the sequential engine can walk the tree.

Sign conventions (see :mod:`neurocable.units`):
- ionic currents ``g · (V - E)`` are positive outward
- injected current is positive when it depolarizes
- axial current is positive when it flows into the compartment
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from neurocable.channels.kinetics import ChannelKinetics
from neurocable.morphology.morphology import CompartmentType
from neurocable.units import density_to_conductance


@dataclass
class ChannelInstance:
    """A channel type present in one compartment.

    Attributes:
        kinetics: Frozen channel parameters and rate functions
        density: Maximal conductance density (mS/cm²)
        g_max: Maximal conductance of this compartment (nS)
        gates: Gating variables in ``kinetics.gates`` order, each in [0, 1]
    """

    kinetics: ChannelKinetics
    density: float
    g_max: float
    gates: List[float] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.kinetics.name

    @property
    def reversal(self) -> float:
        return self.kinetics.reversal

    def conductance(self, v: float) -> float:
        """Present conductance (nS)."""
        return self.kinetics.conductance(v, self.gates, self.g_max)

    def current(self, v: float) -> float:
        """Present ionic current (pA, outward positive)."""
        return self.kinetics.current(v, self.gates, self.g_max)

    def next_gates(self, v: float, dt: float, ligand: float) -> List[float]:
        """Gates after one step at voltage ``v``, without storing them."""
        return list(self.kinetics.advance(v, self.gates, dt, ligand))


class Compartment:
    """Single electrical compartment of the sequential engine.

    Args:
        index: Position in the neuron (topological order)
        compartment_type: Soma, dendrite or axon class
        diameter: Cylinder diameter (µm)
        length: Cylinder length (µm)
        capacitance: Membrane capacitance (pF)
        axial_resistance: Resistance to the parent (MΩ), 0 for the root
        g_leak: Leak conductance (nS)
        e_leak: Leak reversal (mV)
        voltage: Initial membrane voltage (mV)
    """

    def __init__(
        self,
        index: int,
        compartment_type: CompartmentType,
        diameter: float,
        length: float,
        capacitance: float,
        axial_resistance: float,
        g_leak: float,
        e_leak: float,
        voltage: float,
    ):
        self.index = index
        self.compartment_type = compartment_type
        self.diameter = diameter
        self.length = length
        self.capacitance = capacitance
        self.axial_resistance = axial_resistance
        self.axial_conductance = 1e3 / axial_resistance if axial_resistance > 0 else 0.0
        self.g_leak = g_leak
        self.e_leak = e_leak

        self.voltage = voltage
        self.injected_current = 0.0
        self.ligand = 0.0

        self.parent: Optional[Compartment] = None
        self.children: List[Compartment] = []
        self.channels: Dict[str, ChannelInstance] = {}

    def __repr__(self) -> str:
        return (
            f"Compartment(index={self.index}, type={self.compartment_type.value}, "
            f"V={self.voltage:.2f} mV)"
        )

    @property
    def area(self) -> float:
        """Lateral surface area (µm²)."""
        return math.pi * self.diameter * self.length

    # =========================================================================
    # Channels
    # =========================================================================

    def add_channel(self, kinetics: ChannelKinetics, density: float, g_max: Optional[float] = None) -> ChannelInstance:
        """Insert a channel with gates at steady state for the present voltage."""
        if g_max is None:
            g_max = density_to_conductance(density, self.area)
        instance = ChannelInstance(
            kinetics=kinetics,
            density=density,
            g_max=g_max,
            gates=list(kinetics.initial_state(self.voltage, self.ligand)),
        )
        self.channels[kinetics.name] = instance
        return instance

    def set_density(self, kinetics: ChannelKinetics, density: float) -> None:
        """Change a channel's density; a density of zero removes the channel."""
        if density == 0.0:
            self.channels.pop(kinetics.name, None)
        elif kinetics.name in self.channels:
            instance = self.channels[kinetics.name]
            instance.density = density
            instance.g_max = density_to_conductance(density, self.area)
        else:
            self.add_channel(kinetics, density)

    def gating_state(self) -> Dict[str, Tuple[float, ...]]:
        return {name: tuple(ch.gates) for name, ch in self.channels.items()}

    def reset(self, voltage: float) -> None:
        """Back to ``voltage`` with steady-state gates, no input, no ligand."""
        self.voltage = voltage
        self.injected_current = 0.0
        self.ligand = 0.0
        for ch in self.channels.values():
            ch.gates = list(ch.kinetics.initial_state(voltage, 0.0))

    # =========================================================================
    # Currents
    # =========================================================================

    def membrane_conductance(self) -> Tuple[float, float]:
        """Total membrane conductance and its reversal-weighted sum.

        Returns:
            ``(sum g, sum g·E)`` over leak and channels (nS, nS·mV) at the
            present voltage and gating state
        """
        v = self.voltage
        g_total = self.g_leak
        g_rev = self.g_leak * self.e_leak
        for ch in self.channels.values():
            g = ch.conductance(v)
            g_total += g
            g_rev += g * ch.reversal
        return g_total, g_rev

    def ionic_current(self) -> float:
        """Leak plus channel current (pA, outward positive)."""
        g_total, g_rev = self.membrane_conductance()
        return g_total * self.voltage - g_rev

    def axial_current(self) -> float:
        """Axial current flowing in from the parent and the children (pA)."""
        total = 0.0
        if self.parent is not None:
            total += self.axial_conductance * (self.parent.voltage - self.voltage)
        for child in self.children:
            total += child.axial_conductance * (child.voltage - self.voltage)
        return total

    def net_current(self) -> float:
        """Current charging the membrane, ``C · dV/dt`` (pA)."""
        return self.injected_current + self.axial_current() - self.ionic_current()

    # =========================================================================
    # Integration
    # =========================================================================

    def next_gates(self, voltage: float, dt: float) -> Dict[str, List[float]]:
        """Exponential-Euler step of every gate at ``voltage``, not yet stored."""
        return {
            name: ch.next_gates(voltage, dt, self.ligand)
            for name, ch in self.channels.items()
        }

    def set_gates(self, gates: Dict[str, List[float]]) -> None:
        for name, values in gates.items():
            self.channels[name].gates = values

    def advance_gates(self, dt: float) -> None:
        """Exponential-Euler step of every gate at the present voltage."""
        self.set_gates(self.next_gates(self.voltage, dt))

    def is_finite(self) -> bool:
        if not math.isfinite(self.voltage):
            return False
        return all(math.isfinite(x) for ch in self.channels.values() for x in ch.gates)


__all__ = ["ChannelInstance", "Compartment"]
