"""
Coupling topology and membrane parameter tables.

This is the single representation both engines compile from a
:class:`Morphology` and a :class:`CableConfig`:

- :class:`CouplingTopology` holds the electrical tree: per-compartment
  capacitance and axial resistance, and the parent/child edges weighted by
  their axial conductance.
- :class:`MembraneTables` holds per-compartment maximal conductances of
  every channel, the leak conductance and the leak reversal.

The sequential engine copies these numbers onto its compartment objects;
the parallel engine turns them into tensors. Deriving them once, here,
keeps the two physics implementations from drifting apart.

Axial coupling between a compartment and its parent runs from centre to
centre: half of each cylinder's longitudinal resistance.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Sequence, Tuple

import torch

from neurocable.errors import ContractViolationError, MorphologyError
from neurocable.morphology.morphology import Morphology
from neurocable.units import (
    axial_resistance,
    density_to_conductance,
    resistance_to_conductance,
    specific_to_capacitance,
)

if TYPE_CHECKING:
    from neurocable.channels.library import ChannelSet
    from neurocable.config.cable_config import CableConfig


@dataclass(frozen=True)
class CouplingTopology:
    """Electrical tree compiled from a morphology.

    Attributes:
        parents: Parent index per compartment (-1 for the root)
        area: Membrane area per compartment (µm²)
        capacitance: Membrane capacitance per compartment (pF)
        segment_resistance: Longitudinal resistance of each cylinder (MΩ)
        axial_resistance: Resistance between each compartment and its
            parent (MΩ), 0 for the root
        axial_conductance: Conductance of the same edge (nS), 0 for the root
        edges: ``(child, parent, conductance_nS)`` for every non-root compartment
        levels: Compartment indices grouped by tree depth, root first
        spike_site: Spike-initiation compartment
    """

    parents: Tuple[int, ...]
    area: Tuple[float, ...]
    capacitance: Tuple[float, ...]
    segment_resistance: Tuple[float, ...]
    axial_resistance: Tuple[float, ...]
    axial_conductance: Tuple[float, ...]
    edges: Tuple[Tuple[int, int, float], ...]
    levels: Tuple[Tuple[int, ...], ...]
    spike_site: int

    @property
    def n_compartments(self) -> int:
        return len(self.parents)

    def neighbors(self, index: int) -> List[Tuple[int, float]]:
        """``(neighbor, conductance_nS)`` for the parent and every child."""
        result = []
        for child, parent, g in self.edges:
            if child == index:
                result.append((parent, g))
            elif parent == index:
                result.append((child, g))
        return result

    def coupling_sum(self) -> Tuple[float, ...]:
        """Total axial conductance touching each compartment (nS)."""
        total = [0.0] * self.n_compartments
        for child, parent, g in self.edges:
            total[child] += g
            total[parent] += g
        return tuple(total)

    def axial_currents(self, voltages: Sequence[float]) -> Tuple[float, ...]:
        """Net axial current flowing *into* each compartment (pA).

        ``sum_j g_ij (V_j - V_i)``; the values sum to zero over the tree.
        """
        if len(voltages) != self.n_compartments:
            raise ContractViolationError(
                f"expected {self.n_compartments} voltages, got {len(voltages)}"
            )
        currents = [0.0] * self.n_compartments
        for child, parent, g in self.edges:
            flow = g * (voltages[parent] - voltages[child])
            currents[child] += flow
            currents[parent] -= flow
        return tuple(currents)

    def level_tensors(
        self, device: torch.device
    ) -> List[Tuple[torch.Tensor, torch.Tensor]]:
        """Per depth level: ``(indices, parent_indices)`` as long tensors.

        The root level has an empty parent tensor.
        """
        result = []
        for level in self.levels:
            idx = torch.tensor(level, dtype=torch.long, device=device)
            par = torch.tensor(
                [p for p in (self.parents[i] for i in level) if p >= 0],
                dtype=torch.long,
                device=device,
            )
            result.append((idx, par))
        return result


@dataclass(frozen=True)
class MembraneTables:
    """Per-compartment membrane parameters.

    Attributes:
        densities: Channel densities per compartment (mS/cm²), only
            channels with non-zero density
        g_max: Maximal conductance per channel name, one value per
            compartment (nS); zero where the channel is absent
        g_leak: Leak conductance per compartment (nS)
        e_leak: Leak reversal per compartment (mV)
    """

    densities: Tuple[Dict[str, float], ...]
    g_max: Dict[str, Tuple[float, ...]]
    g_leak: Tuple[float, ...]
    e_leak: Tuple[float, ...]


def compile_topology(morphology: Morphology, config: "CableConfig") -> CouplingTopology:
    """Derive capacitances and axial conductances from geometry."""
    area = []
    capacitance = []
    segment = []
    for spec in morphology:
        a = spec.area
        area.append(a)
        capacitance.append(specific_to_capacitance(config.specific_capacitance, a))
        segment.append(axial_resistance(config.axial_resistivity, spec.diameter, spec.length))

    parents = morphology.parents
    r_axial = [0.0] * len(parents)
    g_axial = [0.0] * len(parents)
    edges = []
    for i, p in enumerate(parents):
        if p < 0:
            continue
        r = 0.5 * segment[i] + 0.5 * segment[p]
        r_axial[i] = r
        g_axial[i] = resistance_to_conductance(r)
        edges.append((i, p, g_axial[i]))

    return CouplingTopology(
        parents=parents,
        area=tuple(area),
        capacitance=tuple(capacitance),
        segment_resistance=tuple(segment),
        axial_resistance=tuple(r_axial),
        axial_conductance=tuple(g_axial),
        edges=tuple(edges),
        levels=morphology.levels(),
        spike_site=morphology.spike_initiation_index,
    )


def compile_membrane(
    morphology: Morphology,
    topology: CouplingTopology,
    config: "CableConfig",
    channels: "ChannelSet",
) -> MembraneTables:
    """Resolve channel densities and leak parameters for every compartment.

    With ``config.balance_leak`` the leak reversal of each compartment is
    chosen so that its total membrane current vanishes at ``v_rest`` with
    every gate at steady state (and no ligand):

        g_leak · (v_rest - e_leak) + sum_ch g_ch · open_ch · (v_rest - E_ch) = 0
    """
    n = len(morphology)
    densities: List[Dict[str, float]] = []
    g_max: Dict[str, List[float]] = {name: [0.0] * n for name in channels.names}
    g_leak = []
    e_leak = []
    v_rest = config.v_rest

    for i, spec in enumerate(morphology):
        resolved = config.densities_for(spec.compartment_type.value)
        if spec.channel_densities:
            resolved.update(spec.channel_densities)
        resolved = {k: float(v) for k, v in resolved.items() if v > 0}
        for name in resolved:
            if name not in channels:
                raise MorphologyError(f"compartment {i} requests unknown channel '{name}'")
        densities.append(resolved)

        area = topology.area[i]
        gl = density_to_conductance(config.leak_density, area)
        ionic = 0.0
        for name, density in resolved.items():
            g = density_to_conductance(density, area)
            g_max[name][i] = g
            ch = channels[name]
            ionic += ch.current(v_rest, ch.steady_state(v_rest, 0.0), g)
        g_leak.append(gl)
        e_leak.append(v_rest + ionic / gl if config.balance_leak else config.e_leak)

    return MembraneTables(
        densities=tuple(densities),
        g_max={k: tuple(v) for k, v in g_max.items()},
        g_leak=tuple(g_leak),
        e_leak=tuple(e_leak),
    )


__all__ = [
    "CouplingTopology",
    "MembraneTables",
    "compile_topology",
    "compile_membrane",
]
