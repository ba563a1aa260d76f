"""
Multi-compartment neuron: the sequential reference engine.

Each step advances every compartment of one neuron by ``dt``:

1. **Current accounting** from the previous step's state (Jacobi style):
   channel and leak conductances, injected current, and the axial coupling
   to parent and children.
2. **Voltage update**, linearly implicit (backward) Euler. Conductances are
   frozen at the previous state; voltage terms and the axial coupling are
   implicit. For compartment i with neighbours j:

       (C_i/dt + sum g_i + sum_j G_ij) V_i' - sum_j G_ij V_j' = C_i/dt V_i + sum g_i E + I_inj

   The matrix is tree structured, so Gaussian elimination ordered by the
   tree (leaves to root, then back) solves it exactly in O(n) (Hines 1984).
   The scheme is unconditionally stable in the axial term, which is what
   makes thin dendrites next to a large soma tractable.
3. **Gating update**: exponential Euler at the new voltage, clamped to [0, 1].
4. **Spike detection**: an upward crossing of ``spike_threshold_mv`` at the
   spike-initiation compartment, suppressed within ``refractory_ms`` of the
   previous spike.
5. **Injected current** is owned by the caller and persists across steps
   until changed or cleared.

Non-finite voltages or gates raise :class:`NumericalIntegrityError` and
leave the neuron as it was before the faulty step. Invalid indices or channel names raise
:class:`ContractViolationError`.

Example:
    >>> neuron = MultiCompartmentNeuron("pyramidal", CableConfig(dt_ms=0.025))
    >>> neuron.inject_current(0, 1000.0)  # pA into the soma
    >>> spikes = neuron.run(2000)
    >>> neuron.spike_times
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Sequence, Union

from neurocable.channels.library import ChannelSet, build_channel_set
from neurocable.components.compartment import Compartment
from neurocable.config.cable_config import CableConfig
from neurocable.errors import (
    ContractViolationError,
    NumericalIntegrityError,
    validate_index,
    validate_real,
)
from neurocable.mixins.diagnostics_mixin import DiagnosticsMixin
from neurocable.mixins.resettable_mixin import ResettableMixin
from neurocable.morphology.morphology import Morphology
from neurocable.morphology.templates import get_template
from neurocable.morphology.topology import (
    CouplingTopology,
    MembraneTables,
    compile_membrane,
    compile_topology,
)

logger = logging.getLogger(__name__)


def resolve_morphology(morphology: Union[str, Morphology]) -> Morphology:
    """Accept a template name or a ready morphology."""
    if isinstance(morphology, Morphology):
        return morphology
    if isinstance(morphology, str):
        return get_template(morphology)
    raise ContractViolationError(
        f"morphology must be a template name or Morphology, got {type(morphology).__name__}"
    )


class MultiCompartmentNeuron(ResettableMixin, DiagnosticsMixin):
    """One neuron as a tree of compartments, stepped on the host.

    Args:
        morphology: Template name or :class:`Morphology`
        config: Cable configuration (default :class:`CableConfig`)
        neuron_id: Label for logs and network bookkeeping
        dt_ms: Overrides ``config.dt_ms`` when given

    Attributes:
        compartments: Compartments in topological order (soma first)
        is_spiking: Whether the last step produced a spike
        last_spike_time: Time of the last spike (ms), ``-inf`` before any
        spike_times: Times of all spikes since construction or reset (ms)
    """

    def __init__(
        self,
        morphology: Union[str, Morphology] = "pyramidal",
        config: Optional[CableConfig] = None,
        neuron_id: int = 0,
        dt_ms: Optional[float] = None,
    ):
        config = config or CableConfig()
        if dt_ms is not None:
            config = config.with_overrides(dt_ms=dt_ms)

        self.neuron_id = neuron_id
        self.config = config
        self.morphology = resolve_morphology(morphology)

        # Scalars copied so that later config edits cannot reach a running neuron
        self.dt = config.dt_ms
        self.v_rest = config.v_rest
        self.spike_threshold = config.spike_threshold_mv
        self.refractory_ms = config.refractory_ms

        self.channel_set: ChannelSet = build_channel_set(config)
        self.topology: CouplingTopology = compile_topology(self.morphology, config)
        self.membrane: MembraneTables = compile_membrane(
            self.morphology, self.topology, config, self.channel_set
        )
        self.spike_site = self.topology.spike_site

        self.compartments: List[Compartment] = self._build_compartments()

        self.spike_times: List[float] = []
        self.reset_spike_record()

        logger.debug(
            "Neuron %d: %d compartments from '%s', dt=%.4g ms, spike site %d",
            neuron_id, len(self.compartments), self.morphology.name, self.dt, self.spike_site,
        )

    def _build_compartments(self) -> List[Compartment]:
        topo = self.topology
        tables = self.membrane
        compartments = []
        for i, spec in enumerate(self.morphology):
            comp = Compartment(
                index=i,
                compartment_type=spec.compartment_type,
                diameter=spec.diameter,
                length=spec.length,
                capacitance=topo.capacitance[i],
                axial_resistance=topo.axial_resistance[i],
                g_leak=tables.g_leak[i],
                e_leak=tables.e_leak[i],
                voltage=self.v_rest,
            )
            comp.axial_conductance = topo.axial_conductance[i]
            for name, density in tables.densities[i].items():
                comp.add_channel(self.channel_set[name], density, g_max=tables.g_max[name][i])
            compartments.append(comp)

        for comp in compartments[1:]:
            parent = compartments[topo.parents[comp.index]]
            comp.parent = parent
            parent.children.append(comp)
        return compartments

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def n_compartments(self) -> int:
        return len(self.compartments)

    @property
    def time_ms(self) -> float:
        """Simulated time since construction or reset."""
        return self._step_count * self.dt

    @property
    def step_count(self) -> int:
        return self._step_count

    @property
    def soma_voltage(self) -> float:
        return self.compartments[0].voltage

    @property
    def spike_voltage(self) -> float:
        """Voltage at the spike-initiation compartment."""
        return self.compartments[self.spike_site].voltage

    @property
    def spike_count(self) -> int:
        return len(self.spike_times)

    def get_voltages(self) -> List[float]:
        """Membrane voltage of every compartment (mV)."""
        return [c.voltage for c in self.compartments]

    def get_soma_voltage(self) -> float:
        return self.soma_voltage

    def get_gates(self) -> List[Dict[str, tuple]]:
        """Gating variables per compartment, keyed by channel name."""
        return [c.gating_state() for c in self.compartments]

    # =========================================================================
    # Inputs (owned by the caller)
    # =========================================================================

    def inject_current(self, compartment: int, current_pa: float) -> None:
        """Set the injected current of one compartment (pA, depolarizing > 0).

        The value persists across steps until changed or cleared.

        Raises:
            CompartmentIndexError: If ``compartment`` does not exist
        """
        index = validate_index(compartment, len(self.compartments))
        self.compartments[index].injected_current = validate_real(current_pa, "current_pa")

    def set_currents(self, currents_pa: Sequence[float]) -> None:
        """Set the injected current of every compartment at once."""
        if len(currents_pa) != len(self.compartments):
            raise ContractViolationError(
                f"expected {len(self.compartments)} currents, got {len(currents_pa)}"
            )
        for comp, value in zip(self.compartments, currents_pa):
            comp.injected_current = validate_real(value, "current_pa")

    def clear_currents(self) -> None:
        for comp in self.compartments:
            comp.injected_current = 0.0

    def set_ligand(self, compartment: int, concentration_mm: float) -> None:
        """Set the glutamate concentration seen by ligand-gated channels (mM)."""
        index = validate_index(compartment, len(self.compartments))
        value = validate_real(concentration_mm, "concentration_mm")
        if value < 0:
            raise ContractViolationError(f"concentration must be non-negative, got {value}")
        self.compartments[index].ligand = value

    def set_channel_density(self, compartment: int, channel: str, density: float) -> None:
        """Change a channel density (mS/cm²) between steps.

        A channel that was absent is inserted with gates at steady state for
        the present voltage; a density of zero removes it. The leak is not
        rebalanced.

        Raises:
            CompartmentIndexError: If ``compartment`` does not exist
            ContractViolationError: If ``channel`` is unknown or density < 0
        """
        index = validate_index(compartment, len(self.compartments))
        kinetics = self.channel_set[channel]
        value = validate_real(density, "density")
        if value < 0 or not math.isfinite(value):
            raise ContractViolationError(f"density must be finite and >= 0, got {value}")
        self.compartments[index].set_density(kinetics, value)

    # =========================================================================
    # Integration
    # =========================================================================

    def step(self) -> bool:
        """Advance the whole neuron by one time step.

        Returns:
            True if a spike was detected in this step

        Raises:
            NumericalIntegrityError: If any voltage or gate became non-finite
                or the kinetics overflowed. The neuron keeps its state from
                before the step.
        """
        comps = self.compartments
        n = len(comps)
        dt = self.dt

        # 1. Current accounting (previous state only)
        diag = [0.0] * n
        rhs = [0.0] * n
        for i, comp in enumerate(comps):
            try:
                g_total, g_rev = comp.membrane_conductance()
            except ArithmeticError as e:
                self._fault(f"{type(e).__name__} in membrane currents of compartment {i}: {e}")
            c_dt = comp.capacitance / dt
            coupling = comp.axial_conductance
            for child in comp.children:
                coupling += child.axial_conductance
            diag[i] = c_dt + g_total + coupling
            rhs[i] = c_dt * comp.voltage + g_rev + comp.injected_current

        # 2. Tree solve: eliminate leaves towards the root...
        for i in range(n - 1, 0, -1):
            comp = comps[i]
            p = comp.parent.index
            off = -comp.axial_conductance
            f = off / diag[i]
            diag[p] -= f * off
            rhs[p] -= f * rhs[i]

        # ...then substitute back from the root
        v_new = [0.0] * n
        v_new[0] = rhs[0] / diag[0]
        for i in range(1, n):
            comp = comps[i]
            v_new[i] = (rhs[i] + comp.axial_conductance * v_new[comp.parent.index]) / diag[i]

        for i, v in enumerate(v_new):
            if not math.isfinite(v):
                self._fault(f"non-finite voltage {v} in compartment {i}")

        # 3. Gating update at the new voltage
        new_gates = []
        for comp, v in zip(comps, v_new):
            try:
                gates = comp.next_gates(v, dt)
            except ArithmeticError as e:
                self._fault(f"{type(e).__name__} in gating update of compartment {comp.index}: {e}")
            if not all(math.isfinite(x) for values in gates.values() for x in values):
                self._fault(f"non-finite gating state in compartment {comp.index}")
            new_gates.append(gates)

        # Nothing is stored until the whole step is known to be finite
        v_site_before = comps[self.spike_site].voltage
        for comp, v, gates in zip(comps, v_new, new_gates):
            comp.voltage = v
            comp.set_gates(gates)

        # 4. Spike detection
        self._step_count += 1
        t = self._step_count * dt
        v_site = comps[self.spike_site].voltage
        crossed = v_site_before < self.spike_threshold <= v_site
        self.is_spiking = crossed and (t - self.last_spike_time) >= self.refractory_ms
        if self.is_spiking:
            self.last_spike_time = t
            self.spike_times.append(t)
        return self.is_spiking

    def _fault(self, message: str) -> None:
        logger.error("Neuron %d, step %d: %s", self.neuron_id, self._step_count + 1, message)
        raise NumericalIntegrityError(message, step=self._step_count + 1)

    def run(self, n_steps: int) -> List[bool]:
        """Run ``n_steps`` steps with the present inputs; returns spike flags."""
        return [self.step() for _ in range(n_steps)]

    # =========================================================================
    # State
    # =========================================================================

    def reset_state(self) -> None:
        """Back to rest: voltages, steady-state gates, no inputs, no spikes."""
        for comp in self.compartments:
            comp.reset(self.v_rest)
        self.spike_times = []
        self.reset_spike_record()

    def get_state(self) -> Dict[str, Any]:
        """Diagnostic snapshot of the neuron."""
        voltages = self.get_voltages()
        gates = [x for c in self.compartments for ch in c.channels.values() for x in ch.gates]
        state: Dict[str, Any] = {
            "neuron_id": self.neuron_id,
            "step": self._step_count,
            "time_ms": self.time_ms,
            "soma_voltage": self.soma_voltage,
            "spike_voltage": self.spike_voltage,
            "is_spiking": self.is_spiking,
            "last_spike_time": self.last_spike_time,
            "voltages": voltages,
            "injected_current": [c.injected_current for c in self.compartments],
            "axial_currents": list(self.topology.axial_currents(voltages)),
        }
        state.update(self.voltage_diagnostics(voltages))
        state.update(self.gate_diagnostics(gates))
        state.update(self.spike_diagnostics(self.spike_count, self.time_ms))
        return state


__all__ = ["MultiCompartmentNeuron", "resolve_morphology"]
