"""
Data-parallel cable simulator.

Runs the integration step of :class:`MultiCompartmentNeuron` for many
identical neurons at once on a torch device. State is laid out as
structure-of-arrays:

- ``voltage``, ``current``, ``ligand``: ``[n_neurons, n_compartments]``
- ``gates``: ``[n_gates, n_neurons, n_compartments]``, rows grouped by
  channel in :class:`ChannelSet` order
- per-compartment tables (capacitance, leak, axial conductance, maximal
  channel conductances): ``[n_compartments]``, read-only after construction

Compartment ``c`` of neuron ``n`` has the flat index ``n * C + c``.

The tree solve runs level by level: every compartment at one tree depth,
across every neuron, is eliminated in a single tensor operation. Levels
are processed deepest first, then the back substitution goes root first.

Synchronization:
    ``step()`` only enqueues work. Nothing is read back, so on CUDA the host
    never waits for the device. Non-finite values are recorded on the
    device and raised as :class:`NumericalIntegrityError` at the next
    readback, which is the single synchronization point.

Example:
    >>> sim = CableSimulator(1000, dt_ms=0.025, morphology="pyramidal", device="cuda")
    >>> sim.set_current(sim.flat_index(0, 0), 800.0)
    >>> sim.run(400)
    >>> handle = sim.readback()     # copy starts, host continues
    >>> voltages = handle.wait()     # [1000, 152] on the CPU

Author: neurocable project
Date: March 2026
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import torch

from neurocable.channels.kinetics import ChannelKinetics
from neurocable.channels.library import ChannelSet, build_channel_set
from neurocable.components.multicompartment import resolve_morphology
from neurocable.config.cable_config import CableConfig
from neurocable.errors import (
    ConfigurationError,
    ContractViolationError,
    NumericalIntegrityError,
    validate_index,
    validate_real,
)
from neurocable.mixins.device_mixin import DeviceMixin
from neurocable.mixins.diagnostics_mixin import DiagnosticsMixin
from neurocable.mixins.resettable_mixin import ResettableMixin
from neurocable.morphology.morphology import Morphology
from neurocable.morphology.topology import compile_membrane, compile_topology

logger = logging.getLogger(__name__)


# =============================================================================
# Readback
# =============================================================================


class ReadbackHandle:
    """Pending device-to-host copy of the simulator state.

    The copy is enqueued when the handle is created. :meth:`done` polls
    without blocking; :meth:`wait` blocks until the copy has landed, checks
    the integrity flag and returns the voltages. The handle can also be
    awaited from a coroutine, which polls :meth:`done` between event-loop
    iterations.

    Attributes:
        step: Number of steps completed when the readback was requested
    """

    poll_interval_s = 0.0005

    def __init__(
        self,
        voltages: torch.Tensor,
        spikes: torch.Tensor,
        spike_counts: torch.Tensor,
        fault_step: torch.Tensor,
        step: int,
        event: Optional["torch.cuda.Event"] = None,
    ):
        self._voltages = voltages
        self._spikes = spikes
        self._spike_counts = spike_counts
        self._fault_step = fault_step
        self._event = event
        self.step = step
        self._checked = False

    def done(self) -> bool:
        """Whether the copy has completed."""
        return self._event is None or self._event.query()

    def wait(self) -> torch.Tensor:
        """Block until the copy completes and return voltages (mV, host).

        Raises:
            NumericalIntegrityError: If any step since construction or the
                last reset produced a non-finite voltage or gate
        """
        if self._event is not None:
            self._event.synchronize()
        if not self._checked:
            fault_step = int(self._fault_step.item())
            if fault_step >= 0:
                logger.error(
                    "Parallel engine: non-finite state first seen at step %d (readback at step %d)",
                    fault_step, self.step,
                )
                raise NumericalIntegrityError(
                    "non-finite voltage or gating state in parallel engine", step=fault_step
                )
            self._checked = True
        return self._voltages

    def __await__(self):
        while not self.done():
            yield from asyncio.sleep(self.poll_interval_s).__await__()
        return self.wait()

    @property
    def voltages(self) -> torch.Tensor:
        return self.wait()

    @property
    def spikes(self) -> torch.Tensor:
        """Spike flags of the last step, ``[n_neurons]`` bool."""
        self.wait()
        return self._spikes

    @property
    def spike_counts(self) -> torch.Tensor:
        """Spikes per neuron since construction or reset, ``[n_neurons]``."""
        self.wait()
        return self._spike_counts


# =============================================================================
# Simulator
# =============================================================================


class CableSimulator(DeviceMixin, ResettableMixin, DiagnosticsMixin):
    """Many multi-compartment neurons integrated as one tensor program.

    All neurons share one morphology and parameter set; they differ only in
    their inputs (injected current, ligand) and hence in their state.

    Args:
        n_neurons: Number of neurons
        dt_ms: Time step (ms); overrides ``config.dt_ms`` when given
        morphology: Template name or :class:`Morphology`
        config: Cable configuration (default :class:`CableConfig`)
        device: Torch device; defaults to ``config.device``
    """

    def __init__(
        self,
        n_neurons: int,
        dt_ms: Optional[float] = None,
        morphology: Union[str, Morphology] = "pyramidal",
        config: Optional[CableConfig] = None,
        device: Optional[Union[str, torch.device]] = None,
    ):
        if isinstance(n_neurons, bool) or not isinstance(n_neurons, int) or n_neurons <= 0:
            raise ConfigurationError(f"n_neurons must be a positive int, got {n_neurons!r}")

        config = config or CableConfig()
        if dt_ms is not None:
            config = config.with_overrides(dt_ms=dt_ms)
        device = torch.device(device) if device is not None else config.get_torch_device()
        if device.type == "cuda" and not torch.cuda.is_available():
            raise ConfigurationError("CUDA device requested but CUDA is not available")
        self.init_device(device, config.get_torch_dtype())

        self.config = config
        self.morphology = resolve_morphology(morphology)
        self.dt = config.dt_ms
        self.v_rest = config.v_rest
        self.spike_threshold = config.spike_threshold_mv
        self.refractory_ms = config.refractory_ms

        self._n_neurons = n_neurons
        self.channel_set: ChannelSet = build_channel_set(config)
        self.topology = compile_topology(self.morphology, config)
        self.membrane = compile_membrane(self.morphology, self.topology, config, self.channel_set)
        self.spike_site = self.topology.spike_site

        self._build_tables()
        self._allocate_state()
        self.reset_state()

        logger.debug(
            "CableSimulator: %d neurons x %d compartments ('%s') on %s/%s, %d active channels",
            n_neurons, self.compartments_per_neuron, self.morphology.name,
            self.device, self.dtype, len(self._active),
        )

    # =========================================================================
    # Construction
    # =========================================================================

    def _table(self, values: Sequence[float]) -> torch.Tensor:
        return torch.tensor(list(values), **self.tensor_kwargs())

    def _build_tables(self) -> None:
        topo = self.topology
        self.capacitance = self._table(topo.capacitance)
        self.g_leak = self._table(self.membrane.g_leak)
        self.e_leak = self._table(self.membrane.e_leak)
        self.axial_conductance = self._table(topo.axial_conductance)
        self.coupling_sum = self._table(topo.coupling_sum())

        # Per depth level: (indices, parents, edge conductance)
        self._levels: List[Tuple[torch.Tensor, torch.Tensor, torch.Tensor]] = []
        for idx, par in topo.level_tensors(self.device):
            self._levels.append((idx, par, self.axial_conductance[idx]))

        # Only channels present somewhere are integrated; other gate rows
        # keep their resting values.
        self._active: List[Tuple[ChannelKinetics, slice, torch.Tensor, torch.Tensor]] = []
        for ch in self.channel_set:
            g_max = self._table(self.membrane.g_max[ch.name])
            present = g_max > 0
            if bool(present.any()):
                self._active.append((ch, self.channel_set.gate_slice(ch.name), g_max, present))

    def _allocate_state(self) -> None:
        shape = (self._n_neurons, self.compartments_per_neuron)
        kw = self.tensor_kwargs()
        self.voltage = torch.empty(shape, **kw)
        self.current = torch.zeros(shape, **kw)
        self.ligand = torch.zeros(shape, **kw)
        self.gates = torch.empty((self.channel_set.n_gates,) + shape, **kw)

        n = self._n_neurons
        self.spikes = torch.zeros(n, dtype=torch.bool, device=self.device)
        self.last_spike = torch.empty(n, **kw)
        self.spike_count = torch.zeros(n, dtype=torch.long, device=self.device)
        # First step with a non-finite value, -1 while healthy
        self._fault_step = torch.full((), -1, dtype=torch.long, device=self.device)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def num_neurons(self) -> int:
        return self._n_neurons

    @property
    def compartments_per_neuron(self) -> int:
        return self.topology.n_compartments

    @property
    def total_compartments(self) -> int:
        return self._n_neurons * self.compartments_per_neuron

    @property
    def step_count(self) -> int:
        return self._step_count

    @property
    def time_ms(self) -> float:
        return self._step_count * self.dt

    def flat_index(self, neuron: int, compartment: int) -> int:
        """Flat index of ``compartment`` in ``neuron``."""
        neuron = validate_index(neuron, self._n_neurons, name="neuron")
        compartment = validate_index(compartment, self.compartments_per_neuron)
        return neuron * self.compartments_per_neuron + compartment

    def _split(self, flat_index: int) -> Tuple[int, int]:
        flat_index = validate_index(flat_index, self.total_compartments)
        return divmod(flat_index, self.compartments_per_neuron)

    # =========================================================================
    # Inputs
    # =========================================================================

    def set_current(self, flat_index: int, current_pa: float) -> None:
        """Set the injected current (pA) of one compartment by flat index.

        The value persists across steps until changed or cleared.

        Raises:
            CompartmentIndexError: If ``flat_index`` is outside ``[0, total_compartments)``
            ContractViolationError: If ``current_pa`` is not a real number
        """
        neuron, comp = self._split(flat_index)
        self.current[neuron, comp] = validate_real(current_pa, "current_pa")

    def inject_current(self, neuron: int, compartment: int, current_pa: float) -> None:
        """Set the injected current (pA) of one compartment of one neuron."""
        self.set_current(self.flat_index(neuron, compartment), current_pa)

    def set_currents(self, currents_pa: Union[torch.Tensor, Sequence[float]]) -> None:
        """Replace all injected currents.

        Args:
            currents_pa: ``total_compartments`` values in flat order, or a
                ``[n_neurons, compartments_per_neuron]`` tensor
        """
        self.current.copy_(self._as_state_tensor(currents_pa, "currents"))

    def clear_currents(self) -> None:
        self.current.zero_()

    def set_ligand(self, flat_index: int, concentration_mm: float) -> None:
        """Set the glutamate concentration (mM) of one compartment by flat index."""
        neuron, comp = self._split(flat_index)
        value = validate_real(concentration_mm, "concentration_mm")
        if value < 0:
            raise ContractViolationError(f"concentration must be non-negative, got {value}")
        self.ligand[neuron, comp] = value

    def set_ligands(self, concentrations_mm: Union[torch.Tensor, Sequence[float]]) -> None:
        values = self._as_state_tensor(concentrations_mm, "concentrations")
        if bool((values < 0).any()):
            raise ContractViolationError("concentrations must be non-negative")
        self.ligand.copy_(values)

    def _as_state_tensor(self, values: Union[torch.Tensor, Sequence[float]], name: str) -> torch.Tensor:
        try:
            tensor = torch.as_tensor(values)
        except (TypeError, ValueError) as e:
            raise ContractViolationError(f"{name} must be real numbers: {e}") from e
        if tensor.dtype == torch.bool or tensor.is_complex():
            raise ContractViolationError(f"{name} must be real numbers, got dtype {tensor.dtype}")
        tensor = self.to_device(tensor)
        shape = self.voltage.shape
        if tensor.shape == shape:
            return tensor
        if tensor.dim() == 1 and tensor.numel() == self.total_compartments:
            return tensor.reshape(shape)
        raise ContractViolationError(
            f"{name} must have {self.total_compartments} values or shape {tuple(shape)}, "
            f"got shape {tuple(tensor.shape)}"
        )

    # =========================================================================
    # Integration
    # =========================================================================

    def step(self) -> None:
        """Advance every neuron by one time step. Does not synchronize."""
        v = self.voltage
        dt = self.dt

        # 1. Current accounting from the previous state
        g_total = self.g_leak.expand_as(v)
        g_rev = (self.g_leak * self.e_leak).expand_as(v)
        for ch, rows, g_max, _ in self._active:
            g = ch.conductance(v, self.gates[rows].unbind(0), g_max)
            g_total = g_total + g
            g_rev = g_rev + g * ch.reversal

        c_dt = self.capacitance / dt
        diag = c_dt + g_total + self.coupling_sum
        rhs = c_dt * v + g_rev + self.current

        # 2. Tree solve, deepest level first...
        for idx, par, g_edge in reversed(self._levels[1:]):
            w = g_edge / diag[:, idx]
            diag.index_add_(1, par, -w * g_edge)
            rhs.index_add_(1, par, w * rhs[:, idx])

        # ...then back substitution from the root
        v_new = torch.empty_like(v)
        v_new[:, 0] = rhs[:, 0] / diag[:, 0]
        for idx, par, g_edge in self._levels[1:]:
            v_new[:, idx] = (rhs[:, idx] + g_edge * v_new[:, par]) / diag[:, idx]

        bad = ~torch.isfinite(v_new).all()

        # 3. Gating update at the new voltage
        for ch, rows, _, present in self._active:
            new = torch.stack(ch.advance(v_new, self.gates[rows].unbind(0), dt, self.ligand))
            bad = bad | (~torch.isfinite(new) & present).any()
            self.gates[rows] = new

        # 4. Spike detection at the spike-initiation compartment
        self._step_count += 1
        t = self._step_count * dt
        site = self.spike_site
        crossed = (v[:, site] < self.spike_threshold) & (v_new[:, site] >= self.spike_threshold)
        spiking = crossed & ((t - self.last_spike) >= self.refractory_ms)
        self.last_spike.masked_fill_(spiking, t)
        self.spike_count += spiking.long()
        self.spikes = spiking

        self._fault_step.masked_fill_(bad & (self._fault_step < 0), self._step_count)
        self.voltage = v_new

    def run(self, n_steps: int) -> None:
        """Enqueue ``n_steps`` steps with the present inputs."""
        for _ in range(n_steps):
            self.step()

    # =========================================================================
    # Readback
    # =========================================================================

    def readback(self) -> ReadbackHandle:
        """Start copying voltages and spike state to the host.

        Returns immediately; use the handle's ``wait()`` or ``await`` it.
        """
        sources = (self.voltage, self.spikes, self.spike_count, self._fault_step)
        if self.is_cuda():
            copies = []
            for src in sources:
                dst = torch.empty(src.shape, dtype=src.dtype, pin_memory=True)
                dst.copy_(src, non_blocking=True)
                copies.append(dst)
            event = torch.cuda.Event()
            event.record()
            return ReadbackHandle(*copies, step=self._step_count, event=event)
        return ReadbackHandle(*(src.clone() for src in sources), step=self._step_count)

    def read_voltages(self) -> torch.Tensor:
        """Voltages of every compartment, ``[n_neurons, compartments_per_neuron]``."""
        return self.readback().wait()

    def get_soma_voltages(self) -> torch.Tensor:
        """Soma voltage of every neuron, ``[n_neurons]``."""
        return self.read_voltages()[:, 0]

    def get_neuron_voltages(self, neuron: int) -> torch.Tensor:
        """All compartment voltages of one neuron."""
        neuron = validate_index(neuron, self._n_neurons, name="neuron")
        return self.read_voltages()[neuron]

    def read_spikes(self) -> torch.Tensor:
        """Spike flags of the last step, ``[n_neurons]`` bool."""
        return self.readback().spikes

    def spike_counts(self) -> torch.Tensor:
        """Spikes per neuron since construction or the last reset."""
        return self.readback().spike_counts

    # =========================================================================
    # State
    # =========================================================================

    def reset_state(self) -> None:
        """All neurons back to rest with no inputs, no spikes and no fault."""
        self.voltage.fill_(self.v_rest)
        self.current.zero_()
        self.ligand.zero_()
        for ch in self.channel_set:
            rows = self.channel_set.gate_slice(ch.name)
            rest = [
                torch.as_tensor(x, **self.tensor_kwargs()).expand_as(self.voltage)
                for x in ch.initial_state(self.voltage, self.ligand)
            ]
            self.gates[rows] = torch.stack(rest)
        self.spikes.zero_()
        self.last_spike.fill_(float("-inf"))
        self.spike_count.zero_()
        self._fault_step.fill_(-1)
        self.reset_spike_record()

    def get_state(self) -> Dict[str, Any]:
        """Diagnostic snapshot. Synchronizes with the device."""
        voltages = self.read_voltages()
        counts = self.spike_counts()
        state: Dict[str, Any] = {
            "num_neurons": self._n_neurons,
            "compartments_per_neuron": self.compartments_per_neuron,
            "step": self._step_count,
            "time_ms": self.time_ms,
            "device": str(self.device),
            "soma_voltages": voltages[:, 0].clone(),
            "spike_counts": counts.clone(),
        }
        state.update(self.voltage_diagnostics(voltages))
        active_rows = [self.gates[rows] for _, rows, _, _ in self._active]
        if active_rows:
            state.update(self.gate_diagnostics(torch.cat(active_rows).cpu()))
        state.update(self.spike_diagnostics(int(counts.sum()), self.time_ms * self._n_neurons))
        return state


__all__ = ["CableSimulator", "ReadbackHandle"]
