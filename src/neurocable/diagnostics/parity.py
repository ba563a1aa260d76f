"""
Parity check between the sequential and the parallel engine.

:func:`compare_engines` drives one :class:`MultiCompartmentNeuron` and a
single-neuron :class:`CableSimulator` with the same morphology,
configuration and current schedule, reads the parallel engine back after
every step and records the largest voltage difference over all
compartments.

The acceptance bound is ``config.parity_tolerance_mv``; spike counts must
agree within one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Union

import torch

from neurocable.components.multicompartment import MultiCompartmentNeuron, resolve_morphology
from neurocable.config.cable_config import CableConfig
from neurocable.errors import ContractViolationError, validate_index
from neurocable.gpu.cable_simulator import CableSimulator
from neurocable.morphology.morphology import Morphology

logger = logging.getLogger(__name__)

CurrentSchedule = Union[None, float, Sequence[float], Callable[[int], float]]


@dataclass
class ParityReport:
    """Per-step comparison of the two engines.

    Attributes:
        n_steps: Steps compared
        tolerance_mv: Acceptance bound on the per-step difference
        max_abs_diff: Largest |V_seq - V_par| over compartments, per step
        soma_sequential: Soma voltage of the sequential engine, per step
        soma_parallel: Soma voltage of the parallel engine, per step
        spike_site_sequential: Spike-site voltage of the sequential engine
        spike_site_parallel: Spike-site voltage of the parallel engine
        spikes_sequential: Spike count of the sequential engine
        spikes_parallel: Spike count of the parallel engine
    """

    n_steps: int
    tolerance_mv: float
    max_abs_diff: List[float] = field(default_factory=list)
    soma_sequential: List[float] = field(default_factory=list)
    soma_parallel: List[float] = field(default_factory=list)
    spike_site_sequential: List[float] = field(default_factory=list)
    spike_site_parallel: List[float] = field(default_factory=list)
    spikes_sequential: int = 0
    spikes_parallel: int = 0

    @property
    def max_divergence(self) -> float:
        return max(self.max_abs_diff, default=0.0)

    @property
    def worst_step(self) -> int:
        """Step (1-based) with the largest difference, 0 when nothing ran."""
        if not self.max_abs_diff:
            return 0
        return max(range(len(self.max_abs_diff)), key=self.max_abs_diff.__getitem__) + 1

    @property
    def spike_count_delta(self) -> int:
        return abs(self.spikes_sequential - self.spikes_parallel)

    @property
    def voltage_ok(self) -> bool:
        return self.max_divergence <= self.tolerance_mv

    @property
    def spikes_ok(self) -> bool:
        return self.spike_count_delta <= 1

    @property
    def passed(self) -> bool:
        return self.voltage_ok and self.spikes_ok

    def summary(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        return (
            f"Parity {status}: max |dV| = {self.max_divergence:.3e} mV at step "
            f"{self.worst_step}/{self.n_steps} (tolerance {self.tolerance_mv} mV), "
            f"spikes {self.spikes_sequential} vs {self.spikes_parallel}"
        )


def _schedule_fn(schedule: CurrentSchedule, n_steps: int) -> Callable[[int], float]:
    if schedule is None:
        return lambda step: 0.0
    if callable(schedule):
        return schedule
    if isinstance(schedule, (int, float)):
        value = float(schedule)
        return lambda step: value
    values = [float(x) for x in schedule]
    if len(values) != n_steps:
        raise ContractViolationError(
            f"current schedule has {len(values)} entries for {n_steps} steps"
        )
    return values.__getitem__


def compare_engines(
    morphology: Union[str, Morphology] = "ball_and_stick",
    n_steps: int = 500,
    config: Optional[CableConfig] = None,
    current_schedule: CurrentSchedule = None,
    injection_site: int = 0,
    device: Optional[Union[str, torch.device]] = None,
) -> ParityReport:
    """Run both engines side by side and compare their trajectories.

    Args:
        morphology: Template name or :class:`Morphology`
        n_steps: Number of steps to compare
        config: Shared configuration (default :class:`CableConfig`)
        current_schedule: Current (pA) into ``injection_site``: None for no
            input, a constant, one value per step, or ``f(step) -> pA``
            with ``step`` counted from 0
        injection_site: Compartment receiving the current
        device: Device of the parallel engine

    Returns:
        :class:`ParityReport`
    """
    config = config or CableConfig()
    morph = resolve_morphology(morphology)
    current_at = _schedule_fn(current_schedule, n_steps)

    sequential = MultiCompartmentNeuron(morph, config)
    parallel = CableSimulator(1, morphology=morph, config=config, device=device)
    injection_site = validate_index(injection_site, sequential.n_compartments)
    flat = parallel.flat_index(0, injection_site)
    site = sequential.spike_site

    report = ParityReport(n_steps=n_steps, tolerance_mv=config.parity_tolerance_mv)
    for step in range(n_steps):
        current = current_at(step)
        sequential.inject_current(injection_site, current)
        parallel.set_current(flat, current)

        sequential.step()
        parallel.step()

        v_seq = torch.tensor(sequential.get_voltages(), dtype=torch.float64)
        v_par = parallel.read_voltages()[0].to(torch.float64)
        report.max_abs_diff.append(float((v_seq - v_par).abs().max()))
        report.soma_sequential.append(float(v_seq[0]))
        report.soma_parallel.append(float(v_par[0]))
        report.spike_site_sequential.append(float(v_seq[site]))
        report.spike_site_parallel.append(float(v_par[site]))

    report.spikes_sequential = sequential.spike_count
    report.spikes_parallel = int(parallel.spike_counts()[0])

    if report.passed:
        logger.info("%s: %s", morph.name, report.summary())
    else:
        logger.warning("%s: %s", morph.name, report.summary())
    return report


__all__ = ["CurrentSchedule", "ParityReport", "compare_engines"]
