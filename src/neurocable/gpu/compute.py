"""
Benchmark facade for the parallel engine.

:meth:`Benchmark.run` builds a :class:`CableSimulator`, runs it for a
number of steps, synchronizes through a readback and reports throughput.
The speedup against the sequential engine is measured, not estimated: when
requested, one :class:`MultiCompartmentNeuron` is stepped on the host and
its time per neuron-step is scaled to the same amount of work.

Example:
    >>> metrics = Benchmark.run(n_neurons=1000, n_steps=200, device="cuda",
    ...                         compare_sequential=True)
    >>> print(metrics.summary())
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Union

import torch

from neurocable.components.multicompartment import MultiCompartmentNeuron
from neurocable.config.cable_config import CableConfig
from neurocable.errors import ConfigurationError
from neurocable.gpu.cable_simulator import CableSimulator
from neurocable.morphology.morphology import Morphology

logger = logging.getLogger(__name__)


@dataclass
class PerformanceMetrics:
    """Result of one benchmark run.

    Attributes:
        neurons_processed: ``n_neurons * n_steps``
        compartment_steps: ``total_compartments * n_steps``
        time_ms: Wall time of the timed steps including the final readback
        throughput_neurons_per_sec: Neuron-steps per second
        throughput_compartments_per_sec: Compartment-steps per second
        speedup_vs_sequential: Measured speedup over the sequential engine,
            None unless requested
    """

    n_neurons: int
    n_steps: int
    compartments_per_neuron: int
    device: str
    neurons_processed: int
    compartment_steps: int
    time_ms: float
    throughput_neurons_per_sec: float
    throughput_compartments_per_sec: float
    speedup_vs_sequential: Optional[float] = None
    sequential_ms_per_neuron_step: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def summary(self) -> str:
        lines = [
            "=== Cable Benchmark ===",
            f"  Device: {self.device}",
            f"  Neurons: {self.n_neurons} x {self.compartments_per_neuron} compartments",
            f"  Steps: {self.n_steps}",
            f"  Time: {self.time_ms:.2f} ms",
            f"  Throughput: {self.throughput_neurons_per_sec:,.0f} neuron-steps/s "
            f"({self.throughput_compartments_per_sec:,.0f} compartment-steps/s)",
        ]
        if self.speedup_vs_sequential is not None:
            lines.append(f"  Speedup vs sequential: {self.speedup_vs_sequential:.1f}x")
        return "\n".join(lines)


class Benchmark:
    """Throughput measurement of :class:`CableSimulator`."""

    @staticmethod
    def run(
        n_neurons: int,
        n_steps: int,
        dt_ms: float = 0.025,
        morphology: Union[str, Morphology] = "pyramidal",
        config: Optional[CableConfig] = None,
        device: Optional[Union[str, torch.device]] = None,
        warmup_steps: int = 5,
        soma_current_pa: float = 0.0,
        compare_sequential: bool = False,
        sequential_steps: int = 100,
    ) -> PerformanceMetrics:
        """Time ``n_steps`` steps of ``n_neurons`` neurons.

        Args:
            n_neurons: Neurons simulated in parallel
            n_steps: Timed steps
            dt_ms: Time step (ms)
            morphology: Template name or :class:`Morphology`
            config: Cable configuration
            device: Torch device for the parallel engine
            warmup_steps: Untimed steps before measuring (kernel caches,
                allocator warm-up)
            soma_current_pa: Constant current into every soma, so the
                benchmark can cover spiking activity
            compare_sequential: Also time the sequential engine
            sequential_steps: Steps the sequential engine is timed for

        Returns:
            :class:`PerformanceMetrics`
        """
        if n_steps <= 0:
            raise ConfigurationError(f"n_steps must be positive, got {n_steps}")

        sim = CableSimulator(n_neurons, dt_ms=dt_ms, morphology=morphology, config=config, device=device)
        if soma_current_pa:
            for neuron in range(n_neurons):
                sim.inject_current(neuron, 0, soma_current_pa)

        sim.run(warmup_steps)
        sim.readback().wait()

        start = time.perf_counter()
        sim.run(n_steps)
        sim.readback().wait()
        elapsed_s = time.perf_counter() - start

        neurons_processed = n_neurons * n_steps
        compartment_steps = sim.total_compartments * n_steps
        metrics = PerformanceMetrics(
            n_neurons=n_neurons,
            n_steps=n_steps,
            compartments_per_neuron=sim.compartments_per_neuron,
            device=str(sim.device),
            neurons_processed=neurons_processed,
            compartment_steps=compartment_steps,
            time_ms=elapsed_s * 1000.0,
            throughput_neurons_per_sec=neurons_processed / elapsed_s,
            throughput_compartments_per_sec=compartment_steps / elapsed_s,
        )

        if compare_sequential:
            per_step_ms = Benchmark.time_sequential(
                sequential_steps, sim.morphology, sim.config, soma_current_pa
            )
            metrics.sequential_ms_per_neuron_step = per_step_ms
            metrics.speedup_vs_sequential = per_step_ms * neurons_processed / metrics.time_ms

        logger.info(
            "Benchmark: %d neurons x %d steps on %s in %.1f ms (%.0f neuron-steps/s%s)",
            n_neurons, n_steps, metrics.device, metrics.time_ms,
            metrics.throughput_neurons_per_sec,
            f", {metrics.speedup_vs_sequential:.1f}x sequential"
            if metrics.speedup_vs_sequential is not None else "",
        )
        return metrics

    @staticmethod
    async def run_async(n_neurons: int, n_steps: int, **kwargs: Any) -> PerformanceMetrics:
        """Like :meth:`run`, awaiting the final readback instead of blocking."""
        dt_ms = kwargs.pop("dt_ms", 0.025)
        sim = CableSimulator(n_neurons, dt_ms=dt_ms, **kwargs)
        start = time.perf_counter()
        sim.run(n_steps)
        await sim.readback()
        elapsed_s = time.perf_counter() - start
        return PerformanceMetrics(
            n_neurons=n_neurons,
            n_steps=n_steps,
            compartments_per_neuron=sim.compartments_per_neuron,
            device=str(sim.device),
            neurons_processed=n_neurons * n_steps,
            compartment_steps=sim.total_compartments * n_steps,
            time_ms=elapsed_s * 1000.0,
            throughput_neurons_per_sec=n_neurons * n_steps / elapsed_s,
            throughput_compartments_per_sec=sim.total_compartments * n_steps / elapsed_s,
        )

    @staticmethod
    def time_sequential(
        n_steps: int,
        morphology: Union[str, Morphology] = "pyramidal",
        config: Optional[CableConfig] = None,
        soma_current_pa: float = 0.0,
    ) -> float:
        """Wall time (ms) of one sequential neuron-step, averaged over ``n_steps``."""
        neuron = MultiCompartmentNeuron(morphology, config)
        if soma_current_pa:
            neuron.inject_current(0, soma_current_pa)
        neuron.step()
        start = time.perf_counter()
        neuron.run(n_steps)
        return (time.perf_counter() - start) * 1000.0 / n_steps


__all__ = ["Benchmark", "PerformanceMetrics"]
