"""
neurocable - multi-compartment cable neurons on the CPU and on torch devices

Quick Start:
============

    from neurocable import CableConfig, MultiCompartmentNeuron, CableSimulator

    # One neuron, stepped on the host
    neuron = MultiCompartmentNeuron("pyramidal", CableConfig(dt_ms=0.025))
    neuron.inject_current(0, 1000.0)
    spikes = neuron.run(2000)

    # Many neurons as one tensor program
    sim = CableSimulator(1024, dt_ms=0.025, morphology="pyramidal", device="cuda")
    sim.run(2000)
    voltages = sim.read_voltages()

    # Do both engines agree?
    report = compare_engines("pyramidal", n_steps=500, current_schedule=800.0)

Internal Development:
====================

Internal code should use explicit imports:

    from neurocable.morphology.topology import compile_topology
    from neurocable.channels.library import build_channel_set
"""

__version__ = "0.1.0"

# ============================================================================
# PUBLIC API
# ============================================================================

# Configuration and errors
from neurocable.config import BaseConfig, CableConfig
from neurocable.errors import (
    CompartmentIndexError,
    ConfigurationError,
    ContractViolationError,
    MorphologyError,
    NeuroCableError,
    NumericalIntegrityError,
)

# Channels
from neurocable.channels import ChannelKinetics, ChannelSet, build_channel_set

# Morphology
from neurocable.morphology import (
    CompartmentSpec,
    CompartmentType,
    CouplingTopology,
    Morphology,
    MorphologyBuilder,
    get_template,
    load_swc,
)

# Engines
from neurocable.components import Compartment, MultiCompartmentNeuron
from neurocable.gpu import Benchmark, CableSimulator, PerformanceMetrics, ReadbackHandle

# Diagnostics
from neurocable.diagnostics import ParityReport, compare_engines

__all__ = [
    "__version__",
    "BaseConfig",
    "CableConfig",
    "CompartmentIndexError",
    "ConfigurationError",
    "ContractViolationError",
    "MorphologyError",
    "NeuroCableError",
    "NumericalIntegrityError",
    "ChannelKinetics",
    "ChannelSet",
    "build_channel_set",
    "CompartmentSpec",
    "CompartmentType",
    "CouplingTopology",
    "Morphology",
    "MorphologyBuilder",
    "get_template",
    "load_swc",
    "Compartment",
    "MultiCompartmentNeuron",
    "Benchmark",
    "CableSimulator",
    "PerformanceMetrics",
    "ReadbackHandle",
    "ParityReport",
    "compare_engines",
]
