"""
Data-parallel cable engine and its benchmark facade.

    from neurocable.gpu import CableSimulator

    sim = CableSimulator(512, dt_ms=0.025, morphology="pyramidal", device="cuda")
    sim.run(100)
    voltages = sim.read_voltages()
"""

from neurocable.gpu.cable_simulator import CableSimulator, ReadbackHandle
from neurocable.gpu.compute import Benchmark, PerformanceMetrics

__all__ = ["Benchmark", "CableSimulator", "PerformanceMetrics", "ReadbackHandle"]
