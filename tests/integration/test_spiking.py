"""
Firing behaviour of the canonical morphologies.

A large sustained somatic current must drive the pyramidal cell to spike
at its axon initial segment, with inter-spike intervals no shorter than the
refractory period.
"""

import pytest

from neurocable.components import MultiCompartmentNeuron
from neurocable.config import CableConfig
from neurocable.gpu import CableSimulator
from tests.test_utils import assert_neuron_gates_valid, inter_spike_intervals


@pytest.fixture
def config():
    return CableConfig(dt_ms=0.05)


@pytest.mark.slow
class TestPyramidal:
    def test_spikes_within_50_ms(self, config):
        neuron = MultiCompartmentNeuron("pyramidal", config)
        neuron.inject_current(0, 1000.0)
        neuron.run(1000)
        assert len(neuron.spike_times) >= 1
        assert neuron.spike_times[0] <= 50.0
        for isi in inter_spike_intervals(neuron.spike_times):
            assert isi >= config.refractory_ms
        assert_neuron_gates_valid(neuron)

    def test_action_potential_reaches_soma(self, config):
        neuron = MultiCompartmentNeuron("pyramidal", config)
        neuron.inject_current(0, 1000.0)
        peak_soma = -float("inf")
        for _ in range(1000):
            neuron.step()
            peak_soma = max(peak_soma, neuron.soma_voltage)
        assert peak_soma > -10.0

    def test_rest_is_stable(self, config):
        neuron = MultiCompartmentNeuron("pyramidal", config)
        neuron.run(400)
        for v in neuron.get_voltages():
            assert v == pytest.approx(config.v_rest, abs=1e-6)

    def test_parallel_engine_spikes(self, config):
        sim = CableSimulator(8, morphology="pyramidal", config=config)
        for n in range(8):
            sim.inject_current(n, 0, 1000.0)
        sim.run(1000)
        counts = sim.spike_counts()
        assert (counts >= 1).all()


class TestRefractory:
    def test_long_refractory_limits_rate(self):
        """A refractory period longer than the natural ISI suppresses spikes."""
        short = MultiCompartmentNeuron("ball_and_stick", CableConfig(dt_ms=0.05))
        long = MultiCompartmentNeuron("ball_and_stick", CableConfig(dt_ms=0.05, refractory_ms=40.0))
        for neuron in (short, long):
            neuron.inject_current(0, 600.0)
            neuron.run(2000)
        assert len(short.spike_times) > len(long.spike_times) >= 1
        for isi in inter_spike_intervals(long.spike_times):
            assert isi >= 40.0
