"""Tests for the shared coupling topology and membrane tables."""

import math

import pytest
import torch

from neurocable.channels import build_channel_set
from neurocable.config import CableConfig
from neurocable.errors import MorphologyError
from neurocable.morphology import (
    CompartmentSpec,
    CompartmentType,
    Morphology,
    compile_membrane,
    compile_topology,
    get_template,
)
from neurocable.units import axial_resistance, density_to_conductance, specific_to_capacitance


@pytest.fixture
def config():
    return CableConfig()


class TestUnits:
    def test_capacitance_of_one_square_centimetre_fraction(self):
        # 1 µF/cm² over 100 µm² is 1 pF
        assert specific_to_capacitance(1.0, 100.0) == pytest.approx(1.0)

    def test_density_to_conductance(self):
        # 1 mS/cm² over 100 µm² is 1 nS
        assert density_to_conductance(1.0, 100.0) == pytest.approx(1.0)

    def test_axial_resistance(self):
        # 100 Ω·cm, 50 µm long, 2 µm wide
        assert axial_resistance(100.0, 2.0, 50.0) == pytest.approx(100.0 * 50.0 / math.pi * 1e-2)


class TestCouplingTopology:
    def test_ball_and_stick_values(self, config):
        topo = compile_topology(get_template("ball_and_stick"), config)
        soma_area = math.pi * 20.0 * 20.0
        assert topo.area[0] == pytest.approx(soma_area)
        assert topo.capacitance[0] == pytest.approx(0.01 * soma_area)
        r = 0.5 * topo.segment_resistance[0] + 0.5 * topo.segment_resistance[1]
        assert topo.axial_resistance[1] == pytest.approx(r)
        assert topo.axial_conductance[1] == pytest.approx(1e3 / r)
        assert topo.axial_resistance[0] == 0.0
        assert topo.axial_conductance[0] == 0.0

    def test_edges_cover_every_non_root(self, config):
        morph = get_template("pyramidal")
        topo = compile_topology(morph, config)
        assert len(topo.edges) == len(morph) - 1
        assert {child for child, _, _ in topo.edges} == set(range(1, len(morph)))
        assert topo.spike_site == morph.spike_initiation_index

    def test_coupling_is_symmetric(self, config):
        topo = compile_topology(get_template("ball_and_stick"), config)
        g = topo.axial_conductance[2]
        assert (1, g) in topo.neighbors(2)
        assert (2, g) in topo.neighbors(1)
        assert topo.coupling_sum()[1] == pytest.approx(topo.axial_conductance[1] + g)

    def test_axial_currents_conserve_charge(self, config):
        topo = compile_topology(get_template("interneuron"), config)
        voltages = [-65.0 + 0.5 * i for i in range(topo.n_compartments)]
        currents = topo.axial_currents(voltages)
        assert sum(currents) == pytest.approx(0.0, abs=1e-9)

    def test_axial_currents_zero_when_isopotential(self, config):
        topo = compile_topology(get_template("ball_and_stick"), config)
        assert all(i == 0.0 for i in topo.axial_currents([-65.0] * topo.n_compartments))

    def test_level_tensors(self, config):
        topo = compile_topology(get_template("ball_and_stick"), config)
        levels = topo.level_tensors(torch.device("cpu"))
        assert len(levels) == 11
        root_idx, root_par = levels[0]
        assert root_idx.tolist() == [0]
        assert root_par.numel() == 0
        idx, par = levels[3]
        assert idx.tolist() == [3]
        assert par.tolist() == [2]


class TestMembraneTables:
    def test_default_densities_by_type(self, config):
        morph = get_template("pyramidal")
        topo = compile_topology(morph, config)
        tables = compile_membrane(morph, topo, config, build_channel_set(config))
        assert tables.densities[0] == {"na": 120.0, "k": 36.0, "ca": 0.5}
        assert tables.densities[1] == {"ka": 2.0, "ca": 0.2, "nmda": 0.5}
        assert tables.densities[151] == {"na": 120.0, "k": 36.0}
        assert tables.g_max["na"][1] == 0.0
        assert tables.g_max["na"][0] == pytest.approx(density_to_conductance(120.0, topo.area[0]))

    def test_override_replaces_type_default(self, config):
        morph = Morphology([
            CompartmentSpec(CompartmentType.SOMA, 20.0, 20.0, channel_densities={"na": 0.0, "ka": 5.0}),
        ])
        topo = compile_topology(morph, config)
        tables = compile_membrane(morph, topo, config, build_channel_set(config))
        assert tables.densities[0] == {"k": 36.0, "ca": 0.5, "ka": 5.0}

    def test_unknown_override_channel(self, config):
        morph = Morphology([
            CompartmentSpec(CompartmentType.SOMA, 20.0, 20.0, channel_densities={"kdr": 1.0}),
        ])
        topo = compile_topology(morph, config)
        with pytest.raises(MorphologyError):
            compile_membrane(morph, topo, config, build_channel_set(config))

    def test_balanced_leak_zeroes_resting_current(self, config):
        morph = get_template("ball_and_stick")
        channels = build_channel_set(config)
        topo = compile_topology(morph, config)
        tables = compile_membrane(morph, topo, config, channels)
        v = config.v_rest
        for i in range(len(morph)):
            total = tables.g_leak[i] * (v - tables.e_leak[i])
            for name in tables.densities[i]:
                ch = channels[name]
                total += ch.current(v, ch.steady_state(v), tables.g_max[name][i])
            assert total == pytest.approx(0.0, abs=1e-9)

    def test_passive_compartment_leak_reverses_at_rest(self, config):
        config = config.with_overrides(channel_densities={})
        morph = get_template("ball_and_stick")
        topo = compile_topology(morph, config)
        tables = compile_membrane(morph, topo, config, build_channel_set(config))
        assert all(e == pytest.approx(config.v_rest) for e in tables.e_leak)

    def test_unbalanced_leak_uses_config_reversal(self, config):
        config = config.with_overrides(balance_leak=False)
        morph = get_template("ball_and_stick")
        topo = compile_topology(morph, config)
        tables = compile_membrane(morph, topo, config, build_channel_set(config))
        assert all(e == config.e_leak for e in tables.e_leak)
