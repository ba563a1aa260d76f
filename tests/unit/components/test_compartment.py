"""Tests for the Compartment model."""

import math

import pytest

from neurocable.channels.library import HHPotassium, HHSodium, NMDAReceptor
from neurocable.components.compartment import Compartment
from neurocable.morphology import CompartmentType
from neurocable.units import density_to_conductance


def make_compartment(index=0, voltage=-65.0, axial_resistance=0.0) -> Compartment:
    area = math.pi * 20.0 * 20.0
    return Compartment(
        index=index,
        compartment_type=CompartmentType.SOMA,
        diameter=20.0,
        length=20.0,
        capacitance=0.01 * area,
        axial_resistance=axial_resistance,
        g_leak=density_to_conductance(0.3, area),
        e_leak=-65.0,
        voltage=voltage,
    )


class TestCompartment:
    def test_passive_current_vanishes_at_leak_reversal(self):
        comp = make_compartment()
        assert comp.ionic_current() == pytest.approx(0.0)
        assert comp.net_current() == pytest.approx(0.0)

    def test_injected_current_charges_membrane(self):
        comp = make_compartment()
        comp.injected_current = 50.0
        assert comp.net_current() == pytest.approx(50.0)

    def test_add_channel_starts_at_steady_state(self):
        comp = make_compartment()
        na = HHSodium()
        inst = comp.add_channel(na, 120.0)
        assert inst.gates == list(na.steady_state(-65.0))
        assert inst.g_max == pytest.approx(density_to_conductance(120.0, comp.area))
        assert comp.gating_state() == {"na": tuple(inst.gates)}

    def test_membrane_conductance_includes_channels(self):
        comp = make_compartment()
        k = comp.add_channel(HHPotassium(), 36.0)
        g_total, g_rev = comp.membrane_conductance()
        g_k = k.conductance(-65.0)
        assert g_total == pytest.approx(comp.g_leak + g_k)
        assert g_rev == pytest.approx(comp.g_leak * comp.e_leak + g_k * k.reversal)
        assert comp.ionic_current() == pytest.approx(g_k * (-65.0 - k.reversal))

    def test_set_density_updates_and_removes(self):
        comp = make_compartment()
        na = HHSodium()
        comp.add_channel(na, 120.0)
        comp.set_density(na, 60.0)
        assert comp.channels["na"].density == 60.0
        assert comp.channels["na"].g_max == pytest.approx(density_to_conductance(60.0, comp.area))
        comp.set_density(na, 0.0)
        assert "na" not in comp.channels

    def test_axial_current_between_neighbors(self):
        parent = make_compartment(voltage=-60.0)
        child = make_compartment(index=1, voltage=-65.0, axial_resistance=10.0)
        child.parent = parent
        parent.children.append(child)
        assert child.axial_conductance == pytest.approx(100.0)
        assert child.axial_current() == pytest.approx(500.0)
        assert parent.axial_current() == pytest.approx(-500.0)

    def test_advance_gates_uses_local_ligand(self):
        comp = make_compartment()
        nmda = comp.add_channel(NMDAReceptor(), 0.5)
        comp.ligand = 1.0
        comp.advance_gates(1.0)
        assert nmda.gates[0] > 0.0

    def test_reset(self):
        comp = make_compartment()
        k = comp.add_channel(HHPotassium(), 36.0)
        comp.voltage = 0.0
        comp.injected_current = 10.0
        comp.advance_gates(5.0)
        comp.reset(-65.0)
        assert comp.voltage == -65.0
        assert comp.injected_current == 0.0
        assert k.gates == list(HHPotassium().steady_state(-65.0))

    def test_is_finite(self):
        comp = make_compartment()
        comp.add_channel(HHPotassium(), 36.0)
        assert comp.is_finite()
        comp.channels["k"].gates[0] = float("nan")
        assert not comp.is_finite()
