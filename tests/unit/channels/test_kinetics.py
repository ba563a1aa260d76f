"""Tests for channel kinetics helpers and the ion channel library."""

import dataclasses
import math

import pytest
import torch

from neurocable.channels.kinetics import clamp_unit, exponential_euler, linoid
from neurocable.channels.library import (
    CalciumL,
    HHPotassium,
    HHSodium,
    NMDAReceptor,
    PotassiumA,
    build_channel_set,
)
from neurocable.config import CableConfig
from neurocable.errors import ContractViolationError


class TestNumericHelpers:
    """Float/tensor polymorphic helpers."""

    def test_linoid_limit_at_zero(self):
        assert linoid(0.0, 10.0) == pytest.approx(10.0)

    def test_linoid_continuous_around_singularity(self):
        for x in (-1e-4, -1e-8, 1e-8, 1e-4):
            assert linoid(x, 10.0) == pytest.approx(10.0 + x / 2.0, rel=1e-6)

    def test_linoid_tensor_matches_float(self):
        xs = [-30.0, -1e-9, 0.0, 1e-9, 25.0]
        t = linoid(torch.tensor(xs, dtype=torch.float64), 10.0)
        for x, value in zip(xs, t.tolist()):
            assert value == pytest.approx(linoid(x, 10.0), rel=1e-12)

    def test_clamp_unit(self):
        assert clamp_unit(-0.2) == 0.0
        assert clamp_unit(1.5) == 1.0
        assert clamp_unit(0.3) == 0.3

    def test_clamp_unit_propagates_nan(self):
        assert math.isnan(clamp_unit(float("nan")))
        assert torch.isnan(clamp_unit(torch.tensor([float("nan")]))).all()

    def test_exponential_euler_is_exact_for_constant_target(self):
        x = exponential_euler(0.0, 1.0, 2.0, 1.0)
        assert x == pytest.approx(1.0 - math.exp(-0.5))

    def test_exponential_euler_zero_time_constant_jumps_to_target(self):
        assert exponential_euler(0.3, 0.7, 0.0, 0.025) == 0.7

    def test_linoid_saturates_instead_of_overflowing(self):
        assert linoid(-1e5, 10.0) == 0.0
        t = linoid(torch.tensor([-1e5], dtype=torch.float64), 10.0)
        assert t.item() == 0.0

    def test_rates_survive_extreme_voltage(self):
        for ch in (HHSodium(), HHPotassium()):
            for a, b in ch.rates(-1e9):
                assert a >= 0.0 and b >= 0.0


class TestRateSingularities:
    """Removable singularities of the HH rate functions."""

    def test_sodium_alpha_m_at_minus_40(self):
        (alpha_m, _), _ = HHSodium().rates(-40.0)
        assert alpha_m == pytest.approx(1.0)

    def test_potassium_alpha_n_at_minus_55(self):
        ((alpha_n, _),) = HHPotassium().rates(-55.0)
        assert alpha_n == pytest.approx(0.1)

    def test_rates_finite_on_tensor_containing_singularities(self):
        v = torch.tensor([-55.0, -40.0, -65.0], dtype=torch.float64)
        for ch in (HHSodium(), HHPotassium()):
            for a, b in ch.rates(v):
                assert torch.isfinite(a).all()
                assert torch.isfinite(b).all()


class TestHodgkinHuxley:
    """Resting values and sign conventions of the HH channels."""

    def test_resting_steady_state(self):
        m, h = HHSodium().steady_state(-65.0)
        (n,) = HHPotassium().steady_state(-65.0)
        assert m == pytest.approx(0.0529, abs=1e-3)
        assert h == pytest.approx(0.5961, abs=1e-3)
        assert n == pytest.approx(0.3177, abs=1e-3)

    def test_current_sign(self):
        """Sodium is inward (negative), potassium outward at rest."""
        na, k = HHSodium(), HHPotassium()
        assert na.current(-65.0, na.steady_state(-65.0), 100.0) < 0
        assert k.current(-65.0, k.steady_state(-65.0), 100.0) > 0

    def test_derivatives_vanish_at_steady_state(self):
        na = HHSodium()
        for d in na.derivatives(-50.0, na.steady_state(-50.0)):
            assert d == pytest.approx(0.0, abs=1e-12)

    @pytest.mark.parametrize("channel", [CalciumL(), PotassiumA()], ids=lambda c: c.name)
    def test_derivatives_point_towards_steady_state(self, channel):
        x_inf = channel.steady_state(-30.0)
        below = [0.5 * x for x in x_inf]
        above = [x + 0.5 * (1.0 - x) for x in x_inf]
        assert all(d > 0.0 for d in channel.derivatives(-30.0, below))
        assert all(d < 0.0 for d in channel.derivatives(-30.0, above))

    def test_advance_stays_in_unit_interval_for_large_steps(self):
        for ch in (HHSodium(), HHPotassium(), CalciumL(), PotassiumA()):
            gates = ch.initial_state(-65.0)
            for v in (-100.0, 40.0):
                gates = ch.advance(v, gates, dt=50.0)
                for x in gates:
                    assert 0.0 <= x <= 1.0

    def test_tensor_path_matches_float_path(self):
        na = HHSodium()
        v = torch.tensor([-70.0, -40.0, 0.0], dtype=torch.float64)
        gates = na.initial_state(v)
        new = na.advance(v, gates, 0.025)
        for i, vi in enumerate(v.tolist()):
            expected = na.advance(vi, na.initial_state(vi), 0.025)
            for got, want in zip(new, expected):
                assert got[i].item() == pytest.approx(want, rel=1e-12)

    def test_q10_scales_time_constants(self):
        cold = HHPotassium(rate_scale=1.0)
        warm = HHPotassium(rate_scale=CableConfig(celsius=16.3).rate_scale)
        assert warm.rate_scale == pytest.approx(3.0)
        (tau_cold,) = cold.time_constants(-60.0)
        (tau_warm,) = warm.time_constants(-60.0)
        assert tau_warm == pytest.approx(tau_cold / 3.0)
        # Steady state does not depend on temperature
        assert warm.steady_state(-60.0) == pytest.approx(cold.steady_state(-60.0))

    def test_channels_are_immutable(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            HHSodium().reversal = 0.0


class TestNMDA:
    """Ligand-gated NMDA receptor with Mg²⁺ block."""

    def test_mg_block_strong_at_rest(self):
        assert NMDAReceptor().mg_block(-70.0) < 0.1

    def test_mg_block_relieved_when_depolarized(self):
        assert NMDAReceptor().mg_block(0.0) > 0.5

    def test_no_block_without_magnesium(self):
        assert NMDAReceptor(mg_concentration=0.0).mg_block(-70.0) == pytest.approx(1.0)

    def test_binding_follows_glutamate(self):
        nmda = NMDAReceptor()
        assert nmda.steady_state(-65.0, 0.0) == (0.0,)
        (s,) = nmda.steady_state(-65.0, 1.0)
        assert s == pytest.approx(0.5 / 0.55)

    def test_binding_ignores_temperature(self):
        (tau_a,) = NMDAReceptor(rate_scale=1.0).time_constants(-65.0, 1.0)
        (tau_b,) = NMDAReceptor(rate_scale=3.0).time_constants(-65.0, 1.0)
        assert tau_a == tau_b

    def test_current_flows_only_when_bound(self):
        nmda = NMDAReceptor()
        assert nmda.current(-30.0, (0.0,), 10.0) == 0.0
        assert nmda.current(-30.0, (1.0,), 10.0) < 0.0

    def test_binding_derivative_points_towards_steady_state(self):
        nmda = NMDAReceptor()
        (unbound,) = nmda.derivatives(-65.0, (0.0,), 1.0)
        (saturated,) = nmda.derivatives(-65.0, (1.0,), 1.0)
        assert unbound > 0.0
        assert saturated < 0.0
        (washout,) = nmda.derivatives(-65.0, (0.5,), 0.0)
        assert washout < 0.0


class TestChannelSet:
    """Configured channel collections."""

    def test_layout(self):
        channels = build_channel_set(CableConfig())
        assert channels.names == ("na", "k", "ca", "ka", "nmda")
        assert channels.n_gates == 8
        assert channels.gate_slice("k") == slice(2, 3)

    def test_parameters_come_from_config(self):
        config = CableConfig(e_k=-90.0, mg_concentration=2.0, celsius=16.3)
        channels = build_channel_set(config)
        assert channels["k"].reversal == -90.0
        assert channels["ka"].reversal == -90.0
        assert channels["nmda"].mg_concentration == 2.0
        assert channels["na"].rate_scale == pytest.approx(3.0)

    def test_unknown_channel_rejected(self):
        channels = build_channel_set(CableConfig())
        with pytest.raises(ContractViolationError):
            channels["kdr"]
        with pytest.raises(ContractViolationError):
            channels.gate_slice("kdr")
