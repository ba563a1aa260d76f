"""
Channel kinetics base classes and numeric helpers.

Every channel is a frozen parameter object with pure methods. The same
method serves both engines: called with Python floats it drives the
sequential tree walk, called with tensors it drives the data-parallel
update. Nothing here holds mutable state.

Gating variables follow first-order kinetics

    dx/dt = (x_inf(V) - x) / tau(V)

and are advanced with the exponential Euler rule, which is exact for a
voltage held constant over the step and cannot leave [0, 1] except by
rounding. The result is clamped anyway.

Rate functions of the form ``x / (1 - exp(-x / k))`` have a removable
singularity at ``x = 0``; :func:`linoid` returns the analytic limit there
instead of dividing zero by zero.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, Sequence, Tuple, Union

import torch

from neurocable.constants.biophysics import EXP_OVERFLOW_ARG, SINGULARITY_EPS

Number = Union[float, torch.Tensor]
"""A Python float (sequential engine) or a tensor (parallel engine)."""


# =============================================================================
# Numeric helpers (float / tensor polymorphic)
# =============================================================================


def exp(x: Number) -> Number:
    """``exp`` that dispatches on the argument type."""
    if isinstance(x, torch.Tensor):
        return torch.exp(x)
    try:
        return math.exp(x)
    except OverflowError:
        return math.inf


def sigmoid(x: Number) -> Number:
    """``1 / (1 + exp(-x))`` for floats or tensors."""
    if isinstance(x, torch.Tensor):
        return torch.sigmoid(x)
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def linoid(x: Number, k: float) -> Number:
    """``x / (1 - exp(-x / k))`` with its limit ``k + x / 2`` near ``x = 0``.

    Args:
        x: Shifted voltage (e.g. ``v + 40``)
        k: Slope factor (mV)
    """
    if isinstance(x, torch.Tensor):
        z = x / k
        small = z.abs() < SINGULARITY_EPS
        safe = torch.where(small, torch.ones_like(z), z)
        value = k * safe / (-torch.expm1(-safe))
        return torch.where(small, k + x / 2.0, value)
    z = x / k
    if abs(z) < SINGULARITY_EPS:
        return k + x / 2.0
    if -z > EXP_OVERFLOW_ARG:
        return 0.0
    return k * z / (-math.expm1(-z))


def clamp_unit(x: Number) -> Number:
    """Clamp a gating value to [0, 1]. NaN passes through unchanged."""
    if isinstance(x, torch.Tensor):
        return x.clamp(0.0, 1.0)
    if x != x:
        return x
    return min(1.0, max(0.0, x))


def exponential_euler(x: Number, x_inf: Number, tau: Number, dt: float) -> Number:
    """Advance ``dx/dt = (x_inf - x) / tau`` by ``dt`` exactly (frozen V).

    A zero time constant (rates saturated to infinity) relaxes to ``x_inf``
    at once.
    """
    if not isinstance(tau, torch.Tensor) and tau == 0.0:
        return x_inf
    decay = exp(-dt / tau)
    return x_inf + (x - x_inf) * decay


# =============================================================================
# Channel base classes
# =============================================================================


@dataclass(frozen=True)
class ChannelKinetics(ABC):
    """Parameter set and pure kinetics of one ion channel type.

    Subclasses declare ``name`` (registry key) and ``gates`` (gating
    variable names, in state order) and implement the steady state, the
    time constants and the open fraction.

    Attributes:
        reversal: Reversal potential (mV)
        rate_scale: Q10 factor dividing all time constants
    """

    name: ClassVar[str] = ""
    gates: ClassVar[Tuple[str, ...]] = ()
    ligand_gated: ClassVar[bool] = False

    reversal: float = 0.0
    rate_scale: float = 1.0

    @property
    def n_gates(self) -> int:
        return len(self.gates)

    @abstractmethod
    def steady_state(self, v: Number, ligand: Number = 0.0) -> Tuple[Number, ...]:
        """Steady-state value of every gate at voltage ``v``."""

    @abstractmethod
    def time_constants(self, v: Number, ligand: Number = 0.0) -> Tuple[Number, ...]:
        """Time constant (ms) of every gate at voltage ``v``."""

    @abstractmethod
    def open_fraction(self, v: Number, gates: Sequence[Number]) -> Number:
        """Fraction of the maximal conductance that is open."""

    def conductance(self, v: Number, gates: Sequence[Number], g_max: Number) -> Number:
        """Present conductance (same unit as ``g_max``)."""
        return g_max * self.open_fraction(v, gates)

    def current(
        self,
        v: Number,
        gates: Sequence[Number],
        g_max: Number,
        ligand: Number = 0.0,
    ) -> Number:
        """Ionic current ``g · (V - E)``; nS × mV = pA, outward positive."""
        return self.conductance(v, gates, g_max) * (v - self.reversal)

    def derivatives(
        self,
        v: Number,
        gates: Sequence[Number],
        ligand: Number = 0.0,
    ) -> Tuple[Number, ...]:
        """``dx/dt`` (1/ms) for every gate."""
        x_inf = self.steady_state(v, ligand)
        tau = self.time_constants(v, ligand)
        return tuple((xi - x) / t for x, xi, t in zip(gates, x_inf, tau))

    def advance(
        self,
        v: Number,
        gates: Sequence[Number],
        dt: float,
        ligand: Number = 0.0,
    ) -> Tuple[Number, ...]:
        """One exponential-Euler step of every gate, clamped to [0, 1]."""
        x_inf = self.steady_state(v, ligand)
        tau = self.time_constants(v, ligand)
        return tuple(
            clamp_unit(exponential_euler(x, xi, t, dt))
            for x, xi, t in zip(gates, x_inf, tau)
        )

    def initial_state(self, v: Number, ligand: Number = 0.0) -> Tuple[Number, ...]:
        """Gates at rest: the steady state at ``v``."""
        return self.steady_state(v, ligand)


@dataclass(frozen=True)
class RateChannel(ChannelKinetics):
    """Channel specified by Hodgkin-Huxley opening/closing rates.

    Subclasses implement :meth:`rates`, returning ``(alpha, beta)`` per gate
    in 1/ms at the reference temperature.
    """

    @abstractmethod
    def rates(self, v: Number) -> Tuple[Tuple[Number, Number], ...]:
        """Opening and closing rate of every gate."""

    def steady_state(self, v: Number, ligand: Number = 0.0) -> Tuple[Number, ...]:
        return tuple(a / (a + b) for a, b in self.rates(v))

    def time_constants(self, v: Number, ligand: Number = 0.0) -> Tuple[Number, ...]:
        return tuple(1.0 / (self.rate_scale * (a + b)) for a, b in self.rates(v))

    def derivatives(
        self,
        v: Number,
        gates: Sequence[Number],
        ligand: Number = 0.0,
    ) -> Tuple[Number, ...]:
        return tuple(
            self.rate_scale * (a * (1.0 - x) - b * x)
            for x, (a, b) in zip(gates, self.rates(v))
        )


__all__ = [
    "Number",
    "exp",
    "sigmoid",
    "linoid",
    "clamp_unit",
    "exponential_euler",
    "ChannelKinetics",
    "RateChannel",
]
