"""
Ion channel library.

Voltage-gated channels:
- ``na``: Hodgkin-Huxley fast sodium, open fraction m³h
- ``k``: Hodgkin-Huxley delayed-rectifier potassium, n⁴
- ``ca``: L-type calcium, m²h
- ``ka``: A-type (fast inactivating) potassium, m³h

Ligand-gated:
- ``nmda``: NMDA receptor, glutamate-bound fraction s times the
  voltage-dependent Mg²⁺ block

Rates are in 1/ms with voltages in mV, HH conventions shifted to a
-65 mV rest. All parameters that the cable model exposes (reversals,
temperature, Mg²⁺) come in through :func:`build_channel_set`, so the
kinetics stay pure and independently testable.

References:
- Hodgkin & Huxley (1952)
- Connor & Stevens (1971): A-type current
- Jahr & Stevens (1990): NMDA Mg²⁺ block
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterator, Sequence, Tuple, Type

from neurocable.channels.kinetics import (
    ChannelKinetics,
    Number,
    RateChannel,
    exp,
    linoid,
    sigmoid,
)
from neurocable.constants.biophysics import (
    E_CA,
    E_K,
    E_NA,
    E_NMDA,
    MG_BLOCK_HALF,
    MG_BLOCK_SLOPE,
    MG_CONCENTRATION,
    NMDA_ALPHA,
    NMDA_BETA,
)
from neurocable.errors import ContractViolationError

if TYPE_CHECKING:
    from neurocable.config.cable_config import CableConfig


CHANNEL_REGISTRY: Dict[str, Type[ChannelKinetics]] = {}
"""Channel classes by name, in registration order. The order fixes the
gate layout of the parallel engine."""


def register_channel(cls: Type[ChannelKinetics]) -> Type[ChannelKinetics]:
    """Class decorator adding a channel type to :data:`CHANNEL_REGISTRY`."""
    if not cls.name:
        raise ValueError(f"{cls.__name__} has no channel name")
    if cls.name in CHANNEL_REGISTRY:
        raise ValueError(f"Channel '{cls.name}' is already registered")
    CHANNEL_REGISTRY[cls.name] = cls
    return cls


# =============================================================================
# Voltage-gated channels
# =============================================================================


@register_channel
@dataclass(frozen=True)
class HHSodium(RateChannel):
    """Hodgkin-Huxley fast sodium channel (m³h)."""

    name = "na"
    gates = ("m", "h")

    reversal: float = E_NA

    def rates(self, v: Number) -> Tuple[Tuple[Number, Number], ...]:
        # alpha_m has a removable singularity at -40 mV
        alpha_m = 0.1 * linoid(v + 40.0, 10.0)
        beta_m = 4.0 * exp(-(v + 65.0) / 18.0)
        alpha_h = 0.07 * exp(-(v + 65.0) / 20.0)
        beta_h = sigmoid(0.1 * (v + 35.0))
        return ((alpha_m, beta_m), (alpha_h, beta_h))

    def open_fraction(self, v: Number, gates: Sequence[Number]) -> Number:
        m, h = gates
        return m * m * m * h


@register_channel
@dataclass(frozen=True)
class HHPotassium(RateChannel):
    """Hodgkin-Huxley delayed-rectifier potassium channel (n⁴)."""

    name = "k"
    gates = ("n",)

    reversal: float = E_K

    def rates(self, v: Number) -> Tuple[Tuple[Number, Number], ...]:
        # alpha_n has a removable singularity at -55 mV
        alpha_n = 0.01 * linoid(v + 55.0, 10.0)
        beta_n = 0.125 * exp(-(v + 65.0) / 80.0)
        return ((alpha_n, beta_n),)

    def open_fraction(self, v: Number, gates: Sequence[Number]) -> Number:
        (n,) = gates
        n2 = n * n
        return n2 * n2


@register_channel
@dataclass(frozen=True)
class CalciumL(ChannelKinetics):
    """High-threshold L-type calcium channel (m²h).

    Activation half-point -20 mV, inactivation half-point -50 mV, with
    voltage-independent time constants.
    """

    name = "ca"
    gates = ("m", "h")

    reversal: float = E_CA
    tau_m: float = 0.5
    tau_h: float = 20.0

    def steady_state(self, v: Number, ligand: Number = 0.0) -> Tuple[Number, ...]:
        m_inf = sigmoid(0.15 * (v + 20.0))
        h_inf = sigmoid(-0.2 * (v + 50.0))
        return (m_inf, h_inf)

    def time_constants(self, v: Number, ligand: Number = 0.0) -> Tuple[Number, ...]:
        return (self.tau_m / self.rate_scale, self.tau_h / self.rate_scale)

    def open_fraction(self, v: Number, gates: Sequence[Number]) -> Number:
        m, h = gates
        return m * m * h


@register_channel
@dataclass(frozen=True)
class PotassiumA(ChannelKinetics):
    """A-type transient potassium channel (m³h).

    Shapes dendritic excitability and limits back-propagating action
    potentials in the apical tree.
    """

    name = "ka"
    gates = ("m", "h")

    reversal: float = E_K

    def steady_state(self, v: Number, ligand: Number = 0.0) -> Tuple[Number, ...]:
        m_inf = sigmoid(0.143 * (v + 50.0))
        h_inf = sigmoid(-0.111 * (v + 80.0))
        return (m_inf, h_inf)

    def time_constants(self, v: Number, ligand: Number = 0.0) -> Tuple[Number, ...]:
        tau_m = 0.34 + 0.92 * exp(-0.091 * (v + 66.0))
        tau_h = 8.0 + 49.0 * sigmoid(-0.1 * (v + 70.0))
        return (tau_m / self.rate_scale, tau_h / self.rate_scale)

    def open_fraction(self, v: Number, gates: Sequence[Number]) -> Number:
        m, h = gates
        return m * m * m * h


# =============================================================================
# Ligand-gated channels
# =============================================================================


@register_channel
@dataclass(frozen=True)
class NMDAReceptor(ChannelKinetics):
    """NMDA receptor with glutamate binding and Mg²⁺ block.

    Binding follows ``ds/dt = alpha · [glu] · (1 - s) - beta · s``; the
    open fraction is ``s · B(V)`` with
    ``B(V) = 1 / (1 + [Mg]/3.57 · exp(-0.062 · V))``.

    Binding is chemical, not voltage gated, so ``rate_scale`` is ignored.
    """

    name = "nmda"
    gates = ("s",)
    ligand_gated = True

    reversal: float = E_NMDA
    mg_concentration: float = MG_CONCENTRATION
    alpha: float = NMDA_ALPHA
    beta: float = NMDA_BETA

    def mg_block(self, v: Number) -> Number:
        """Unblocked fraction at voltage ``v`` (0 = fully blocked)."""
        return 1.0 / (1.0 + (self.mg_concentration / MG_BLOCK_HALF) * exp(-MG_BLOCK_SLOPE * v))

    def steady_state(self, v: Number, ligand: Number = 0.0) -> Tuple[Number, ...]:
        binding = self.alpha * ligand
        return (binding / (binding + self.beta),)

    def time_constants(self, v: Number, ligand: Number = 0.0) -> Tuple[Number, ...]:
        return (1.0 / (self.alpha * ligand + self.beta),)

    def open_fraction(self, v: Number, gates: Sequence[Number]) -> Number:
        (s,) = gates
        return s * self.mg_block(v)


# =============================================================================
# Channel sets
# =============================================================================


class ChannelSet:
    """Immutable, ordered collection of configured channel kinetics.

    Both engines build one from the same :class:`CableConfig`. The parallel
    engine stacks all gates of all channels into one tensor; ``gate_slice``
    gives each channel's rows.

    Example:
        >>> channels = build_channel_set(CableConfig())
        >>> channels["na"].gates
        ('m', 'h')
        >>> channels.gate_slice("k")
        slice(2, 3, None)
    """

    def __init__(self, channels: Sequence[ChannelKinetics]):
        self._channels: Tuple[ChannelKinetics, ...] = tuple(channels)
        self._by_name = {ch.name: ch for ch in self._channels}
        if len(self._by_name) != len(self._channels):
            raise ValueError("Duplicate channel names in channel set")
        offsets = {}
        offset = 0
        for ch in self._channels:
            offsets[ch.name] = slice(offset, offset + ch.n_gates)
            offset += ch.n_gates
        self._slices = offsets
        self._n_gates = offset

    def __getitem__(self, name: str) -> ChannelKinetics:
        try:
            return self._by_name[name]
        except KeyError:
            raise ContractViolationError(
                f"Unknown channel '{name}'. Choose from: {list(self._by_name)}"
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[ChannelKinetics]:
        return iter(self._channels)

    def __len__(self) -> int:
        return len(self._channels)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(ch.name for ch in self._channels)

    @property
    def n_gates(self) -> int:
        """Total number of gating variables over all channels."""
        return self._n_gates

    def gate_slice(self, name: str) -> slice:
        """Rows of the stacked gate tensor that belong to channel ``name``."""
        self[name]
        return self._slices[name]


def build_channel_set(config: "CableConfig") -> ChannelSet:
    """Instantiate every registered channel with parameters from ``config``."""
    scale = config.rate_scale
    reversals = {
        "na": config.e_na,
        "k": config.e_k,
        "ca": config.e_ca,
        "ka": config.e_k,
        "nmda": config.e_nmda,
    }
    channels = []
    for name, cls in CHANNEL_REGISTRY.items():
        kwargs = {"rate_scale": scale}
        if name in reversals:
            kwargs["reversal"] = reversals[name]
        if cls is NMDAReceptor:
            kwargs["mg_concentration"] = config.mg_concentration
        channels.append(cls(**kwargs))
    return ChannelSet(channels)


__all__ = [
    "CHANNEL_REGISTRY",
    "register_channel",
    "HHSodium",
    "HHPotassium",
    "CalciumL",
    "PotassiumA",
    "NMDAReceptor",
    "ChannelSet",
    "build_channel_set",
]
