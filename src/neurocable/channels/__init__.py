"""
Ion channel kinetics.

    from neurocable.channels import build_channel_set

    channels = build_channel_set(config)
    na = channels["na"]
    i_na = na.current(v, gates, g_max)
"""

from neurocable.channels.kinetics import (
    ChannelKinetics,
    RateChannel,
    clamp_unit,
    exponential_euler,
    linoid,
)
from neurocable.channels.library import (
    CHANNEL_REGISTRY,
    CalciumL,
    ChannelSet,
    HHPotassium,
    HHSodium,
    NMDAReceptor,
    PotassiumA,
    build_channel_set,
    register_channel,
)

__all__ = [
    "ChannelKinetics",
    "RateChannel",
    "clamp_unit",
    "exponential_euler",
    "linoid",
    "CHANNEL_REGISTRY",
    "CalciumL",
    "ChannelSet",
    "HHPotassium",
    "HHSodium",
    "NMDAReceptor",
    "PotassiumA",
    "build_channel_set",
    "register_channel",
]
