"""
Built-in morphology templates.

- ``pyramidal``: layer-5 pyramidal cell, 152 compartments. Soma, a
  100-compartment tapering apical trunk, 50 short basal stubs on the soma
  and an axon initial segment where spikes are detected.
- ``interneuron``: multipolar cell, 66 compartments. Eight tapering
  dendrites of eight compartments each plus an axon initial segment.
- ``ball_and_stick``: soma with one 10-compartment dendrite, 11
  compartments. Spikes are detected at the soma.

Geometry constants live in :mod:`neurocable.constants.morphology`.
"""

from __future__ import annotations

import math
from typing import Callable, Dict

from neurocable.constants import morphology as geo
from neurocable.errors import MorphologyError
from neurocable.morphology.morphology import (
    CompartmentType,
    Morphology,
    MorphologyBuilder,
    Point3D,
)


def pyramidal() -> Morphology:
    """Layer-5 pyramidal neuron (152 compartments, spike site at the AIS)."""
    builder = MorphologyBuilder("pyramidal")
    soma = builder.add_compartment(
        CompartmentType.SOMA,
        geo.PYRAMIDAL_SOMA_LENGTH,
        geo.PYRAMIDAL_SOMA_DIAMETER,
        position=Point3D(0.0, 0.0, 0.0),
    )

    # Apical trunk grows along +y and tapers towards the tuft
    parent = soma
    y = geo.PYRAMIDAL_SOMA_LENGTH / 2.0
    for i in range(geo.PYRAMIDAL_APICAL_COMPARTMENTS):
        y += geo.PYRAMIDAL_APICAL_LENGTH
        parent = builder.add_compartment(
            CompartmentType.APICAL_DENDRITE,
            geo.PYRAMIDAL_APICAL_LENGTH,
            geo.PYRAMIDAL_APICAL_DIAMETER - i * geo.PYRAMIDAL_APICAL_TAPER,
            parent=parent,
            position=Point3D(0.0, y, 0.0),
        )

    # Basal stubs fan out around the soma in the x-z plane
    for i in range(geo.PYRAMIDAL_BASAL_COMPARTMENTS):
        angle = 2.0 * math.pi * i / geo.PYRAMIDAL_BASAL_COMPARTMENTS
        r = geo.PYRAMIDAL_SOMA_DIAMETER / 2.0 + geo.PYRAMIDAL_BASAL_LENGTH
        builder.add_compartment(
            CompartmentType.BASAL_DENDRITE,
            geo.PYRAMIDAL_BASAL_LENGTH,
            geo.PYRAMIDAL_BASAL_DIAMETER,
            parent=soma,
            position=Point3D(r * math.cos(angle), -5.0, r * math.sin(angle)),
        )

    ais = builder.add_compartment(
        CompartmentType.AXON_INITIAL_SEGMENT,
        geo.PYRAMIDAL_AIS_LENGTH,
        geo.PYRAMIDAL_AIS_DIAMETER,
        parent=soma,
        position=Point3D(0.0, -(geo.PYRAMIDAL_SOMA_LENGTH / 2.0 + geo.PYRAMIDAL_AIS_LENGTH), 0.0),
    )
    builder.set_spike_initiation(ais)
    return builder.build()


def interneuron() -> Morphology:
    """Multipolar interneuron (66 compartments, spike site at the AIS)."""
    builder = MorphologyBuilder("interneuron")
    soma = builder.add_compartment(
        CompartmentType.SOMA,
        geo.INTERNEURON_SOMA_LENGTH,
        geo.INTERNEURON_SOMA_DIAMETER,
        position=Point3D(0.0, 0.0, 0.0),
    )

    for angle in geo.INTERNEURON_DENDRITE_ANGLES:
        rad = math.radians(angle)
        parent = soma
        for i in range(geo.INTERNEURON_DENDRITE_COMPARTMENTS):
            r = (i + 1) * geo.INTERNEURON_DENDRITE_LENGTH
            parent = builder.add_compartment(
                CompartmentType.DENDRITE,
                geo.INTERNEURON_DENDRITE_LENGTH,
                geo.INTERNEURON_DENDRITE_DIAMETER - i * geo.INTERNEURON_DENDRITE_TAPER,
                parent=parent,
                position=Point3D(r * math.cos(rad), 0.0, r * math.sin(rad)),
            )

    ais = builder.add_compartment(
        CompartmentType.AXON_INITIAL_SEGMENT,
        geo.INTERNEURON_AIS_LENGTH,
        geo.INTERNEURON_AIS_DIAMETER,
        parent=soma,
        position=Point3D(0.0, -geo.INTERNEURON_AIS_LENGTH, 0.0),
    )
    builder.set_spike_initiation(ais)
    return builder.build()


def ball_and_stick() -> Morphology:
    """Soma plus one unbranched dendrite (11 compartments, spike site at the soma)."""
    builder = MorphologyBuilder("ball_and_stick")
    soma = builder.add_compartment(
        CompartmentType.SOMA,
        geo.BALL_STICK_SOMA_LENGTH,
        geo.BALL_STICK_SOMA_DIAMETER,
    )
    builder.add_chain(
        CompartmentType.DENDRITE,
        parent=soma,
        n=geo.BALL_STICK_DENDRITE_COMPARTMENTS,
        length=geo.BALL_STICK_DENDRITE_LENGTH,
        diameter=geo.BALL_STICK_DENDRITE_DIAMETER,
    )
    builder.set_spike_initiation(soma)
    return builder.build()


TEMPLATES: Dict[str, Callable[[], Morphology]] = {
    "pyramidal": pyramidal,
    "interneuron": interneuron,
    "ball_and_stick": ball_and_stick,
}


def get_template(name: str) -> Morphology:
    """Build the template registered under ``name``.

    Raises:
        MorphologyError: If no template has that name
    """
    try:
        factory = TEMPLATES[name]
    except KeyError:
        raise MorphologyError(
            f"Unknown morphology template '{name}'. Choose from: {sorted(TEMPLATES)}"
        ) from None
    return factory()


__all__ = ["TEMPLATES", "get_template", "pyramidal", "interneuron", "ball_and_stick"]
