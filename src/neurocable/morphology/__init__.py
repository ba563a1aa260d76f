"""
Neuron morphology and the coupling topology compiled from it.

    from neurocable.morphology import Morphology

    morph = Morphology.from_template("pyramidal")
    print(morph.summary())
"""

from neurocable.morphology.morphology import (
    CompartmentSpec,
    CompartmentType,
    Morphology,
    MorphologyBuilder,
    Point3D,
)
from neurocable.morphology.swc import SWCPoint, load_swc, morphology_from_points, parse_swc
from neurocable.morphology.templates import TEMPLATES, get_template
from neurocable.morphology.topology import (
    CouplingTopology,
    MembraneTables,
    compile_membrane,
    compile_topology,
)

__all__ = [
    "CompartmentSpec",
    "CompartmentType",
    "Morphology",
    "MorphologyBuilder",
    "Point3D",
    "SWCPoint",
    "load_swc",
    "morphology_from_points",
    "parse_swc",
    "TEMPLATES",
    "get_template",
    "CouplingTopology",
    "MembraneTables",
    "compile_membrane",
    "compile_topology",
]
