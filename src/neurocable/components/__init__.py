"""
Sequential engine: compartments and the multi-compartment neuron.
"""

from neurocable.components.compartment import ChannelInstance, Compartment
from neurocable.components.multicompartment import MultiCompartmentNeuron, resolve_morphology

__all__ = ["ChannelInstance", "Compartment", "MultiCompartmentNeuron", "resolve_morphology"]
