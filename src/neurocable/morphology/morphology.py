"""
Neuron morphology: an immutable rooted tree of cylindrical compartments.

A :class:`Morphology` is validated once, at construction, and never changes
afterwards. Compartments are indexed in *topological order*: the root
(soma) is index 0 and every other compartment's parent has a strictly
smaller index. Both engines rely on that order for the tree solve, so it
is part of the contract rather than a convention.

Construction routes:
- explicit list of :class:`CompartmentSpec` (or :class:`MorphologyBuilder`)
- named template (``Morphology.from_template("pyramidal")``)
- SWC reconstruction (``Morphology.from_swc(path)``)

Any structural problem (no root, several roots, a parent that is not
defined before its child, non-positive geometry) raises
:class:`MorphologyError` and no object is produced.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from neurocable.errors import MorphologyError, validate_index

logger = logging.getLogger(__name__)


class CompartmentType(str, Enum):
    """Classification of a compartment; selects default channel densities."""

    SOMA = "soma"
    DENDRITE = "dendrite"
    BASAL_DENDRITE = "basal_dendrite"
    APICAL_DENDRITE = "apical_dendrite"
    AXON = "axon"
    AXON_INITIAL_SEGMENT = "axon_initial_segment"

    @property
    def is_dendrite(self) -> bool:
        return self in (
            CompartmentType.DENDRITE,
            CompartmentType.BASAL_DENDRITE,
            CompartmentType.APICAL_DENDRITE,
        )


@dataclass(frozen=True)
class Point3D:
    """A point in space (µm)."""

    x: float
    y: float
    z: float

    def distance(self, other: "Point3D") -> float:
        return math.sqrt(
            (self.x - other.x) ** 2 + (self.y - other.y) ** 2 + (self.z - other.z) ** 2
        )


@dataclass(frozen=True)
class CompartmentSpec:
    """Geometry and topology of one compartment.

    Attributes:
        compartment_type: Soma, dendrite or axon class
        length: Cylinder length (µm), strictly positive
        diameter: Cylinder diameter (µm), strictly positive
        parent: Index of the parent compartment, None for the root
        position: Optional location of the compartment's distal end
        channel_densities: Optional per-channel density overrides (mS/cm²)
            replacing the configured defaults for this compartment's type
    """

    compartment_type: CompartmentType
    length: float
    diameter: float
    parent: Optional[int] = None
    position: Optional[Point3D] = None
    channel_densities: Optional[Mapping[str, float]] = None

    @property
    def area(self) -> float:
        """Lateral surface area (µm²)."""
        return math.pi * self.diameter * self.length


class Morphology:
    """Validated, immutable compartment tree.

    Args:
        compartments: Compartments in topological order (root first)
        name: Label used in logs and summaries
        spike_initiation_index: Compartment whose voltage is watched for
            spikes. Defaults to the first axon initial segment, else the
            first axon compartment, else the root.

    Raises:
        MorphologyError: If the tree or geometry is malformed

    Example:
        >>> morph = Morphology([
        ...     CompartmentSpec(CompartmentType.SOMA, 20.0, 20.0),
        ...     CompartmentSpec(CompartmentType.DENDRITE, 50.0, 2.0, parent=0),
        ... ])
        >>> morph.children(0)
        (1,)
    """

    def __init__(
        self,
        compartments: Sequence[CompartmentSpec],
        name: str = "custom",
        spike_initiation_index: Optional[int] = None,
    ):
        specs = tuple(compartments)
        self._validate(specs)
        specs = tuple(self._freeze(spec) for spec in specs)

        self._compartments: Tuple[CompartmentSpec, ...] = specs
        self._name = name

        children: List[List[int]] = [[] for _ in specs]
        depths = [0] * len(specs)
        for i, spec in enumerate(specs[1:], start=1):
            children[spec.parent].append(i)
            depths[i] = depths[spec.parent] + 1
        self._children: Tuple[Tuple[int, ...], ...] = tuple(tuple(c) for c in children)
        self._depths: Tuple[int, ...] = tuple(depths)

        if spike_initiation_index is None:
            spike_initiation_index = self._default_spike_site(specs)
        try:
            validate_index(spike_initiation_index, len(specs), name="spike initiation compartment")
        except IndexError as e:
            raise MorphologyError(str(e)) from None
        self._spike_site = spike_initiation_index

        logger.debug(
            "Built morphology '%s': %d compartments, depth %d, %d branch points",
            name, len(specs), self.max_depth, self.branch_point_count,
        )

    # =========================================================================
    # Validation
    # =========================================================================

    @staticmethod
    def _validate(specs: Tuple[CompartmentSpec, ...]) -> None:
        if not specs:
            raise MorphologyError("morphology has no compartments")

        for i, spec in enumerate(specs):
            if not isinstance(spec, CompartmentSpec):
                raise MorphologyError(
                    f"compartment {i} must be a CompartmentSpec, got {type(spec).__name__}"
                )
            if not isinstance(spec.compartment_type, CompartmentType):
                raise MorphologyError(
                    f"compartment {i} has unknown type {spec.compartment_type!r}"
                )
            for attr in ("length", "diameter"):
                value = getattr(spec, attr)
                if not (isinstance(value, (int, float)) and math.isfinite(value) and value > 0):
                    raise MorphologyError(
                        f"compartment {i} has non-positive {attr} {value!r}"
                    )

            if spec.channel_densities is not None:
                for channel, density in spec.channel_densities.items():
                    if not (isinstance(density, (int, float)) and math.isfinite(density) and density >= 0):
                        raise MorphologyError(
                            f"compartment {i} has invalid density {density!r} for channel '{channel}'"
                        )

            parent = spec.parent
            if i == 0:
                if parent is not None:
                    raise MorphologyError(
                        f"compartment 0 must be the root, but has parent {parent}"
                    )
                continue
            if parent is None:
                raise MorphologyError(
                    f"compartment {i} has no parent: a morphology has exactly one root"
                )
            if isinstance(parent, bool) or not isinstance(parent, int):
                raise MorphologyError(
                    f"compartment {i} has non-integer parent {parent!r}"
                )
            if parent < 0:
                raise MorphologyError(f"compartment {i} references undefined parent {parent}")
            if parent >= i:
                raise MorphologyError(
                    f"compartment {i} references parent {parent}, which is not defined "
                    f"before it (forward reference or cycle)"
                )

    @staticmethod
    def _freeze(spec: CompartmentSpec) -> CompartmentSpec:
        """Detach density overrides from the caller's mapping."""
        if spec.channel_densities is None:
            return spec
        return replace(spec, channel_densities=MappingProxyType(dict(spec.channel_densities)))

    @staticmethod
    def _default_spike_site(specs: Tuple[CompartmentSpec, ...]) -> int:
        for wanted in (CompartmentType.AXON_INITIAL_SEGMENT, CompartmentType.AXON):
            for i, spec in enumerate(specs):
                if spec.compartment_type == wanted:
                    return i
        return 0

    # =========================================================================
    # Alternative constructors
    # =========================================================================

    @classmethod
    def from_template(cls, name: str) -> "Morphology":
        """Build a named template ("pyramidal", "interneuron", "ball_and_stick")."""
        from neurocable.morphology.templates import get_template

        return get_template(name)

    @classmethod
    def from_swc(cls, path: Union[str, Path]) -> "Morphology":
        """Load a reconstruction in SWC format."""
        from neurocable.morphology.swc import load_swc

        return load_swc(path)

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def name(self) -> str:
        return self._name

    @property
    def compartments(self) -> Tuple[CompartmentSpec, ...]:
        return self._compartments

    @property
    def n_compartments(self) -> int:
        return len(self._compartments)

    def __len__(self) -> int:
        return len(self._compartments)

    def __iter__(self) -> Iterator[CompartmentSpec]:
        return iter(self._compartments)

    def __getitem__(self, index: int) -> CompartmentSpec:
        return self._compartments[validate_index(index, len(self._compartments))]

    def __repr__(self) -> str:
        return f"Morphology(name={self._name!r}, n_compartments={len(self)})"

    @property
    def spike_initiation_index(self) -> int:
        return self._spike_site

    @property
    def parents(self) -> Tuple[int, ...]:
        """Parent index per compartment, -1 for the root."""
        return tuple(-1 if s.parent is None else s.parent for s in self._compartments)

    def parent(self, index: int) -> Optional[int]:
        return self[index].parent

    def children(self, index: int) -> Tuple[int, ...]:
        return self._children[validate_index(index, len(self._compartments))]

    @property
    def depths(self) -> Tuple[int, ...]:
        """Number of edges between each compartment and the root."""
        return self._depths

    @property
    def max_depth(self) -> int:
        return max(self._depths)

    def levels(self) -> Tuple[Tuple[int, ...], ...]:
        """Compartment indices grouped by depth, root level first."""
        grouped: List[List[int]] = [[] for _ in range(self.max_depth + 1)]
        for i, d in enumerate(self._depths):
            grouped[d].append(i)
        return tuple(tuple(g) for g in grouped)

    def descendant_counts(self) -> Tuple[int, ...]:
        """Number of compartments in each compartment's subtree, excluding itself."""
        counts = [0] * len(self._compartments)
        for i in range(len(self._compartments) - 1, 0, -1):
            counts[self._compartments[i].parent] += counts[i] + 1
        return tuple(counts)

    @property
    def leaves(self) -> Tuple[int, ...]:
        return tuple(i for i, c in enumerate(self._children) if not c)

    @property
    def branch_points(self) -> Tuple[int, ...]:
        """Compartments with more than one child."""
        return tuple(i for i, c in enumerate(self._children) if len(c) > 1)

    @property
    def branch_point_count(self) -> int:
        return len(self.branch_points)

    def indices_of_type(self, compartment_type: CompartmentType) -> Tuple[int, ...]:
        return tuple(
            i for i, s in enumerate(self._compartments) if s.compartment_type == compartment_type
        )

    # =========================================================================
    # Summary metrics
    # =========================================================================

    @property
    def total_surface_area(self) -> float:
        """Membrane area of all compartments (µm²)."""
        return sum(s.area for s in self._compartments)

    @property
    def total_dendritic_length(self) -> float:
        """Summed length of basal, apical and generic dendrite compartments (µm)."""
        return sum(s.length for s in self._compartments if s.compartment_type.is_dendrite)

    def type_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for s in self._compartments:
            counts[s.compartment_type.value] = counts.get(s.compartment_type.value, 0) + 1
        return counts

    def summary(self) -> str:
        """Return a formatted summary of the morphology."""
        lines = [
            f"=== Morphology '{self._name}' ===",
            f"  Compartments: {len(self)}",
            f"  Depth: {self.max_depth}, branch points: {self.branch_point_count}, "
            f"leaves: {len(self.leaves)}",
            f"  Surface area: {self.total_surface_area:.1f} µm²",
            f"  Dendritic length: {self.total_dendritic_length:.1f} µm",
            f"  Spike initiation: compartment {self._spike_site} "
            f"({self._compartments[self._spike_site].compartment_type.value})",
        ]
        for type_name, count in sorted(self.type_counts().items()):
            lines.append(f"    {type_name:<22} {count}")
        return "\n".join(lines)


class MorphologyBuilder:
    """Incremental construction of a :class:`Morphology`.

    Example:
        >>> builder = MorphologyBuilder("two_branch")
        >>> soma = builder.add_compartment(CompartmentType.SOMA, 20.0, 20.0)
        >>> a = builder.add_compartment(CompartmentType.DENDRITE, 50.0, 2.0, parent=soma)
        >>> b = builder.add_compartment(CompartmentType.DENDRITE, 50.0, 2.0, parent=soma)
        >>> morph = builder.build()
    """

    def __init__(self, name: str = "custom"):
        self.name = name
        self._specs: List[CompartmentSpec] = []
        self._spike_site: Optional[int] = None

    def __len__(self) -> int:
        return len(self._specs)

    def add_compartment(
        self,
        compartment_type: CompartmentType,
        length: float,
        diameter: float,
        parent: Optional[int] = None,
        position: Optional[Point3D] = None,
        channel_densities: Optional[Mapping[str, float]] = None,
    ) -> int:
        """Append a compartment and return its index."""
        self._specs.append(
            CompartmentSpec(
                compartment_type=CompartmentType(compartment_type),
                length=length,
                diameter=diameter,
                parent=parent,
                position=position,
                channel_densities=dict(channel_densities) if channel_densities else None,
            )
        )
        return len(self._specs) - 1

    def add_chain(
        self,
        compartment_type: CompartmentType,
        parent: int,
        n: int,
        length: float,
        diameter: float,
        taper: float = 0.0,
    ) -> List[int]:
        """Append ``n`` compartments in a line, each thinner by ``taper`` µm."""
        indices = []
        for i in range(n):
            parent = self.add_compartment(
                compartment_type, length, diameter - i * taper, parent=parent
            )
            indices.append(parent)
        return indices

    def set_spike_initiation(self, index: int) -> None:
        self._spike_site = index

    def build(self) -> Morphology:
        return Morphology(self._specs, name=self.name, spike_initiation_index=self._spike_site)


__all__ = [
    "CompartmentType",
    "Point3D",
    "CompartmentSpec",
    "Morphology",
    "MorphologyBuilder",
]
