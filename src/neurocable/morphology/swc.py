"""
SWC reader for NeuroMorpho.org style reconstructions.

Each non-comment line of an SWC file is one sample point::

    # n  T  x    y    z     R    parent
    1    1  0.0  0.0  0.0   10.0 -1       soma (root)
    2    3  0.0  0.0  15.0  2.0  1        basal dendrite
    3    3  5.0  0.0  20.0  1.5  2
    4    2  0.0 -10.0 0.0   0.5  1        axon

Point types: 1 soma, 2 axon, 3 basal dendrite, 4 apical dendrite; any
other code is read as a generic dendrite.

Conversion to compartments: the root point becomes a cylinder whose length
and diameter equal the sphere diameter (same membrane area as the sphere).
Every other point becomes one compartment spanning from its parent point,
with the point's diameter. Points must appear after their parent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Union

from neurocable.errors import MorphologyError
from neurocable.morphology.morphology import (
    CompartmentSpec,
    CompartmentType,
    Morphology,
    Point3D,
)

logger = logging.getLogger(__name__)


SWC_TYPES = {
    1: CompartmentType.SOMA,
    2: CompartmentType.AXON,
    3: CompartmentType.BASAL_DENDRITE,
    4: CompartmentType.APICAL_DENDRITE,
}


@dataclass(frozen=True)
class SWCPoint:
    """One sample point of an SWC file."""

    id: int
    point_type: int
    x: float
    y: float
    z: float
    radius: float
    parent_id: int

    @property
    def position(self) -> Point3D:
        return Point3D(self.x, self.y, self.z)


def parse_swc(lines: Iterable[str]) -> List[SWCPoint]:
    """Parse SWC text into points, skipping comments and blank lines.

    Raises:
        MorphologyError: On a line with fewer than seven fields or a field
            that does not parse as a number
    """
    points = []
    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split()
        if len(parts) < 7:
            raise MorphologyError(
                f"SWC line {lineno}: expected 7 fields (n T x y z R parent), got {len(parts)}"
            )
        try:
            point = SWCPoint(
                id=int(parts[0]),
                point_type=int(parts[1]),
                x=float(parts[2]),
                y=float(parts[3]),
                z=float(parts[4]),
                radius=float(parts[5]),
                parent_id=int(parts[6]),
            )
        except ValueError as e:
            raise MorphologyError(f"SWC line {lineno}: {e}") from e
        points.append(point)
    return points


def morphology_from_points(points: List[SWCPoint], name: str = "swc") -> Morphology:
    """Convert parsed SWC points into a validated :class:`Morphology`.

    Raises:
        MorphologyError: On duplicate ids, a missing or misplaced root, a
            parent that is not defined earlier, or a zero-length segment
    """
    if not points:
        raise MorphologyError("SWC file contains no points")

    root = points[0]
    if root.parent_id != -1:
        raise MorphologyError(
            f"first SWC point (id {root.id}) must be the root with parent -1, "
            f"got parent {root.parent_id}"
        )

    index_of: Dict[int, int] = {}
    specs: List[CompartmentSpec] = []
    for point in points:
        if point.id in index_of:
            raise MorphologyError(f"duplicate SWC point id {point.id}")
        comp_type = SWC_TYPES.get(point.point_type, CompartmentType.DENDRITE)
        diameter = 2.0 * point.radius

        if point.parent_id == -1:
            if specs:
                raise MorphologyError(
                    f"SWC point {point.id} is a second root; only one is allowed"
                )
            spec = CompartmentSpec(comp_type, diameter, diameter, None, point.position)
        else:
            if point.parent_id not in index_of:
                raise MorphologyError(
                    f"SWC point {point.id} references parent {point.parent_id}, "
                    f"which is not defined before it"
                )
            parent_index = index_of[point.parent_id]
            parent_point = points[parent_index]
            length = point.position.distance(parent_point.position)
            if length <= 0.0:
                raise MorphologyError(
                    f"SWC point {point.id} coincides with its parent {point.parent_id}"
                )
            spec = CompartmentSpec(comp_type, length, diameter, parent_index, point.position)

        index_of[point.id] = len(specs)
        specs.append(spec)

    return Morphology(specs, name=name)


def load_swc(path: Union[str, Path]) -> Morphology:
    """Read an SWC file from disk and build its morphology.

    The morphology is named after the file stem.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        points = parse_swc(f)
    morphology = morphology_from_points(points, name=path.stem)
    logger.debug("Loaded %s: %d points", path, len(points))
    return morphology


__all__ = ["SWC_TYPES", "SWCPoint", "parse_swc", "morphology_from_points", "load_swc"]
