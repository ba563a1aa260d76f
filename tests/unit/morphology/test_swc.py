"""Tests for the SWC reader."""

import pytest

from neurocable.errors import MorphologyError
from neurocable.morphology import CompartmentType, Morphology, load_swc, parse_swc
from neurocable.morphology.swc import morphology_from_points

SIMPLE_SWC = """\
# soma with one basal dendrite that forks
1 1 0.0 0.0 0.0 10.0 -1
2 3 0.0 0.0 20.0 1.0 1
3 3 0.0 10.0 20.0 0.5 2
4 3 0.0 -10.0 20.0 0.5 2
"""


@pytest.fixture
def swc_file(tmp_path):
    path = tmp_path / "forked_cell.swc"
    path.write_text(SIMPLE_SWC)
    return path


class TestParse:
    def test_skips_comments_and_blank_lines(self):
        points = parse_swc(["# header", "", "1 1 0 0 0 5 -1"])
        assert len(points) == 1
        assert points[0].radius == 5.0

    def test_too_few_fields(self):
        with pytest.raises(MorphologyError, match="expected 7 fields"):
            parse_swc(["1 1 0 0 0 5"])

    def test_non_numeric_field(self):
        with pytest.raises(MorphologyError):
            parse_swc(["1 1 0 zero 0 5 -1"])


class TestLoad:
    def test_compartments(self, swc_file):
        morph = load_swc(swc_file)
        assert morph.name == "forked_cell"
        assert len(morph) == 4
        assert morph[0].compartment_type == CompartmentType.SOMA
        assert morph[1].compartment_type == CompartmentType.BASAL_DENDRITE

    def test_segment_lengths(self, swc_file):
        morph = load_swc(swc_file)
        assert morph[1].length == pytest.approx(20.0)
        assert morph[2].length == pytest.approx(10.0)

    def test_soma_cylinder_matches_sphere_diameter(self, swc_file):
        soma = load_swc(swc_file)[0]
        assert soma.length == pytest.approx(20.0)
        assert soma.diameter == pytest.approx(20.0)

    def test_branch_points(self, swc_file):
        morph = load_swc(swc_file)
        assert morph.branch_point_count == 1
        assert morph.branch_points == (1,)

    def test_from_swc_classmethod(self, swc_file):
        assert len(Morphology.from_swc(swc_file)) == 4

    def test_unknown_type_is_generic_dendrite(self):
        morph = morphology_from_points(parse_swc(["1 1 0 0 0 5 -1", "2 7 0 0 10 1 1"]))
        assert morph[1].compartment_type == CompartmentType.DENDRITE

    def test_axon_is_spike_site(self):
        morph = morphology_from_points(parse_swc(["1 1 0 0 0 5 -1", "2 2 0 0 -10 0.5 1"]))
        assert morph.spike_initiation_index == 1


class TestMalformed:
    @pytest.mark.parametrize(
        "lines",
        [
            [],
            ["1 1 0 0 0 5 3"],
            ["1 1 0 0 0 5 -1", "2 3 0 0 10 1 9"],
            ["1 1 0 0 0 5 -1", "1 3 0 0 10 1 1"],
            ["1 1 0 0 0 5 -1", "2 3 0 0 0 1 1"],
            ["1 1 0 0 0 5 -1", "2 1 0 0 10 5 -1"],
            ["1 1 0 0 0 5 -1", "2 3 0 0 10 0 1"],
        ],
        ids=["empty", "no_root", "undefined_parent", "duplicate_id", "zero_length", "second_root", "zero_radius"],
    )
    def test_rejected(self, lines):
        with pytest.raises(MorphologyError):
            morphology_from_points(parse_swc(lines))
