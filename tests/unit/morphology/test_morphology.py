"""Tests for morphology validation, tree queries and templates."""

import pytest

from neurocable.errors import CompartmentIndexError, MorphologyError
from neurocable.morphology import (
    TEMPLATES,
    CompartmentSpec,
    CompartmentType,
    Morphology,
    MorphologyBuilder,
    get_template,
)

SOMA = CompartmentType.SOMA
DEND = CompartmentType.DENDRITE


def two_branch() -> Morphology:
    builder = MorphologyBuilder("two_branch")
    soma = builder.add_compartment(SOMA, 20.0, 20.0)
    builder.add_chain(DEND, parent=soma, n=3, length=50.0, diameter=2.0)
    builder.add_chain(DEND, parent=soma, n=2, length=50.0, diameter=1.0)
    return builder.build()


class TestValidation:
    """Malformed trees are rejected at construction."""

    def test_empty(self):
        with pytest.raises(MorphologyError):
            Morphology([])

    def test_root_with_parent(self):
        with pytest.raises(MorphologyError):
            Morphology([CompartmentSpec(SOMA, 20.0, 20.0, parent=0)])

    def test_second_root(self):
        with pytest.raises(MorphologyError, match="exactly one root"):
            Morphology([CompartmentSpec(SOMA, 20.0, 20.0), CompartmentSpec(DEND, 10.0, 1.0)])

    def test_forward_reference(self):
        with pytest.raises(MorphologyError, match="not defined before"):
            Morphology([
                CompartmentSpec(SOMA, 20.0, 20.0),
                CompartmentSpec(DEND, 10.0, 1.0, parent=2),
                CompartmentSpec(DEND, 10.0, 1.0, parent=1),
            ])

    def test_self_reference(self):
        with pytest.raises(MorphologyError):
            Morphology([CompartmentSpec(SOMA, 20.0, 20.0), CompartmentSpec(DEND, 10.0, 1.0, parent=1)])

    def test_negative_parent(self):
        with pytest.raises(MorphologyError):
            Morphology([CompartmentSpec(SOMA, 20.0, 20.0), CompartmentSpec(DEND, 10.0, 1.0, parent=-3)])

    @pytest.mark.parametrize("length,diameter", [(0.0, 1.0), (10.0, 0.0), (-5.0, 1.0), (float("nan"), 1.0)])
    def test_non_positive_geometry(self, length, diameter):
        with pytest.raises(MorphologyError):
            Morphology([CompartmentSpec(SOMA, 20.0, 20.0), CompartmentSpec(DEND, length, diameter, parent=0)])

    def test_negative_density_override(self):
        with pytest.raises(MorphologyError):
            Morphology([CompartmentSpec(SOMA, 20.0, 20.0, channel_densities={"na": -1.0})])

    def test_density_overrides_are_frozen_copies(self):
        overrides = {"ka": 5.0}
        dend = CompartmentSpec(DEND, 50.0, 2.0, parent=0, channel_densities=overrides)
        morph = Morphology([CompartmentSpec(SOMA, 20.0, 20.0), dend])
        overrides["ka"] = 99.0
        assert morph[1].channel_densities["ka"] == 5.0
        with pytest.raises(TypeError):
            morph[1].channel_densities["ka"] = 1.0
        assert morph[0].channel_densities is None

    def test_spike_site_out_of_range(self):
        with pytest.raises(MorphologyError):
            Morphology([CompartmentSpec(SOMA, 20.0, 20.0)], spike_initiation_index=3)

    def test_morphology_error_is_configuration_error(self):
        from neurocable.errors import ConfigurationError

        assert issubclass(MorphologyError, ConfigurationError)


class TestTreeQueries:
    """Parent/child structure and derived counts."""

    def test_children_and_parents(self):
        morph = two_branch()
        assert morph.children(0) == (1, 4)
        assert morph.parent(0) is None
        assert morph.parent(5) == 4
        assert morph.parents == (-1, 0, 1, 2, 0, 4)

    def test_descendant_counts(self):
        morph = two_branch()
        counts = morph.descendant_counts()
        assert counts[0] == len(morph) - 1
        assert counts == (5, 2, 1, 0, 1, 0)

    def test_levels_group_by_depth(self):
        morph = two_branch()
        assert morph.levels() == ((0,), (1, 4), (2, 5), (3,))
        assert morph.max_depth == 3

    def test_leaves_and_branch_points(self):
        morph = two_branch()
        assert morph.leaves == (3, 5)
        assert morph.branch_points == (0,)

    def test_index_validation(self):
        morph = two_branch()
        with pytest.raises(CompartmentIndexError):
            morph[6]
        with pytest.raises(CompartmentIndexError):
            morph[-1]

    def test_default_spike_site_is_root_without_axon(self):
        assert two_branch().spike_initiation_index == 0

    def test_indices_of_type(self):
        morph = two_branch()
        assert morph.indices_of_type(SOMA) == (0,)
        assert morph.indices_of_type(DEND) == (1, 2, 3, 4, 5)
        assert morph.indices_of_type(CompartmentType.AXON) == ()
        assert get_template("pyramidal").indices_of_type(CompartmentType.AXON_INITIAL_SEGMENT) == (151,)


class TestTemplates:
    """Built-in morphologies."""

    def test_pyramidal(self):
        morph = get_template("pyramidal")
        assert len(morph) == 152
        assert morph[0].compartment_type == CompartmentType.SOMA
        assert morph.spike_initiation_index == 151
        assert morph[151].compartment_type == CompartmentType.AXON_INITIAL_SEGMENT
        assert morph.type_counts() == {
            "soma": 1,
            "apical_dendrite": 100,
            "basal_dendrite": 50,
            "axon_initial_segment": 1,
        }
        assert morph.max_depth == 100
        assert morph.branch_point_count == 1
        assert morph.total_dendritic_length == pytest.approx(1400.0)

    def test_pyramidal_apical_taper(self):
        morph = get_template("pyramidal")
        assert morph[1].diameter == pytest.approx(2.0)
        assert morph[100].diameter == pytest.approx(0.515)

    def test_interneuron(self):
        morph = get_template("interneuron")
        assert len(morph) == 66
        assert len(morph.children(0)) == 9
        assert morph.max_depth == 8
        assert morph[morph.spike_initiation_index].compartment_type == CompartmentType.AXON_INITIAL_SEGMENT

    def test_ball_and_stick(self):
        morph = get_template("ball_and_stick")
        assert len(morph) == 11
        assert morph.spike_initiation_index == 0
        assert morph.branch_point_count == 0

    @pytest.mark.parametrize("name", sorted(TEMPLATES))
    def test_descendant_sum(self, name):
        morph = get_template(name)
        counts = morph.descendant_counts()
        assert counts[0] == len(morph) - 1
        assert sum(len(morph.children(i)) for i in range(len(morph))) == len(morph) - 1

    def test_from_template_classmethod(self):
        assert len(Morphology.from_template("ball_and_stick")) == 11

    def test_unknown_template(self):
        with pytest.raises(MorphologyError, match="Unknown morphology template"):
            get_template("purkinje")

    def test_summary_mentions_name(self):
        assert "pyramidal" in get_template("pyramidal").summary()
