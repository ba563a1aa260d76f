"""
Geometry of the built-in morphology templates.

All lengths and diameters are in µm. Templates are kept deliberately
small so that the sequential engine stays usable as a reference.

Author: neurocable project
Date: March 2026
"""

from __future__ import annotations

# =============================================================================
# PYRAMIDAL (layer 5, 152 compartments)
# =============================================================================

PYRAMIDAL_SOMA_DIAMETER = 25.0
PYRAMIDAL_SOMA_LENGTH = 25.0

PYRAMIDAL_APICAL_COMPARTMENTS = 100
PYRAMIDAL_APICAL_LENGTH = 10.0
PYRAMIDAL_APICAL_DIAMETER = 2.0
PYRAMIDAL_APICAL_TAPER = 0.015
"""Diameter lost per apical compartment (2.0 µm at the soma, 0.515 µm at the tuft)."""

PYRAMIDAL_BASAL_COMPARTMENTS = 50
PYRAMIDAL_BASAL_LENGTH = 8.0
PYRAMIDAL_BASAL_DIAMETER = 1.5

PYRAMIDAL_AIS_LENGTH = 30.0
PYRAMIDAL_AIS_DIAMETER = 1.0

# =============================================================================
# INTERNEURON (multipolar, 66 compartments)
# =============================================================================

INTERNEURON_SOMA_DIAMETER = 15.0
INTERNEURON_SOMA_LENGTH = 15.0
INTERNEURON_DENDRITE_ANGLES = (0.0, 45.0, 90.0, 135.0, 180.0, 225.0, 270.0, 315.0)
INTERNEURON_DENDRITE_COMPARTMENTS = 8
INTERNEURON_DENDRITE_LENGTH = 25.0
INTERNEURON_DENDRITE_DIAMETER = 1.5
INTERNEURON_DENDRITE_TAPER = 0.1
INTERNEURON_AIS_LENGTH = 20.0
INTERNEURON_AIS_DIAMETER = 0.8

# =============================================================================
# BALL AND STICK (11 compartments)
# =============================================================================

BALL_STICK_SOMA_DIAMETER = 20.0
BALL_STICK_SOMA_LENGTH = 20.0
BALL_STICK_DENDRITE_COMPARTMENTS = 10
BALL_STICK_DENDRITE_LENGTH = 50.0
BALL_STICK_DENDRITE_DIAMETER = 2.0
