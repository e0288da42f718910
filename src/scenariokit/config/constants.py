"""Configuration constants.

This module contains truly constant values that should NOT be user-configurable.
These are range limits shared with the study engine, regulatory table shapes, and
implementation details.

For configurable values, see models.py (StudyParameters, MXConfig, etc.).
"""

# =============================================================================
# Source Identity
# =============================================================================
# Study engine cache files are addressed by a 16-bit source id, id 0 is never
# assigned.

SOURCE_ID_MIN = 1
SOURCE_ID_MAX = 65535
"""Valid source id range (inclusive)."""

USER_RECORDS_NAMESPACE = -1
"""Sharing index namespace for user-entered records, never a data set id."""

# =============================================================================
# Channel Ranges
# =============================================================================

TV_CHANNEL_MIN = 2
TV_CHANNEL_MAX = 69
"""TV channel range."""

FM_CHANNEL_MIN = 200
FM_CHANNEL_MAX = 300
"""FM channel range (88.1 - 107.9 MHz)."""

FM_CHANNEL_MAX_NCE = 220
"""Highest channel in the reserved non-commercial FM band."""

TV_VHF_HIGH_MIN = 7
TV_UHF_MIN = 14
"""First channels of the VHF-high and UHF TV bands."""

TV_BAND_GROUP_STARTS = (2, 5, 7, 14)
"""First channels of the TV band groups, a channel delta never crosses a group."""

TV6_CHANNEL = 6
TV6_FM_EQUIVALENT_CHANNEL = 199
"""Only TV channel 6 pairs with FM, treated as though it were this FM channel."""

# =============================================================================
# Rule Extra Distance
# =============================================================================

TV_DEFAULT_RULE_EXTRA_DISTANCE_KM = 163.0
FM_DEFAULT_RULE_EXTRA_DISTANCE_KM = 125.0
"""Used when no study parameters are available or ERP is not valid."""

UHF_BASE_FREQUENCY_MHZ = 473.0
UHF_CHANNEL_WIDTH_MHZ = 6.0
"""Center frequency of channel 14 and channel spacing, for the dipole correction."""

F10_RULE_EXTRA_DISTANCE_KM = 300.0
"""Used when a service contour is projected with F(50,10) curves."""

CURVE_SET_ADJUSTMENT_DB = 8.0
"""ERP adjustment between F(50,50) and F(50,90) curve sets."""

# =============================================================================
# MX
# =============================================================================

DRT_MX_DISTANCE_KM = 30.0
"""Same-facility DRT records are MX only when co-channel and closer than this."""

# =============================================================================
# Wireless Culling Table Shape
# =============================================================================
# Row break points by HAAT (m), column break points by ERP (kW). A record is
# placed in the last row/column whose break point it does not exceed.

WIRELESS_CULL_HAAT_M = (305.0, 200.0, 150.0, 100.0, 80.0, 65.0, 50.0, 35.0)
WIRELESS_CULL_ERP_KW = (5.0, 4.0, 3.0, 2.0, 1.0, 0.75, 0.5, 0.25, 0.1)

# =============================================================================
# Protocol/Validation Constants
# =============================================================================

KM_PER_DEGREE_MIN = 110.0
KM_PER_DEGREE_MAX = 112.0
"""Valid spherical earth distance range."""

RULE_DISTANCE_MIN_KM = 1.0
RULE_DISTANCE_MAX_KM = 500.0
"""Valid interference rule distance range."""
