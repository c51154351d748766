# =============================================================================
# SCPE/SMM/__init__.py - Signal Mapping Module
# =============================================================================
#
# The SMM is the single source of truth for the serial link format: clock
# ratios, word length, parameter ranges, MIDI controller numbers and the
# program preset table, plus the small immutable types that travel between
# components (samples, stereo frames, channel phases).
#
# All other SCPE sub-modules import exclusively from here.
# Never define timing constants outside this module.
#
# Sub-modules:
#   constants.py  - all timing constants, ranges and presets
#   types.py      - Sample helpers, StereoFrame, ChannelPhase
# =============================================================================
