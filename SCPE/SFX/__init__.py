# =============================================================================
# SFX - Effects Module
# =============================================================================
#
# The fixed bit-crusher chain applied to every received stereo frame.
#
# Modules:
#   params.py     - EffectParameters (immutable) + ParameterCell (whole-value swap)
#   quantizer.py  - bit-depth reduction, scalar and numpy forms
#   decimator.py  - sample-and-hold decimation, scalar and numpy forms
#   chain.py      - quantize -> decimate, per frame or per tick
# =============================================================================
