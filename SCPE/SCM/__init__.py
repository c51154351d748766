# =============================================================================
# SCM - Control Message Module
# =============================================================================
#
# Turns the MIDI control input into EffectParameters updates.  Runs in its
# own, much slower timing domain and talks to the audio side only through
# the SFX ParameterCell.
#
# Modules:
#   uart.py         - 8N1 line levels <-> bytes (one step per MIDI bit)
#   midi_parser.py  - running-status parser, CC #20/#21 and Program Change
# =============================================================================
