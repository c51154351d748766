# =============================================================================
# SGM - Signal Generation Module
# Subfolder of SCPE (Serial Codec Processing Engine)
# =============================================================================
#
# Everything that DRIVES the serial audio link.
#
# Modules:
#   frame_clock.py   - one counter -> bit clock (sck) + channel select (ws)
#   serial_tx.py     - latched StereoFrame -> serial data line (sd)
#   line_builder.py  - words -> tick-level (sck, ws, sd) streams, no TX needed
#
# Constants live in SCPE/SMM/constants.py
# The receiving side lives in SCPE/SVM/
# =============================================================================
