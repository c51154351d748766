# =============================================================================
# SCPE/SVM/__init__.py - Signal Verification Module
# =============================================================================
#
# The SVM holds the receiving end of the serial link and every tool used to
# check that the device model behaves like the hardware.
#
# Sub-modules:
#   serial_rx.py     - SerialReceiver, bit-serial to StereoFrame
#   loopback.py      - cycle-accurate TX -> RX and ADC -> device -> DAC harnesses
#   hardware_sim.py  - WAV-driven device emulator (CLI + importable)
#   validate.py      - self-validation suite for the whole SCPE stack
# =============================================================================
