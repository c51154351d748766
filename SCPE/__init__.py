# =============================================================================
# Serial Codec Processing Engine (SCPE)
# Cycle-accurate model of a stereo 16-bit serial audio link plus a small
# bit-crusher effects chain driven by MIDI control messages.
# =============================================================================
#
# ── ONE SHARED TIMING SOURCE ─────────────────────────────────────────────────
#
# RESPONSIBLE for:
#   - Frame clock generation
#       One counter, two decode taps: bit clock (sck) and channel select (ws).
#       ws can only ever move on a trailing sck edge.
#   - Serial receive / transmit
#       16 bits per channel, MSB first, one-period lead-in after every ws
#       transition.  Data is driven on the trailing sck edge and sampled on
#       the leading edge.
#   - Effects chain
#       Bit-depth quantizer followed by a sample-and-hold decimator.
#   - Control messages
#       MIDI Control Change / Program Change (running status) remapped onto
#       the two effect parameters.
#
# NOT responsible for:
#   - Pin wiring, reference oscillator, status LEDs, synthesis settings.
#
# ── REGISTER SEMANTICS ───────────────────────────────────────────────────────
#   Every audio-side component is stepped once per reference tick.  A step
#   reads only the previous tick's committed outputs of the other components
#   and commits its own new state when it returns.  The top-level pipeline
#   captures every output before stepping anything, so no component ever sees
#   another component's half-finished update.
#
# ── DATA FLOW ────────────────────────────────────────────────────────────────
#   codec sd ─► SerialReceiver ─► quantize ─► decimate ─► SerialTransmitter ─► codec sd
#                                    ▲           ▲
#   MIDI bytes ─► ControlMessageParser ─► ParameterCell
#
# ── Module layout ────────────────────────────────────────────────────────────
#   SMM/  - constants and sample / frame types
#   SGM/  - frame clock, serial transmitter, line builder
#   SVM/  - serial receiver, loopback check, hardware emulator, self-validation
#   SFX/  - parameter cell, quantizer, decimator, effects chain
#   SCM/  - MIDI UART line decoder, MIDI control-message parser
#   STM/  - top-level pipeline, frame renderer, JSON / HTTP bridges
# =============================================================================

__version__ = "0.3.0"
