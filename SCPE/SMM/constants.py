# =============================================================================
# constants.py - SMM Link Constants, Parameter Ranges and Presets
# =============================================================================
#
# Every clock ratio in this file is an INTEGER.  The whole model runs on an
# integer tick grid; a fractional ratio anywhere would let the bit clock and
# the channel select drift apart.

# -----------------------------------------------------------------------------
# SERIAL AUDIO LINK TIMING
# -----------------------------------------------------------------------------

SAMPLE_RATE   = 44_100          # Hz - stereo frame rate of the codec
WORD_BITS     = 16              # payload bits per channel word
SLOT_BITS     = 16              # bit periods per channel phase (ws half-frame)
FRAME_BITS    = 2 * SLOT_BITS   # = 32 bit periods per stereo frame

BCLK_DIVIDER  = 8               # reference ticks per bit period (MUST be even)
TICKS_PER_FRAME = BCLK_DIVIDER * FRAME_BITS   # = 256 reference ticks
REF_CLOCK_HZ  = SAMPLE_RATE * TICKS_PER_FRAME # = 11 289 600 Hz (256 fs)

# Lead-in: number of bit periods after a ws transition before the first
# payload bit of the incoming word.  That period carries the final bit of
# the outgoing word.
LEAD_IN_BITS  = 1

# PCM limits (16-bit signed)
SAMPLE_MIN  = -32768
SAMPLE_MAX  =  32767
WORD_MASK   = (1 << WORD_BITS) - 1      # = 0xFFFF
SIGN_BIT    = 1 << (WORD_BITS - 1)      # = 0x8000

# Channel-select levels.  Left is ws low.
WS_LEFT  = 0
WS_RIGHT = 1


# -----------------------------------------------------------------------------
# EFFECT PARAMETER RANGES
# -----------------------------------------------------------------------------

BIT_DEPTH_MIN = 1
BIT_DEPTH_MAX = 16
DECIMATION_MIN = 1
DECIMATION_MAX = 64

DEFAULT_BIT_DEPTH = BIT_DEPTH_MAX       # bypass
DEFAULT_DECIMATION = DECIMATION_MIN     # bypass


# -----------------------------------------------------------------------------
# MIDI CONTROL INPUT
# -----------------------------------------------------------------------------

MIDI_BAUD = 31_250                               # MIDI 1.0 current loop
TICKS_PER_MIDI_BIT = REF_CLOCK_HZ // MIDI_BAUD   # = 361 (floor of 361.27)
# NOTE: the UART runs in its own timing domain.  Truncation only affects the
#       model's MIDI bit period, never the audio grid.

UART_DATA_BITS = 8

STATUS_NOTE_OFF        = 0x8
STATUS_NOTE_ON         = 0x9
STATUS_POLY_PRESSURE   = 0xA
STATUS_CONTROL_CHANGE  = 0xB
STATUS_PROGRAM_CHANGE  = 0xC
STATUS_CHANNEL_PRESSURE = 0xD
STATUS_PITCH_BEND      = 0xE

REALTIME_MIN = 0xF8          # 0xF8-0xFF: single-byte realtime, ignored
SYSTEM_MIN   = 0xF0          # 0xF0-0xF7: system common / SysEx, cancel running status

# Data bytes that follow each channel status nibble
CHANNEL_DATA_LENGTH = {
    STATUS_NOTE_OFF:         2,
    STATUS_NOTE_ON:          2,
    STATUS_POLY_PRESSURE:    2,
    STATUS_CONTROL_CHANGE:   2,
    STATUS_PROGRAM_CHANGE:   1,
    STATUS_CHANNEL_PRESSURE: 1,
    STATUS_PITCH_BEND:       2,
}

CC_BIT_DEPTH   = 20          # controller #20 -> bit_depth
CC_DECIMATION  = 21          # controller #21 -> decimation_factor


# -----------------------------------------------------------------------------
# PROGRAM CHANGE PRESETS
# Key   = program number
# Value = (preset name, bit_depth, decimation_factor)
# Unlisted program numbers leave the parameters unchanged.
# -----------------------------------------------------------------------------
PRESETS = {
    0: ("clean",        16,  1),
    1: ("light crush",  12,  2),
    2: ("medium crush",  8,  4),
    3: ("heavy crush",   4,  8),
    4: ("destroy",       2, 12),
}

PRESET_BY_NAME = {name: program for program, (name, _, _) in PRESETS.items()}
