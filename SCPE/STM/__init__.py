# =============================================================================
# SCPE/STM/__init__.py - System Top Module
# =============================================================================
#
# Wires the link, the effects chain and the control path into one device and
# exposes it to callers outside the package.
#
# Sub-modules:
#   pipeline.py  - AudioPipeline, the cycle-accurate device model
#   render.py    - frame-level renderer over whole sample buffers
#   bridge.py    - JSON / base64 entry points for non-Python callers
#   server.py    - local Flask bridge server (scpe-bridge)
# =============================================================================
