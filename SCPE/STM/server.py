# =============================================================================
# SCPE/STM/server.py - Local HTTP Bridge Server
# =============================================================================
#
# Small Flask app so a browser front end can run WAV files through the
# bit-crusher without Python in the page.
#
#   POST /py-bridge/process   multipart: wav=<file>
#                             form:      depth, factor, midi (repeatable
#                                        "FRAME:HEX"), all optional
#                             returns    processed 16-bit stereo WAV
#   GET  /py-bridge/health    {"status": "ok", "version": ...}
#
# Run:  scpe-bridge [--host 127.0.0.1] [--port 5000]
# =============================================================================

from __future__ import annotations
import argparse
import io
import logging

import soundfile as sf
from flask import Flask, jsonify, request, send_file

from SCPE import __version__
from SCPE.logging_setup import configure_logging
from SCPE.SFX.params import EffectParameters
from SCPE.STM.render import parse_midi_event, render_frames

log = logging.getLogger(__name__)


def _int_field(name: str):
    raw = request.form.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"form field `{name}` must be an integer, got {raw!r}") from None


def create_app() -> Flask:
    app = Flask(__name__)

    @app.route("/py-bridge/process", methods=["POST"])
    def process():
        if "wav" not in request.files:
            return jsonify({"error": "missing file field `wav`"}), 400

        try:
            depth  = _int_field("depth")
            factor = _int_field("factor")
            midi   = [parse_midi_event(m) for m in request.form.getlist("midi")]
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        params = EffectParameters()
        if depth is not None:
            params = params.with_bit_depth(depth)
        if factor is not None:
            params = params.with_decimation(factor)

        try:
            data, sr = sf.read(io.BytesIO(request.files["wav"].read()),
                               dtype="int16", always_2d=True)
        except RuntimeError as e:
            return jsonify({"error": f"unreadable WAV: {e}"}), 400

        try:
            out, final = render_frames(data, params, midi)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except Exception as e:
            log.exception("render failed")
            return jsonify({"error": str(e)}), 500

        buf = io.BytesIO()
        sf.write(buf, out, sr, format="WAV", subtype="PCM_16")
        buf.seek(0)
        log.info("processed %d frames at %d Hz, depth=%d factor=%d",
                 out.shape[0], sr, final.bit_depth, final.decimation_factor)
        return send_file(buf, mimetype="audio/wav",
                         as_attachment=True, download_name="crushed.wav")

    @app.route("/py-bridge/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok", "version": __version__})

    return app


def main(argv: list[str] | None = None) -> None:
    configure_logging("INFO")
    parser = argparse.ArgumentParser(description="Bit-Crusher local bridge server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=5000)
    args = parser.parse_args(argv)

    create_app().run(host=args.host, port=args.port)


if __name__ == "__main__":
    main()
