"""Flask app factory and all routes for the web UI."""

from __future__ import annotations

import uuid
from pathlib import Path

from flask import Flask, jsonify, render_template, request, send_file
from werkzeug.utils import secure_filename

from vidroi.config import settings
from vidroi.errors import StateError
from vidroi.geometry import Size
from vidroi.source import media_registry
from vidroi.views import ViewController


class _BadInput(ValueError):
    """Request body field has the wrong shape or type."""


def _number(value: object, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise _BadInput(f"{name} must be a number, got {value!r}") from None


def _size(data: dict, prefix: str) -> Size | None:
    width = data.get(f"{prefix}_width")
    height = data.get(f"{prefix}_height")
    if width is None or height is None:
        return None
    return Size(_number(width, f"{prefix}_width"), _number(height, f"{prefix}_height"))


def _stroke(data: dict) -> list[tuple[float, float]]:
    points = data.get("points")
    if not isinstance(points, list):
        raise _BadInput("points must be a list of [x, y] pairs")
    stroke = []
    for pair in points:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise _BadInput(f"Expected an [x, y] pair, got {pair!r}")
        stroke.append((_number(pair[0], "x"), _number(pair[1], "y")))
    return stroke


def create_app(controller: ViewController | None = None) -> Flask:
    app = Flask(
        __name__,
        template_folder=str(Path(__file__).parent / "templates"),
        static_folder=str(Path(__file__).parent / "static"),
    )
    app.jinja_env.globals["config"] = settings

    ctl = controller or ViewController()
    app.extensions["vidroi.controller"] = ctl

    upload_dir = settings.upload_dir.expanduser()

    @app.errorhandler(StateError)
    def state_error(e):
        return jsonify({**ctl.snapshot(), "ok": False, "error": str(e)}), 409

    @app.errorhandler(_BadInput)
    def bad_input(e):
        return jsonify({"ok": False, "error": str(e)}), 400

    # -- Pages ---------------------------------------------------------------

    @app.route("/")
    def index():
        return render_template("index.html")

    @app.route("/media/<token>")
    def media(token):
        path = media_registry.resolve(token)
        if path is None or not path.exists():
            return "Media not available", 404
        return send_file(str(path), conditional=True)

    # -- API endpoints -------------------------------------------------------

    @app.route("/api/state")
    def api_state():
        return jsonify({"ok": True, **ctl.snapshot()})

    @app.route("/api/video", methods=["POST"])
    def api_video():
        file = request.files.get("video")
        if not file or not file.filename:
            return jsonify({"ok": False, "error": "No video file"}), 400

        upload_dir.mkdir(parents=True, exist_ok=True)
        name = secure_filename(file.filename) or "video.mp4"
        dest = upload_dir / f"{uuid.uuid4().hex[:8]}_{name}"
        file.save(str(dest))

        handle = ctl.select_video(dest, owned=True)
        return jsonify({"ok": True, "video_url": handle.url, **ctl.snapshot()})

    @app.route("/api/layout", methods=["POST"])
    def api_layout():
        data = request.get_json(silent=True) or {}
        canvas = _size(data, "canvas")
        if canvas is not None:
            ctl.set_canvas_size(canvas)
        video = _size(data, "video")
        if video is not None:
            ctl.set_video_size(video)
        return jsonify({"ok": True, **ctl.snapshot()})

    @app.route("/api/draw/start", methods=["POST"])
    def api_draw_start():
        ctl.start_drawing()
        return jsonify({"ok": True, **ctl.snapshot()})

    @app.route("/api/draw/clear", methods=["POST"])
    def api_draw_clear():
        ctl.clear_polygons()
        return jsonify({"ok": True, **ctl.snapshot()})

    @app.route("/api/stroke", methods=["POST"])
    def api_stroke():
        accepted = ctl.add_stroke(_stroke(request.get_json(silent=True) or {}))
        return jsonify({"ok": True, "accepted": accepted, **ctl.snapshot()})

    @app.route("/api/submit", methods=["POST"])
    def api_submit():
        data = request.get_json(silent=True) or {}
        future = ctl.submit(canvas_size=_size(data, "canvas"))
        if future is None:
            snap = ctl.snapshot()
            if snap["error"]:
                return jsonify({"ok": False, **snap}), 400
            return jsonify({"ok": False, "not_ready": True, **snap}), 409
        return jsonify({"ok": True, **ctl.snapshot()}), 202

    @app.route("/api/reset", methods=["POST"])
    def api_reset():
        ctl.close()
        return jsonify({"ok": True, **ctl.snapshot()})

    return app
