# server.py
import argparse
import atexit
import logging
import weakref
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

import adapters.web.openapi_spec as openapi_spec
from adapters.web.api_v1_blueprint import api_v1
from adapters.web.metrics import RequestMetrics
from adapters.web.paste_blueprint import paste
from application.errors import ConfigError, ExhaustedIDSpace, InvalidInput, NotAcceptable
from application.ports.blob_store_port import IBlobStore
from config import AppConfig, load_config
from infrastructure.store.memory_blob_store import MemoryBlobStore

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger("pastebin")

# Sweepers started by create_app(); one exit hook stops whichever are alive.
_owned_stores: "weakref.WeakSet[MemoryBlobStore]" = weakref.WeakSet()


@atexit.register
def _stop_owned_stores() -> None:
    for store in list(_owned_stores):
        store.stop()


def _text(body: str, status: int):
    return body, status, {"Content-Type": "text/plain; charset=utf-8"}


def _wants_json() -> bool:
    return request.path.startswith("/api/")


def _client_ip() -> str:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr or "-"


def create_app(
    cfg: Optional[AppConfig] = None,
    store: Optional[IBlobStore] = None,
    start_sweeper: bool = True,
) -> Flask:
    """Build the Flask app around an explicitly constructed blob store.

    When *store* is omitted a MemoryBlobStore is created from *cfg* and,
    unless *start_sweeper* is False, its sweeper is started and stopped
    again at interpreter exit.
    """
    if cfg is None:
        cfg = load_config()

    if store is None:
        store = MemoryBlobStore(
            ttl=cfg.ttl,
            id_length=cfg.id_length,
            max_retries=cfg.max_retries,
            sweep_interval=cfg.sweep_interval,
            max_size=cfg.max_size,
        )
        if start_sweeper:
            store.start()
            _owned_stores.add(store)

    app = Flask(
        __name__,
        template_folder="web/templates",
        static_folder="web/static",
        static_url_path="/static",
    )
    app.config["PASTEBIN"] = cfg
    # Leave room for multipart framing on top of the payload limit.
    app.config["MAX_CONTENT_LENGTH"] = cfg.max_size + 64 * 1024
    app.extensions["blob_store"] = store

    metrics = RequestMetrics(store)
    app.extensions["pastebin_metrics"] = metrics

    CORS(app, resources={r"/api/v1/*": {"origins": "*"}})

    app.register_blueprint(paste)
    app.register_blueprint(api_v1)

    @app.route("/api/v1/openapi.json")
    def get_openapi_spec():
        return jsonify(openapi_spec.OPENAPI_SPEC)

    @app.route("/debug/metrics")
    def get_metrics():
        return metrics.render()

    # ════════════════════════════════════════════════════════════════
    # Error handlers
    # ════════════════════════════════════════════════════════════════

    @app.errorhandler(NotAcceptable)
    def not_acceptable(e: NotAcceptable):
        logger.info("negotiation failed ip=%s: %s", _client_ip(), e)
        return _text("Not Acceptable", 406)

    @app.errorhandler(InvalidInput)
    def invalid_input(e: InvalidInput):
        return _text(f"Bad Request: {e}", 400)

    @app.errorhandler(ExhaustedIDSpace)
    def exhausted(e: ExhaustedIDSpace):
        logger.error("paste rejected ip=%s: %s", _client_ip(), e)
        return _text("Internal Error", 500)

    @app.errorhandler(404)
    def not_found(e):
        if _wants_json():
            return jsonify({"error": "Not found."}), 404
        return _text("Not Found", 404)

    @app.errorhandler(413)
    def request_entity_too_large(e):
        message = f"Paste too large. Maximum size is {cfg.max_size} bytes."
        if _wants_json():
            return jsonify({"error": message}), 413
        return _text(message, 413)

    @app.errorhandler(Exception)
    def handle_exception(e):
        """Catch-all: log the traceback, never leak internals to the client."""
        if isinstance(e, HTTPException):
            return e
        logger.error("unhandled exception: %s", e, exc_info=True)
        if _wants_json():
            return jsonify({"error": "An internal error occurred."}), 500
        return _text("Internal Error", 500)

    # ════════════════════════════════════════════════════════════════
    # Request hooks
    # ════════════════════════════════════════════════════════════════

    @app.before_request
    def count_request():
        metrics.inc(request.endpoint or "unmatched")

    @app.after_request
    def log_and_harden(response):
        logger.info(
            "%s %s %d ip=%s",
            request.method, request.path, response.status_code, _client_ip(),
        )
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "style-src 'self'; "
            "img-src 'self' data:; "
            "object-src 'none'; "
            "base-uri 'self'; "
            "form-action 'self';"
        )
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    return app


# ════════════════════════════════════════════════════════════════════
# Entry point
# ════════════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pastebin",
        description="Ephemeral, in-memory text sharing service.",
        epilog="Every option can also be set through its PASTEBIN_* environment variable.",
    )
    parser.add_argument("--bind", "-b", default=None, metavar="HOST:PORT",
                        help="Address to listen on (default: 0.0.0.0:8000).")
    parser.add_argument("--expiry", "-e", dest="ttl", default=None, metavar="DURATION",
                        help="How long pastes live, e.g. 300, 5m, 1h (default: 5m).")
    parser.add_argument("--id-length", type=int, default=None, metavar="N",
                        help="Length of generated paste ids (default: 8).")
    parser.add_argument("--sweep-interval", default=None, metavar="DURATION",
                        help="How often expired pastes are purged (default: the expiry).")
    parser.add_argument("--max-retries", type=int, default=None, metavar="N",
                        help="Id collisions tolerated per paste before giving up (default: 32).")
    parser.add_argument("--max-size", type=int, default=None, metavar="BYTES",
                        help="Largest accepted paste (default: 1048576).")
    parser.add_argument("--debug", action="store_true", default=None,
                        help="Run Flask in debug mode.")
    return parser


def main(argv: Optional[list] = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        cfg = load_config(**vars(args))
    except ConfigError as exc:
        logger.error("invalid configuration: %s", exc)
        raise SystemExit(2)

    app = create_app(cfg)
    logger.info(
        "pastebin listening on %s (expiry=%ss id_length=%d)",
        cfg.bind, int(cfg.ttl), cfg.id_length,
    )
    app.run(host=cfg.host, port=cfg.port, debug=cfg.debug, threaded=True)


if __name__ == "__main__":
    main()
