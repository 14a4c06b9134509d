# adapters/web/paste_blueprint.py
# Browser / curl endpoints: paste, view, download, delete.

import io
import logging

from flask import (
    Blueprint,
    Response,
    abort,
    current_app,
    redirect,
    render_template,
    request,
    send_file,
    url_for,
)

from application.ports.blob_store_port import IBlobStore
from infrastructure.store.id_generator import is_valid_id
from infrastructure.web.negotiation import ACCEPTED_TYPES, negotiate

logger = logging.getLogger("pastebin.web")

paste = Blueprint("paste", __name__)

USAGE: str = """\
pastebin - ephemeral text sharing

  Paste:     curl -F 'blob=<-' {url}  < file.txt
             curl --data-binary @file.txt {url}
  View:      curl {url}p/<id>
  Download:  curl -OJ {url}download/<id>
  Delete:    curl -X DELETE {url}p/<id>

Pastes expire after {ttl}.
"""


def get_store() -> IBlobStore:
    return current_app.extensions["blob_store"]


def _text(body: str, status: int = 200) -> Response:
    return Response(body, status=status, mimetype="text/plain")


def _negotiate() -> str:
    return negotiate(request.headers.get("Accept"), ACCEPTED_TYPES)


def format_ttl(seconds: float) -> str:
    """300 -> '5m', 5400 -> '1h30m', 45 -> '45s'."""
    seconds = int(seconds)
    parts = []
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60), ("s", 1)):
        amount, seconds = divmod(seconds, size)
        if amount:
            parts.append(f"{amount}{unit}")
    return "".join(parts) or "0s"


@paste.url_value_preprocessor
def reject_malformed_ids(endpoint, values):
    # An id generate_id() could never produce cannot be stored.
    if values and "blob_id" in values and not is_valid_id(values["blob_id"]):
        abort(404)


def _read_payload() -> bytes:
    """Form field 'blob' if present, otherwise the raw request body.

    ``curl --data-binary @file`` labels the body as urlencoded form data,
    so that body is cached before form parsing would consume it.
    """
    raw = b""
    if request.mimetype == "application/x-www-form-urlencoded":
        raw = request.get_data(cache=True, parse_form_data=False)
    if "blob" in request.form:
        return request.form["blob"].encode("utf-8")
    if "blob" in request.files:
        return request.files["blob"].read()
    return raw or request.get_data()


@paste.route("/", methods=["GET"])
def index():
    accepts = _negotiate()
    ttl = format_ttl(current_app.config["PASTEBIN"].ttl)
    if accepts == "text/html":
        return render_template("index.html", ttl=ttl)
    return _text(USAGE.format(url=request.host_url, ttl=ttl))


@paste.route("/", methods=["POST"])
def create_paste():
    """
    POST /
    Form field 'blob' (or a raw body).
    text/html  -> 302 to the view page
    text/plain -> the paste URL
    """
    accepts = _negotiate()

    payload = _read_payload()
    blob_id = get_store().insert(payload)
    logger.info(
        "paste accepted id=%s size=%dB ip=%s",
        blob_id[:4], len(payload), request.remote_addr,
    )

    if accepts == "text/html":
        return redirect(url_for("paste.view_paste", blob_id=blob_id))
    return _text(url_for("paste.view_paste", blob_id=blob_id, _external=True) + "\n")


@paste.route("/p/<blob_id>", methods=["GET"])
def view_paste(blob_id: str):
    accepts = _negotiate()

    payload = get_store().get(blob_id)
    if payload is None:
        return _text("Not Found", 404)

    blob = payload.decode("utf-8", errors="replace").replace("\t", "    ")

    if accepts == "text/html":
        # Jinja autoescaping turns the blob into inert HTML.
        return render_template("view.html", blob=blob, blob_id=blob_id)
    return _text(blob)


@paste.route("/download/<blob_id>", methods=["GET"])
def download_paste(blob_id: str):
    payload = get_store().get(blob_id)
    if payload is None:
        return _text("Not Found", 404)

    return send_file(
        io.BytesIO(payload),
        mimetype="application/octet-stream",
        as_attachment=True,
        download_name=blob_id,
    )


# DELETE for curl/wget; POST because HTML forms cannot send DELETE.
@paste.route("/p/<blob_id>", methods=["DELETE"])
@paste.route("/delete/<blob_id>", methods=["POST"])
def delete_paste(blob_id: str):
    _negotiate()

    if not get_store().delete(blob_id):
        return _text("Not Found", 404)

    logger.info("paste deleted id=%s ip=%s", blob_id[:4], request.remote_addr)
    return _text("Deleted")
