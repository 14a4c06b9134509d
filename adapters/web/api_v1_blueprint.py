# adapters/web/api_v1_blueprint.py
# REST API Blueprint for programmatic access.

import logging
from datetime import datetime, timezone

from flask import Blueprint, Response, abort, jsonify, request, url_for

from adapters.web.paste_blueprint import get_store
from application.dto.entry_dto import Entry
from application.errors import ExhaustedIDSpace, InvalidInput
from infrastructure.store.id_generator import is_valid_id

logger = logging.getLogger("pastebin.api")

api_v1 = Blueprint("api_v1", __name__, url_prefix="/api/v1")


@api_v1.url_value_preprocessor
def reject_malformed_ids(endpoint, values):
    if values and "blob_id" in values and not is_valid_id(values["blob_id"]):
        abort(404)


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def _describe(entry: Entry) -> dict:
    return {
        "id": entry.id,
        "url": url_for("paste.view_paste", blob_id=entry.id, _external=True),
        "size": len(entry.payload),
        "expiresAt": _iso(entry.expires_at),
    }


@api_v1.route("/pastes", methods=["POST"])
def api_create():
    """
    POST /api/v1/pastes
    JSON { "blob": str } or any raw body.
    Returns 201 { id, url, size, expiresAt }.
    """
    if request.is_json:
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not isinstance(data.get("blob"), str):
            return jsonify({"error": "Expected a JSON object with a string 'blob'."}), 400
        payload = data["blob"].encode("utf-8")
    else:
        payload = request.get_data()

    store = get_store()
    blob_id = store.insert(payload)
    entry = store.get_entry(blob_id)
    if entry is None:
        # Only possible with a TTL shorter than this request.
        return jsonify({"error": "Paste expired before it could be returned."}), 410

    logger.info("api paste accepted id=%s size=%dB", blob_id[:4], len(payload))
    response = jsonify(_describe(entry))
    response.status_code = 201
    response.headers["Location"] = url_for("api_v1.api_get", blob_id=blob_id)
    return response


@api_v1.route("/pastes/<blob_id>", methods=["GET"])
def api_get(blob_id: str):
    """
    GET /api/v1/pastes/<id>
    Returns { id, url, size, expiresAt, blob }.
    """
    entry = get_store().get_entry(blob_id)
    if entry is None:
        return jsonify({"error": "Paste not found."}), 404

    body = _describe(entry)
    body["blob"] = entry.payload.decode("utf-8", errors="replace")
    return jsonify(body)


@api_v1.route("/pastes/<blob_id>/raw", methods=["GET"])
def api_raw(blob_id: str):
    """
    GET /api/v1/pastes/<id>/raw
    Returns the stored bytes unchanged.
    """
    payload = get_store().get(blob_id)
    if payload is None:
        return jsonify({"error": "Paste not found."}), 404
    return Response(payload, mimetype="application/octet-stream")


@api_v1.route("/pastes/<blob_id>", methods=["DELETE"])
def api_delete(blob_id: str):
    """
    DELETE /api/v1/pastes/<id>
    Returns 204, or 404 if nothing live was stored under that id.
    """
    if not get_store().delete(blob_id):
        return jsonify({"error": "Paste not found."}), 404
    return "", 204


@api_v1.errorhandler(InvalidInput)
def api_invalid_input(e: InvalidInput):
    return jsonify({"error": str(e)}), 400


@api_v1.errorhandler(ExhaustedIDSpace)
def api_exhausted(e: ExhaustedIDSpace):
    logger.error("api paste rejected: %s", e)
    return jsonify({"error": "Could not allocate an identifier. Try again."}), 500
