from __future__ import annotations

import asyncio
import logging
from io import BytesIO

from flask import Blueprint, current_app, jsonify, request, send_file

from factlens.generators.export import (
    export_json,
    format_share_summary,
    json_filename,
    report_filename,
)
from factlens.models.errors import Err, FactLensError, describe_error
from factlens.models.types import Upload
from factlens.processors.extractor import extract_result
from factlens.session import SessionState

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__)

_STATUS_BY_CATEGORY = {
    "input": 400,
    "media": 422,
    "safety": 422,
    "quota": 429,
    "busy": 409,
    "state": 409,
    "timeout": 504,
    "auth": 502,
    "not_found": 502,
    "extraction": 502,
    "transport": 502,
    "empty_response": 502,
}


def _get_session():
    return current_app.config["ANALYSIS_SESSION"]


def _get_history():
    return current_app.config["HISTORY"]


def _get_paginator():
    return current_app.config["PAGINATOR"]


def _status_for(category: str | None) -> int:
    return _STATUS_BY_CATEGORY.get(category or "", 500)


def _error_response(exc: FactLensError) -> tuple:
    body = {"status": "error", "category": exc.category, "error": describe_error(exc)}
    return jsonify(body), _status_for(exc.category)


def _read_submission() -> tuple[str, Upload | None, str]:
    if request.files or request.form:
        text = request.form.get("text", "")
        mode = request.form.get("mode", "standard")
        storage = request.files.get("file")
        upload = None
        if storage is not None and storage.filename:
            upload = Upload(
                data=storage.read(),
                filename=storage.filename,
                mime_type=storage.mimetype or None,
            )
        return text, upload, mode

    data = request.get_json(silent=True) or {}
    return str(data.get("text") or ""), None, str(data.get("mode") or "standard")


def _completed_result():
    snapshot = _get_session().snapshot
    if snapshot.state is not SessionState.COMPLETE or snapshot.result is None:
        return None
    return snapshot.result


@api.route("/analyze", methods=["POST"])
def analyze() -> tuple:
    session = _get_session()
    text, upload, mode = _read_submission()

    try:
        if session.state in (SessionState.COMPLETE, SessionState.ERROR):
            session.reset()
        snapshot = asyncio.run(session.submit(text, upload, mode))
    except FactLensError as exc:
        logger.warning("Rejected analysis submission: %s", exc)
        return _error_response(exc)

    body = snapshot.to_dict()
    if snapshot.state is SessionState.COMPLETE:
        return jsonify(body), 200
    return jsonify(body), _status_for(snapshot.error_category)


@api.route("/state", methods=["GET"])
def get_state() -> tuple:
    return jsonify(_get_session().snapshot.to_dict()), 200


@api.route("/reset", methods=["POST"])
def reset() -> tuple:
    try:
        snapshot = _get_session().reset()
    except FactLensError as exc:
        return _error_response(exc)
    return jsonify(snapshot.to_dict()), 200


@api.route("/export/json", methods=["GET"])
def export_result_json():
    result = _completed_result()
    if result is None:
        return jsonify({"error": "No completed analysis to export"}), 404
    return send_file(
        BytesIO(export_json(result)),
        mimetype="application/json",
        as_attachment=True,
        download_name=json_filename(),
    )


@api.route("/export/pdf", methods=["GET"])
def export_result_pdf():
    result = _completed_result()
    if result is None:
        return jsonify({"error": "No completed analysis to export"}), 404
    try:
        pdf_bytes = _get_paginator().generate(result)
    except Exception as exc:
        logger.exception("Report generation failed: %s", exc)
        return jsonify({"error": "Failed to generate the PDF report"}), 500
    return send_file(
        BytesIO(pdf_bytes),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=report_filename(),
    )


@api.route("/share", methods=["GET"])
def share_summary() -> tuple:
    result = _completed_result()
    if result is None:
        return jsonify({"error": "No completed analysis to share"}), 404
    return jsonify({"summary": format_share_summary(result)}), 200


@api.route("/report", methods=["POST"])
def render_report():
    raw = request.get_data(as_text=True)
    if not raw.strip():
        return jsonify({"error": "Request body must be an analysis result in JSON"}), 400

    outcome = extract_result(raw)
    if isinstance(outcome, Err):
        # The body came from the caller, not the model.
        body, _ = _error_response(outcome.error)
        return body, 400

    try:
        pdf_bytes = _get_paginator().generate(outcome.value)
    except Exception as exc:
        logger.exception("Report generation failed: %s", exc)
        return jsonify({"error": "Failed to generate the PDF report"}), 500
    return send_file(
        BytesIO(pdf_bytes),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=report_filename(),
    )


@api.route("/history", methods=["GET"])
def get_history() -> tuple:
    history = _get_history()
    if history is None:
        return jsonify({"history": []}), 200
    return jsonify({"history": [entry.to_dict() for entry in history.load()]}), 200
