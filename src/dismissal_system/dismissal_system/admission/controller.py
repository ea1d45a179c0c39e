from __future__ import annotations

import io

from flask import Flask, jsonify, request, send_file

from ..common.datetime_utils import now_local
from ..common.http import json_api, json_body
from ..core.constants import DEFAULT_SCAN_ACTOR
from ..core.exceptions import QrNotFound, ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    admission = container.admission_service
    credentials = container.credential_service

    def _today():
        return now_local(container.settings.school_timezone).date()

    # ===== ADMISSION =====

    @app.route("/api/admit", methods=["POST"], endpoint="api_admit")
    @json_api
    def api_admit():
        """Admit every student of the parent named by a scanned credential."""
        data = json_body()
        raw = data.get("rawQrText")
        if not isinstance(raw, str) or not raw.strip():
            raise ValidationError("rawQrText is required")
        result = admission.admit_raw_text(
            raw,
            actor=data.get("actor") or DEFAULT_SCAN_ACTOR,
            building=data.get("building"),
        )
        return jsonify({"success": True, **result.to_dict()}), 200

    @app.route("/api/admit/image", methods=["POST"], endpoint="api_admit_image")
    @json_api
    def api_admit_image():
        if "image" not in request.files:
            raise QrNotFound("Missing image upload")
        file = request.files["image"]
        result = admission.admit_image(
            file.read(),
            actor=request.form.get("actor") or DEFAULT_SCAN_ACTOR,
            building=request.form.get("building"),
        )
        return jsonify({"success": True, **result.to_dict()}), 200

    # ===== CREDENTIALS =====

    @app.route("/api/parent/<parent_id>/credential", methods=["GET"], endpoint="api_parent_credential")
    @json_api
    def api_parent_credential(parent_id: str):
        text = credentials.credential_text(
            parent_id,
            day=_today(),
            alternate_name=request.args.get("alternateName"),
        )
        return jsonify({"success": True, "parentId": parent_id, "credential": text}), 200

    @app.route("/api/parent/<parent_id>/credential.png", methods=["GET"], endpoint="api_parent_credential_png")
    @json_api
    def api_parent_credential_png(parent_id: str):
        png = credentials.credential_png(
            parent_id,
            day=_today(),
            alternate_name=request.args.get("alternateName"),
        )
        return send_file(io.BytesIO(png), mimetype="image/png")
