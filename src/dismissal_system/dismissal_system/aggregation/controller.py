from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import json_api
from ..container import Container


def register(app: Flask, container: Container) -> None:
    aggregation = container.aggregation_service

    @app.route("/api/grade/<grade>/counts", methods=["GET"], endpoint="api_grade_counts")
    @json_api
    def api_grade_counts(grade: str):
        counts = aggregation.counts_by_grade(grade)
        return jsonify({"success": True, **counts.to_dict()}), 200

    @app.route("/api/counts", methods=["GET"], endpoint="api_counts")
    @json_api
    def api_counts():
        counts = aggregation.counts_school_wide()
        return jsonify({"success": True, **counts.to_dict()}), 200
