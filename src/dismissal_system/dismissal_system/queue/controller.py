from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import json_api, json_body
from ..common.validators import require_enum
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import AdmissionMethod, DismissalStatus
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    lifecycle = container.queue_service
    statuses = container.status_service

    def _actor(data: dict) -> str:
        return str(data.get("actor") or request.args.get("actor") or "").strip()

    # ===== QUEUE LIFECYCLE =====

    @app.route("/api/queue/start", methods=["POST"], endpoint="api_queue_start")
    @json_api
    def api_queue_start():
        queue = lifecycle.start_daily_queue(_actor(json_body()))
        return jsonify({"success": True, "queue": queue.to_dict()}), 201

    @app.route("/api/queue/close", methods=["POST"], endpoint="api_queue_close")
    @json_api
    def api_queue_close():
        queue = lifecycle.close_open_queue(_actor(json_body()))
        return jsonify({"success": True, "queue": queue.to_dict()}), 200

    @app.route("/api/queue/<queue_id>", methods=["DELETE"], endpoint="api_queue_delete")
    @json_api
    def api_queue_delete(queue_id: str):
        lifecycle.delete_queue(queue_id, _actor(json_body()))
        return jsonify({"success": True}), 200

    @app.route("/api/queue/populate", methods=["POST"], endpoint="api_queue_populate")
    @json_api
    def api_queue_populate():
        queue, added = lifecycle.populate_open_queue(_actor(json_body()))
        return jsonify({"success": True, "queue": queue.to_dict(), "addedCount": added}), 200

    @app.route("/api/queues", methods=["GET"], endpoint="api_queues")
    @json_api
    def api_queues():
        return jsonify({"success": True, "queues": [q.to_dict() for q in lifecycle.list_queues()]}), 200

    @app.route("/api/queue/current", methods=["GET"], endpoint="api_queue_current")
    @json_api
    def api_queue_current():
        queue = lifecycle.get_current_queue()
        return jsonify({"success": True, "queue": queue.to_dict() if queue else None}), 200

    @app.route("/api/queue/<grade>/records", methods=["GET"], endpoint="api_queue_records")
    @json_api
    def api_queue_records(grade: str):
        queue_id, records = lifecycle.get_records(grade=grade, queue_id=request.args.get("queueId"))
        return jsonify({"success": True, "queueId": queue_id, "records": [r.to_dict() for r in records]}), 200

    @app.route("/api/parent/<parent_id>/records", methods=["GET"], endpoint="api_parent_records")
    @json_api
    def api_parent_records(parent_id: str):
        queue_id, records = lifecycle.get_parent_records(parent_id)
        return jsonify(
            {"success": True, "queueId": queue_id, "parentId": parent_id, "records": [r.to_dict() for r in records]}
        ), 200

    # ===== STATUS UPDATES =====

    @app.route("/api/student/<student_id>/status", methods=["POST"], endpoint="api_student_status")
    @json_api
    def api_student_status(student_id: str):
        data = json_body()
        new_status = require_enum(data.get("newStatus"), DismissalStatus, "newStatus")
        method = require_enum(data.get("method") or AdmissionMethod.MANUAL.value, AdmissionMethod, "method")
        if method is AdmissionMethod.BULK_GRADE:
            raise ValidationError("BulkGrade is only valid for grade updates")
        record = statuses.update_student_status(
            student_id=student_id,
            new_status=new_status,
            method=method,
            actor=_actor(data),
        )
        return jsonify({"success": True, "record": record.to_dict()}), 200

    @app.route("/api/student/<student_id>/release", methods=["POST"], endpoint="api_student_release")
    @json_api
    def api_student_release(student_id: str):
        record = statuses.release_student(student_id=student_id, actor=_actor(json_body()))
        return jsonify({"success": True, "record": record.to_dict()}), 200

    @app.route("/api/student/<student_id>/collect", methods=["POST"], endpoint="api_student_collect")
    @json_api
    def api_student_collect(student_id: str):
        record = statuses.collect_student(student_id=student_id, actor=_actor(json_body()))
        return jsonify({"success": True, "record": record.to_dict()}), 200

    @app.route("/api/student/<student_id>/history", methods=["GET"], endpoint="api_student_history")
    @json_api
    def api_student_history(student_id: str):
        try:
            limit = int(request.args.get("limit", DEFAULT_HISTORY_LIMIT))
        except ValueError:
            raise ValidationError("limit must be an integer")
        if limit <= 0:
            raise ValidationError("limit must be positive")
        changes = statuses.history(student_id=student_id, limit=limit)
        return jsonify({"success": True, "studentId": student_id, "history": [c.to_dict() for c in changes]}), 200

    @app.route("/api/grade/<grade>/status", methods=["POST"], endpoint="api_grade_status")
    @json_api
    def api_grade_status(grade: str):
        data = json_body()
        new_status = require_enum(data.get("newStatus"), DismissalStatus, "newStatus")
        updated = statuses.bulk_update_grade(grade=grade, new_status=new_status, actor=_actor(data))
        return jsonify({"success": True, "grade": grade, "updatedCount": updated}), 200

    @app.route("/api/grades", methods=["GET"], endpoint="api_grades")
    @json_api
    def api_grades():
        return jsonify({"success": True, "grades": list(container.students_repo.list_grades())}), 200
