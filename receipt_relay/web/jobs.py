from __future__ import annotations

"""
Job history endpoints for Receipt Relay.

This blueprint exposes:
- GET    /api/jobs          : All recorded jobs, newest first
- GET    /api/jobs/<job_id> : One job as JSON (404 if not found)
- DELETE /api/jobs          : Clear the history
"""

from flask import Blueprint, current_app, jsonify

from .context import get_services

jobs_bp = Blueprint("jobs", __name__, url_prefix="/api/jobs")


@jobs_bp.get("")
def jobs_list():
    jobs = get_services().store.list()
    current_app.logger.info("GET /api/jobs list count=%d", len(jobs))
    return jsonify({"jobs": [j.to_dict() for j in jobs]})


@jobs_bp.get("/<job_id>")
def job_status(job_id: str):
    """
    Return the JSON representation of a job by id, or 404 if not found.
    """
    job = get_services().store.get(job_id)
    if job is None:
        current_app.logger.info("GET /api/jobs/%s not found", job_id)
        return jsonify({"error": "not_found"}), 404
    current_app.logger.info("GET /api/jobs/%s ok status=%s", job_id, job.status.value)
    return jsonify(job.to_dict())


@jobs_bp.delete("")
def jobs_clear():
    store = get_services().store
    count = len(store)
    store.clear()
    current_app.logger.info("DELETE /api/jobs cleared=%d", count)
    return jsonify({"success": True, "cleared": count})
