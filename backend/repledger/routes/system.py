# Overview: System health endpoint.

import time

from flask import Blueprint, current_app, jsonify

from ..records import KINDS
from ..repository import DataStoreError, get_repository

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


def check_store_health() -> dict:
    """
    Count every record kind through the configured repository.

    Returns dict with status and details.
    """
    repo = get_repository()
    start_time = time.time()
    try:
        with repo.atomic():
            counts = {kind: len(repo.list(kind)) for kind in KINDS}
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "backend": repo.backend_name,
            "latency_ms": round(elapsed_ms, 2),
            "details": counts,
        }
    except DataStoreError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Data store health check failed")
        return {
            "status": "unhealthy",
            "backend": repo.backend_name,
            "latency_ms": round(elapsed_ms, 2),
            "error": "Data store error",
        }


@system_bp.get("/health")
def health_route():
    store = check_store_health()
    status_code = 200 if store["status"] == "healthy" else 503
    return jsonify({"status": store["status"], "store": store}), status_code
