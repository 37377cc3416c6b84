# Overview: Flask API routes for financial statistics; read-only.

from flask import Blueprint, current_app, jsonify

from ..repository import DataStoreError, get_repository
from ..services.financial_service import get_financial_stats

stats_bp = Blueprint("stats", __name__, url_prefix="/api/stats")


@stats_bp.get("/financial")
def financial_stats_route():
    """Cash on hand, HQ transfers, collections, expenses and net sales (all cents)."""
    try:
        stats = get_financial_stats(get_repository())
        return jsonify({"stats": stats.to_dict()}), 200
    except DataStoreError:
        current_app.logger.exception("Failed to compute financial stats")
        return jsonify({"error": "Data store unavailable"}), 503
