# Overview: Flask API routes for reconciliation ledger events; read-only.

from flask import Blueprint, current_app, jsonify, request

from ..repository import DataStoreError, get_repository
from ..services.ledger_service import list_ledger_events

ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("/events")
def list_ledger_events_route():
    """
    Query params:
    - event_type: e.g. stock.product_missing (optional)
    - entity_id: product/order/transaction id (optional)
    - limit: newest N events, 1..500 (default 100)
    """
    limit = request.args.get("limit", default=100, type=int)
    limit = max(1, min(limit, 500))

    try:
        events = list_ledger_events(
            get_repository(),
            event_type=request.args.get("event_type"),
            entity_id=request.args.get("entity_id"),
            limit=limit,
        )
        return jsonify({"items": [e.to_dict() for e in events], "count": len(events)}), 200
    except DataStoreError:
        current_app.logger.exception("Failed to list ledger events")
        return jsonify({"error": "Data store unavailable"}), 503
