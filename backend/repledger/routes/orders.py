# Overview: Flask API routes for order operations; parses input and returns JSON responses.

"""
Order routes.

Orders are replaced wholesale on PUT: the stored snapshot's stock effect is
reversed and the new snapshot's effect applied. Paid amounts are owned by
payment transactions and are never taken from the payload.
"""

from dataclasses import replace

from flask import Blueprint, current_app, jsonify, request

from ..records import PRODUCTS, Order, OrderItem
from ..repository import DataStoreError, get_repository
from ..services import order_service
from ..services.order_items import ItemUpdate, apply_item_updates, new_item, order_total
from ..validation import ConflictError, NotFoundError, ValidationError, as_bool, as_int

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _order_from_payload(payload: dict, *, order_id: str | None = None) -> Order:
    if order_id is not None:
        payload = {**payload, "id": order_id}
    order = Order.from_dict(payload)
    if payload.get("total_amount_cents") is None:
        order = replace(order, total_amount_cents=order_total(order.items, is_return=order.is_return))
    return order


@orders_bp.get("")
def list_orders_route():
    """
    Query params:
    - customer_id: str (optional)
    - include_drafts: bool (default true)
    """
    try:
        orders = order_service.list_orders(
            get_repository(),
            customer_id=request.args.get("customer_id"),
            include_drafts=as_bool(request.args.get("include_drafts"), default=True),
        )
        return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)}), 200
    except DataStoreError:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Data store unavailable"}), 503


@orders_bp.get("/<order_id>")
def get_order_route(order_id: str):
    try:
        order = order_service.get_order(get_repository(), order_id)
        return jsonify({"order": order.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DataStoreError:
        current_app.logger.exception("Failed to load order")
        return jsonify({"error": "Data store unavailable"}), 503


@orders_bp.post("")
def create_order_route():
    """Create a sale, return or draft. total_amount_cents defaults to the sum of line subtotals."""
    payload = request.get_json(silent=True) or {}
    try:
        order = _order_from_payload(payload)
        change = order_service.create_order(get_repository(), order)
        return jsonify(change.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except DataStoreError:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Data store unavailable"}), 503
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<order_id>")
def update_order_route(order_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        order = _order_from_payload(payload, order_id=order_id)
        change = order_service.update_order(get_repository(), order_id, order)
        return jsonify(change.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DataStoreError:
        current_app.logger.exception("Failed to update order")
        return jsonify({"error": "Data store unavailable"}), 503
    except Exception:
        current_app.logger.exception("Failed to update order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<order_id>")
def delete_order_route(order_id: str):
    try:
        change = order_service.delete_order(get_repository(), order_id)
        return jsonify(change.to_dict()), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DataStoreError:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Data store unavailable"}), 503
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/items/recalculate")
def recalculate_item_route():
    """
    Price one order line without persisting anything.

    Body:
    - item: existing line, or product_id (+ discount_bps) to start a new line
    - updates: [{"field": "quantity", "value": 10}, ...] applied in order
    """
    payload = request.get_json(silent=True) or {}
    try:
        if payload.get("item"):
            item = OrderItem.from_dict(payload["item"])
        elif payload.get("product_id"):
            product = get_repository().get(PRODUCTS, str(payload["product_id"]))
            if product is None:
                raise NotFoundError(PRODUCTS, payload["product_id"])
            item = new_item(
                product,
                discount_bps=as_int(payload.get("discount_bps"), "discount_bps", default=0),
            )
        else:
            return jsonify({"error": "item or product_id required"}), 400

        updates = [ItemUpdate.from_dict(u) for u in (payload.get("updates") or [])]
        item = apply_item_updates(item, updates)
        return jsonify({"item": item.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DataStoreError:
        current_app.logger.exception("Failed to recalculate item")
        return jsonify({"error": "Data store unavailable"}), 503
