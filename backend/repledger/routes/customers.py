# Overview: Flask API routes for customer operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..records import Customer
from ..repository import DataStoreError, get_repository
from ..services import catalog_service
from ..validation import ConflictError, NotFoundError, ValidationError

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
def list_customers_route():
    try:
        customers = catalog_service.list_customers(get_repository())
        return jsonify({"items": [c.to_dict() for c in customers], "count": len(customers)}), 200
    except DataStoreError:
        current_app.logger.exception("Failed to list customers")
        return jsonify({"error": "Data store unavailable"}), 503


@customers_bp.get("/<customer_id>")
def get_customer_route(customer_id: str):
    try:
        customer = catalog_service.get_customer(get_repository(), customer_id)
        return jsonify({"customer": customer.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DataStoreError:
        current_app.logger.exception("Failed to load customer")
        return jsonify({"error": "Data store unavailable"}), 503


@customers_bp.post("")
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    try:
        customer = catalog_service.create_customer(get_repository(), Customer.from_dict(payload))
        return jsonify({"customer": customer.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except DataStoreError:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Data store unavailable"}), 503


@customers_bp.patch("/<customer_id>")
def update_customer_route(customer_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        customer = catalog_service.update_customer(get_repository(), customer_id, payload)
        return jsonify({"customer": customer.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DataStoreError:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Data store unavailable"}), 503


@customers_bp.delete("/<customer_id>")
def delete_customer_route(customer_id: str):
    """Deletes the customer and all of their orders (stock is reversed)."""
    try:
        removed = catalog_service.delete_customer(get_repository(), customer_id)
        return jsonify({"deleted": True, "orders_deleted": removed}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DataStoreError:
        current_app.logger.exception("Failed to delete customer")
        return jsonify({"error": "Data store unavailable"}), 503
    except Exception:
        current_app.logger.exception("Failed to delete customer")
        return jsonify({"error": "Internal server error"}), 500
