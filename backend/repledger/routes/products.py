# Overview: Flask API routes for products operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..records import Product
from ..repository import DataStoreError, get_repository
from ..services import catalog_service
from ..services.stock_service import adjust_product_stock
from ..validation import ConflictError, NotFoundError, ValidationError, as_int, as_str

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products_route():
    try:
        products = catalog_service.list_products(get_repository())
        return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200
    except DataStoreError:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Data store unavailable"}), 503


@products_bp.get("/<product_id>")
def get_product_route(product_id: str):
    try:
        product = catalog_service.get_product(get_repository(), product_id)
        return jsonify({"product": product.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DataStoreError:
        current_app.logger.exception("Failed to load product")
        return jsonify({"error": "Data store unavailable"}), 503


@products_bp.post("")
def create_product_route():
    """Create a product. stock is the opening balance and may only be set here."""
    payload = request.get_json(silent=True) or {}
    try:
        product = catalog_service.create_product(get_repository(), Product.from_dict(payload))
        return jsonify({"product": product.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except DataStoreError:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Data store unavailable"}), 503


@products_bp.patch("/<product_id>")
def update_product_route(product_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        product = catalog_service.update_product(get_repository(), product_id, payload)
        return jsonify({"product": product.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DataStoreError:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Data store unavailable"}), 503


@products_bp.delete("/<product_id>")
def delete_product_route(product_id: str):
    try:
        catalog_service.delete_product(get_repository(), product_id)
        return jsonify({"deleted": True}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DataStoreError:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Data store unavailable"}), 503


@products_bp.post("/<product_id>/stock-adjustments")
def adjust_stock_route(product_id: str):
    """
    Manual stock correction.

    Body: delta (signed int, non-zero), reason (optional)
    """
    payload = request.get_json(silent=True) or {}
    try:
        delta = as_int(payload.get("delta"), "delta")
        if delta is None:
            return jsonify({"error": "delta required"}), 400
        stock = adjust_product_stock(
            get_repository(),
            product_id,
            delta,
            reason=as_str(payload.get("reason"), default=""),
        )
        return jsonify({"product_id": product_id, "stock": stock}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DataStoreError:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Data store unavailable"}), 503
