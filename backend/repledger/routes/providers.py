# Overview: Flask API routes for provider operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..records import Provider
from ..repository import DataStoreError, get_repository
from ..services import catalog_service
from ..validation import ConflictError, NotFoundError, ValidationError

providers_bp = Blueprint("providers", __name__, url_prefix="/api/providers")


@providers_bp.get("")
def list_providers_route():
    try:
        providers = catalog_service.list_providers(get_repository())
        return jsonify({"items": [p.to_dict() for p in providers], "count": len(providers)}), 200
    except DataStoreError:
        current_app.logger.exception("Failed to list providers")
        return jsonify({"error": "Data store unavailable"}), 503


@providers_bp.post("")
def create_provider_route():
    payload = request.get_json(silent=True) or {}
    try:
        provider = catalog_service.create_provider(get_repository(), Provider.from_dict(payload))
        return jsonify({"provider": provider.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except DataStoreError:
        current_app.logger.exception("Failed to create provider")
        return jsonify({"error": "Data store unavailable"}), 503


@providers_bp.patch("/<provider_id>")
def update_provider_route(provider_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        provider = catalog_service.update_provider(get_repository(), provider_id, payload)
        return jsonify({"provider": provider.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DataStoreError:
        current_app.logger.exception("Failed to update provider")
        return jsonify({"error": "Data store unavailable"}), 503


@providers_bp.delete("/<provider_id>")
def delete_provider_route(provider_id: str):
    try:
        catalog_service.delete_provider(get_repository(), provider_id)
        return jsonify({"deleted": True}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DataStoreError:
        current_app.logger.exception("Failed to delete provider")
        return jsonify({"error": "Data store unavailable"}), 503
