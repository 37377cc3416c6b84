# Overview: Flask API routes for transaction operations; parses input and returns JSON responses.

"""
Transaction routes.

- POST /api/transactions               record a payment, expense or HQ deposit
- PUT /api/transactions/<id>           edit (quantity/amount differences are reconciled)
- DELETE /api/transactions/<id>        undo effects and delete; unknown ids are a no-op
- POST /api/transactions/stock-purchases
"""

from flask import Blueprint, current_app, jsonify, request

from ..records import VALID_PAYMENT_METHODS, VALID_TRANSACTION_TYPES, Transaction, TransactionMetadata
from ..repository import DataStoreError, get_repository
from ..services import transaction_service
from ..time_utils import coerce_datetime
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    as_int,
    as_str,
    require_choice,
    require_fields,
)

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")

TRANSACTION_MUTABLE_FIELDS = {
    "type",
    "amount_cents",
    "date",
    "reference_id",
    "description",
    "payment_method",
    "provider_id",
    "provider_name",
    "metadata",
}


def _changes_from_payload(payload: dict) -> dict:
    """Typed field changes for a partial transaction edit."""
    changes = {}
    for key, value in payload.items():
        if key not in TRANSACTION_MUTABLE_FIELDS:
            continue
        if key == "type":
            value = as_str(value)
            require_choice(value, VALID_TRANSACTION_TYPES, "transaction type")
        elif key == "amount_cents":
            value = as_int(value, "amount_cents")
        elif key == "date":
            try:
                value = coerce_datetime(value)
            except ValueError:
                raise ValidationError("date must be an ISO-8601 date or datetime")
        elif key == "payment_method":
            value = as_str(value) or None
            require_choice(value, VALID_PAYMENT_METHODS, "payment method", allow_none=True)
        elif key == "metadata":
            value = TransactionMetadata.from_dict(value)
        elif key == "description":
            value = as_str(value, default="")
        else:
            value = as_str(value) or None
        changes[key] = value
    return changes


@transactions_bp.get("")
def list_transactions_route():
    """
    Query params:
    - type: PAYMENT_RECEIVED | EXPENSE | DEPOSIT_TO_HQ (optional)
    - reference_id: order or product id (optional)
    """
    try:
        txns = transaction_service.list_transactions(
            get_repository(),
            txn_type=request.args.get("type"),
            reference_id=request.args.get("reference_id"),
        )
        return jsonify({"items": [t.to_dict() for t in txns], "count": len(txns)}), 200
    except DataStoreError:
        current_app.logger.exception("Failed to list transactions")
        return jsonify({"error": "Data store unavailable"}), 503


@transactions_bp.get("/<transaction_id>")
def get_transaction_route(transaction_id: str):
    try:
        txn = transaction_service.get_transaction(get_repository(), transaction_id)
        return jsonify({"transaction": txn.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DataStoreError:
        current_app.logger.exception("Failed to load transaction")
        return jsonify({"error": "Data store unavailable"}), 503


@transactions_bp.post("")
def record_transaction_route():
    payload = request.get_json(silent=True) or {}
    try:
        txn = Transaction.from_dict(payload)
        change = transaction_service.record_transaction(get_repository(), txn)
        return jsonify(change.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except DataStoreError:
        current_app.logger.exception("Failed to record transaction")
        return jsonify({"error": "Data store unavailable"}), 503
    except Exception:
        current_app.logger.exception("Failed to record transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.put("/<transaction_id>")
def update_transaction_route(transaction_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        changes = _changes_from_payload(payload)
        change = transaction_service.update_transaction(get_repository(), transaction_id, **changes)
        return jsonify(change.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DataStoreError:
        current_app.logger.exception("Failed to update transaction")
        return jsonify({"error": "Data store unavailable"}), 503
    except Exception:
        current_app.logger.exception("Failed to update transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.delete("/<transaction_id>")
def delete_transaction_route(transaction_id: str):
    try:
        change = transaction_service.delete_transaction(get_repository(), transaction_id)
        if change is None:
            return jsonify({"deleted": False}), 200
        return jsonify({"deleted": True, **change.to_dict()}), 200
    except DataStoreError:
        current_app.logger.exception("Failed to delete transaction")
        return jsonify({"error": "Data store unavailable"}), 503
    except Exception:
        current_app.logger.exception("Failed to delete transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/stock-purchases")
def record_stock_purchase_route():
    """
    Receive purchased stock and book the expense.

    Body: product_id, quantity, cost_cents, provider_id?, payment_method?, date?
    """
    payload = request.get_json(silent=True) or {}
    try:
        require_fields(payload, ["product_id", "quantity", "cost_cents"])
        method = as_str(payload.get("payment_method")) or "CASH"
        require_choice(method, VALID_PAYMENT_METHODS, "payment method")
        try:
            purchase_date = coerce_datetime(payload.get("date"))
        except ValueError:
            raise ValidationError("date must be an ISO-8601 date or datetime")

        change = transaction_service.record_stock_purchase(
            get_repository(),
            product_id=as_str(payload["product_id"]),
            quantity=as_int(payload["quantity"], "quantity"),
            cost_cents=as_int(payload["cost_cents"], "cost_cents"),
            provider_id=as_str(payload.get("provider_id")) or None,
            payment_method=method,
            date=purchase_date,
        )
        return jsonify(change.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DataStoreError:
        current_app.logger.exception("Failed to record stock purchase")
        return jsonify({"error": "Data store unavailable"}), 503
    except Exception:
        current_app.logger.exception("Failed to record stock purchase")
        return jsonify({"error": "Internal server error"}), 500
