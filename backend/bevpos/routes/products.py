# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/bevpos/routes/products.py
from flask import Blueprint, request, jsonify, current_app

from ..models import Product
from ..services import products_service, reporting_service
from ..services.balance_service import BalanceError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    parse_positive_int,
    require_json_object,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from .errors import error_response, internal_error

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "category", "stock"},
    required_on_create={"name", "category"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "category"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    List products ordered by name.

    Query params (all optional, evaluated over the full list):
    - search: case-insensitive name substring
    - category: Water | Drinks
    - status: OUT_OF_STOCK | LOW_STOCK | IN_STOCK
    """
    products = [p.to_dict() for p in products_service.list_products()]
    try:
        items = reporting_service.filter_products(
            products,
            search=request.args.get("search"),
            category=request.args.get("category"),
            status=request.args.get("status"),
        )
    except reporting_service.ReportError as e:
        return jsonify({"error": str(e), "kind": "validation"}), 400

    for item in items:
        item["stock_status"] = reporting_service.stock_status(item["stock"])

    return jsonify({
        "items": items,
        "count": len(items),
        "summary": reporting_service.inventory_summary(products),
    }), 200


@products_bp.get("/low-stock")
def list_low_stock():
    items = [p.to_dict() for p in products_service.list_low_stock()]
    return jsonify({"items": items, "count": len(items)}), 200


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except NotFoundError as e:
        return error_response(e, 404)
    return jsonify({"product": product.to_dict()}), 200


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        product = products_service.create_product(patch=patch)
    except ValidationError as e:
        return error_response(e, 400)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return internal_error()

    return jsonify({"product": product.to_dict()}), 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    """Edit name/category. Stock is changed through /restock or sales only."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
        enforce_rules_product(patch)
        product = products_service.update_product(product_id, patch=patch)
    except ValidationError as e:
        return error_response(e, 400)
    except NotFoundError as e:
        return error_response(e, 404)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return internal_error()

    return jsonify({"product": product.to_dict()}), 200


@products_bp.post("/<int:product_id>/restock")
def restock_product_route(product_id: int):
    try:
        payload = require_json_object(request.get_json(silent=True))
        quantity = parse_positive_int(payload.get("quantity"), "quantity")
        product = products_service.restock_product(product_id, quantity)
    except ValidationError as e:
        return error_response(e, 400)
    except NotFoundError as e:
        return error_response(e, 404)
    except BalanceError:
        current_app.logger.exception("Failed to restock product %s", product_id)
        return internal_error()

    return jsonify({"product": product.to_dict()}), 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id)
    except NotFoundError as e:
        return error_response(e, 404)
    except ConflictError as e:
        return error_response(e, 409)
    except Exception:
        current_app.logger.exception("Failed to delete product %s", product_id)
        return internal_error()

    return jsonify({"ok": True}), 200
