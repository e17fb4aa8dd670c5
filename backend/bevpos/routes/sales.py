# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/bevpos/routes/sales.py
"""Sales API routes: checkout, listing and deletion (with stock/credit reversal)."""

from flask import Blueprint, request, jsonify, current_app

from ..services import sales_service, reporting_service
from ..services.checkout_service import build_checkout
from ..services.sales_service import SaleError
from ..services.workflow import Workflow
from ..validation import ValidationError, DuplicateTransactionError, NotFoundError, require_json_object
from .errors import error_response, internal_error


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
def create_sale_route():
    """
    Check out a cart.

    Body: transaction_id, customer_id, payment_type (CASH | CREDIT),
    lines: [{product_id, quantity, unit_price_cents}, ...]

    Cart problems are rejected with 400 before anything is written. A
    transaction_id that is already used returns 409 with kind "duplicate".
    """
    workflow = Workflow(name="create_sale")

    try:
        data = require_json_object(request.get_json(silent=True))
        checkout = build_checkout(
            transaction_id=data.get("transaction_id"),
            customer_id=data.get("customer_id"),
            payment_type=data.get("payment_type"),
            lines=data.get("lines"),
        )
        sale = sales_service.create_sale(**checkout.as_sale_kwargs(), workflow=workflow)

    except ValidationError as e:
        return error_response(e, 400)
    except DuplicateTransactionError as e:
        return error_response(e, 409)
    except SaleError as e:
        current_app.logger.error("Sale checkout failed: %s", e)
        return error_response(e, 500)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return internal_error()

    return jsonify({"sale": sale.to_dict(include_items=True), "workflow": workflow.to_dict()}), 201


@sales_bp.get("")
def list_sales_route():
    """
    All sales newest first, with items.

    Query params: search, payment_type, date_range (today|week|month|year|all)
    """
    sales = [s.to_dict(include_items=True) for s in sales_service.list_sales()]
    try:
        items = reporting_service.filter_sales(
            sales,
            search=request.args.get("search"),
            payment_type=request.args.get("payment_type"),
            date_range=request.args.get("date_range", "all"),
        )
    except reporting_service.ReportError as e:
        return jsonify({"error": str(e), "kind": "validation"}), 400

    return jsonify({
        "items": items,
        "count": len(items),
        "summary": reporting_service.summarize_sales(items),
    }), 200


@sales_bp.get("/today")
def list_today_sales_route():
    sales = [s.to_dict(include_items=True) for s in sales_service.list_today_sales()]
    return jsonify({"items": sales, "count": len(sales), "summary": reporting_service.summarize_sales(sales)}), 200


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
    except NotFoundError as e:
        return error_response(e, 404)
    return jsonify({"sale": sale.to_dict(include_items=True)}), 200


@sales_bp.delete("/<int:sale_id>")
def delete_sale_route(sale_id: int):
    """
    Delete a sale, restoring stock and (for CREDIT) the customer's balance.

    Restorations already applied are kept even if the row deletes fail; the
    workflow in the response lists what happened.
    """
    workflow = Workflow(name="delete_sale")
    try:
        snapshot = sales_service.delete_sale(sale_id, workflow=workflow)
    except NotFoundError as e:
        return error_response(e, 404)
    except SaleError as e:
        current_app.logger.error("Sale deletion incomplete: %s", e)
        return error_response(e, 500)
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return internal_error()

    return jsonify({"sale": snapshot, "workflow": workflow.to_dict()}), 200
