# Overview: Flask API routes for customer accounts.

from flask import Blueprint, request, jsonify, current_app

from ..models import Customer
from ..services import customers_service, reporting_service, sales_service, payment_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_customer,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from .errors import error_response, internal_error

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "address"},
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
def list_customers():
    """List customers; ?search= matches name or phone, ?with_credit=true keeps debtors only."""
    with_credit = request.args.get("with_credit", "false").lower() == "true"
    if with_credit:
        customers = customers_service.list_customers_with_credit()
    else:
        customers = customers_service.list_customers()

    rows = [c.to_dict() for c in customers]
    items = reporting_service.filter_customers(rows, search=request.args.get("search"))
    return jsonify({
        "items": items,
        "count": len(items),
        "summary": reporting_service.customer_summary(rows),
    }), 200


@customers_bp.get("/<int:customer_id>")
def get_customer(customer_id: int):
    """Customer with their CREDIT sales and payment history."""
    try:
        customer = customers_service.get_customer(customer_id)
    except NotFoundError as e:
        return error_response(e, 404)

    credit_sales = sales_service.list_credit_sales_by_customer(customer_id)
    payments = payment_service.list_payments_by_customer(customer_id)
    return jsonify({
        "customer": customer.to_dict(),
        "credit_sales": [s.to_dict(include_items=True) for s in credit_sales],
        "payments": [p.to_dict(include_related=True) for p in payments],
    }), 200


@customers_bp.post("")
def create_customer_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        enforce_rules_customer(patch)
        customer = customers_service.create_customer(patch=patch)
    except ValidationError as e:
        return error_response(e, 400)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return internal_error()

    return jsonify({"customer": customer.to_dict()}), 201


@customers_bp.put("/<int:customer_id>")
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        enforce_rules_customer(patch)
        customer = customers_service.update_customer(customer_id, patch=patch)
    except ValidationError as e:
        return error_response(e, 400)
    except NotFoundError as e:
        return error_response(e, 404)
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return internal_error()

    return jsonify({"customer": customer.to_dict()}), 200


@customers_bp.delete("/<int:customer_id>")
def delete_customer_route(customer_id: int):
    try:
        customers_service.delete_customer(customer_id)
    except NotFoundError as e:
        return error_response(e, 404)
    except ConflictError as e:
        return error_response(e, 409)
    except Exception:
        current_app.logger.exception("Failed to delete customer %s", customer_id)
        return internal_error()

    return jsonify({"ok": True}), 200
