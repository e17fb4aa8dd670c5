# Overview: Flask API routes for debt payments.

from flask import Blueprint, request, jsonify, current_app

from ..services import customers_service, payment_service, reporting_service, sales_service
from ..services.payment_service import PaymentError
from ..services.workflow import Workflow
from ..validation import (
    ValidationError,
    NotFoundError,
    validate_debt_payment,
    validate_payment_sale,
    parse_positive_int,
    parse_notes,
    require_json_object,
)
from .errors import error_response, internal_error


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("")
def record_payment_route():
    """
    Record a debt payment.

    Body: customer_id, amount_cents, payment_method (CASH | BANK_TRANSFER | CARD),
    optional sale_id and notes. Amounts above the customer's balance are
    rejected before anything is written.
    """
    workflow = Workflow(name="record_payment")

    try:
        data = require_json_object(request.get_json(silent=True))
        customer_id = parse_positive_int(data.get("customer_id"), "customer_id")
        customer = customers_service.get_customer(customer_id)
        amount_cents = validate_debt_payment(customer, data.get("amount_cents"), data.get("payment_method"))

        sale_id = data.get("sale_id")
        if sale_id is not None:
            sale_id = parse_positive_int(sale_id, "sale_id")
            try:
                sale = sales_service.get_sale(sale_id)
            except NotFoundError:
                sale = None
            validate_payment_sale(sale, customer.id)

        notes = parse_notes(data.get("notes"))

        payment = payment_service.record_payment(
            customer_id=customer.id,
            amount_cents=amount_cents,
            payment_method=data["payment_method"],
            sale_id=sale_id,
            notes=notes,
            workflow=workflow,
        )
    except ValidationError as e:
        return error_response(e, 400)
    except NotFoundError as e:
        return error_response(e, 404)
    except PaymentError as e:
        current_app.logger.error("Debt payment failed: %s", e)
        return error_response(e, 500)
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return internal_error()

    return jsonify({"payment": payment.to_dict(include_related=True), "workflow": workflow.to_dict()}), 201


@payments_bp.get("")
def list_payments_route():
    """All payments newest first; ?customer_id= narrows to one customer."""
    customer_id = request.args.get("customer_id", type=int)
    if customer_id:
        payments = payment_service.list_payments_by_customer(customer_id)
    else:
        payments = payment_service.list_payments()

    items = [p.to_dict(include_related=True) for p in payments]
    customers = [c.to_dict() for c in customers_service.list_customers_with_credit()]
    return jsonify({
        "items": items,
        "count": len(items),
        "summary": reporting_service.payments_summary(items, customers),
    }), 200


@payments_bp.get("/today")
def list_today_payments_route():
    items = [p.to_dict(include_related=True) for p in payment_service.list_today_payments()]
    return jsonify({"items": items, "count": len(items)}), 200
