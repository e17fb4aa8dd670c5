from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .models import PRODUCT_CATEGORIES, PAYMENT_METHODS
from .models.sales import PAYMENT_TYPE_CREDIT


# Largest amount accepted for any single money field: 99,999,999.99
MAX_AMOUNT_CENTS = 9_999_999_999


class ValidationError(ValueError):
    """400-level input problem."""
    kind = "validation"


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., deleting a referenced row)."""
    kind = "conflict"


class DuplicateTransactionError(ConflictError):
    """The transaction_id is already taken by another sale."""
    kind = "duplicate"


class NotFoundError(LookupError):
    """404-level missing record."""
    kind = "not_found"


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def require_json_object(payload: Any) -> dict:
    """A missing body counts as {}; arrays and scalars are rejected."""
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    payload = require_json_object(payload)

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)):
            if val == "":
                # Optional text fields store blanks as NULL
                if col.nullable:
                    val = None
                else:
                    raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def parse_positive_int(value: Any, field: str) -> int:
    """Coerce a request value to an int > 0 (bools and floats rejected)."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a positive integer")
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise ValidationError(f"{field} must be a positive integer")
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return value


def parse_amount_cents(value: Any, field: str) -> int:
    """Money amounts arrive as integer cents; negative values are rejected."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be an integer amount in cents")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.isdigit():
            raise ValidationError(f"{field} must be an integer amount in cents")
        value = int(stripped)
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer amount in cents")
    if value < 0:
        raise ValidationError(f"{field} must be >= 0")
    if value > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS}")
    return value


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "category" in patch and patch["category"] not in PRODUCT_CATEGORIES:
        raise ValidationError(f"category must be one of: {', '.join(PRODUCT_CATEGORIES)}")

    if "stock" in patch and patch["stock"] is not None:
        if patch["stock"] < 0:
            raise ValidationError("stock must be >= 0")


def enforce_rules_customer(patch: dict) -> None:
    if "name" in patch and not patch["name"]:
        raise ValidationError("name cannot be blank")


def validate_debt_payment(customer, amount_cents: Any, payment_method: Any) -> int:
    """
    Caller-side checks before a debt payment touches the database.

    Returns the normalized amount. The amount may not exceed what the
    customer currently owes.
    """
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    amount = parse_amount_cents(amount_cents, "amount_cents")
    if amount <= 0:
        raise ValidationError("amount_cents must be > 0")
    if amount > customer.credit_balance_cents:
        raise ValidationError(
            f"Payment amount cannot exceed outstanding credit of {customer.credit_balance_cents} cents"
        )
    return amount


# Matches DebtPayment.notes
MAX_NOTES_LENGTH = 255


def validate_payment_sale(sale, customer_id: int) -> None:
    """A payment may only reference one of the paying customer's CREDIT sales."""
    if sale is None:
        raise ValidationError("Sale not found")
    if sale.customer_id != customer_id:
        raise ValidationError("Sale belongs to a different customer")
    if sale.payment_type != PAYMENT_TYPE_CREDIT:
        raise ValidationError("Payments can only reference CREDIT sales")


def parse_notes(value: Any) -> str | None:
    if value is None:
        return None
    notes = str(value).strip()
    if len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(f"notes exceeds max length {MAX_NOTES_LENGTH}")
    return notes or None
