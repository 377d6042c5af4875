from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .models import PAYMENT_METHODS


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999
MAX_ITEM_QUANTITY = 1_000_000
MAX_BUYER_NAME_LENGTH = 120


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - extra_fields: accepted keys that are not model columns (handled by the service)
    """
    writable_fields: set[str]
    required_on_create: set[str] = frozenset()
    extra_fields: dict[str, type] | None = None


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion: ints and plain-digit strings only.

    Floats, booleans, decimals and scientific notation are rejected.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


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
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    extra = policy.extra_fields or {}

    if not partial:
        missing = sorted(f for f in policy.required_on_create if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k in extra:
            continue
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        if k in extra:
            if raw is not None:
                patch[k] = coerce_int(raw, k) if extra[k] is int else raw
            continue

        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    """
    for field in ("price_cents", "cost_cents"):
        if field in patch and patch[field] is not None:
            value = patch[field]
            if value < 0:
                raise ValidationError(f"{field} must be >= 0")
            if value > MAX_PRICE_CENTS:
                raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS}")

    if "stock_on_hand" in patch and patch["stock_on_hand"] is not None:
        if patch["stock_on_hand"] < 0:
            raise ValidationError("stock_on_hand must be >= 0")


def parse_payment_method(value: Any) -> str:
    method = str(value if value is not None else "").strip().upper()
    if method not in PAYMENT_METHODS:
        raise ValidationError(
            f"payment_method must be one of {' | '.join(PAYMENT_METHODS)}",
            details={"payment_method": value},
        )
    return method


def parse_buyer_name(value: Any) -> str | None:
    if value is None:
        return None
    name = str(value).strip()
    if not name:
        return None
    if len(name) > MAX_BUYER_NAME_LENGTH:
        raise ValidationError(f"buyer_name exceeds max length {MAX_BUYER_NAME_LENGTH}")
    return name


def parse_cart(items: Any) -> list[CartLine]:
    """
    Validate the cart before any storage access.

    Accepts dicts ({"product_id"|"productId", "qty"|"quantity"}), CartLine
    instances or (product_id, qty) pairs.
    """
    if not isinstance(items, (list, tuple)) or not items:
        raise ValidationError("items is required and must be a non-empty list")

    lines: list[CartLine] = []
    for idx, item in enumerate(items):
        if isinstance(item, CartLine):
            raw_product, raw_qty = item.product_id, item.quantity
        elif isinstance(item, dict):
            raw_product = item.get("product_id", item.get("productId"))
            raw_qty = item.get("qty", item.get("quantity"))
        elif isinstance(item, (list, tuple)) and len(item) == 2:
            raw_product, raw_qty = item
        else:
            raise ValidationError(f"items[{idx}] is invalid")

        if raw_product is None:
            raise ValidationError(f"items[{idx}].product_id is required")
        if raw_qty is None:
            raise ValidationError(f"items[{idx}].qty is required")

        product_id = coerce_int(raw_product, f"items[{idx}].product_id")
        quantity = coerce_int(raw_qty, f"items[{idx}].qty")
        if quantity <= 0:
            raise ValidationError(f"items[{idx}].qty must be > 0")
        if quantity > MAX_ITEM_QUANTITY:
            raise ValidationError(f"items[{idx}].qty cannot exceed {MAX_ITEM_QUANTITY}")
        lines.append(CartLine(product_id=product_id, quantity=quantity))

    return lines
