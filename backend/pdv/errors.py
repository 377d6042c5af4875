# Overview: Typed error hierarchy shared by the stock ledger, sale engine, catalog and reports.

"""
Every error raised by a service is a PdvError subclass carrying:

- code: machine-readable identifier (stable, API-safe)
- status: HTTP status the route layer answers with
- details: structured data about the failure

Services never catch-and-swallow these. Routes translate them with
routes.common.error_response().

    PdvError
    +-- AuthenticationError          401
    +-- ValidationError              400
    |   +-- InvalidDeltaError
    +-- ForbiddenError               403
    +-- NotFoundError                404
    |   +-- ProductNotFoundError
    |   +-- SaleNotFoundError
    +-- ConflictError                409
    |   +-- InsufficientStockError
    |   +-- WouldGoNegativeError
    |   +-- DuplicateSaleCodeError
    |   +-- DuplicateSkuError
    |   +-- InvalidStateError
    +-- TransientStorageError        503 (retryable)
"""

from __future__ import annotations


class PdvError(Exception):
    code = "PDV_ERROR"
    status = 500
    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class AuthenticationError(PdvError):
    code = "UNAUTHENTICATED"
    status = 401


class ValidationError(PdvError):
    """Malformed input; rejected before any storage access."""
    code = "VALIDATION_ERROR"
    status = 400


class InvalidDeltaError(ValidationError):
    code = "INVALID_DELTA"

    def __init__(self, movement_type: str, delta):
        super().__init__(
            f"Invalid quantity {delta!r} for {movement_type} movement",
            details={"type": movement_type, "delta": delta},
        )


class ForbiddenError(PdvError):
    code = "FORBIDDEN"
    status = 403


class NotFoundError(PdvError):
    code = "NOT_FOUND"
    status = 404


class ProductNotFoundError(NotFoundError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: int):
        super().__init__("Product not found", details={"product_id": product_id})
        self.product_id = product_id


class SaleNotFoundError(NotFoundError):
    code = "SALE_NOT_FOUND"

    def __init__(self, sale_id: int):
        super().__init__("Sale not found", details={"sale_id": sale_id})
        self.sale_id = sale_id


class ConflictError(PdvError):
    """Business rule conflict; nothing was written."""
    code = "CONFLICT"
    status = 409


class InsufficientStockError(ConflictError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: int, requested: int | None = None, on_hand: int | None = None):
        details = {"product_id": product_id}
        if requested is not None:
            details["requested_quantity"] = requested
        if on_hand is not None:
            details["on_hand"] = on_hand
        super().__init__("Insufficient stock", details=details)
        self.product_id = product_id


class WouldGoNegativeError(ConflictError):
    code = "WOULD_GO_NEGATIVE"

    def __init__(self, product_id: int, delta: int, on_hand: int | None = None):
        details = {"product_id": product_id, "delta": delta}
        if on_hand is not None:
            details["on_hand"] = on_hand
        super().__init__("Stock movement would make on-hand quantity negative", details=details)
        self.product_id = product_id
        self.delta = delta


class DuplicateSaleCodeError(ConflictError):
    code = "DUPLICATE_SALE_CODE"

    def __init__(self, attempts: int):
        super().__init__(
            "Could not allocate a unique sale code",
            details={"attempts": attempts},
        )


class DuplicateSkuError(ConflictError):
    code = "DUPLICATE_SKU"

    def __init__(self, sku: str):
        super().__init__("SKU already exists", details={"sku": sku})


class InvalidStateError(ConflictError):
    code = "INVALID_STATE"


class TransientStorageError(PdvError):
    """Lock timeout, deadlock or connection failure. Safe to retry the whole operation."""
    code = "TRANSIENT_STORAGE_ERROR"
    status = 503
    retryable = True
