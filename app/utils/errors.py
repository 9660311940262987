# app/utils/errors.py
"""
Service-level failures surfaced to API callers
Cache outages never appear here: the cache layer absorbs them
"""


class ServiceError(Exception):
    """Base class for failures returned to the caller as-is"""
    status_code = 500
    code = "INTERNAL"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    status_code = 404
    code = "NOT_FOUND"


class InvalidInputError(ServiceError, ValueError):
    status_code = 400
    code = "INVALID_INPUT"


class InsufficientStockError(ServiceError):
    status_code = 409
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, product_name: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for product: {product_name} "
            f"(requested {requested}, available {available})"
        )
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available
