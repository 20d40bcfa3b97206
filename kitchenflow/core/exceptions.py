"""
Fulfillment Exceptions

Every failure the engine reports to its callers derives from
FulfillmentError. The HTTP layer turns them into ErrorResponse bodies
using ``status_code`` and ``code``.

Author: Khalil Bannouri
Version: 1.0.0
"""

from typing import Optional


class FulfillmentError(Exception):
    """
    Raised when an order operation violates a domain rule.

    Attributes:
        message: Human readable description
        code: Machine-readable error code
        status_code: HTTP status the API layer responds with
    """

    status_code = 400
    default_code = "fulfillment_error"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)


class NotFound(FulfillmentError):
    """Order, unit, catalog entry or payment method does not exist."""

    status_code = 404
    default_code = "not_found"


class PreconditionFailed(FulfillmentError):
    """The target exists but is not in a state that allows the operation."""

    status_code = 409
    default_code = "precondition_failed"


class ConcurrentModification(PreconditionFailed):
    """The stored order changed since it was loaded (stale version token)."""

    default_code = "concurrent_modification"


class InvalidAdjustment(FulfillmentError):
    """Discount/complementary request is contradictory or out of range."""

    status_code = 422
    default_code = "invalid_adjustment"


class CatalogInconsistency(FulfillmentError):
    """
    A catalog entry referenced during decomposition is missing.

    Recovered locally by the decomposition engine (the component or line
    is skipped and logged); only surfaces when nothing in the request
    can be resolved.
    """

    status_code = 422
    default_code = "catalog_inconsistency"

    def __init__(self, catalog_id: str, message: Optional[str] = None):
        self.catalog_id = catalog_id
        super().__init__(message or f"Catalog entry {catalog_id!r} not found")
