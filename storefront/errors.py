"""Error kinds reported by the storefront.

Every failure the cart and checkout operations can produce has its own class,
so the web and bot layers can map each one to a distinct response.
"""

from typing import Any, Dict


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    code = "error"
    status = 400

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or (self.__class__.__doc__ or self.code)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "code": self.code, "message": self.message}


class NotFoundError(StorefrontError):
    """Requested product, user or order doesn't exist"""

    code = "not_found"
    status = 404


class ValidationError(StorefrontError):
    """Malformed request"""

    code = "validation_error"


class EmptyCartError(StorefrontError):
    """Cart is empty"""

    code = "empty_cart"


class InsufficientBalanceError(StorefrontError):
    """Wallet balance not sufficient to place order"""

    code = "insufficient_balance"

    def __init__(self, balance: int, total: int) -> None:
        super().__init__(f"Wallet balance not sufficient to place order: balance={balance}, total={total}")
        self.balance = balance
        self.total = total


class MissingAddressError(StorefrontError):
    """Address not set"""

    code = "missing_address"


class AddressNotFoundError(StorefrontError):
    """Bad address specified"""

    code = "address_not_found"
    status = 404


class InvalidCartItemError(StorefrontError):
    """Invalid product in cart"""

    code = "invalid_cart_item"

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Invalid product in cart: {product_id}")
        self.product_id = product_id


class ConflictError(StorefrontError):
    """Cart was modified by another request"""

    code = "conflict"
    status = 409

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Stale cart version: expected {expected}, stored {actual}")
        self.expected = expected
        self.actual = actual


class AuthError(StorefrontError):
    """Protected route, Oauth2 Bearer token not found"""

    code = "unauthorized"
    status = 401


class PaymentError(StorefrontError):
    """Payment session could not be created"""

    code = "payment_failed"
    status = 502


class PersistenceError(StorefrontError):
    """Storage failure; the effect of the operation is unknown"""

    code = "persistence_error"
    status = 503
