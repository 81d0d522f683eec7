"""Custom exceptions for the storefront order-processing core."""


class SaasError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class BusinessLogicError(SaasError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class NotFoundError(SaasError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class InvalidInputError(BusinessLogicError):
    """Malformed request values, rejected before any lock is taken."""
    def __init__(self, message, payload=None):
        super().__init__(message, status_code=422, payload=payload)


class InvalidStateError(BusinessLogicError):
    """The resource exists but its status does not allow the operation."""
    def __init__(self, message, payload=None):
        super().__init__(message, status_code=409, payload=payload)


class EmptyCartError(BusinessLogicError):
    """Checkout attempted on a cart without items."""
    def __init__(self, cart_id):
        super().__init__(f"Cart {cart_id} is empty", payload={'cart_id': cart_id})


class MissingPaymentDetailsError(BusinessLogicError):
    """Card payment chosen without card number or holder name."""
    def __init__(self, message="Card number and cardholder name are required for card payments"):
        super().__init__(message)


class ConflictError(SaasError):
    """The request is well formed but collides with concurrent state."""
    def __init__(self, message, payload=None):
        super().__init__(message, 409, payload)


class InsufficientStockError(ConflictError):
    """Raised when an operation fails due to lack of stock."""
    def __init__(self, product_id, available, requested, product_name=None):
        self.product_id = product_id
        self.available = int(available)
        self.requested = int(requested)
        label = product_name or f"product {product_id}"
        message = (
            f"Insufficient stock for {label}: "
            f"requested {self.requested}, available {self.available}"
        )
        super().__init__(message, payload={
            'product_id': product_id,
            'available': self.available,
            'requested': self.requested,
        })
