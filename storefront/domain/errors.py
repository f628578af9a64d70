# storefront/domain/errors.py


class NotFoundError(LookupError):
    """Requested order/payment/cart row does not exist."""


class ConflictError(RuntimeError):
    """Operation is not legal for the current state of the resource."""
