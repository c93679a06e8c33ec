"""Custom exceptions for the order management application."""


class AppError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['success'] = False
        rv['error'] = self.message
        return rv


class FieldError:
    """A single failing field, surfaced verbatim to the caller."""
    __slots__ = ('field', 'message')

    def __init__(self, field, message):
        self.field = field
        self.message = message

    def to_dict(self):
        return {'field': self.field, 'message': self.message}

    def __eq__(self, other):
        return isinstance(other, FieldError) and (self.field, self.message) == (other.field, other.message)

    def __repr__(self):
        return f"<FieldError {self.field}: {self.message}>"


class ValidationError(AppError):
    """Malformed input. Keeps every failing field, not just the first."""
    def __init__(self, errors, message="Validation failed"):
        if isinstance(errors, FieldError):
            errors = [errors]
        self.errors = list(errors)
        super().__init__(message, 400, {'details': [e.to_dict() for e in self.errors]})

    @property
    def fields(self):
        return [e.field for e in self.errors]


class BusinessLogicError(AppError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class NotFoundError(AppError):
    """Exception raised when a resource is absent or inactive."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class ConflictError(AppError):
    """Duplicate unique key (customer email, lookup category+key, product name)."""
    def __init__(self, message, payload=None):
        super().__init__(message, 409, payload)


class InsufficientStockError(BusinessLogicError):
    """Raised when an order needs more units than a product has in stock."""
    def __init__(self, product_name, required, available):
        message = f"Insufficient stock for {product_name}: {required} required, {available} available"
        super().__init__(message, status_code=409, payload={
            'product': product_name,
            'required': required,
            'available': available
        })


class PersistenceError(AppError):
    """Underlying storage failure. Details are logged, never returned."""
    def __init__(self, message="The operation could not be completed"):
        super().__init__(message, 500)
