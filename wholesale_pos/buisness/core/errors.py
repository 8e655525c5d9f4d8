"""
Domain exceptions for the stock and pricing engine

These exceptions represent business rule violations. They are raised by the
business layer, never swallowed there, and rendered as JSON by the API
blueprint. Every error carries a machine readable kind, an HTTP status and a
details dict.
"""

from enum import Enum


class ErrorKind(str, Enum):
    MISSING_CONVERSION = "MissingConversion"
    INVALID_QUANTITY = "InvalidQuantity"
    INVALID_PROMOTION_CONFIG = "InvalidPromotionConfig"
    INSUFFICIENT_STOCK = "InsufficientStock"
    CONCURRENT_MODIFICATION = "ConcurrentModification"
    INVALID_CONVERSION = "InvalidConversion"
    INVALID_PRICE_TIER = "InvalidPriceTier"
    INVALID_UNIT = "InvalidUnit"
    INVALID_PRODUCT = "InvalidProduct"
    UNIT_IN_USE = "UnitInUse"
    DUPLICATE_UNIT = "DuplicateUnit"
    INVALID_MOVEMENT = "InvalidMovement"
    NOT_FOUND = "NotFound"
    INVALID_SALE_STATE = "InvalidSaleState"
    INVALID_PAYMENT_METHOD = "InvalidPaymentMethod"
    INVALID_ARGUMENT = "InvalidArgument"


class StockEngineError(Exception):
    """Base exception for all stock and pricing domain errors"""

    kind = None
    http_status = 400

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        return {
            'error': self.kind.value if self.kind else self.__class__.__name__,
            'message': self.message,
            'details': self.details,
        }


class MissingConversion(StockEngineError):
    """Raised when a non-base unit has no conversion row for the product"""

    kind = ErrorKind.MISSING_CONVERSION

    def __init__(self, product_id, unit_id):
        super().__init__(
            f"No conversion defined for unit {unit_id} on product {product_id}",
            product_id=product_id,
            unit_id=unit_id,
        )
        self.product_id = product_id
        self.unit_id = unit_id


class InvalidQuantity(StockEngineError):
    """Raised for zero, negative or non-numeric quantities"""

    kind = ErrorKind.INVALID_QUANTITY

    def __init__(self, message, quantity=None):
        super().__init__(message, quantity=quantity)
        self.quantity = quantity


class InvalidPromotionConfig(StockEngineError):
    """Raised when a promotion's configuration cannot produce a sane discount"""

    kind = ErrorKind.INVALID_PROMOTION_CONFIG

    def __init__(self, message, field=None):
        super().__init__(message, field=field)
        self.field = field


class InsufficientStock(StockEngineError):
    """Raised when an outflow would take stock below zero"""

    kind = ErrorKind.INSUFFICIENT_STOCK

    def __init__(self, product_id, product_name, available, requested):
        super().__init__(
            f"Insufficient stock for {product_name}: available {available}, requested {requested}",
            product_id=product_id,
            available=available,
            requested=requested,
        )
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested


class ConcurrentModification(StockEngineError):
    """Raised when a write keeps conflicting after the bounded retries"""

    kind = ErrorKind.CONCURRENT_MODIFICATION
    http_status = 409

    def __init__(self, message, attempts=None):
        super().__init__(message, attempts=attempts)
        self.attempts = attempts


class InvalidConversion(StockEngineError):
    kind = ErrorKind.INVALID_CONVERSION


class InvalidPriceTier(StockEngineError):
    kind = ErrorKind.INVALID_PRICE_TIER


class InvalidUnit(StockEngineError):
    kind = ErrorKind.INVALID_UNIT


class InvalidProduct(StockEngineError):
    kind = ErrorKind.INVALID_PRODUCT


class UnitInUse(StockEngineError):
    """Raised when changing a unit that products, conversions or stock history still reference"""

    kind = ErrorKind.UNIT_IN_USE
    http_status = 409

    def __init__(self, unit_id):
        super().__init__(f"Unit {unit_id} is referenced and cannot be changed", unit_id=unit_id)
        self.unit_id = unit_id


class InvalidMovement(StockEngineError):
    """Raised for unknown movement types or outflow reasons"""

    kind = ErrorKind.INVALID_MOVEMENT


class DuplicateUnit(StockEngineError):
    kind = ErrorKind.DUPLICATE_UNIT
    http_status = 409


class NotFound(StockEngineError):
    kind = ErrorKind.NOT_FOUND
    http_status = 404

    def __init__(self, entity, entity_id):
        super().__init__(f"{entity} {entity_id} not found", entity=entity, entity_id=entity_id)
        self.entity_id = entity_id


class ProductNotFound(NotFound):
    def __init__(self, product_id):
        super().__init__("Product", product_id)


class UnitNotFound(NotFound):
    def __init__(self, unit_id):
        super().__init__("Unit", unit_id)


class SaleNotFound(NotFound):
    def __init__(self, sale_id):
        super().__init__("Sale", sale_id)


class InvalidSaleState(StockEngineError):
    kind = ErrorKind.INVALID_SALE_STATE
    http_status = 409


class InvalidPaymentMethod(StockEngineError):
    kind = ErrorKind.INVALID_PAYMENT_METHOD

    def __init__(self, payment_method, allowed):
        super().__init__(
            f"Unknown payment method: {payment_method}",
            payment_method=payment_method,
            allowed=list(allowed),
        )
        self.payment_method = payment_method


class InvalidArgument(StockEngineError):
    """Raised for malformed request values that are not quantities"""

    kind = ErrorKind.INVALID_ARGUMENT

    def __init__(self, message, field=None):
        super().__init__(message, field=field)
        self.field = field
