"""Custom exceptions for storefront."""


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    pass


class ValidationError(StorefrontError):
    """Raised when an input value is rejected before touching the store."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class EmptyCartError(StorefrontError):
    """Raised when checkout is attempted with no items in the cart."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__("Cart is empty")


class InsufficientStockError(StorefrontError):
    """Raised when a product has fewer units than requested."""

    def __init__(self, product_id: str, requested: int, available: int, title: str | None = None):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        self.title = title
        name = title or product_id
        super().__init__(
            f"{name} has only {available} items in stock, but you requested {requested}"
        )


class NotFoundError(StorefrontError):
    """Raised when an entity doesn't exist or isn't visible to the caller."""

    kind = "Entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.kind} not found: {entity_id}")


class ProductNotFoundError(NotFoundError):
    kind = "Product"


class OrderNotFoundError(NotFoundError):
    kind = "Order"


class CartItemNotFoundError(NotFoundError):
    kind = "Cart item"


class InvalidTransitionError(StorefrontError):
    """Raised when an order status change isn't allowed from its current status."""

    def __init__(self, order_id: str, current: str, target: str):
        self.order_id = order_id
        self.current = current
        self.target = target
        super().__init__(
            f"Order {order_id} cannot move from {current} to {target}"
        )


class ConflictError(StorefrontError):
    """Raised when state changed underneath an operation; retrying is safe."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Conflict: {reason}")


class PermissionDeniedError(StorefrontError):
    """Raised when the caller's role doesn't allow the operation."""

    def __init__(self, action: str, role: str):
        self.action = action
        self.role = role
        super().__init__(f"Role {role} is not allowed to {action}")


class StoreCorruptedError(StorefrontError):
    """Raised when the store document can't be read or has the wrong schema."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Store at {path} is unusable: {reason}")
