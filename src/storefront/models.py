"""Data models for storefront."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any
import uuid

CENT = Decimal("0.01")


def _utc_now() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _generate_id() -> str:
    """Generate a new entity ID."""
    return str(uuid.uuid4())


def to_money(value: Any) -> Decimal:
    """Coerce a price to a Decimal rounded to cents."""
    if isinstance(value, float):
        value = repr(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


# Forward chain driven by fulfilment; CANCELLED sits outside it.
FULFILMENT_FLOW = (
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)

CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.PROCESSING})


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class UserContext:
    """Authenticated caller identity, passed explicitly into every operation."""

    user_id: str
    email: str = ""
    name: str = ""
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass
class Product:
    """A catalog product with its live stock count."""

    id: str
    title: str
    price: Decimal
    stock: int
    description: str | None = None
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "price": str(self.price),
            "stock": self.stock,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.description is not None:
            result["description"] = self.description
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        return cls(
            id=data["id"],
            title=data["title"],
            price=to_money(data["price"]),
            stock=data["stock"],
            description=data.get("description"),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )

    @classmethod
    def create(
        cls,
        title: str,
        price: Decimal,
        stock: int,
        description: str | None = None,
    ) -> "Product":
        """Create a new product with generated ID and timestamps."""
        now = _utc_now()
        return cls(
            id=_generate_id(),
            title=title,
            price=to_money(price),
            stock=stock,
            description=description,
            created_at=now,
            updated_at=now,
        )


@dataclass
class CartItem:
    """A product line in a cart, priced at the moment it was added."""

    id: str
    product_id: str
    quantity: int
    price: Decimal
    added_at: str = field(default_factory=_utc_now)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "price": str(self.price),
            "added_at": self.added_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartItem":
        return cls(
            id=data["id"],
            product_id=data["product_id"],
            quantity=data["quantity"],
            price=to_money(data["price"]),
            added_at=data.get("added_at", ""),
        )


@dataclass
class Cart:
    """A user's pending selection of products."""

    id: str
    user_id: str
    items: list[CartItem] = field(default_factory=list)
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    def total_value(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0.00"))

    def find_item(self, item_id: str) -> CartItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def find_product(self, product_id: str) -> CartItem | None:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "items": [i.to_dict() for i in self.items],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Cart":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            items=[CartItem.from_dict(i) for i in data.get("items", [])],
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )

    @classmethod
    def create(cls, user_id: str) -> "Cart":
        now = _utc_now()
        return cls(id=_generate_id(), user_id=user_id, items=[], created_at=now, updated_at=now)


@dataclass(frozen=True)
class OrderItem:
    """Immutable snapshot of one cart line at checkout."""

    id: str
    product_id: str
    quantity: int
    price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "price": str(self.price),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderItem":
        return cls(
            id=data["id"],
            product_id=data["product_id"],
            quantity=data["quantity"],
            price=to_money(data["price"]),
        )

    @classmethod
    def from_cart_item(cls, item: CartItem) -> "OrderItem":
        return cls(
            id=_generate_id(),
            product_id=item.product_id,
            quantity=item.quantity,
            price=item.price,
        )


@dataclass
class Order:
    """A completed checkout. Items and total are fixed; only status moves."""

    id: str
    user_id: str
    items: tuple[OrderItem, ...]
    total_amount: Decimal
    status: OrderStatus
    shipping_address: str
    payment_method: str
    contact_email: str = ""
    contact_name: str = ""
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "items": [i.to_dict() for i in self.items],
            "total_amount": str(self.total_amount),
            "status": self.status.value,
            "shipping_address": self.shipping_address,
            "payment_method": self.payment_method,
            "contact_email": self.contact_email,
            "contact_name": self.contact_name,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            items=tuple(OrderItem.from_dict(i) for i in data.get("items", [])),
            total_amount=to_money(data["total_amount"]),
            status=OrderStatus(data["status"]),
            shipping_address=data["shipping_address"],
            payment_method=data["payment_method"],
            contact_email=data.get("contact_email", ""),
            contact_name=data.get("contact_name", ""),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )

    @classmethod
    def create(
        cls,
        user_id: str,
        cart_items: list[CartItem],
        shipping_address: str,
        payment_method: str,
        contact_email: str = "",
        contact_name: str = "",
    ) -> "Order":
        """Snapshot cart lines into a new PENDING order and fix its total."""
        items = tuple(OrderItem.from_cart_item(ci) for ci in cart_items)
        now = _utc_now()
        return cls(
            id=_generate_id(),
            user_id=user_id,
            items=items,
            total_amount=sum((i.line_total for i in items), Decimal("0.00")),
            status=OrderStatus.PENDING,
            shipping_address=shipping_address,
            payment_method=payment_method,
            contact_email=contact_email,
            contact_name=contact_name,
            created_at=now,
            updated_at=now,
        )


@dataclass
class StockMovement:
    """One signed change to a product's stock, kept for audit."""

    product_id: str
    change: int
    reason: str
    created_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "change": self.change,
            "reason": self.reason,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StockMovement":
        return cls(
            product_id=data["product_id"],
            change=data["change"],
            reason=data["reason"],
            created_at=data.get("created_at", ""),
        )
