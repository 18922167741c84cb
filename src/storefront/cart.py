"""Per-user cart storage for storefront."""

import logging
from typing import Any

from .document_store import DocumentStore
from .errors import CartItemNotFoundError, InsufficientStockError, ProductNotFoundError
from .models import Cart, CartItem, _generate_id, _utc_now, to_money
from .stock_ledger import check_quantity

logger = logging.getLogger(__name__)


def load_cart(data: dict[str, Any], user_id: str) -> Cart | None:
    """Read a user's cart out of a store document."""
    row = data["carts"].get(user_id)
    if row is None:
        return None
    return Cart.from_dict(row)


def save_cart(data: dict[str, Any], cart: Cart) -> None:
    """Write a cart back into a store document."""
    cart.updated_at = _utc_now()
    data["carts"][cart.user_id] = cart.to_dict()


class CartService:
    """
    Manages each user's cart.

    Lines keep the price the product had when it was added. Checkout reads
    those prices, not the catalog's.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    def get_cart(self, user_id: str) -> Cart:
        """Get the user's cart, creating an empty one on first access."""
        cart = load_cart(self.store.snapshot(), user_id)
        if cart is not None:
            return cart

        with self.store.transaction() as data:
            cart = load_cart(data, user_id)
            if cart is None:
                cart = Cart.create(user_id)
                save_cart(data, cart)
        return cart

    def add_item(self, user_id: str, product_id: str, quantity: int) -> Cart:
        """
        Add a product to the cart, merging with an existing line.

        A merged line takes the product's current price.

        Raises:
            ProductNotFoundError: If the product doesn't exist.
            InsufficientStockError: If the resulting quantity exceeds stock.
        """
        check_quantity(quantity)
        with self.store.transaction() as data:
            product = data["products"].get(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)

            cart = load_cart(data, user_id) or Cart.create(user_id)
            price = to_money(product["price"])
            existing = cart.find_product(product_id)
            wanted = quantity + (existing.quantity if existing else 0)
            if wanted > product["stock"]:
                raise InsufficientStockError(
                    product_id, requested=wanted, available=product["stock"], title=product["title"]
                )

            if existing:
                existing.quantity = wanted
                existing.price = price
            else:
                cart.items.append(
                    CartItem(id=_generate_id(), product_id=product_id, quantity=quantity, price=price)
                )
            save_cart(data, cart)

        logger.debug("Cart of %s: %s x%d", user_id, product_id, wanted)
        return cart

    def update_item(self, user_id: str, item_id: str, quantity: int) -> Cart:
        """
        Set the quantity of a cart line.

        Raises:
            CartItemNotFoundError: If the line isn't in the user's cart.
            InsufficientStockError: If quantity exceeds stock.
        """
        check_quantity(quantity)
        with self.store.transaction() as data:
            cart = load_cart(data, user_id)
            item = cart.find_item(item_id) if cart else None
            if item is None:
                raise CartItemNotFoundError(item_id)

            product = data["products"].get(item.product_id)
            if product is None:
                raise ProductNotFoundError(item.product_id)
            if quantity > product["stock"]:
                raise InsufficientStockError(
                    item.product_id, requested=quantity, available=product["stock"], title=product["title"]
                )

            item.quantity = quantity
            save_cart(data, cart)
        return cart

    def remove_item(self, user_id: str, item_id: str) -> Cart:
        """
        Remove a line from the cart.

        Raises:
            CartItemNotFoundError: If the line isn't in the user's cart.
        """
        with self.store.transaction() as data:
            cart = load_cart(data, user_id)
            if cart is None or cart.find_item(item_id) is None:
                raise CartItemNotFoundError(item_id)
            cart.items = [i for i in cart.items if i.id != item_id]
            save_cart(data, cart)
        return cart

    def clear(self, user_id: str) -> Cart:
        """Remove every line from the cart."""
        with self.store.transaction() as data:
            cart = load_cart(data, user_id) or Cart.create(user_id)
            cart.items = []
            save_cart(data, cart)
        return cart
