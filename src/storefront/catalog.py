"""Product catalog storage for storefront."""

import logging
from decimal import Decimal, InvalidOperation

from .document_store import DocumentStore
from .errors import ProductNotFoundError, ValidationError
from .models import Product, to_money
from .stock_ledger import StockLedger

logger = logging.getLogger(__name__)


class ProductCatalog:
    """Creates and reads products. Stock changes go through the StockLedger."""

    def __init__(self, store: DocumentStore, ledger: StockLedger | None = None):
        self.store = store
        self.ledger = ledger or StockLedger(store)

    def list_products(self) -> list[Product]:
        """List all products ordered by title."""
        data = self.store.snapshot()
        products = [Product.from_dict(p) for p in data["products"].values()]
        return sorted(products, key=lambda p: p.title.lower())

    def get_product(self, product_id: str) -> Product:
        """
        Get a product by ID.

        Raises:
            ProductNotFoundError: If product doesn't exist.
        """
        row = self.store.snapshot()["products"].get(product_id)
        if row is None:
            raise ProductNotFoundError(product_id)
        return Product.from_dict(row)

    def add_product(
        self,
        title: str,
        price: Decimal | str | int,
        stock: int,
        description: str | None = None,
    ) -> Product:
        """
        Add a new product.

        Raises:
            ValidationError: If title is blank, price is negative or not a
                number, or stock is negative.
        """
        title = (title or "").strip()
        if not title:
            raise ValidationError("title", "must not be blank")
        try:
            amount = to_money(price)
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationError("price", f"not a number: {price!r}")
        if amount < 0:
            raise ValidationError("price", "must not be negative")
        if isinstance(stock, bool) or not isinstance(stock, int) or stock < 0:
            raise ValidationError("stock", "must be a non-negative integer")

        product = Product.create(title=title, price=amount, stock=stock, description=description)
        with self.store.transaction() as data:
            data["products"][product.id] = product.to_dict()

        logger.info("Added product %s (%s) with stock %d", product.id, title, stock)
        return product

    def restock(self, product_id: str, quantity: int) -> Product:
        """Add units to a product's stock and return the updated product."""
        new_stock = self.ledger.release(product_id, quantity, reason="restock")
        logger.info("Restocked %s by %d, now %d", product_id, quantity, new_stock)
        return self.get_product(product_id)
